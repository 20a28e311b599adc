"""ArchiveItem model — rich reminder content kept in a Telegram archive channel."""

from __future__ import annotations

import enum

from sqlalchemy import JSON, BigInteger, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from chime.db.session import Base
from chime.models.base import TimestampMixin, new_uuid


class ArchiveItemStatus(enum.StrEnum):
    ACTIVE = "active"
    DELETED = "deleted"
    RINGED = "ringed"


class ArchiveItem(Base, TimestampMixin):
    __tablename__ = "archive_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    owner_user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    channel_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # message ids in the order they were recorded in the archive channel
    message_ids: Mapped[list] = mapped_column(JSON, default=list)
    status: Mapped[ArchiveItemStatus] = mapped_column(
        Enum(ArchiveItemStatus, values_callable=lambda e: [m.value for m in e]),
        default=ArchiveItemStatus.ACTIVE,
    )
    status_note: Mapped[str | None] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<ArchiveItem {self.kind}:{self.entity_id} id={self.id!r}>"
