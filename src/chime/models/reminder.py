"""Reminder model — a scheduled job plus its delivery and claim bookkeeping."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chime.db.session import Base
from chime.models.base import TimestampMixin, new_uuid


class LifecycleState(enum.StrEnum):
    ACTIVE = "active"
    PROCESSING = "processing"
    TERMINAL = "terminal"
    FAILED = "failed"


class Reminder(Base, TimestampMixin):
    __tablename__ = "reminders"
    __table_args__ = (
        Index("ix_reminders_due", "lifecycle_state", "next_occurrence_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)

    # Schedule
    schedule_kind: Mapped[str] = mapped_column(String(20), nullable=False, default="once")
    timezone: Mapped[str | None] = mapped_column(String(64))
    once_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    interval_minutes: Mapped[int | None] = mapped_column(Integer)
    at_time: Mapped[str | None] = mapped_column(String(5))
    by_weekday: Mapped[int | None] = mapped_column(Integer)
    by_monthday: Mapped[int | None] = mapped_column(Integer)
    by_month: Mapped[int | None] = mapped_column(Integer)

    # Delivery bookkeeping
    next_occurrence_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    lifecycle_state: Mapped[LifecycleState] = mapped_column(
        Enum(LifecycleState, values_callable=lambda e: [m.value for m in e]),
        default=LifecycleState.ACTIVE,
        nullable=False,
    )
    attempt_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text)
    retry_not_before: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)

    # Claim bookkeeping
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    claimed_by: Mapped[str | None] = mapped_column(String(255))
    claiming_tick_id: Mapped[str | None] = mapped_column(String(36))

    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    user: Mapped[User] = relationship(back_populates="reminders")  # noqa: F821
    attachments: Mapped[list[ReminderAttachment]] = relationship(
        back_populates="reminder",
        cascade="all, delete-orphan",
        order_by="ReminderAttachment.created_at",
    )

    def __repr__(self) -> str:
        return f"<Reminder {(self.title or '')[:30]!r} id={self.id!r}>"


class ReminderAttachment(Base):
    __tablename__ = "reminder_attachments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    reminder_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("reminders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    archive_chat_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    archive_message_id: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    caption: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    reminder: Mapped[Reminder] = relationship(back_populates="attachments")

    def __repr__(self) -> str:
        return f"<ReminderAttachment {self.kind} msg={self.archive_message_id}>"
