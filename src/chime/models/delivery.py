"""ReminderDelivery model — one outcome row per (reminder, occurrence)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from chime.db.session import Base


class ReminderDelivery(Base):
    __tablename__ = "reminder_deliveries"

    reminder_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("reminders.id", ondelete="CASCADE"), primary_key=True
    )
    delivery_key: Mapped[str] = mapped_column(String(100), primary_key=True)
    tick_id: Mapped[str] = mapped_column(String(36), nullable=False)
    ok: Mapped[bool] = mapped_column(Boolean, nullable=False)
    error: Mapped[str | None] = mapped_column(Text)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ReminderDelivery {self.delivery_key!r} ok={self.ok}>"
