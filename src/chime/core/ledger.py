"""Delivery ledger — one outcome row per (reminder, occurrence)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chime.core.errors import StoreError
from chime.core.recurrence import ensure_utc
from chime.models.delivery import ReminderDelivery


def delivery_key_for(job_id: str, occurrence: datetime) -> str:
    """Return ``<job_id>:<occurrence as ISO-8601 UTC with milliseconds>``."""
    stamp = ensure_utc(occurrence).isoformat(timespec="milliseconds")
    return f"{job_id}:{stamp.replace('+00:00', 'Z')}"


class DeliveryLedger:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        if session_factory is None:
            from chime.db.session import get_session_factory

            session_factory = get_session_factory()
        self._session_factory = session_factory

    async def has_succeeded(self, job_id: str, delivery_key: str) -> bool:
        """True when a successful delivery is already recorded for this occurrence."""
        try:
            async with self._session_factory() as session:
                record = await session.get(ReminderDelivery, (job_id, delivery_key))
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read delivery {delivery_key}: {exc}") from exc
        return bool(record is not None and record.ok)

    async def record(
        self,
        job_id: str,
        delivery_key: str,
        tick_id: str,
        ok: bool,
        error: str | None,
        sent_at: datetime,
    ) -> None:
        """Insert or overwrite the outcome for ``(job_id, delivery_key)``."""
        try:
            async with self._session_factory() as session:
                await session.merge(
                    ReminderDelivery(
                        reminder_id=job_id,
                        delivery_key=delivery_key,
                        tick_id=tick_id,
                        ok=ok,
                        error=error,
                        sent_at=sent_at,
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to record delivery {delivery_key}: {exc}") from exc
