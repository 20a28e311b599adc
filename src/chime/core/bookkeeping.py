"""Tick run bookkeeping and the health view derived from it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chime.core.recurrence import ensure_utc
from chime.models.reminder import Reminder
from chime.models.tick_run import TickRun

logger = logging.getLogger(__name__)


@dataclass
class TickCounts:
    claimed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0


@dataclass(frozen=True)
class CronHealth:
    last_success_tick_time: datetime | None = None
    last_tick_id: str | None = None
    last_sent_at: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        def iso(value: datetime | None) -> str | None:
            return value.isoformat() if value is not None else None

        return {
            "last_success_tick_time": iso(self.last_success_tick_time),
            "last_tick_id": self.last_tick_id,
            "last_sent_at": iso(self.last_sent_at),
            "last_error": self.last_error,
        }


class TickRunRecorder:
    """Writes one ``tick_runs`` row per tick.

    Recording is best effort: a failed write is logged and never aborts the tick.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        if session_factory is None:
            from chime.db.session import get_session_factory

            session_factory = get_session_factory()
        self._session_factory = session_factory

    async def start(self, tick_id: str, started_at: datetime) -> None:
        try:
            async with self._session_factory() as session:
                session.add(TickRun(tick_id=tick_id, started_at=started_at))
                await session.commit()
        except SQLAlchemyError as exc:
            logger.warning("Failed to record start of tick %s: %s", tick_id, exc)

    async def finish(
        self,
        tick_id: str,
        finished_at: datetime,
        counts: TickCounts,
        notes: str | None = None,
    ) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    update(TickRun)
                    .where(TickRun.tick_id == tick_id)
                    .values(
                        finished_at=finished_at,
                        claimed=counts.claimed,
                        sent=counts.sent,
                        failed=counts.failed,
                        skipped=counts.skipped,
                        notes=notes,
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.warning("Failed to record finish of tick %s: %s", tick_id, exc)

    async def health(self) -> CronHealth:
        try:
            async with self._session_factory() as session:
                last_run = (
                    await session.execute(
                        select(TickRun).order_by(TickRun.started_at.desc()).limit(1)
                    )
                ).scalar_one_or_none()
                last_success = (
                    await session.execute(
                        select(TickRun.finished_at)
                        .where(TickRun.finished_at.is_not(None), TickRun.notes.is_(None))
                        .order_by(TickRun.finished_at.desc())
                        .limit(1)
                    )
                ).scalar_one_or_none()
                last_sent = (
                    await session.execute(select(func.max(Reminder.last_delivered_at)))
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.warning("Failed to load cron health: %s", exc)
            return CronHealth()

        return CronHealth(
            last_success_tick_time=ensure_utc(last_success),
            last_tick_id=last_run.tick_id if last_run is not None else None,
            last_sent_at=ensure_utc(last_sent),
            last_error=last_run.notes if last_run is not None else None,
        )
