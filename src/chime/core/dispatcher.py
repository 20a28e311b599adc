"""Claim-and-lock dispatcher — hands due reminders to exactly one tick at a time.

Claiming is a single transaction: due rows are selected with
``FOR UPDATE SKIP LOCKED`` and stamped ``processing`` before commit, so two
overlapping ticks can never claim the same reminder.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Select, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chime.core.errors import StoreError
from chime.core.recurrence import ensure_utc
from chime.core.schedule import Schedule, ScheduleKind, schedule_from_fields
from chime.models.reminder import LifecycleState, Reminder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobSnapshot:
    """Immutable copy of a reminder row as it looked when it was claimed."""

    id: str
    user_id: str
    title: str | None
    description: str | None
    schedule_kind: str
    timezone: str | None
    once_at: datetime | None
    interval_minutes: int | None
    at_time: str | None
    by_weekday: int | None
    by_monthday: int | None
    by_month: int | None
    next_occurrence_at: datetime | None
    attempt_count: int = 0
    last_error: str | None = None

    @classmethod
    def from_row(cls, row: Reminder) -> JobSnapshot:
        return cls(
            id=row.id,
            user_id=row.user_id,
            title=row.title,
            description=row.description,
            schedule_kind=row.schedule_kind,
            timezone=row.timezone,
            once_at=ensure_utc(row.once_at),
            interval_minutes=row.interval_minutes,
            at_time=row.at_time,
            by_weekday=row.by_weekday,
            by_monthday=row.by_monthday,
            by_month=row.by_month,
            next_occurrence_at=ensure_utc(row.next_occurrence_at),
            attempt_count=row.attempt_count or 0,
            last_error=row.last_error,
        )

    @property
    def is_once(self) -> bool:
        return self.schedule_kind == ScheduleKind.ONCE

    def schedule(self, default_timezone: str = "UTC") -> Schedule:
        """Rebuild the schedule variant; raises ``InvalidScheduleError``."""
        return schedule_from_fields(
            self.schedule_kind,
            self.timezone or default_timezone,
            once_at=self.once_at,
            interval_minutes=self.interval_minutes,
            at_time=self.at_time,
            by_weekday=self.by_weekday,
            by_monthday=self.by_monthday,
            by_month=self.by_month,
        )


def due_jobs_query(now: datetime, limit: int) -> Select:
    """Oldest-due-first selection of claimable reminders, row-locked."""
    return (
        select(Reminder)
        .where(
            Reminder.enabled.is_(True),
            Reminder.deleted_at.is_(None),
            Reminder.lifecycle_state == LifecycleState.ACTIVE,
            Reminder.next_occurrence_at.is_not(None),
            Reminder.next_occurrence_at <= now,
        )
        .order_by(Reminder.next_occurrence_at)
        .limit(limit)
        .with_for_update(skip_locked=True)
    )


_CLEARED_CLAIM = {"claimed_at": None, "claimed_by": None}


class ClaimDispatcher:
    """Moves reminders between lifecycle states on behalf of a tick."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        if session_factory is None:
            from chime.db.session import get_session_factory

            session_factory = get_session_factory()
        self._session_factory = session_factory

    async def claim_due_jobs(
        self, tick_id: str, max_batch: int, worker_id: str, now: datetime
    ) -> list[JobSnapshot]:
        """Claim up to ``max_batch`` due reminders for ``tick_id``.

        Returns snapshots taken before the claim stamp was applied. On any
        storage error the transaction is rolled back and nothing is claimed.
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(due_jobs_query(now, max_batch))
                snapshots = [JobSnapshot.from_row(row) for row in result.scalars().all()]
                if snapshots:
                    await session.execute(
                        update(Reminder)
                        .where(Reminder.id.in_([job.id for job in snapshots]))
                        .values(
                            lifecycle_state=LifecycleState.PROCESSING,
                            claimed_at=now,
                            claimed_by=worker_id,
                            claiming_tick_id=tick_id,
                        )
                        .execution_options(synchronize_session=False)
                    )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to claim due reminders: {exc}") from exc

        logger.debug("Tick %s claimed %d reminders", tick_id, len(snapshots))
        return snapshots

    async def release_jobs(self, job_ids: Iterable[str]) -> int:
        """Hand claimed reminders back to the queue untouched."""
        ids = list(job_ids)
        if not ids:
            return 0
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    update(Reminder)
                    .where(
                        Reminder.id.in_(ids),
                        Reminder.lifecycle_state == LifecycleState.PROCESSING,
                    )
                    .values(lifecycle_state=LifecycleState.ACTIVE, **_CLEARED_CLAIM)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            # Rows stay in processing until the stale-claim sweep picks them up.
            logger.warning("Failed to release %d claimed reminders: %s", len(ids), exc)
            return 0
        return result.rowcount or 0

    async def mark_delivered(
        self,
        job: JobSnapshot,
        sent_at: datetime,
        next_occurrence: datetime | None,
        tick_id: str,
    ) -> None:
        if job.is_once:
            values = {
                "lifecycle_state": LifecycleState.TERMINAL,
                "enabled": False,
                "next_occurrence_at": None,
            }
        else:
            values = {
                "lifecycle_state": LifecycleState.ACTIVE,
                "next_occurrence_at": next_occurrence,
            }
        await self._update(
            job.id,
            last_delivered_at=sent_at,
            attempt_count=0,
            last_error=None,
            retry_not_before=None,
            claiming_tick_id=tick_id,
            **_CLEARED_CLAIM,
            **values,
        )

    async def mark_failed(
        self,
        job: JobSnapshot,
        error: str,
        retry_not_before: datetime,
        attempt_count: int,
        tick_id: str,
    ) -> None:
        await self._update(
            job.id,
            lifecycle_state=LifecycleState.FAILED,
            last_error=error,
            retry_not_before=retry_not_before,
            attempt_count=attempt_count,
            claiming_tick_id=tick_id,
            **_CLEARED_CLAIM,
        )

    async def release_stale_claims(self, older_than: datetime) -> int:
        """Return reminders stuck in ``processing`` since before ``older_than``."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    update(Reminder)
                    .where(
                        Reminder.lifecycle_state == LifecycleState.PROCESSING,
                        Reminder.claimed_at < older_than,
                    )
                    .values(lifecycle_state=LifecycleState.ACTIVE, **_CLEARED_CLAIM)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to release stale claims: {exc}") from exc
        released = result.rowcount or 0
        if released:
            logger.warning("Released %d stale claims older than %s", released, older_than)
        return released

    async def requeue_failed(self, now: datetime) -> int:
        """Re-activate failed reminders whose retry window has opened."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    update(Reminder)
                    .where(
                        Reminder.lifecycle_state == LifecycleState.FAILED,
                        Reminder.enabled.is_(True),
                        Reminder.deleted_at.is_(None),
                        (Reminder.retry_not_before.is_(None))
                        | (Reminder.retry_not_before <= now),
                    )
                    .values(lifecycle_state=LifecycleState.ACTIVE, retry_not_before=None)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to requeue failed reminders: {exc}") from exc
        requeued = result.rowcount or 0
        logger.info("Requeued %d failed reminders", requeued)
        return requeued

    async def _update(self, job_id: str, **values) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    update(Reminder)
                    .where(Reminder.id == job_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to update reminder {job_id}: {exc}") from exc
