"""Tick orchestrator — one bounded pass over due reminders.

A tick claims a batch of due reminders, delivers each one at most once per
occurrence, records the outcome and reschedules or backs off. It stops early
when its runtime budget runs out or the channel rate-limits us; whatever it
did not get to is handed back to the queue for the next tick.
"""

from __future__ import annotations

import asyncio
import os
import socket
import time
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog

from chime.core.backoff import Failure, FailureController, RateLimit, Terminal, classify
from chime.core.bookkeeping import TickCounts, TickRunRecorder
from chime.core.delivery import ReminderDeliverer
from chime.core.dispatcher import ClaimDispatcher, JobSnapshot
from chime.core.errors import InvalidScheduleError
from chime.core.ledger import DeliveryLedger, delivery_key_for
from chime.core.recurrence import next_occurrence
from chime.core.schedule import Schedule

if TYPE_CHECKING:
    from chime.channels.base import BaseChannel
    from chime.config import Settings

logger = structlog.get_logger(__name__)


def default_worker_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class TickResult:
    ok: bool
    tick_id: str
    claimed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    duration_ms: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ok": self.ok,
            "tick_id": self.tick_id,
            "claimed": self.claimed,
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_ms": self.duration_ms,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


class TickOrchestrator:
    def __init__(
        self,
        dispatcher: ClaimDispatcher,
        ledger: DeliveryLedger,
        failures: FailureController,
        runs: TickRunRecorder,
        deliverer: ReminderDeliverer,
        *,
        worker_id: str,
        max_batch: int = 50,
        max_runtime_ms: int = 25_000,
        send_delay_ms: int = 0,
        claim_timeout_seconds: int = 0,
        default_timezone: str = "UTC",
        clock: Callable[[], datetime] = _utcnow,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.dispatcher = dispatcher
        self.ledger = ledger
        self.failures = failures
        self.runs = runs
        self.deliverer = deliverer
        self.worker_id = worker_id
        self.max_batch = max_batch
        self.max_runtime_ms = max_runtime_ms
        self.send_delay_ms = send_delay_ms
        self.claim_timeout_seconds = claim_timeout_seconds
        self.default_timezone = default_timezone
        self._clock = clock
        self._monotonic = monotonic
        self._sleep = sleep

    async def run(self) -> TickResult:
        tick_id = str(uuid.uuid4())
        started = self._monotonic()
        counts = TickCounts()
        log = logger.bind(tick_id=tick_id)

        await self.runs.start(tick_id, self._clock())
        log.info("Tick started", max_batch=self.max_batch, max_runtime_ms=self.max_runtime_ms)

        jobs: list[JobSnapshot] = []
        position = 0
        try:
            if self.claim_timeout_seconds > 0:
                cutoff = self._clock() - timedelta(seconds=self.claim_timeout_seconds)
                await self.dispatcher.release_stale_claims(cutoff)

            jobs = await self.dispatcher.claim_due_jobs(
                tick_id, self.max_batch, self.worker_id, self._clock()
            )
            counts.claimed = len(jobs)

            while position < len(jobs):
                if self._elapsed_ms(started) > self.max_runtime_ms:
                    log.warning("Tick runtime budget exhausted", released=len(jobs) - position)
                    await self._release(jobs[position:], counts)
                    position = len(jobs)
                    break

                failure = await self._process(jobs[position], tick_id, counts, log)
                position += 1
                if isinstance(failure, RateLimit):
                    log.warning(
                        "Rate limited, releasing remainder",
                        retry_after_seconds=failure.retry_after_seconds,
                        released=len(jobs) - position,
                    )
                    await self._release(jobs[position:], counts)
                    position = len(jobs)
                    break
        except Exception as exc:  # noqa: BLE001
            message = str(exc) or type(exc).__name__
            log.exception("Tick failed", error=message)
            await self._release(jobs[position:], counts)
            await self.runs.finish(tick_id, self._clock(), counts, notes=message)
            return self._result(False, tick_id, counts, started, error=message)

        await self.runs.finish(tick_id, self._clock(), counts)
        result = self._result(True, tick_id, counts, started)
        log.info(
            "Tick finished",
            claimed=counts.claimed,
            sent=counts.sent,
            failed=counts.failed,
            skipped=counts.skipped,
            duration_ms=result.duration_ms,
        )
        return result

    async def _process(
        self, job: JobSnapshot, tick_id: str, counts: TickCounts, log
    ) -> Failure | None:
        occurrence = job.next_occurrence_at or self._clock()
        delivery_key = delivery_key_for(job.id, occurrence)

        try:
            schedule = job.schedule(self.default_timezone)
        except InvalidScheduleError as exc:
            failure = Terminal(str(exc))
            await self._record_failure(job, delivery_key, tick_id, failure, counts, log)
            return failure

        if await self.ledger.has_succeeded(job.id, delivery_key):
            await self._advance(job, schedule, occurrence, tick_id)
            counts.skipped += 1
            log.info(
                "Reminder already delivered, skipping", job_id=job.id, delivery_key=delivery_key
            )
            return None

        try:
            await self.deliverer.deliver(job)
        except Exception as exc:  # noqa: BLE001
            failure = classify(exc)
            await self._record_failure(job, delivery_key, tick_id, failure, counts, log)
            return failure

        sent_at = self._clock()
        await self.ledger.record(job.id, delivery_key, tick_id, True, None, sent_at)
        await self._advance(job, schedule, sent_at, tick_id)
        counts.sent += 1
        log.info(
            "Reminder sent", job_id=job.id, user_id=job.user_id, schedule_kind=job.schedule_kind
        )

        if self.send_delay_ms > 0:
            await self._sleep(self.send_delay_ms / 1000)
        return None

    async def _advance(
        self, job: JobSnapshot, schedule: Schedule, reference: datetime, tick_id: str
    ) -> None:
        following = None if job.is_once else next_occurrence(schedule, reference)
        await self.dispatcher.mark_delivered(job, reference, following, tick_id)
        if job.is_once:
            await self.deliverer.mark_archive_ringed(job)

    async def _record_failure(
        self,
        job: JobSnapshot,
        delivery_key: str,
        tick_id: str,
        failure: Failure,
        counts: TickCounts,
        log,
    ) -> None:
        now = self._clock()
        await self.ledger.record(job.id, delivery_key, tick_id, False, failure.message, now)
        await self.failures.apply(job, failure, tick_id, now)
        counts.failed += 1
        log.error(
            "Reminder send failed",
            job_id=job.id,
            user_id=job.user_id,
            schedule_kind=job.schedule_kind,
            error=failure.message,
        )

    async def _release(self, jobs: Sequence[JobSnapshot], counts: TickCounts) -> None:
        if not jobs:
            return
        counts.skipped += len(jobs)
        await self.dispatcher.release_jobs(job.id for job in jobs)

    def _elapsed_ms(self, started: float) -> int:
        return int((self._monotonic() - started) * 1000)

    def _result(
        self,
        ok: bool,
        tick_id: str,
        counts: TickCounts,
        started: float,
        error: str | None = None,
    ) -> TickResult:
        return TickResult(
            ok=ok,
            tick_id=tick_id,
            claimed=counts.claimed,
            sent=counts.sent,
            failed=counts.failed,
            skipped=counts.skipped,
            duration_ms=self._elapsed_ms(started),
            error=error,
        )


def build_orchestrator(
    settings: Settings | None = None, channel: BaseChannel | None = None
) -> TickOrchestrator:
    """Wire a TickOrchestrator against the configured database and Telegram bot."""
    from chime.channels.telegram import TelegramChannel
    from chime.config import get_settings
    from chime.db.session import get_session_factory

    settings = settings or get_settings()
    factory = get_session_factory()
    dispatcher = ClaimDispatcher(factory)
    return TickOrchestrator(
        dispatcher,
        DeliveryLedger(factory),
        FailureController(dispatcher),
        TickRunRecorder(factory),
        ReminderDeliverer(channel or TelegramChannel(), factory),
        worker_id=settings.worker_id or default_worker_id(),
        max_batch=settings.tick_max_batch,
        max_runtime_ms=settings.tick_max_runtime_ms,
        send_delay_ms=settings.tick_send_delay_ms,
        claim_timeout_seconds=settings.claim_timeout_seconds,
        default_timezone=settings.default_timezone,
    )


async def run_tick(settings: Settings | None = None) -> TickResult:
    """Run a single tick with a short-lived Telegram client."""
    from chime.channels.telegram import TelegramChannel

    channel = TelegramChannel()
    await channel.start()
    try:
        return await build_orchestrator(settings, channel).run()
    finally:
        await channel.stop()
