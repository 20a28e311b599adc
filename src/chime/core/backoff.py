"""Failure classification and retry backoff for reminder deliveries."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from chime.core.errors import DeliveryError, RateLimitedError

if TYPE_CHECKING:
    from chime.core.dispatcher import ClaimDispatcher, JobSnapshot

logger = logging.getLogger(__name__)

BASE_BACKOFF_SECONDS = 30
MAX_BACKOFF_SECONDS = 3600
DEFAULT_RATE_LIMIT_SECONDS = 30

_RETRY_AFTER_RE = re.compile(r"retry after (\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class RateLimit:
    retry_after_seconds: int

    @property
    def message(self) -> str:
        return f"rate_limited:{self.retry_after_seconds}"


@dataclass(frozen=True)
class Terminal:
    message: str
    retry_after_seconds: int | None = None


Failure = RateLimit | Terminal


@dataclass(frozen=True)
class FailureOutcome:
    attempt_count: int
    retry_not_before: datetime
    error: str


def _positive(value) -> int | None:
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds > 0 else None


def _retry_after(error: DeliveryError) -> int:
    hinted = _positive(error.retry_after)
    if hinted:
        return hinted
    match = _RETRY_AFTER_RE.search(error.message or "")
    if match:
        return int(match.group(1))
    return DEFAULT_RATE_LIMIT_SECONDS


def classify(error: BaseException) -> Failure:
    """Map a delivery exception onto a rate limit or a terminal failure."""
    if isinstance(error, DeliveryError):
        if isinstance(error, RateLimitedError) or error.code == 429:
            return RateLimit(_retry_after(error))
        return Terminal(error.message or str(error), _positive(error.retry_after))
    return Terminal(str(error) or type(error).__name__)


def backoff_seconds(attempt_count: int) -> int:
    """Exponential backoff: 30s doubled per attempt, capped at one hour."""
    exponent = min(max(attempt_count, 0), 12)
    return min(2**exponent * BASE_BACKOFF_SECONDS, MAX_BACKOFF_SECONDS)


class FailureController:
    """Records a failed attempt against a reminder and schedules its retry window."""

    def __init__(self, dispatcher: ClaimDispatcher) -> None:
        self._dispatcher = dispatcher

    async def apply(
        self, job: JobSnapshot, failure: Failure, tick_id: str, now: datetime
    ) -> FailureOutcome:
        attempt_count = job.attempt_count + 1
        if isinstance(failure, RateLimit):
            delay = failure.retry_after_seconds
        else:
            delay = failure.retry_after_seconds or backoff_seconds(attempt_count)
        outcome = FailureOutcome(
            attempt_count=attempt_count,
            retry_not_before=now + timedelta(seconds=delay),
            error=failure.message,
        )
        await self._dispatcher.mark_failed(
            job,
            error=outcome.error,
            retry_not_before=outcome.retry_not_before,
            attempt_count=attempt_count,
            tick_id=tick_id,
        )
        logger.info(
            "Reminder %s failed (attempt %d), retry not before %s",
            job.id,
            attempt_count,
            outcome.retry_not_before.isoformat(),
        )
        return outcome
