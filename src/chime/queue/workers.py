"""Celery workers — the periodic delivery tick."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from celery import shared_task

from chime.db.session import reset_engine

logger = logging.getLogger(__name__)


@shared_task(name="chime.queue.workers.run_tick")
def run_tick() -> dict[str, Any]:
    """Run one delivery tick; the next beat is the retry."""
    from chime.core import ticks

    reset_engine()
    result = asyncio.run(ticks.run_tick())
    if result.ok:
        logger.info(
            "Tick %s: claimed=%d sent=%d failed=%d skipped=%d",
            result.tick_id,
            result.claimed,
            result.sent,
            result.failed,
            result.skipped,
        )
    else:
        logger.error("Tick %s failed: %s", result.tick_id, result.error)
    return result.to_dict()
