"""Detailed health endpoint — component-level status for Chime."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

router = APIRouter()
logger = logging.getLogger(__name__)

_start_time = time.monotonic()


@router.get("/api/v1/health")
async def health_check():
    """Return detailed health status for the database, Redis and Telegram."""
    result = {
        "status": "ok",
        "uptime_seconds": round(time.monotonic() - _start_time, 1),
        "db": "unknown",
        "redis": "unknown",
        "telegram": "unknown",
    }

    try:
        from chime.db.session import get_session_factory

        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        result["db"] = "connected"
    except Exception as exc:  # noqa: BLE001
        logger.warning("DB health check failed: %s", exc)
        result["db"] = "disconnected"

    try:
        import redis

        from chime.config import get_settings

        r = redis.from_url(get_settings().redis_url)
        r.ping()
        r.close()
        result["redis"] = "connected"
    except Exception as exc:  # noqa: BLE001
        logger.warning("Redis health check failed: %s", exc)
        result["redis"] = "disconnected"

    try:
        from chime.channels.base import get_channel

        healthy = await get_channel().health_check()
        result["telegram"] = "connected" if healthy else "unhealthy"
    except Exception as exc:  # noqa: BLE001
        logger.warning("Telegram health check failed: %s", exc)
        result["telegram"] = "error"

    if result["db"] == "disconnected":
        result["status"] = "degraded"

    return result
