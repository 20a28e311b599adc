"""Cron trigger endpoints — run a tick, report tick health, requeue failures."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse

from chime.api.security import is_cron_authorized
from chime.config import Settings, get_settings
from chime.core.bookkeeping import TickRunRecorder
from chime.core.dispatcher import ClaimDispatcher
from chime.core.ticks import TickResult, run_tick

router = APIRouter()
logger = logging.getLogger(__name__)

_UNAUTHORIZED = {"ok": False, "error": "unauthorized"}


def get_tick_runner() -> Callable[[], Awaitable[TickResult]]:
    return run_tick


def get_tick_recorder() -> TickRunRecorder:
    return TickRunRecorder()


def get_claim_dispatcher() -> ClaimDispatcher:
    return ClaimDispatcher()


def _authorized(
    key: str | None = Query(default=None),
    x_cron_secret: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> bool:
    return is_cron_authorized(key or x_cron_secret, settings.cron_secret)


@router.api_route("/tick", methods=["GET", "POST"])
async def cron_tick(
    authorized: bool = Depends(_authorized),
    runner: Callable[[], Awaitable[TickResult]] = Depends(get_tick_runner),
):
    if not authorized:
        logger.warning("Rejected cron tick with invalid key")
        return JSONResponse(status_code=401, content=_UNAUTHORIZED)

    result = await runner()
    body = {**result.to_dict(), "time": datetime.now(UTC).isoformat()}
    return JSONResponse(status_code=200 if result.ok else 500, content=body)


@router.get("/health")
async def cron_health(recorder: TickRunRecorder = Depends(get_tick_recorder)):
    health = await recorder.health()
    return {"ok": True, **health.to_dict()}


@router.post("/requeue-failed")
async def requeue_failed(
    authorized: bool = Depends(_authorized),
    dispatcher: ClaimDispatcher = Depends(get_claim_dispatcher),
):
    if not authorized:
        return JSONResponse(status_code=401, content=_UNAUTHORIZED)
    requeued = await dispatcher.requeue_failed(datetime.now(UTC))
    return {"ok": True, "requeued": requeued}
