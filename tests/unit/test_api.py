"""Tests for chime.api — the cron trigger, cron health and component health endpoints."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from chime.config import get_settings
from chime.core.bookkeeping import CronHealth
from chime.core.ticks import TickResult

SECRET = "s3cret_key"


@pytest.fixture
def runner():
    return AsyncMock(
        return_value=TickResult(ok=True, tick_id="tick-1", claimed=3, sent=2, skipped=1)
    )


@pytest.fixture
def app(runner):
    from chime.api.app import create_app
    from chime.api.routers import cron

    application = create_app()
    application.dependency_overrides[get_settings] = lambda: MagicMock(cron_secret=SECRET)
    application.dependency_overrides[cron.get_tick_runner] = lambda: runner
    return application


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


def test_liveness(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "chime-api"}


# ── /cron/tick ────────────────────────────────────────────────────────────────


def test_tick_without_key_is_unauthorized(client, runner):
    response = client.get("/cron/tick")
    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "unauthorized"}
    runner.assert_not_awaited()


@pytest.mark.parametrize("key", ["wrong", "s3cret_key!", "s3cret_key%20OR%201"])
def test_tick_with_bad_key_is_unauthorized(client, runner, key):
    response = client.get(f"/cron/tick?key={key}")
    assert response.status_code == 401
    runner.assert_not_awaited()


def test_tick_with_query_key(client, runner):
    response = client.get("/cron/tick", params={"key": SECRET})

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["tick_id"] == "tick-1"
    assert (body["claimed"], body["sent"], body["failed"], body["skipped"]) == (3, 2, 0, 1)
    assert "error" not in body
    assert datetime.fromisoformat(body["time"]).tzinfo is not None
    runner.assert_awaited_once()


def test_tick_with_header_key_via_post(client, runner):
    response = client.post("/cron/tick", headers={"X-Cron-Secret": SECRET})
    assert response.status_code == 200
    runner.assert_awaited_once()


def test_failed_tick_returns_500(client, runner):
    runner.return_value = TickResult(ok=False, tick_id="tick-2", error="db down")

    response = client.get("/cron/tick", params={"key": SECRET})

    assert response.status_code == 500
    assert response.json()["error"] == "db down"


def test_unhandled_error_returns_json_500(client, runner):
    runner.side_effect = RuntimeError("boom")

    response = client.get("/cron/tick", params={"key": SECRET})

    assert response.status_code == 500
    assert response.json()["ok"] is False


# ── /cron/health and /cron/requeue-failed ─────────────────────────────────────


def test_cron_health(app, client):
    from chime.api.routers import cron

    recorder = MagicMock()
    recorder.health = AsyncMock(
        return_value=CronHealth(
            last_success_tick_time=datetime(2024, 1, 1, 12, 0, tzinfo=UTC), last_tick_id="t9"
        )
    )
    app.dependency_overrides[cron.get_tick_recorder] = lambda: recorder

    response = client.get("/cron/health")

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "last_success_tick_time": "2024-01-01T12:00:00+00:00",
        "last_tick_id": "t9",
        "last_sent_at": None,
        "last_error": None,
    }


def test_requeue_failed(app, client):
    from chime.api.routers import cron

    dispatcher = MagicMock()
    dispatcher.requeue_failed = AsyncMock(return_value=3)
    app.dependency_overrides[cron.get_claim_dispatcher] = lambda: dispatcher

    response = client.post("/cron/requeue-failed", params={"key": SECRET})

    assert response.status_code == 200
    assert response.json() == {"ok": True, "requeued": 3}
    dispatcher.requeue_failed.assert_awaited_once()


def test_requeue_failed_requires_key(app, client):
    from chime.api.routers import cron

    dispatcher = MagicMock()
    dispatcher.requeue_failed = AsyncMock()
    app.dependency_overrides[cron.get_claim_dispatcher] = lambda: dispatcher

    response = client.post("/cron/requeue-failed")

    assert response.status_code == 401
    dispatcher.requeue_failed.assert_not_awaited()


# ── /api/v1/health ────────────────────────────────────────────────────────────


def _telegram(healthy=True):
    channel = MagicMock()
    channel.health_check = AsyncMock(return_value=healthy)
    return channel


def test_component_health_all_connected(client, session_factory):
    with (
        patch("chime.db.session.get_session_factory", return_value=session_factory),
        patch("redis.from_url", return_value=MagicMock()),
        patch("chime.channels.base.get_channel", return_value=_telegram()),
    ):
        response = client.get("/api/v1/health")

    body = response.json()
    assert body["status"] == "ok"
    assert (body["db"], body["redis"], body["telegram"]) == ("connected", "connected", "connected")


def test_component_health_degraded_without_db(client):
    redis_client = MagicMock()
    redis_client.ping.side_effect = ConnectionError("refused")
    with (
        patch("chime.db.session.get_session_factory", side_effect=RuntimeError("no db")),
        patch("redis.from_url", return_value=redis_client),
        patch("chime.channels.base.get_channel", return_value=_telegram(healthy=False)),
    ):
        response = client.get("/api/v1/health")

    body = response.json()
    assert body["status"] == "degraded"
    assert (body["db"], body["redis"], body["telegram"]) == (
        "disconnected",
        "disconnected",
        "unhealthy",
    )
