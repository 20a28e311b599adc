"""Tests for chime.config."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError


def make_settings(**kwargs):
    """Helper to create Settings with required fields."""
    from chime.config import Settings

    defaults = {"db_password": "test-pass", "telegram_bot_token": "t", "cron_secret": "s"}
    defaults.update(kwargs)
    return Settings(**defaults)  # type: ignore[call-arg]


def test_settings_defaults():
    ci_vars = {
        "DB_NAME", "DB_USER", "DB_HOST", "DB_PORT", "APP_ENV", "DEBUG",
        "TICK_MAX_BATCH", "TICK_MAX_RUNTIME_MS", "TICK_SEND_DELAY_MS", "WORKER_ID",
    }
    clean_env = {k: v for k, v in os.environ.items() if k not in ci_vars}
    with patch.dict(os.environ, clean_env, clear=True):
        s = make_settings()
    assert s.app_name == "Chime"
    assert s.app_env == "development"
    assert s.db_name == "chime"
    assert s.tick_max_batch == 50
    assert s.tick_max_runtime_ms == 25_000
    assert s.tick_send_delay_ms == 50
    assert s.claim_timeout_seconds == 600
    assert s.worker_id is None
    assert s.default_timezone == "UTC"


def test_database_urls():
    s = make_settings(db_user="u", db_password="p", db_host="h", db_port=3306, db_name="db")
    assert s.database_url == "mysql+aiomysql://u:p@h:3306/db"
    assert s.database_url_sync == "mysql+pymysql://u:p@h:3306/db"


def test_redis_url_with_password():
    s = make_settings(redis_password="secret", redis_host="r", redis_port=6380, redis_db=2)
    assert s.redis_url == "redis://:secret@r:6380/2"


def test_celery_falls_back_to_redis():
    s = make_settings(redis_host="r")
    assert s.effective_celery_broker == s.redis_url
    assert s.effective_celery_backend == s.redis_url


def test_celery_explicit_broker():
    s = make_settings(celery_broker_url="amqp://broker//")
    assert s.effective_celery_broker == "amqp://broker//"


def test_tick_max_batch_must_be_positive():
    with pytest.raises(ValidationError):
        make_settings(tick_max_batch=0)


def test_tick_settings_from_env():
    env = {"TICK_MAX_BATCH": "5", "TICK_SEND_DELAY_MS": "0", "WORKER_ID": "box:1"}
    with patch.dict(os.environ, env):
        s = make_settings()
    assert s.tick_max_batch == 5
    assert s.tick_send_delay_ms == 0
    assert s.worker_id == "box:1"


def test_get_settings_is_cached():
    from chime.config import get_settings

    assert get_settings() is get_settings()
