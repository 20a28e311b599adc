"""Shared test setup — required settings must exist before Settings is built."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

os.environ.setdefault("DB_PASSWORD", "test-password")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:test-token")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")


@pytest.fixture
def session():
    """An AsyncSession stand-in; ``execute``/``get``/``merge``/``commit`` are AsyncMocks."""
    s = MagicMock()
    s.execute = AsyncMock()
    s.get = AsyncMock(return_value=None)
    s.merge = AsyncMock()
    s.commit = AsyncMock()
    return s


@pytest.fixture
def session_factory(session):
    """Callable returning an async context manager that yields ``session``."""
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory
