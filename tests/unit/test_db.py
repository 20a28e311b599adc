"""Tests for chime.db.session and the table layout."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture
def fresh_session_module():
    from chime.db import session as db_session

    db_session.reset_engine()
    yield db_session
    db_session.reset_engine()


def test_create_engine_uses_settings(fresh_session_module):
    settings = MagicMock(database_url="mysql+aiomysql://u:p@h/db", debug=False)
    with (
        patch("chime.db.session.get_settings", return_value=settings),
        patch("chime.db.session.create_async_engine") as mock_engine,
    ):
        fresh_session_module.create_engine()

    args, kwargs = mock_engine.call_args
    assert args == ("mysql+aiomysql://u:p@h/db",)
    assert kwargs["pool_pre_ping"] is True


def test_get_session_factory_caches(fresh_session_module):
    with (
        patch("chime.db.session.get_settings", return_value=MagicMock(debug=False)),
        patch("chime.db.session.create_async_engine"),
    ):
        f1 = fresh_session_module.get_session_factory()
        f2 = fresh_session_module.get_session_factory()
    assert f1 is f2


def test_reset_engine_drops_cached_factory(fresh_session_module):
    with (
        patch("chime.db.session.get_settings", return_value=MagicMock(debug=False)),
        patch("chime.db.session.create_async_engine", side_effect=[MagicMock(), MagicMock()]),
    ):
        first = fresh_session_module.get_engine()
        fresh_session_module.reset_engine()
        second = fresh_session_module.get_engine()
    assert first is not second


def test_metadata_tables():
    from chime.db.session import Base
    import chime.models  # noqa: F401

    assert {
        "users",
        "reminders",
        "reminder_attachments",
        "reminder_deliveries",
        "tick_runs",
        "archive_items",
    } <= set(Base.metadata.tables)


def test_delivery_primary_key_is_reminder_and_key():
    from chime.models import ReminderDelivery

    pk = [c.name for c in ReminderDelivery.__table__.primary_key.columns]
    assert pk == ["reminder_id", "delivery_key"]


def test_due_index():
    from chime.models import Reminder

    index = next(i for i in Reminder.__table__.indexes if i.name == "ix_reminders_due")
    assert [c.name for c in index.columns] == ["lifecycle_state", "next_occurrence_at"]
