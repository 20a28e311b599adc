"""Tests for chime.api.security."""

import pytest

from chime.api.security import is_cron_authorized, normalize_key


def test_matching_key():
    assert is_cron_authorized("s3cret_key-1", "s3cret_key-1")


def test_surrounding_whitespace_is_ignored():
    assert is_cron_authorized("  s3cret  ", "s3cret")


@pytest.mark.parametrize("key", [None, "", "   ", "wrong", "s3cret!", "s3cret;drop", "s3 cret"])
def test_rejected_keys(key):
    assert not is_cron_authorized(key, "s3cret")


@pytest.mark.parametrize("secret", [None, "", "  "])
def test_empty_secret_authorizes_nothing(secret):
    assert not is_cron_authorized("anything", secret)


def test_normalize_key():
    assert normalize_key(" abc_DEF-123 ") == "abc_DEF-123"
    assert normalize_key("abc/def") is None
