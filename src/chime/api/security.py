"""Shared-secret check for the cron trigger endpoints."""

from __future__ import annotations

import hmac
import re

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def normalize_key(key: str | None) -> str | None:
    """Strip ``key`` and reject anything outside ``[A-Za-z0-9_-]``."""
    if not key:
        return None
    key = key.strip()
    if not key or not _KEY_PATTERN.match(key):
        return None
    return key


def is_cron_authorized(key: str | None, secret: str | None) -> bool:
    """Constant-time comparison of a presented key against the configured secret.

    An empty secret authorizes nothing.
    """
    secret = (secret or "").strip()
    presented = normalize_key(key)
    if not secret or presented is None:
        return False
    return hmac.compare_digest(presented.encode(), secret.encode())
