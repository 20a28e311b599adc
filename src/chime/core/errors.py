"""Chime exception hierarchy."""

from __future__ import annotations


class ChimeError(Exception):
    """Base exception for Chime errors."""


class InvalidScheduleError(ChimeError):
    """Stored schedule fields do not describe a valid schedule for their kind."""


class StoreError(ChimeError):
    """A storage round-trip failed in a way that aborts the tick."""


class DeliveryError(ChimeError):
    """A delivery attempt through the outbound channel failed."""

    def __init__(
        self, message: str, code: int | None = None, retry_after: int | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.retry_after = retry_after


class RateLimitedError(DeliveryError):
    """The channel asked us to back off; ``retry_after`` is in seconds when known."""

    def __init__(self, retry_after: int | None = None, message: str | None = None) -> None:
        super().__init__(
            message or f"Too Many Requests: retry after {retry_after}",
            code=429,
            retry_after=retry_after,
        )


class RecipientMissingError(DeliveryError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"Missing user or telegram id for user {user_id}")
        self.user_id = user_id
