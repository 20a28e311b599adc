"""BaseChannel interface and the process-wide outbound channel."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class BaseChannel(ABC):
    """Abstract base for outbound messaging adapters."""

    channel_type: str  # e.g. "telegram"

    @abstractmethod
    async def start(self) -> None:
        """Open the underlying connection."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Close the connection cleanly."""
        ...

    @abstractmethod
    async def send_text(self, chat_id: int, text: str) -> Any:
        """Send a plain text message to a chat."""
        ...

    @abstractmethod
    async def copy_message(self, chat_id: int, from_chat_id: int, message_id: int) -> Any:
        """Re-send an existing message from ``from_chat_id`` into ``chat_id``."""
        ...

    async def health_check(self) -> bool:
        """Return True if the channel connection is healthy.

        Subclasses should override with platform-specific checks.
        """
        return True


_channel: BaseChannel | None = None


def get_channel() -> BaseChannel:
    global _channel
    if _channel is None:
        from chime.channels.telegram import TelegramChannel

        _channel = TelegramChannel()
        logger.debug("Created channel: %s", _channel.channel_type)
    return _channel


async def close_channel() -> None:
    global _channel
    if _channel is not None:
        await _channel.stop()
        _channel = None
