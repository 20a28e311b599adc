"""Reminder delivery — renders a claimed reminder and pushes it through a channel."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chime.channels.base import BaseChannel
from chime.core.dispatcher import JobSnapshot
from chime.core.errors import RecipientMissingError
from chime.models.archive import ArchiveItem, ArchiveItemStatus
from chime.models.reminder import ReminderAttachment
from chime.models.user import User

logger = logging.getLogger(__name__)

ARCHIVE_KIND = "reminder"


def format_reminder_text(job: JobSnapshot) -> str:
    lines = [f"⏰ Reminder: {job.title or 'Reminder'}"]
    if job.description:
        lines.extend(["", job.description])
    return "\n".join(lines)


def replay_plan(
    attachments: Sequence[ReminderAttachment], archive_item: ArchiveItem | None
) -> tuple[int | None, list[int]]:
    """Return ``(source_chat_id, message_ids)`` for replaying attachments.

    The archive item's recorded message order wins; message ids it lists that
    are not attachments of the reminder are dropped. Without an archive item
    attachments are replayed in creation order.
    """
    attachment_ids = [a.archive_message_id for a in attachments]
    if archive_item is not None and archive_item.message_ids:
        wanted = set(attachment_ids)
        message_ids = [int(m) for m in archive_item.message_ids if int(m) in wanted]
    else:
        message_ids = attachment_ids

    if archive_item is not None:
        source_chat = archive_item.channel_id
    elif attachments:
        source_chat = attachments[0].archive_chat_id
    else:
        source_chat = None

    if source_chat is None:
        return None, []
    return source_chat, message_ids


class ReminderDeliverer:
    def __init__(
        self,
        channel: BaseChannel,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        if session_factory is None:
            from chime.db.session import get_session_factory

            session_factory = get_session_factory()
        self._channel = channel
        self._session_factory = session_factory

    async def deliver(self, job: JobSnapshot) -> None:
        """Send the reminder text, then replay its attachments.

        Raises ``RecipientMissingError`` when the owner has no Telegram chat
        and lets channel errors propagate.
        """
        async with self._session_factory() as session:
            user = await session.get(User, job.user_id)
            result = await session.execute(
                select(ReminderAttachment)
                .where(ReminderAttachment.reminder_id == job.id)
                .order_by(ReminderAttachment.created_at)
            )
            attachments = list(result.scalars().all())
            archive_item = await self._archive_item(session, job.id) if attachments else None

        if user is None or not user.telegram_id:
            raise RecipientMissingError(job.user_id)

        chat_id = user.telegram_id
        await self._channel.send_text(chat_id, format_reminder_text(job))

        source_chat, message_ids = replay_plan(attachments, archive_item)
        for message_id in message_ids:
            await self._channel.copy_message(chat_id, source_chat, message_id)
        logger.debug(
            "Delivered reminder %s to %s with %d attachments", job.id, chat_id, len(message_ids)
        )

    async def mark_archive_ringed(self, job: JobSnapshot) -> None:
        """Flag the reminder's archive item as rung; failures are only logged."""
        try:
            async with self._session_factory() as session:
                item = await self._archive_item(session, job.id)
                if item is None:
                    return
                user = await session.get(User, job.user_id)
                name = f"@{user.username}" if user is not None and user.username else "User"
                await session.execute(
                    update(ArchiveItem)
                    .where(ArchiveItem.id == item.id)
                    .values(
                        status=ArchiveItemStatus.RINGED,
                        status_note=f"🔔 Reminder rang. It is no longer active for {name}",
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.warning("Failed to mark archive item for reminder %s as ringed: %s", job.id, exc)

    @staticmethod
    async def _archive_item(session: AsyncSession, job_id: str) -> ArchiveItem | None:
        result = await session.execute(
            select(ArchiveItem)
            .where(ArchiveItem.kind == ARCHIVE_KIND, ArchiveItem.entity_id == job_id)
            .limit(1)
        )
        return result.scalar_one_or_none()
