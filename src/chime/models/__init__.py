"""SQLAlchemy models package."""

from chime.models.archive import ArchiveItem, ArchiveItemStatus
from chime.models.base import TimestampMixin
from chime.models.delivery import ReminderDelivery
from chime.models.reminder import LifecycleState, Reminder, ReminderAttachment
from chime.models.tick_run import TickRun
from chime.models.user import User

__all__ = [
    "TimestampMixin",
    "User",
    "Reminder",
    "ReminderAttachment",
    "LifecycleState",
    "ReminderDelivery",
    "TickRun",
    "ArchiveItem",
    "ArchiveItemStatus",
]
