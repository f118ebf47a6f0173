"""Use cases for creating, delivering and reading notifications."""

from .cleanup import cleanup_old_notifications
from .list_notifications import list_notifications
from .orchestrator import NotificationOrchestrator
from .read_receipts import (
    count_unread_notifications,
    mark_all_notifications_as_read,
    mark_notification_as_read,
)
from .statistics import get_notification_statistics

__all__ = [
    "NotificationOrchestrator",
    "cleanup_old_notifications",
    "count_unread_notifications",
    "get_notification_statistics",
    "list_notifications",
    "mark_all_notifications_as_read",
    "mark_notification_as_read",
]
