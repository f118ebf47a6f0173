"""Utility helpers to push notifications to websocket subscribers."""

from __future__ import annotations

from typing import Any

from app.domain.entities import Notification

from .manager import NotificationConnectionManager, notification_manager


class NotificationPublisher:
    """Serialize notifications and deliver them to live connections."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    async def publish(self, notification: Notification) -> int:
        """Deliver ``notification`` to its user's open websockets."""

        message = {"type": "notification", "data": serialize_notification(notification)}
        return await self._manager.send_to_user(notification.user_id, message)


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type.value,
        "title": notification.title,
        "body": notification.body,
        "data": notification.data or {},
        "channels": [channel.value for channel in notification.channels],
        "status": notification.status.value,
        "scheduled_at": _isoformat(notification.scheduled_at),
        "sent_at": _isoformat(notification.sent_at),
        "read_at": _isoformat(notification.read_at),
        "created_at": _isoformat(notification.created_at),
    }


def _isoformat(value) -> str | None:
    return value.isoformat() if value else None


notification_publisher = NotificationPublisher(notification_manager)


__all__ = [
    "NotificationPublisher",
    "notification_publisher",
    "serialize_notification",
]
