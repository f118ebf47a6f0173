"""In-app channel delivering to live websocket connections."""

from __future__ import annotations

import logging

from app.domain.entities import DeliveryChannel, DeliveryResult, Notification
from app.infrastructure.notifications import NotificationPublisher, notification_publisher

logger = logging.getLogger(__name__)


class InAppSender:
    """The notification row itself is the in-app inbox, so this never fails.

    Live websocket clients are told about the notification only once its
    dispatch outcome is stored, so the pushed payload carries the final
    status and ``sent_at``.
    """

    channel = DeliveryChannel.IN_APP

    def __init__(self, publisher: NotificationPublisher | None = None) -> None:
        self._publisher = publisher or notification_publisher

    async def send(self, notification: Notification) -> DeliveryResult:
        return DeliveryResult(
            channel=self.channel,
            success=True,
            provider_message_id=f"in_app_{notification.id}",
        )

    async def after_dispatch(self, notification: Notification) -> int:
        delivered = await self._publisher.publish(notification)
        logger.debug(
            "In-app notification %s delivered to %s live connection(s)",
            notification.id,
            delivered,
        )
        return delivered


__all__ = ["InAppSender"]
