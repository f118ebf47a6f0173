"""Read receipt use cases."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.domain.entities import Notification
from app.domain.exceptions import NotificationNotFoundError
from app.infrastructure.repositories import NotificationRepository
from app.utils import now_in_app_timezone

logger = logging.getLogger(__name__)


def mark_notification_as_read(
    session: Session, notification_id: int, user_id: int | None = None
) -> Notification:
    """Mark a sent notification as read.

    Marking an already read notification again returns it unchanged. When
    ``user_id`` is given the notification must belong to that user.
    """

    repository = NotificationRepository(session)
    notification = repository.get(notification_id)
    if notification is None or (user_id is not None and notification.user_id != user_id):
        raise NotificationNotFoundError("Notificación no encontrada")

    if not notification.mark_read(now_in_app_timezone()):
        return notification

    logger.info("Notification %s marked as read", notification_id)
    return repository.update(notification)


def mark_all_notifications_as_read(session: Session, user_id: int) -> int:
    """Mark every sent notification of ``user_id`` as read and return the count."""

    count = NotificationRepository(session).mark_all_as_read(
        user_id, read_at=now_in_app_timezone()
    )
    logger.info("Marked %s notifications as read for user %s", count, user_id)
    return count


def count_unread_notifications(session: Session, user_id: int) -> int:
    return NotificationRepository(session).count_unread(user_id)


__all__ = [
    "count_unread_notifications",
    "mark_all_notifications_as_read",
    "mark_notification_as_read",
]
