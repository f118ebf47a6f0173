"""Delivery statistics over stored notifications."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.domain.entities import NotificationStatistics, NotificationStatus
from app.infrastructure.repositories import NotificationRepository


def get_notification_statistics(
    session: Session, user_id: int | None = None
) -> NotificationStatistics:
    """Summarize delivery outcomes for ``user_id``, or for every user when omitted."""

    counts = NotificationRepository(session).count_by_status(user_id)
    delivered = counts[NotificationStatus.SENT] + counts[NotificationStatus.READ]
    failed = counts[NotificationStatus.FAILED]
    finished = delivered + failed
    return NotificationStatistics(
        total_sent=delivered,
        total_failed=failed,
        pending_count=counts[NotificationStatus.PENDING],
        unread_count=counts[NotificationStatus.SENT],
        delivery_rate=round(delivered / finished, 4) if finished else 0.0,
    )


__all__ = ["get_notification_statistics"]
