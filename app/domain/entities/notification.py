"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from app.domain.exceptions import NotificationStateError


class NotificationType(str, Enum):
    """Closed set of events that produce notifications."""

    STORY_UPLOADED = "story_uploaded"
    STORY_PROCESSED = "story_processed"
    INTERACTION_ADDED = "interaction_added"
    FOLLOW_UP_QUESTION = "follow_up_question"
    EXPORT_READY = "export_ready"
    INVITATION_RECEIVED = "invitation_received"
    SUBSCRIPTION_EXPIRING = "subscription_expiring"
    SUBSCRIPTION_EXPIRED = "subscription_expired"
    PROJECT_ARCHIVED = "project_archived"
    SUBSCRIPTION_RENEWED = "subscription_renewed"


class DeliveryChannel(str, Enum):
    """Mechanisms available to deliver a notification."""

    PUSH = "push"
    EMAIL = "email"
    IN_APP = "in_app"


class NotificationStatus(str, Enum):
    """Lifecycle states of a notification."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    READ = "read"


@dataclass
class Notification:
    """Delivery intent addressed to a specific user."""

    id: int | None
    user_id: int
    type: NotificationType
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    channels: list[DeliveryChannel] = field(default_factory=list)
    status: NotificationStatus = NotificationStatus.PENDING
    scheduled_at: datetime | None = None
    sent_at: datetime | None = None
    read_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_due(self, now: datetime) -> bool:
        """Return ``True`` when the notification may be delivered at ``now``."""

        return self.scheduled_at is None or self.scheduled_at <= now

    def mark_sent(self, at: datetime) -> None:
        if self.status is not NotificationStatus.PENDING:
            raise NotificationStateError(
                f"Notification {self.id} cannot move from {self.status.value} to sent"
            )
        self.status = NotificationStatus.SENT
        self.sent_at = at
        self.updated_at = at

    def mark_failed(self, at: datetime) -> None:
        if self.status is not NotificationStatus.PENDING:
            raise NotificationStateError(
                f"Notification {self.id} cannot move from {self.status.value} to failed"
            )
        self.status = NotificationStatus.FAILED
        self.updated_at = at

    def mark_read(self, at: datetime) -> bool:
        """Flag the notification as read.

        Returns ``False`` when it was already read so callers can treat the
        operation as idempotent.
        """

        if self.status is NotificationStatus.READ:
            return False
        if self.status is not NotificationStatus.SENT:
            raise NotificationStateError(
                "Solo las notificaciones enviadas pueden marcarse como leídas"
            )
        self.status = NotificationStatus.READ
        self.read_at = at
        self.updated_at = at
        return True


@dataclass(frozen=True)
class NotificationStatistics:
    """Delivery figures for one user or for every notification.

    ``total_sent`` counts notifications that reached the user, read or not.
    ``delivery_rate`` is the share of finished dispatches that succeeded,
    between 0 and 1.
    """

    total_sent: int
    total_failed: int
    pending_count: int
    unread_count: int
    delivery_rate: float


__all__ = [
    "DeliveryChannel",
    "Notification",
    "NotificationStatistics",
    "NotificationStatus",
    "NotificationType",
]
