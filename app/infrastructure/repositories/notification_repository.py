"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.domain.entities import (
    DeliveryChannel,
    Notification,
    NotificationStatus,
    NotificationType,
)
from app.infrastructure.models import NotificationModel
from app.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class NotificationRepository:
    """Provide CRUD operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def list_for_user(
        self,
        user_id: int,
        *,
        status: NotificationStatus | None = None,
        notification_type: NotificationType | None = None,
        limit: int | None = 50,
        offset: int = 0,
    ) -> Sequence[Notification]:
        query = self.session.query(NotificationModel)
        query = query.filter(NotificationModel.user_id == user_id)
        if status is not None:
            query = query.filter(NotificationModel.status == status.value)
        if notification_type is not None:
            query = query.filter(NotificationModel.type == notification_type.value)
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def list_due(
        self,
        now: datetime,
        *,
        limit: int = 50,
        claimed_before: datetime | None = None,
    ) -> Sequence[Notification]:
        """Return pending notifications that are unscheduled or already due.

        Rows held by a dispatch in progress are skipped unless their claim is
        older than ``claimed_before``.
        """

        cutoff = ensure_app_naive_datetime(now)
        query = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.status == NotificationStatus.PENDING.value)
            .filter(
                or_(
                    NotificationModel.scheduled_at.is_(None),
                    NotificationModel.scheduled_at <= cutoff,
                )
            )
        )
        if claimed_before is None:
            query = query.filter(NotificationModel.dispatch_claimed_at.is_(None))
        else:
            query = query.filter(
                or_(
                    NotificationModel.dispatch_claimed_at.is_(None),
                    NotificationModel.dispatch_claimed_at
                    < ensure_app_naive_datetime(claimed_before),
                )
            )
        query = query.order_by(
            NotificationModel.created_at.asc(), NotificationModel.id.asc()
        ).limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def claim_for_dispatch(
        self, notification_id: int, *, claimed_at: datetime, stale_before: datetime
    ) -> bool:
        """Reserve a pending notification for the caller's dispatch.

        Returns ``False`` when the row is no longer pending or another
        dispatch holds a claim newer than ``stale_before``.
        """

        stamp = ensure_app_naive_datetime(claimed_at)
        claimed = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .filter(NotificationModel.status == NotificationStatus.PENDING.value)
            .filter(
                or_(
                    NotificationModel.dispatch_claimed_at.is_(None),
                    NotificationModel.dispatch_claimed_at
                    < ensure_app_naive_datetime(stale_before),
                )
            )
            .update(
                {
                    NotificationModel.dispatch_claimed_at: stamp,
                    NotificationModel.updated_at: stamp,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return claimed == 1

    def complete_dispatch(self, notification: Notification) -> bool:
        """Store the dispatch outcome of ``notification`` if the row is still pending."""

        stamp = ensure_app_naive_datetime(notification.updated_at or now_in_app_timezone())
        updated = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification.id)
            .filter(NotificationModel.status == NotificationStatus.PENDING.value)
            .update(
                {
                    NotificationModel.status: NotificationStatus(notification.status).value,
                    NotificationModel.sent_at: ensure_app_naive_datetime(notification.sent_at),
                    NotificationModel.updated_at: stamp,
                    NotificationModel.dispatch_claimed_at: None,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated == 1

    def count_by_status(self, user_id: int | None = None) -> dict[NotificationStatus, int]:
        query = self.session.query(
            NotificationModel.status, func.count(NotificationModel.id)
        )
        if user_id is not None:
            query = query.filter(NotificationModel.user_id == user_id)
        counts = {status: 0 for status in NotificationStatus}
        for status, count in query.group_by(NotificationModel.status).all():
            counts[NotificationStatus(status)] = int(count)
        return counts

    def count_unread(self, user_id: int) -> int:
        return (
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.status == NotificationStatus.SENT.value)
            .scalar()
            or 0
        )

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification, include_creation_fields=True)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def update(self, notification: Notification) -> Notification:
        if notification.id is None:
            raise ValueError("Notification id is required for updates")
        model = self.session.get(NotificationModel, notification.id)
        if model is None:
            msg = f"Notification with id {notification.id} not found"
            raise ValueError(msg)
        self._apply_entity_to_model(model, notification, include_creation_fields=False)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_all_as_read(self, user_id: int, *, read_at: datetime) -> int:
        """Move every sent notification of ``user_id`` to read in one statement."""

        stamp = ensure_app_naive_datetime(read_at)
        updated = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.status == NotificationStatus.SENT.value)
            .update(
                {
                    NotificationModel.status: NotificationStatus.READ.value,
                    NotificationModel.read_at: stamp,
                    NotificationModel.updated_at: stamp,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return int(updated or 0)

    def delete_created_before(self, cutoff: datetime) -> int:
        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.created_at < ensure_app_naive_datetime(cutoff))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return int(deleted or 0)

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationModel,
        notification: Notification,
        *,
        include_creation_fields: bool,
    ) -> None:
        if include_creation_fields:
            model.created_at = (
                ensure_app_naive_datetime(notification.created_at)
                or ensure_app_naive_datetime(now_in_app_timezone())
            )
        model.user_id = notification.user_id
        model.type = NotificationType(notification.type).value
        model.title = notification.title
        model.body = notification.body
        model.data = dict(notification.data or {})
        model.channels = [DeliveryChannel(channel).value for channel in notification.channels]
        model.status = NotificationStatus(notification.status).value
        model.scheduled_at = ensure_app_naive_datetime(notification.scheduled_at)
        model.sent_at = ensure_app_naive_datetime(notification.sent_at)
        model.read_at = ensure_app_naive_datetime(notification.read_at)
        if not include_creation_fields:
            model.updated_at = ensure_app_naive_datetime(
                notification.updated_at or now_in_app_timezone()
            )

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=NotificationType(model.type),
            title=model.title,
            body=model.body,
            data=dict(model.data or {}),
            channels=[DeliveryChannel(channel) for channel in (model.channels or [])],
            status=NotificationStatus(model.status),
            scheduled_at=ensure_app_timezone(model.scheduled_at),
            sent_at=ensure_app_timezone(model.sent_at),
            read_at=ensure_app_timezone(model.read_at),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["NotificationRepository"]
