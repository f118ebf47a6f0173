"""Tests for read receipts, listing and retention cleanup."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.application.use_cases.notifications import (
    cleanup_old_notifications,
    count_unread_notifications,
    get_notification_statistics,
    list_notifications,
    mark_all_notifications_as_read,
    mark_notification_as_read,
)
from app.domain.entities import (
    DeliveryChannel,
    Notification,
    NotificationStatus,
    NotificationType,
)
from app.domain.exceptions import (
    NotificationNotFoundError,
    NotificationStateError,
    NotificationValidationError,
)
from app.infrastructure.repositories import NotificationRepository


@pytest.fixture
def store(db_session, make_user):
    user = make_user()
    repository = NotificationRepository(db_session)

    def _store(
        status: NotificationStatus = NotificationStatus.SENT,
        *,
        user_id: int | None = None,
        created_at: datetime | None = None,
        notification_type: NotificationType = NotificationType.EXPORT_READY,
    ) -> Notification:
        now = datetime.now(timezone.utc)
        return repository.create(
            Notification(
                id=None,
                user_id=user_id or user.id,
                type=notification_type,
                title="Listo",
                body="Descarga",
                channels=[DeliveryChannel.IN_APP],
                status=status,
                sent_at=now if status is not NotificationStatus.PENDING else None,
                created_at=created_at or now,
            )
        )

    _store.user = user
    return _store


def test_mark_as_read_is_idempotent(db_session, store) -> None:
    notification = store()

    first = mark_notification_as_read(db_session, notification.id)
    second = mark_notification_as_read(db_session, notification.id)

    assert first.status is NotificationStatus.READ
    assert first.read_at is not None
    assert second.status is NotificationStatus.READ
    assert second.read_at == first.read_at


@pytest.mark.parametrize("status", [NotificationStatus.PENDING, NotificationStatus.FAILED])
def test_only_sent_notifications_can_be_read(db_session, store, status) -> None:
    notification = store(status)

    with pytest.raises(NotificationStateError):
        mark_notification_as_read(db_session, notification.id)


def test_unknown_or_foreign_notification_is_not_found(db_session, store, make_user) -> None:
    notification = store()
    stranger = make_user()

    with pytest.raises(NotificationNotFoundError):
        mark_notification_as_read(db_session, 9999)
    with pytest.raises(NotificationNotFoundError):
        mark_notification_as_read(db_session, notification.id, user_id=stranger.id)


def test_mark_all_and_count_unread(db_session, store) -> None:
    store()
    store()
    store(NotificationStatus.PENDING)
    user_id = store.user.id

    assert count_unread_notifications(db_session, user_id) == 2
    assert mark_all_notifications_as_read(db_session, user_id) == 2
    assert count_unread_notifications(db_session, user_id) == 0
    assert mark_all_notifications_as_read(db_session, user_id) == 0


def test_list_notifications_filters_and_pages(db_session, store) -> None:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    oldest = store(created_at=base)
    middle = store(created_at=base + timedelta(hours=1), notification_type=NotificationType.STORY_UPLOADED)
    newest = store(NotificationStatus.PENDING, created_at=base + timedelta(hours=2))
    user_id = store.user.id

    everything = list_notifications(db_session, user_id)
    sent_only = list_notifications(db_session, user_id, status="sent")
    stories = list_notifications(db_session, user_id, type=NotificationType.STORY_UPLOADED)
    second_page = list_notifications(db_session, user_id, limit=1, offset=1)

    assert [n.id for n in everything] == [newest.id, middle.id, oldest.id]
    assert [n.id for n in sent_only] == [middle.id, oldest.id]
    assert [n.id for n in stories] == [middle.id]
    assert [n.id for n in second_page] == [middle.id]


@pytest.mark.parametrize(
    "kwargs", [{"limit": 0}, {"limit": 101}, {"offset": -1}, {"status": "archived"}]
)
def test_list_notifications_validates_arguments(db_session, store, kwargs) -> None:
    with pytest.raises(NotificationValidationError):
        list_notifications(db_session, store.user.id, **kwargs)


def test_cleanup_old_notifications(db_session, store) -> None:
    store(created_at=datetime.now(timezone.utc) - timedelta(days=45))
    recent = store()

    assert cleanup_old_notifications(db_session, days_old=30) == 1
    assert [n.id for n in list_notifications(db_session, store.user.id)] == [recent.id]


def test_statistics_summarize_delivery_outcomes(db_session, store, make_user) -> None:
    other = make_user()
    for status in (
        NotificationStatus.SENT,
        NotificationStatus.SENT,
        NotificationStatus.READ,
        NotificationStatus.FAILED,
        NotificationStatus.PENDING,
    ):
        store(status)
    store(NotificationStatus.FAILED, user_id=other.id)

    mine = get_notification_statistics(db_session, store.user.id)
    everyone = get_notification_statistics(db_session)

    assert (mine.total_sent, mine.total_failed, mine.pending_count) == (3, 1, 1)
    assert mine.unread_count == 2
    assert mine.delivery_rate == 0.75
    assert (everyone.total_sent, everyone.total_failed) == (3, 2)
    assert everyone.delivery_rate == 0.6


def test_statistics_without_finished_notifications(db_session, store) -> None:
    store(NotificationStatus.PENDING)

    stats = get_notification_statistics(db_session, store.user.id)

    assert stats.total_sent == 0
    assert stats.delivery_rate == 0.0
    assert stats.pending_count == 1
