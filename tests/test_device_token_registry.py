"""Tests for the device token registry use cases."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from conftest import android_token

from app.application.use_cases.device_tokens import (
    bulk_deactivate_device_tokens,
    deactivate_device_token,
    deactivate_stale_device_tokens,
    deactivate_user_device_tokens,
    get_device_token_statistics,
    is_device_token_active,
    list_active_device_tokens,
    list_active_device_tokens_for_users,
    process_push_feedback,
    prune_inactive_device_tokens,
    refresh_device_token,
    register_device_token,
    register_device_tokens,
    touch_device_token,
)
from app.application.use_cases.device_tokens import deactivate_device_tokens
from app.application.use_cases.device_tokens.validators import ensure_valid_token
from app.config import reset_settings_cache
from app.domain.entities import DevicePlatform, DeviceTokenRegistration
from app.domain.exceptions import InvalidDeviceTokenError
from app.infrastructure.models import DeviceTokenModel


def test_second_token_for_same_device_replaces_first(db_session, make_user) -> None:
    user = make_user()
    first = register_device_token(
        db_session,
        user_id=user.id,
        token=android_token("first"),
        platform="android",
        device_id="pixel-7",
    )
    second = register_device_token(
        db_session,
        user_id=user.id,
        token=android_token("second"),
        platform="android",
        device_id="pixel-7",
    )

    active = list_active_device_tokens(db_session, user.id)

    assert [item.token for item in active] == [second.token]
    assert not is_device_token_active(db_session, first.token)


def test_reregistering_token_refreshes_instead_of_duplicating(db_session, make_user) -> None:
    user = make_user()
    token = android_token("same")
    first_seen = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
    later = first_seen + timedelta(days=3)

    original = register_device_token(
        db_session, user_id=user.id, token=token, platform="android", now=first_seen
    )
    refreshed = register_device_token(
        db_session, user_id=user.id, token=token, platform="android", now=later
    )

    active = list_active_device_tokens(db_session, user.id)
    assert len(active) == 1
    assert refreshed.id == original.id
    assert refreshed.last_used_at > original.last_used_at
    assert db_session.query(DeviceTokenModel).count() == 1


def test_reregistering_inactive_token_reactivates_it(db_session, make_user) -> None:
    user = make_user()
    token = android_token("revived")
    register_device_token(db_session, user_id=user.id, token=token, platform="android")
    assert deactivate_device_token(db_session, token) is True

    register_device_token(db_session, user_id=user.id, token=token, platform="android")

    assert is_device_token_active(db_session, token)


@pytest.mark.parametrize(
    ("token", "platform"),
    [
        ("", "android"),
        ("   ", "ios"),
        ("short-token", "android"),
        ("a" * 40, "web"),
        ("b" * 63, "ios"),
        ("c" * 200, "windows"),
    ],
)
def test_register_rejects_malformed_tokens(db_session, make_user, token, platform) -> None:
    user = make_user()

    with pytest.raises(InvalidDeviceTokenError):
        register_device_token(db_session, user_id=user.id, token=token, platform=platform)

    assert db_session.query(DeviceTokenModel).count() == 0


def test_minimum_lengths_are_configurable() -> None:
    assert ensure_valid_token("  abcdef  ", "web", min_lengths={"web": 6}) == "abcdef"
    with pytest.raises(InvalidDeviceTokenError):
        ensure_valid_token("abc", "web", min_lengths={"web": 6})


def test_minimum_lengths_follow_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEVICE_TOKEN_MIN_LENGTH_WEB", "10")
    reset_settings_cache()
    try:
        assert ensure_valid_token("w" * 10, "web") == "w" * 10
        with pytest.raises(InvalidDeviceTokenError):
            ensure_valid_token("w" * 9, "web")
    finally:
        monkeypatch.delenv("DEVICE_TOKEN_MIN_LENGTH_WEB")
        reset_settings_cache()


def test_touch_advances_last_use(db_session, make_user) -> None:
    user = make_user()
    token = android_token("touch")
    register_device_token(
        db_session,
        user_id=user.id,
        token=token,
        platform="android",
        now=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )

    touch_device_token(db_session, token)
    touch_device_token(db_session, android_token("unknown"))

    db_session.expire_all()
    (stored,) = list_active_device_tokens(db_session, user.id)
    assert stored.last_used_at.year > 2024


def test_list_active_orders_by_last_use_and_filters_platform(db_session, make_user) -> None:
    user = make_user()
    base = datetime(2024, 3, 1, tzinfo=timezone.utc)
    register_device_token(
        db_session, user_id=user.id, token=android_token("old"), platform="android", now=base
    )
    register_device_token(
        db_session,
        user_id=user.id,
        token="w" * 60,
        platform="web",
        now=base + timedelta(hours=1),
    )
    register_device_token(
        db_session,
        user_id=user.id,
        token=android_token("new"),
        platform="android",
        now=base + timedelta(hours=2),
    )

    ordered = [item.token for item in list_active_device_tokens(db_session, user.id)]
    android_only = list_active_device_tokens(db_session, user.id, platform=DevicePlatform.ANDROID)

    assert ordered == [android_token("new"), "w" * 60, android_token("old")]
    assert {item.platform for item in android_only} == {DevicePlatform.ANDROID}
    assert len(android_only) == 2


def test_list_active_for_users_batches_lookup(db_session, make_user) -> None:
    alice = make_user()
    bob = make_user()
    carol = make_user()
    register_device_token(db_session, user_id=alice.id, token=android_token("a"), platform="android")
    register_device_token(db_session, user_id=bob.id, token=android_token("b"), platform="android")
    register_device_token(db_session, user_id=carol.id, token=android_token("c"), platform="android")

    tokens = list_active_device_tokens_for_users(db_session, [alice.id, bob.id])

    assert {item.user_id for item in tokens} == {alice.id, bob.id}


def test_deactivating_unknown_tokens_is_a_noop(db_session) -> None:
    assert deactivate_device_token(db_session, "does-not-exist") is False
    assert bulk_deactivate_device_tokens(db_session, ["nope", ""]) == 0
    assert deactivate_user_device_tokens(db_session, 999) == 0


def test_deactivate_all_for_user_respects_platform(db_session, make_user) -> None:
    user = make_user()
    register_device_token(db_session, user_id=user.id, token=android_token("a"), platform="android")
    register_device_token(db_session, user_id=user.id, token="w" * 60, platform="web")

    assert deactivate_user_device_tokens(db_session, user.id, platform="web") == 1
    assert [item.token for item in list_active_device_tokens(db_session, user.id)] == [
        android_token("a")
    ]
    assert deactivate_user_device_tokens(db_session, user.id) == 1
    assert list_active_device_tokens(db_session, user.id) == []


def test_refresh_replaces_old_token(db_session, make_user) -> None:
    user = make_user()
    register_device_token(db_session, user_id=user.id, token=android_token("old"), platform="android")

    refresh_device_token(
        db_session,
        old_token=android_token("old"),
        user_id=user.id,
        token=android_token("fresh"),
        platform="android",
    )

    assert [item.token for item in list_active_device_tokens(db_session, user.id)] == [
        android_token("fresh")
    ]


def test_stale_and_prune_sweeps(db_session, make_user) -> None:
    user = make_user()
    long_ago = datetime.now(timezone.utc) - timedelta(days=400)
    register_device_token(
        db_session, user_id=user.id, token=android_token("stale"), platform="android", now=long_ago
    )
    register_device_token(db_session, user_id=user.id, token=android_token("fresh"), platform="android")

    assert deactivate_stale_device_tokens(db_session, days_unused=270) == 1
    assert [item.token for item in list_active_device_tokens(db_session, user.id)] == [
        android_token("fresh")
    ]

    # Just deactivated, so it is not old enough to be deleted yet.
    assert prune_inactive_device_tokens(db_session, days_inactive=30) == 0
    assert prune_inactive_device_tokens(db_session, days_inactive=0) == 1
    assert db_session.query(DeviceTokenModel).count() == 1


def test_statistics_counts_by_platform(db_session, make_user) -> None:
    user = make_user()
    register_device_token(db_session, user_id=user.id, token=android_token("a"), platform="android")
    register_device_token(db_session, user_id=user.id, token="w" * 60, platform="web")
    deactivate_device_token(db_session, "w" * 60)

    stats = get_device_token_statistics(db_session)

    assert stats.total_active == 1
    assert stats.total_inactive == 1
    assert stats.active_by_platform == {"ios": 0, "android": 1, "web": 0}


def test_batch_registration_keeps_going_after_a_bad_token(db_session, make_user, caplog) -> None:
    user = make_user()
    phone, tablet = android_token("phone"), android_token("tablet")

    with caplog.at_level("WARNING"):
        registered = register_device_tokens(
            db_session,
            [
                DeviceTokenRegistration(user_id=user.id, token=phone, platform="android"),
                DeviceTokenRegistration(user_id=user.id, token="corto", platform="android"),
                DeviceTokenRegistration(user_id=user.id, token=tablet, platform="smartwatch"),
                DeviceTokenRegistration(
                    user_id=user.id, token=tablet, platform=DevicePlatform.ANDROID
                ),
            ],
        )

    assert [item.token for item in registered] == [phone, tablet]
    assert "token 1:" in caplog.text
    assert "token 2:" in caplog.text
    assert {item.token for item in list_active_device_tokens(db_session, user.id)} == {
        phone,
        tablet,
    }


def test_push_feedback_deactivates_both_lists_at_once(db_session, make_user) -> None:
    user = make_user()
    invalid, unregistered, healthy = (
        android_token("invalid"),
        android_token("unregistered"),
        android_token("healthy"),
    )
    for token in (invalid, unregistered, healthy):
        register_device_token(db_session, user_id=user.id, token=token, platform="android")

    count = process_push_feedback(
        db_session, invalid_tokens=[invalid], unregistered_tokens=[unregistered, invalid]
    )

    assert count == 2
    assert [item.token for item in list_active_device_tokens(db_session, user.id)] == [healthy]
    assert process_push_feedback(db_session) == 0


def test_push_feedback_logs_database_errors(
    db_session, monkeypatch: pytest.MonkeyPatch, caplog
) -> None:
    def broken_bulk(session, tokens):
        raise OperationalError("UPDATE device_tokens", {}, Exception("locked"))

    monkeypatch.setattr(deactivate_device_tokens, "bulk_deactivate_device_tokens", broken_bulk)

    with caplog.at_level("ERROR"):
        count = process_push_feedback(db_session, invalid_tokens=[android_token("x")])

    assert count == 0
    assert "Error processing push feedback" in caplog.text
