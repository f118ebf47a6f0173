"""Tests for preference resolution and quiet hours."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.application.use_cases.preferences import (
    get_or_create_preferences,
    is_in_quiet_hours,
    is_within_quiet_hours,
    quiet_hours_release_at,
    resolve_channels,
    update_preferences,
)
from app.domain.entities import (
    DeliveryChannel,
    NotificationPreferences,
    NotificationType,
    PreferencesUpdate,
)
from app.domain.exceptions import PreferencesValidationError
from app.infrastructure.models import NotificationPreferencesModel

PUSH = DeliveryChannel.PUSH
EMAIL = DeliveryChannel.EMAIL
IN_APP = DeliveryChannel.IN_APP


def _at(clock: str, tz=timezone.utc) -> datetime:
    hours, minutes = (int(part) for part in clock.split(":"))
    return datetime(2024, 5, 10, hours, minutes, tzinfo=tz)


def _quiet(start: str | None, end: str | None, tz_name: str = "UTC") -> NotificationPreferences:
    return NotificationPreferences(
        id=None,
        user_id=1,
        quiet_hours_start=start,
        quiet_hours_end=end,
        timezone=tz_name,
    )


def test_preferences_are_created_lazily_with_defaults(db_session, make_user) -> None:
    user = make_user()

    created = get_or_create_preferences(db_session, user.id)
    again = get_or_create_preferences(db_session, user.id)

    assert created.id == again.id
    assert db_session.query(NotificationPreferencesModel).count() == 1
    assert created.channels_by_type[NotificationType.STORY_UPLOADED] == [PUSH, EMAIL]
    assert created.channels_by_type[NotificationType.STORY_PROCESSED] == [PUSH]
    assert created.email_enabled and created.push_enabled
    assert created.timezone == "UTC"


def test_unconfigured_type_falls_back_to_push(db_session, make_user) -> None:
    user = make_user()

    assert resolve_channels(db_session, user.id, NotificationType.PROJECT_ARCHIVED) == [PUSH]


@pytest.mark.parametrize("event_type", list(NotificationType))
def test_push_disabled_never_resolves_push(db_session, make_user, event_type) -> None:
    user = make_user()
    update_preferences(
        db_session,
        user.id,
        PreferencesUpdate(
            push_enabled=False,
            channels_by_type={event_type.value: ["push", "email", "in_app"]},
        ),
    )

    channels = resolve_channels(db_session, user.id, event_type)

    assert PUSH not in channels
    assert IN_APP in channels


def test_email_switch_filters_email_but_never_in_app(db_session, make_user) -> None:
    user = make_user()
    update_preferences(
        db_session,
        user.id,
        PreferencesUpdate(
            email_enabled=False,
            channels_by_type={"export_ready": ["email", "in_app", "push"]},
        ),
    )

    assert resolve_channels(db_session, user.id, "export_ready") == [IN_APP, PUSH]


@pytest.mark.parametrize("clock", ["23:00", "00:00", "07:59", "22:00", "08:00"])
def test_window_crossing_midnight_includes(clock) -> None:
    assert is_within_quiet_hours(_quiet("22:00", "08:00"), _at(clock))


@pytest.mark.parametrize("clock", ["08:01", "12:00", "21:59"])
def test_window_crossing_midnight_excludes(clock) -> None:
    assert not is_within_quiet_hours(_quiet("22:00", "08:00"), _at(clock))


@pytest.mark.parametrize(
    ("clock", "inside"),
    [("08:00", True), ("22:00", True), ("12:30", True), ("07:59", False), ("22:01", False)],
)
def test_same_day_window_is_boundary_inclusive(clock, inside) -> None:
    assert is_within_quiet_hours(_quiet("08:00", "22:00"), _at(clock)) is inside


@pytest.mark.parametrize(("start", "end"), [(None, None), ("22:00", None), (None, "08:00")])
def test_missing_bound_disables_quiet_hours(start, end) -> None:
    preferences = _quiet(start, end)
    for hour in range(24):
        assert not is_within_quiet_hours(preferences, _at(f"{hour:02d}:30"))


def test_quiet_hours_use_user_timezone() -> None:
    preferences = _quiet("22:00", "08:00", "UTC-05:00")

    # 03:00 UTC is 22:00 the previous evening at UTC-5.
    assert is_within_quiet_hours(preferences, _at("03:00"))
    # 14:00 UTC is 09:00 at UTC-5.
    assert not is_within_quiet_hours(preferences, _at("14:00"))


def test_is_in_quiet_hours_reads_stored_preferences(db_session, make_user) -> None:
    user = make_user()
    assert not is_in_quiet_hours(db_session, user.id, _at("23:30"))

    update_preferences(
        db_session,
        user.id,
        PreferencesUpdate(quiet_hours_start="22:00", quiet_hours_end="08:00"),
    )

    assert is_in_quiet_hours(db_session, user.id, _at("23:30"))


def test_release_time_is_one_minute_after_window_end() -> None:
    preferences = _quiet("22:00", "08:00")

    late_evening = quiet_hours_release_at(preferences, _at("23:00"))
    early_morning = quiet_hours_release_at(preferences, _at("06:15"))

    assert late_evening == datetime(2024, 5, 11, 8, 1, tzinfo=timezone.utc)
    assert early_morning == datetime(2024, 5, 10, 8, 1, tzinfo=timezone.utc)


def test_release_time_for_short_window_is_not_a_fixed_delay() -> None:
    preferences = _quiet("12:00", "12:10")

    release = quiet_hours_release_at(preferences, _at("12:05"))

    assert release - _at("12:05") == timedelta(minutes=6)


def test_release_time_honours_user_timezone() -> None:
    preferences = _quiet("22:00", "07:00", "UTC-05:00")

    release = quiet_hours_release_at(preferences, _at("04:00"))

    assert release.astimezone(timezone.utc) == datetime(2024, 5, 10, 12, 1, tzinfo=timezone.utc)


def test_release_time_without_window_is_none() -> None:
    assert quiet_hours_release_at(_quiet(None, None), _at("12:00")) is None


def test_partial_update_keeps_unspecified_fields(db_session, make_user) -> None:
    user = make_user()
    update_preferences(
        db_session,
        user.id,
        PreferencesUpdate(quiet_hours_start="21:30", quiet_hours_end="7:00", timezone="UTC+02:00"),
    )

    updated = update_preferences(db_session, user.id, PreferencesUpdate(email_enabled=False))

    assert updated.email_enabled is False
    assert updated.push_enabled is True
    assert updated.quiet_hours_start == "21:30"
    assert updated.quiet_hours_end == "07:00"
    assert updated.timezone == "UTC+02:00"


def test_channel_lists_merge_per_type(db_session, make_user) -> None:
    user = make_user()

    updated = update_preferences(
        db_session,
        user.id,
        PreferencesUpdate(channels_by_type={"story_uploaded": ["in_app", "in_app"]}),
    )

    assert updated.channels_by_type[NotificationType.STORY_UPLOADED] == [IN_APP]
    assert updated.channels_by_type[NotificationType.EXPORT_READY] == [PUSH, EMAIL]


def test_clearing_quiet_hours_with_none(db_session, make_user) -> None:
    user = make_user()
    update_preferences(
        db_session, user.id, PreferencesUpdate(quiet_hours_start="22:00", quiet_hours_end="08:00")
    )

    updated = update_preferences(
        db_session, user.id, PreferencesUpdate(quiet_hours_start=None, quiet_hours_end=None)
    )

    assert updated.has_quiet_hours is False


@pytest.mark.parametrize(
    "changes",
    [
        {"quiet_hours_start": "25:00"},
        {"quiet_hours_end": "late"},
        {"timezone": "Mars/Olympus_Mons"},
        {"channels_by_type": {"unknown_event": ["push"]}},
        {"channels_by_type": {"story_uploaded": ["sms"]}},
        {"email_enabled": "yes"},
    ],
)
def test_invalid_updates_are_rejected(db_session, make_user, changes) -> None:
    user = make_user()
    before = get_or_create_preferences(db_session, user.id)

    with pytest.raises(PreferencesValidationError):
        update_preferences(db_session, user.id, PreferencesUpdate.from_mapping(changes))

    assert get_or_create_preferences(db_session, user.id) == before


def test_from_mapping_ignores_unknown_keys() -> None:
    changes = PreferencesUpdate.from_mapping({"push_enabled": False, "colour": "blue"})

    assert changes.provided() == {"push_enabled": False}
