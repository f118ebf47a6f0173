"""Quiet hours evaluation in the user's own timezone."""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

from sqlalchemy.orm import Session

from app.domain.entities import NotificationPreferences
from app.utils import (
    now_in_app_timezone,
    parse_clock_time,
    resolve_timezone,
    to_local_clock_time,
)

from .get_or_create_preferences import get_or_create_preferences

logger = logging.getLogger(__name__)


def _window(preferences: NotificationPreferences) -> tuple[time, time] | None:
    if not preferences.has_quiet_hours:
        return None
    try:
        start = parse_clock_time(preferences.quiet_hours_start or "")
        end = parse_clock_time(preferences.quiet_hours_end or "")
    except ValueError:
        logger.warning(
            "Ignoring malformed quiet hours for user %s: %s-%s",
            preferences.user_id,
            preferences.quiet_hours_start,
            preferences.quiet_hours_end,
        )
        return None
    return start, end


def is_within_quiet_hours(preferences: NotificationPreferences, now: datetime) -> bool:
    """Return ``True`` when ``now`` falls inside the user's quiet window.

    Both bounds are inclusive. A window whose start is later than its end
    crosses midnight.
    """

    window = _window(preferences)
    if window is None:
        return False
    start, end = window
    current = to_local_clock_time(now, resolve_timezone(preferences.timezone))
    if start > end:
        return current >= start or current <= end
    return start <= current <= end


def quiet_hours_release_at(
    preferences: NotificationPreferences, now: datetime
) -> datetime | None:
    """Return the first moment after the quiet window ends, in the user's timezone.

    The end bound is inclusive, so delivery resumes one minute after it.
    """

    window = _window(preferences)
    if window is None:
        return None
    _, end = window
    tz = resolve_timezone(preferences.timezone)
    local_now = now.astimezone(tz) if now.tzinfo else now.replace(tzinfo=tz)
    release = datetime.combine(local_now.date(), end, tzinfo=tz) + timedelta(minutes=1)
    if release <= local_now:
        release += timedelta(days=1)
    return release


def is_in_quiet_hours(session: Session, user_id: int, now: datetime | None = None) -> bool:
    """Return ``True`` when push delivery to ``user_id`` should be held back."""

    preferences = get_or_create_preferences(session, user_id)
    return is_within_quiet_hours(preferences, now or now_in_app_timezone())


__all__ = ["is_in_quiet_hours", "is_within_quiet_hours", "quiet_hours_release_at"]
