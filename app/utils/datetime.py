"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

import re
from datetime import datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.config import get_settings

_DEFAULT_TIMEZONE: Final[str] = "UTC"
_UTC_ALIASES: Final[frozenset[str]] = frozenset({"UTC", "GMT", "Z"})
_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)
_CLOCK_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<hours>[01]?\d|2[0-3]):(?P<minutes>[0-5]\d)$"
)


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the configured application timezone.

    The timezone is resolved using the ``APP_TIMEZONE`` environment variable (via
    the ``Settings`` object). If the provided value cannot be resolved, ``UTC``
    is used as a fallback.
    """

    settings = get_settings()
    tz_name = (settings.app_timezone or "").strip() or _DEFAULT_TIMEZONE
    return resolve_timezone(tz_name)


def now_in_app_timezone() -> datetime:
    """Return the current time localized to the configured timezone."""

    return datetime.now(tz=get_app_timezone())


def now_in_app_naive_datetime() -> datetime:
    """Return the current localized time without attaching ``tzinfo``."""

    localized = ensure_app_naive_datetime(now_in_app_timezone())
    if localized is None:  # pragma: no cover
        msg = "Failed to compute the application naive datetime"
        raise RuntimeError(msg)
    return localized


def ensure_app_timezone(value: datetime | None) -> datetime | None:
    """Normalize ``value`` so it is expressed in the configured timezone."""

    if value is None:
        return None

    tz = get_app_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def ensure_app_naive_datetime(value: datetime | None) -> datetime | None:
    """Return ``value`` localized to the app timezone but without ``tzinfo``.

    Some database backends do not keep timezone information on ``DATETIME``
    columns. This helper lets the domain layer work with aware datetimes while
    storing the localized (naive) representation in the database.
    """

    localized = ensure_app_timezone(value)
    if localized is None:
        return None
    return localized.replace(tzinfo=None)


def resolve_timezone(tz_name: str | None) -> tzinfo:
    """Resolve ``tz_name`` into a ``tzinfo`` instance.

    IANA names (``Europe/Madrid``) and fixed offsets (``UTC+05:30``) are
    accepted. Unknown values fall back to ``UTC``.
    """

    name = (tz_name or "").strip() or _DEFAULT_TIMEZONE
    if name.upper() in _UTC_ALIASES:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        match = _OFFSET_PATTERN.match(name)
        if match:
            sign = -1 if match.group("sign") == "-" else 1
            hours = int(match.group("hours"))
            minutes = int(match.group("minutes") or 0)
            offset = timedelta(hours=hours, minutes=minutes)
            return timezone(sign * offset)
    return timezone.utc


def is_known_timezone(tz_name: str) -> bool:
    """Return ``True`` when ``tz_name`` resolves without falling back."""

    name = tz_name.strip()
    if not name:
        return False
    if name.upper() in _UTC_ALIASES:
        return True
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return _OFFSET_PATTERN.match(name) is not None
    return True


def parse_clock_time(value: str) -> time:
    """Parse an ``HH:MM`` string into a :class:`datetime.time`."""

    match = _CLOCK_PATTERN.match(value.strip())
    if match is None:
        msg = f"Invalid time of day '{value}', expected HH:MM"
        raise ValueError(msg)
    return time(hour=int(match.group("hours")), minute=int(match.group("minutes")))


def to_local_clock_time(moment: datetime, tz: tzinfo) -> time:
    """Return the wall clock time (minute precision) of ``moment`` in ``tz``."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=get_app_timezone())
    local = moment.astimezone(tz)
    return time(hour=local.hour, minute=local.minute)
