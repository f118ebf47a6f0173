"""Domain entities describing how a user wants to be notified."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Final

from .notification import DeliveryChannel, NotificationType

DEFAULT_TIMEZONE: Final[str] = "UTC"
FALLBACK_CHANNELS: Final[tuple[DeliveryChannel, ...]] = (DeliveryChannel.PUSH,)

# Types users can configure individually; anything else uses FALLBACK_CHANNELS.
CONFIGURABLE_TYPES: Final[tuple[NotificationType, ...]] = (
    NotificationType.STORY_UPLOADED,
    NotificationType.STORY_PROCESSED,
    NotificationType.INTERACTION_ADDED,
    NotificationType.FOLLOW_UP_QUESTION,
    NotificationType.EXPORT_READY,
    NotificationType.INVITATION_RECEIVED,
    NotificationType.SUBSCRIPTION_EXPIRING,
    NotificationType.SUBSCRIPTION_EXPIRED,
)


def default_channels_by_type() -> dict[NotificationType, list[DeliveryChannel]]:
    """Return the channel lists assigned to a freshly created preference row."""

    defaults: dict[NotificationType, list[DeliveryChannel]] = {}
    for notification_type in CONFIGURABLE_TYPES:
        if notification_type is NotificationType.STORY_PROCESSED:
            defaults[notification_type] = [DeliveryChannel.PUSH]
        else:
            defaults[notification_type] = [DeliveryChannel.PUSH, DeliveryChannel.EMAIL]
    return defaults


@dataclass
class NotificationPreferences:
    """Per-user delivery settings."""

    id: int | None
    user_id: int
    channels_by_type: dict[NotificationType, list[DeliveryChannel]] = field(
        default_factory=default_channels_by_type
    )
    email_enabled: bool = True
    push_enabled: bool = True
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    timezone: str = DEFAULT_TIMEZONE
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def configured_channels(self, event_type: NotificationType) -> list[DeliveryChannel]:
        configured = self.channels_by_type.get(event_type)
        if configured is None:
            return list(FALLBACK_CHANNELS)
        return list(configured)

    def effective_channels(self, event_type: NotificationType) -> list[DeliveryChannel]:
        """Return the configured channels filtered by the global switches."""

        effective: list[DeliveryChannel] = []
        for channel in self.configured_channels(event_type):
            if channel is DeliveryChannel.EMAIL and not self.email_enabled:
                continue
            if channel is DeliveryChannel.PUSH and not self.push_enabled:
                continue
            if channel not in effective:
                effective.append(channel)
        return effective

    @property
    def has_quiet_hours(self) -> bool:
        return bool(self.quiet_hours_start) and bool(self.quiet_hours_end)


class _Unset:
    """Marker for fields omitted from a partial update."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset()


@dataclass
class PreferencesUpdate:
    """Partial update where only provided fields overwrite stored values.

    ``None`` is a meaningful value for the quiet hour bounds (it disables the
    window), so omitted fields are represented with :data:`UNSET` instead.
    """

    channels_by_type: Any = UNSET
    email_enabled: Any = UNSET
    push_enabled: Any = UNSET
    quiet_hours_start: Any = UNSET
    quiet_hours_end: Any = UNSET
    timezone: Any = UNSET

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> "PreferencesUpdate":
        known = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in values.items() if key in known})

    def provided(self) -> dict[str, Any]:
        """Return the fields explicitly set on this update."""

        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not UNSET
        }


__all__ = [
    "CONFIGURABLE_TYPES",
    "DEFAULT_TIMEZONE",
    "FALLBACK_CHANNELS",
    "NotificationPreferences",
    "PreferencesUpdate",
    "UNSET",
    "default_channels_by_type",
]
