"""Domain entity representing a push-capable endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class DevicePlatform(str, Enum):
    """Platforms able to receive push notifications."""

    IOS = "ios"
    ANDROID = "android"
    WEB = "web"


@dataclass
class DeviceToken:
    """Provider-issued token identifying one app install or browser."""

    id: int | None
    user_id: int
    token: str
    platform: DevicePlatform
    device_id: str | None = None
    is_active: bool = True
    last_used_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class DeviceTokenStatistics:
    """Snapshot of the registry used for monitoring."""

    total_active: int
    total_inactive: int
    active_by_platform: dict[str, int]


@dataclass(frozen=True)
class DeviceTokenRegistration:
    """One token to register as part of a batch."""

    user_id: int
    token: str
    platform: DevicePlatform | str
    device_id: str | None = None


__all__ = [
    "DevicePlatform",
    "DeviceToken",
    "DeviceTokenRegistration",
    "DeviceTokenStatistics",
]
