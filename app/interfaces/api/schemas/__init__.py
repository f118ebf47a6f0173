"""Pydantic schemas exposed by the HTTP interface."""

from .device_token import DeviceTokenCreate, DeviceTokenDeactivateResponse, DeviceTokenRead
from .notification import (
    DeliveryResultRead,
    MarkAllReadResponse,
    NotificationCreate,
    NotificationRead,
    NotificationSendResponse,
    NotificationStatisticsRead,
    UnreadCountRead,
)
from .notification_preferences import (
    NotificationPreferencesRead,
    NotificationPreferencesUpdate,
)

__all__ = [
    "DeliveryResultRead",
    "DeviceTokenCreate",
    "DeviceTokenDeactivateResponse",
    "DeviceTokenRead",
    "MarkAllReadResponse",
    "NotificationCreate",
    "NotificationPreferencesRead",
    "NotificationPreferencesUpdate",
    "NotificationRead",
    "NotificationSendResponse",
    "NotificationStatisticsRead",
    "UnreadCountRead",
]
