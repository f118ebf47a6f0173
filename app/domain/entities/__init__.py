"""Domain entities exposed by the application."""

from .delivery import (
    BulkSendResult,
    DeliveryResult,
    NotificationSendResult,
    PushAggregateResult,
)
from .device_token import (
    DevicePlatform,
    DeviceToken,
    DeviceTokenRegistration,
    DeviceTokenStatistics,
)
from .notification import (
    DeliveryChannel,
    Notification,
    NotificationStatistics,
    NotificationStatus,
    NotificationType,
)
from .notification_preferences import (
    CONFIGURABLE_TYPES,
    UNSET,
    NotificationPreferences,
    PreferencesUpdate,
    default_channels_by_type,
)
from .user import User

__all__ = [
    "BulkSendResult",
    "CONFIGURABLE_TYPES",
    "DeliveryChannel",
    "DeliveryResult",
    "DevicePlatform",
    "DeviceToken",
    "DeviceTokenRegistration",
    "DeviceTokenStatistics",
    "Notification",
    "NotificationPreferences",
    "NotificationSendResult",
    "NotificationStatistics",
    "NotificationStatus",
    "NotificationType",
    "PreferencesUpdate",
    "PushAggregateResult",
    "UNSET",
    "User",
    "default_channels_by_type",
]
