"""ORM models used by the application infrastructure."""

from .device_token import DeviceTokenModel
from .notification import NotificationModel
from .notification_preferences import NotificationPreferencesModel
from .user import UserModel

__all__ = [
    "DeviceTokenModel",
    "NotificationModel",
    "NotificationPreferencesModel",
    "UserModel",
]
