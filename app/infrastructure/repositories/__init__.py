"""Repository implementations for infrastructure layer."""

from .device_token_repository import DeviceTokenRepository
from .notification_preferences_repository import NotificationPreferencesRepository
from .notification_repository import NotificationRepository
from .user_repository import UserRepository

__all__ = [
    "DeviceTokenRepository",
    "NotificationPreferencesRepository",
    "NotificationRepository",
    "UserRepository",
]
