"""Errors raised by the notification domain.

Every error derives from ``ValueError`` so the API layer can keep mapping
invalid input to ``400 Bad Request`` the same way it does for the rest of the
application.
"""


class NotificationError(ValueError):
    """Base class for notification domain errors."""


class NotificationValidationError(NotificationError):
    """Raised when a send request is rejected before any side effect."""


class InvalidDeviceTokenError(NotificationError):
    """Raised when a device token does not look like a provider token."""


class PreferencesValidationError(NotificationError):
    """Raised when a preferences update contains invalid values."""


class NotificationStateError(NotificationError):
    """Raised for status transitions the lifecycle does not allow."""


class NotificationNotFoundError(NotificationError):
    """Raised when a notification does not exist for the requesting user."""


__all__ = [
    "InvalidDeviceTokenError",
    "NotificationError",
    "NotificationNotFoundError",
    "NotificationStateError",
    "NotificationValidationError",
    "PreferencesValidationError",
]
