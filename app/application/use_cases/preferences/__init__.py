"""Use cases for resolving and editing notification preferences."""

from .get_or_create_preferences import get_or_create_preferences
from .quiet_hours import is_in_quiet_hours, is_within_quiet_hours, quiet_hours_release_at
from .resolve_channels import resolve_channels
from .update_preferences import update_preferences

__all__ = [
    "get_or_create_preferences",
    "is_in_quiet_hours",
    "is_within_quiet_hours",
    "quiet_hours_release_at",
    "resolve_channels",
    "update_preferences",
]
