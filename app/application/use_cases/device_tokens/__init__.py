"""Use cases for the push device token registry."""

from .deactivate_device_tokens import (
    bulk_deactivate_device_tokens,
    deactivate_device_token,
    deactivate_stale_device_tokens,
    deactivate_user_device_tokens,
    process_push_feedback,
    prune_inactive_device_tokens,
)
from .list_device_tokens import (
    get_device_token_statistics,
    is_device_token_active,
    list_active_device_tokens,
    list_active_device_tokens_for_users,
    touch_device_token,
)
from .register_device_token import (
    refresh_device_token,
    register_device_token,
    register_device_tokens,
)

__all__ = [
    "bulk_deactivate_device_tokens",
    "deactivate_device_token",
    "deactivate_stale_device_tokens",
    "deactivate_user_device_tokens",
    "get_device_token_statistics",
    "is_device_token_active",
    "list_active_device_tokens",
    "list_active_device_tokens_for_users",
    "process_push_feedback",
    "prune_inactive_device_tokens",
    "refresh_device_token",
    "register_device_token",
    "register_device_tokens",
    "touch_device_token",
]
