"""Queries over the device token registry."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.entities import DevicePlatform, DeviceToken, DeviceTokenStatistics
from app.infrastructure.repositories import DeviceTokenRepository
from app.utils import now_in_app_timezone

from .validators import ensure_platform

logger = logging.getLogger(__name__)


def list_active_device_tokens(
    session: Session, user_id: int, platform: DevicePlatform | str | None = None
) -> list[DeviceToken]:
    """Return the active tokens of ``user_id``, most recently used first."""

    resolved = ensure_platform(platform) if platform is not None else None
    return list(DeviceTokenRepository(session).list_active(user_id, platform=resolved))


def list_active_device_tokens_for_users(
    session: Session, user_ids: Iterable[int]
) -> list[DeviceToken]:
    """Batched variant of :func:`list_active_device_tokens` used for fan-out."""

    return list(DeviceTokenRepository(session).list_active_for_users(user_ids))


def is_device_token_active(session: Session, token: str) -> bool:
    return any(item.is_active for item in DeviceTokenRepository(session).list_by_token(token))


def touch_device_token(session: Session, token: str) -> None:
    """Refresh ``last_used_at`` for ``token``; failures are only logged."""

    try:
        DeviceTokenRepository(session).touch(token, used_at=now_in_app_timezone())
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Error updating token usage for %s...", token[:10])


def get_device_token_statistics(session: Session) -> DeviceTokenStatistics:
    return DeviceTokenRepository(session).statistics()


__all__ = [
    "get_device_token_statistics",
    "is_device_token_active",
    "list_active_device_tokens",
    "list_active_device_tokens_for_users",
    "touch_device_token",
]
