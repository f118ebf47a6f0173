"""Use cases that retire device tokens."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.entities import DevicePlatform
from app.infrastructure.repositories import DeviceTokenRepository
from app.utils import now_in_app_timezone

from .validators import ensure_platform

logger = logging.getLogger(__name__)


def deactivate_device_token(session: Session, token: str, *, reason: str | None = None) -> bool:
    """Deactivate ``token``. Unknown or already inactive tokens return ``False``."""

    count = DeviceTokenRepository(session).deactivate_tokens([token])
    if count:
        logger.info(
            "Device token deactivated: %s...%s",
            token[:10],
            f" ({reason})" if reason else "",
        )
    return count > 0


def deactivate_user_device_tokens(
    session: Session, user_id: int, platform: DevicePlatform | str | None = None
) -> int:
    """Deactivate every active token of ``user_id`` (e.g. on logout)."""

    resolved = ensure_platform(platform) if platform is not None else None
    count = DeviceTokenRepository(session).deactivate_for_user(user_id, platform=resolved)
    logger.info(
        "Deactivated %s tokens for user %s%s",
        count,
        user_id,
        f" on {resolved.value}" if resolved else "",
    )
    return count


def bulk_deactivate_device_tokens(session: Session, tokens: Iterable[str]) -> int:
    """Deactivate tokens reported as invalid by the push provider."""

    token_list = [token for token in tokens if token]
    if not token_list:
        return 0
    count = DeviceTokenRepository(session).deactivate_tokens(token_list)
    logger.info("Deactivated %s invalid tokens", count)
    return count


def process_push_feedback(
    session: Session,
    *,
    invalid_tokens: Iterable[str] = (),
    unregistered_tokens: Iterable[str] = (),
) -> int:
    """Deactivate the tokens a provider feedback report flagged, in one update.

    Database errors are logged and reported as zero deactivations.
    """

    tokens = list(dict.fromkeys([*invalid_tokens, *unregistered_tokens]))
    if not tokens:
        return 0
    try:
        return bulk_deactivate_device_tokens(session, tokens)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Error processing push feedback for %s tokens", len(tokens))
        return 0


def deactivate_stale_device_tokens(session: Session, days_unused: int) -> int:
    """Deactivate active tokens that have not been used for ``days_unused`` days."""

    cutoff = now_in_app_timezone() - timedelta(days=days_unused)
    count = DeviceTokenRepository(session).deactivate_unused_before(cutoff)
    logger.info("Deactivated %s tokens unused for more than %s days", count, days_unused)
    return count


def prune_inactive_device_tokens(session: Session, days_inactive: int = 30) -> int:
    """Hard-delete tokens that stayed inactive for longer than ``days_inactive``."""

    cutoff = now_in_app_timezone() - timedelta(days=days_inactive)
    count = DeviceTokenRepository(session).delete_inactive_before(cutoff)
    logger.info("Cleaned up %s inactive tokens older than %s days", count, days_inactive)
    return count


__all__ = [
    "bulk_deactivate_device_tokens",
    "deactivate_device_token",
    "deactivate_stale_device_tokens",
    "deactivate_user_device_tokens",
    "process_push_feedback",
    "prune_inactive_device_tokens",
]
