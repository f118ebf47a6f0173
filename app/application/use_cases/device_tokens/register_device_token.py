"""Use cases for registering push device tokens."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.entities import DevicePlatform, DeviceToken, DeviceTokenRegistration
from app.infrastructure.repositories import DeviceTokenRepository
from app.utils import now_in_app_timezone

from .validators import ensure_platform, ensure_valid_token

logger = logging.getLogger(__name__)


def register_device_token(
    session: Session,
    *,
    user_id: int,
    token: str,
    platform: DevicePlatform | str,
    device_id: str | None = None,
    now: datetime | None = None,
) -> DeviceToken:
    """Register ``token`` for ``user_id`` or refresh the existing registration.

    A new token for a known ``device_id`` replaces the token previously active
    on that device. Registering a token twice reactivates the existing row and
    advances ``last_used_at`` instead of inserting a duplicate.
    """

    resolved_platform = ensure_platform(platform)
    normalized = ensure_valid_token(token, resolved_platform)
    device_id = (device_id or "").strip() or None
    timestamp = now or now_in_app_timezone()

    repository = DeviceTokenRepository(session)
    if device_id is not None:
        replaced = repository.deactivate_device(user_id, device_id, except_token=normalized)
        if replaced:
            logger.info(
                "Deactivated %s previous token(s) for user %s on device %s",
                replaced,
                user_id,
                device_id,
            )

    existing = repository.get_for_user(user_id, normalized)
    if existing is not None:
        refreshed = replace(
            existing,
            platform=resolved_platform,
            device_id=device_id if device_id is not None else existing.device_id,
            is_active=True,
            last_used_at=timestamp,
            updated_at=timestamp,
        )
        saved = repository.update(refreshed)
    else:
        saved = repository.create(
            DeviceToken(
                id=None,
                user_id=user_id,
                token=normalized,
                platform=resolved_platform,
                device_id=device_id,
                is_active=True,
                last_used_at=timestamp,
                created_at=timestamp,
                updated_at=timestamp,
            )
        )

    logger.info("Device token registered for user %s on %s", user_id, resolved_platform.value)
    return saved


def register_device_tokens(
    session: Session, registrations: Iterable[DeviceTokenRegistration]
) -> list[DeviceToken]:
    """Register several tokens, skipping the ones that fail.

    Failed registrations are logged together and left out of the result.
    """

    registered: list[DeviceToken] = []
    failures: list[str] = []
    for index, registration in enumerate(registrations):
        try:
            registered.append(
                register_device_token(
                    session,
                    user_id=registration.user_id,
                    token=registration.token,
                    platform=registration.platform,
                    device_id=registration.device_id,
                )
            )
        except SQLAlchemyError as exc:
            session.rollback()
            failures.append(f"token {index}: {exc}")
        except ValueError as exc:
            failures.append(f"token {index}: {exc}")

    if failures:
        logger.warning("Some token registrations failed: %s", "; ".join(failures))
    return registered


def refresh_device_token(
    session: Session,
    *,
    old_token: str,
    user_id: int,
    token: str,
    platform: DevicePlatform | str,
    device_id: str | None = None,
) -> DeviceToken:
    """Replace ``old_token`` with a newly issued token for the same user."""

    ensure_valid_token(token, platform)
    DeviceTokenRepository(session).deactivate_tokens([old_token])
    return register_device_token(
        session, user_id=user_id, token=token, platform=platform, device_id=device_id
    )


__all__ = ["refresh_device_token", "register_device_token", "register_device_tokens"]
