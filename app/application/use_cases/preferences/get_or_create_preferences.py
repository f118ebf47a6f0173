"""Use case returning a user's notification preferences."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.domain.entities import NotificationPreferences
from app.infrastructure.repositories import NotificationPreferencesRepository
from app.utils import now_in_app_timezone

logger = logging.getLogger(__name__)


def get_or_create_preferences(session: Session, user_id: int) -> NotificationPreferences:
    """Return the stored preferences of ``user_id``, creating the defaults lazily."""

    repository = NotificationPreferencesRepository(session)
    preferences = repository.get_by_user(user_id)
    if preferences is not None:
        return preferences

    try:
        created = repository.create(
            NotificationPreferences(id=None, user_id=user_id, created_at=now_in_app_timezone())
        )
    except IntegrityError:
        # Another request created the row first.
        session.rollback()
        existing = repository.get_by_user(user_id)
        if existing is None:
            raise
        return existing

    logger.info("Created default notification preferences for user %s", user_id)
    return created


__all__ = ["get_or_create_preferences"]
