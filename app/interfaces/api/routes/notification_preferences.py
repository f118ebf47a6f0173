"""Endpoints to read and edit notification preferences."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.application.use_cases.preferences import (
    get_or_create_preferences,
    update_preferences as update_preferences_uc,
)
from app.domain.entities import NotificationPreferences, PreferencesUpdate, User
from app.infrastructure.database import get_db
from app.interfaces.api.dependencies import get_existing_user
from app.interfaces.api.routes_helpers import http_error_from
from app.interfaces.api.schemas import (
    NotificationPreferencesRead,
    NotificationPreferencesUpdate,
)

router = APIRouter(tags=["notification-preferences"])


def _to_read_model(preferences: NotificationPreferences) -> NotificationPreferencesRead:
    return NotificationPreferencesRead.model_validate(preferences)


@router.get(
    "/users/{user_id}/notification-preferences",
    response_model=NotificationPreferencesRead,
)
def get_preferences(
    user: User = Depends(get_existing_user),
    db: Session = Depends(get_db),
) -> NotificationPreferencesRead:
    return _to_read_model(get_or_create_preferences(db, user.id))


@router.put(
    "/users/{user_id}/notification-preferences",
    response_model=NotificationPreferencesRead,
)
def update_preferences(
    payload: NotificationPreferencesUpdate,
    user: User = Depends(get_existing_user),
    db: Session = Depends(get_db),
) -> NotificationPreferencesRead:
    """Apply a partial update; only the fields sent in the body change."""

    changes = PreferencesUpdate.from_mapping(payload.model_dump(exclude_unset=True))
    try:
        preferences = update_preferences_uc(db, user.id, changes)
    except ValueError as exc:
        raise http_error_from(exc) from exc
    return _to_read_model(preferences)


__all__ = ["router"]
