"""Use case for listing a user's notifications."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.domain.entities import Notification, NotificationStatus, NotificationType
from app.domain.exceptions import NotificationValidationError
from app.infrastructure.repositories import NotificationRepository

MAX_PAGE_SIZE = 100


def list_notifications(
    session: Session,
    user_id: int,
    *,
    status: NotificationStatus | str | None = None,
    type: NotificationType | str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    """Return notifications of ``user_id``, newest first."""

    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise NotificationValidationError(f"El límite debe estar entre 1 y {MAX_PAGE_SIZE}")
    if offset < 0:
        raise NotificationValidationError("El desplazamiento no puede ser negativo")
    try:
        resolved_status = NotificationStatus(status) if status is not None else None
        resolved_type = NotificationType(type) if type is not None else None
    except ValueError as exc:
        raise NotificationValidationError(str(exc)) from exc

    return list(
        NotificationRepository(session).list_for_user(
            user_id,
            status=resolved_status,
            notification_type=resolved_type,
            limit=limit,
            offset=offset,
        )
    )


__all__ = ["MAX_PAGE_SIZE", "list_notifications"]
