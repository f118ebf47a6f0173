"""Resolve the delivery channels to use for an event."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.domain.entities import DeliveryChannel, NotificationType

from .get_or_create_preferences import get_or_create_preferences


def resolve_channels(
    session: Session, user_id: int, event_type: NotificationType | str
) -> list[DeliveryChannel]:
    """Return the ordered channels ``user_id`` accepts for ``event_type``.

    The configured list is filtered by the global email/push switches; the
    in-app channel is never filtered. Types without a configured list fall
    back to push only.
    """

    preferences = get_or_create_preferences(session, user_id)
    return preferences.effective_channels(NotificationType(event_type))


__all__ = ["resolve_channels"]
