"""Use case for partially updating notification preferences."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import (
    DeliveryChannel,
    NotificationPreferences,
    NotificationType,
    PreferencesUpdate,
)
from app.domain.exceptions import PreferencesValidationError
from app.infrastructure.repositories import NotificationPreferencesRepository
from app.utils import is_known_timezone, now_in_app_timezone, parse_clock_time

from .get_or_create_preferences import get_or_create_preferences


def _normalize_clock(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    try:
        return parse_clock_time(str(value)).strftime("%H:%M")
    except ValueError as exc:
        raise PreferencesValidationError(
            f"Formato inválido para {field_name} (HH:MM)"
        ) from exc


def _normalize_channels(
    raw: Mapping[Any, Any],
) -> dict[NotificationType, list[DeliveryChannel]]:
    normalized: dict[NotificationType, list[DeliveryChannel]] = {}
    for raw_type, raw_channels in raw.items():
        try:
            event_type = NotificationType(raw_type)
        except ValueError as exc:
            raise PreferencesValidationError(
                f"Tipo de notificación inválido: {raw_type}"
            ) from exc
        channels: list[DeliveryChannel] = []
        for raw_channel in raw_channels or []:
            try:
                channel = DeliveryChannel(raw_channel)
            except ValueError as exc:
                raise PreferencesValidationError(
                    f"Canal de entrega inválido: {raw_channel}"
                ) from exc
            if channel not in channels:
                channels.append(channel)
        normalized[event_type] = channels
    return normalized


def update_preferences(
    session: Session, user_id: int, changes: PreferencesUpdate
) -> NotificationPreferences:
    """Merge ``changes`` into the stored preferences of ``user_id``.

    Only the fields present in ``changes`` overwrite stored values. Channel
    lists are merged per notification type.
    """

    provided = changes.provided()
    current = get_or_create_preferences(session, user_id)
    if not provided:
        return current

    updates: dict[str, Any] = {}
    if "channels_by_type" in provided:
        merged = dict(current.channels_by_type)
        merged.update(_normalize_channels(provided["channels_by_type"] or {}))
        updates["channels_by_type"] = merged
    for flag in ("email_enabled", "push_enabled"):
        if flag in provided:
            if not isinstance(provided[flag], bool):
                raise PreferencesValidationError(f"{flag} debe ser booleano")
            updates[flag] = provided[flag]
    for bound in ("quiet_hours_start", "quiet_hours_end"):
        if bound in provided:
            updates[bound] = _normalize_clock(provided[bound], bound)
    if "timezone" in provided:
        tz_name = str(provided["timezone"] or "").strip()
        if not is_known_timezone(tz_name):
            raise PreferencesValidationError(f"Zona horaria desconocida: {provided['timezone']}")
        updates["timezone"] = tz_name

    updated = replace(current, **updates, updated_at=now_in_app_timezone())
    return NotificationPreferencesRepository(session).update(updated)


__all__ = ["update_preferences"]
