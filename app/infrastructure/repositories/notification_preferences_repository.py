"""Persistence layer for notification preferences."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import (
    DeliveryChannel,
    NotificationPreferences,
    NotificationType,
)
from app.infrastructure.models import NotificationPreferencesModel
from app.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)

logger = logging.getLogger(__name__)


class NotificationPreferencesRepository:
    """Provide CRUD operations for :class:`NotificationPreferences` rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_user(self, user_id: int) -> NotificationPreferences | None:
        model = (
            self.session.query(NotificationPreferencesModel)
            .filter(NotificationPreferencesModel.user_id == user_id)
            .first()
        )
        return self._to_entity(model) if model else None

    def create(self, preferences: NotificationPreferences) -> NotificationPreferences:
        model = NotificationPreferencesModel()
        model.user_id = preferences.user_id
        model.created_at = ensure_app_naive_datetime(
            preferences.created_at or now_in_app_timezone()
        )
        self._apply_entity_to_model(model, preferences)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def update(self, preferences: NotificationPreferences) -> NotificationPreferences:
        model = self.session.get(NotificationPreferencesModel, preferences.id)
        if model is None:
            msg = f"Notification preferences with id {preferences.id} not found"
            raise ValueError(msg)
        self._apply_entity_to_model(model, preferences)
        model.updated_at = ensure_app_naive_datetime(
            preferences.updated_at or now_in_app_timezone()
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationPreferencesModel, preferences: NotificationPreferences
    ) -> None:
        model.channels_by_type = {
            NotificationType(event_type).value: [
                DeliveryChannel(channel).value for channel in channels
            ]
            for event_type, channels in preferences.channels_by_type.items()
        }
        model.email_enabled = preferences.email_enabled
        model.push_enabled = preferences.push_enabled
        model.quiet_hours_start = preferences.quiet_hours_start
        model.quiet_hours_end = preferences.quiet_hours_end
        model.timezone = preferences.timezone

    @staticmethod
    def _parse_channels_by_type(
        raw: dict[str, Any] | None,
    ) -> dict[NotificationType, list[DeliveryChannel]]:
        parsed: dict[NotificationType, list[DeliveryChannel]] = {}
        for raw_type, raw_channels in (raw or {}).items():
            try:
                event_type = NotificationType(raw_type)
            except ValueError:
                logger.warning("Ignoring unknown notification type '%s' in preferences", raw_type)
                continue
            channels: list[DeliveryChannel] = []
            for raw_channel in raw_channels or []:
                try:
                    channels.append(DeliveryChannel(raw_channel))
                except ValueError:
                    logger.warning(
                        "Ignoring unknown delivery channel '%s' for %s", raw_channel, raw_type
                    )
            parsed[event_type] = channels
        return parsed

    @classmethod
    def _to_entity(cls, model: NotificationPreferencesModel) -> NotificationPreferences:
        return NotificationPreferences(
            id=model.id,
            user_id=model.user_id,
            channels_by_type=cls._parse_channels_by_type(model.channels_by_type),
            email_enabled=model.email_enabled,
            push_enabled=model.push_enabled,
            quiet_hours_start=model.quiet_hours_start,
            quiet_hours_end=model.quiet_hours_end,
            timezone=model.timezone or "UTC",
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["NotificationPreferencesRepository"]
