"""Schemas for notification preference endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.entities import DeliveryChannel, NotificationType


class NotificationPreferencesRead(BaseModel):
    user_id: int
    channels_by_type: dict[NotificationType, list[DeliveryChannel]]
    email_enabled: bool
    push_enabled: bool
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    timezone: str
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class NotificationPreferencesUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    channels_by_type: dict[str, list[str]] | None = None
    email_enabled: bool | None = None
    push_enabled: bool | None = None
    quiet_hours_start: str | None = Field(default=None, description="HH:MM")
    quiet_hours_end: str | None = Field(default=None, description="HH:MM")
    timezone: str | None = None

    model_config = ConfigDict(extra="forbid")


__all__ = ["NotificationPreferencesRead", "NotificationPreferencesUpdate"]
