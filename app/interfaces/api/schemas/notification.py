"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.domain.entities import DeliveryChannel, NotificationStatus, NotificationType


class NotificationCreate(BaseModel):
    """Payload used to create and send a notification."""

    type: NotificationType
    title: str = Field(..., min_length=1, max_length=255)
    body: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    channels: list[DeliveryChannel] | None = Field(
        default=None, description="Canales explícitos; si se omite se usan las preferencias"
    )
    scheduled_at: datetime | None = None

    model_config = ConfigDict(extra="forbid")


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: int
    user_id: int
    type: NotificationType
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)
    channels: list[DeliveryChannel] = Field(default_factory=list)
    status: NotificationStatus
    scheduled_at: datetime | None = None
    sent_at: datetime | None = None
    read_at: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class DeliveryResultRead(BaseModel):
    channel: DeliveryChannel
    success: bool
    error: str | None = None
    provider_message_id: str | None = None

    model_config = ConfigDict(from_attributes=True)


class NotificationSendResponse(BaseModel):
    notification: NotificationRead
    delivery_results: list[DeliveryResultRead] = Field(default_factory=list)
    follow_up: NotificationRead | None = None
    degraded: bool = False


class UnreadCountRead(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int


class NotificationStatisticsRead(BaseModel):
    total_sent: int
    total_failed: int
    pending_count: int
    unread_count: int
    delivery_rate: float

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "DeliveryResultRead",
    "MarkAllReadResponse",
    "NotificationCreate",
    "NotificationRead",
    "NotificationSendResponse",
    "NotificationStatisticsRead",
    "UnreadCountRead",
]
