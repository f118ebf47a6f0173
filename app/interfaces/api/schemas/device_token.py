"""Schemas for device token registration."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.entities import DevicePlatform


class DeviceTokenCreate(BaseModel):
    token: str = Field(..., min_length=1, max_length=512)
    platform: str = Field(..., description="ios, android o web")
    device_id: str | None = Field(default=None, max_length=255)

    model_config = ConfigDict(extra="forbid")


class DeviceTokenRead(BaseModel):
    id: int
    user_id: int
    token: str
    platform: DevicePlatform
    device_id: str | None = None
    is_active: bool
    last_used_at: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class DeviceTokenDeactivateResponse(BaseModel):
    deactivated: bool


__all__ = ["DeviceTokenCreate", "DeviceTokenDeactivateResponse", "DeviceTokenRead"]
