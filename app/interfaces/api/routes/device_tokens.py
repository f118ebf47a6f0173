"""Endpoints for the push device token registry."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.application.use_cases.device_tokens import (
    deactivate_device_token,
    list_active_device_tokens,
    register_device_token,
)
from app.domain.entities import DevicePlatform, User
from app.infrastructure.database import get_db
from app.interfaces.api.dependencies import get_existing_user
from app.interfaces.api.routes_helpers import http_error_from
from app.interfaces.api.schemas import (
    DeviceTokenCreate,
    DeviceTokenDeactivateResponse,
    DeviceTokenRead,
)

router = APIRouter(tags=["device-tokens"])


@router.post(
    "/users/{user_id}/device-tokens",
    response_model=DeviceTokenRead,
    status_code=status.HTTP_201_CREATED,
)
def register_token(
    payload: DeviceTokenCreate,
    user: User = Depends(get_existing_user),
    db: Session = Depends(get_db),
) -> DeviceTokenRead:
    try:
        token = register_device_token(
            db,
            user_id=user.id,
            token=payload.token,
            platform=payload.platform,
            device_id=payload.device_id,
        )
    except ValueError as exc:
        raise http_error_from(exc) from exc
    return DeviceTokenRead.model_validate(token)


@router.get("/users/{user_id}/device-tokens", response_model=list[DeviceTokenRead])
def list_tokens(
    platform: DevicePlatform | None = Query(default=None),
    user: User = Depends(get_existing_user),
    db: Session = Depends(get_db),
) -> list[DeviceTokenRead]:
    tokens = list_active_device_tokens(db, user.id, platform=platform)
    return [DeviceTokenRead.model_validate(token) for token in tokens]


@router.delete("/device-tokens/{token}", response_model=DeviceTokenDeactivateResponse)
def deactivate_token(token: str, db: Session = Depends(get_db)) -> DeviceTokenDeactivateResponse:
    """Deactivate ``token``; unknown tokens are not an error."""

    return DeviceTokenDeactivateResponse(
        deactivated=deactivate_device_token(db, token, reason="logout")
    )


__all__ = ["router"]
