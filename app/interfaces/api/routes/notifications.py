"""Endpoints and websocket handler for user notifications."""

from __future__ import annotations

import logging

from fastapi import (
    APIRouter,
    Depends,
    Query,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from sqlalchemy.orm import Session

from app.application.use_cases.notifications import (
    NotificationOrchestrator,
    count_unread_notifications,
    get_notification_statistics,
    list_notifications as list_notifications_uc,
    mark_all_notifications_as_read,
    mark_notification_as_read,
)
from app.domain.entities import (
    Notification,
    NotificationSendResult,
    NotificationStatus,
    NotificationType,
    User,
)
from app.infrastructure.database import SessionLocal, get_db
from app.infrastructure.notifications import notification_manager, serialize_notification
from app.infrastructure.repositories import NotificationRepository
from app.interfaces.api.dependencies import get_existing_user, get_notification_orchestrator
from app.interfaces.api.routes_helpers import http_error_from
from app.interfaces.api.schemas import (
    DeliveryResultRead,
    MarkAllReadResponse,
    NotificationCreate,
    NotificationRead,
    NotificationSendResponse,
    NotificationStatisticsRead,
    UnreadCountRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead.model_validate(notification)


def _send_result_to_schema(result: NotificationSendResult) -> NotificationSendResponse:
    return NotificationSendResponse(
        notification=_notification_to_schema(result.notification),
        delivery_results=[
            DeliveryResultRead.model_validate(item) for item in result.delivery_results
        ],
        follow_up=_notification_to_schema(result.follow_up) if result.follow_up else None,
        degraded=result.degraded,
    )


@router.post(
    "/users/{user_id}/notifications",
    response_model=NotificationSendResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_notification(
    payload: NotificationCreate,
    user: User = Depends(get_existing_user),
    orchestrator: NotificationOrchestrator = Depends(get_notification_orchestrator),
) -> NotificationSendResponse:
    """Create a notification and deliver it through the resolved channels."""

    try:
        result = await orchestrator.create_and_send(
            user.id,
            payload.type,
            payload.title,
            payload.body,
            data=payload.data,
            channels=payload.channels,
            scheduled_at=payload.scheduled_at,
        )
    except ValueError as exc:
        raise http_error_from(exc) from exc
    response = _send_result_to_schema(result)
    # Token deactivations use the request session, which closes with the request.
    await orchestrator.wait_for_background_tasks()
    return response


@router.get("/users/{user_id}/notifications", response_model=list[NotificationRead])
def list_notifications(
    user: User = Depends(get_existing_user),
    status_filter: NotificationStatus | None = Query(default=None, alias="status"),
    type_filter: NotificationType | None = Query(default=None, alias="type"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[NotificationRead]:
    """Return the notifications of the user, newest first."""

    try:
        notifications = list_notifications_uc(
            db, user.id, status=status_filter, type=type_filter, limit=limit, offset=offset
        )
    except ValueError as exc:
        raise http_error_from(exc) from exc
    return [_notification_to_schema(notification) for notification in notifications]


@router.get("/users/{user_id}/notifications/unread-count", response_model=UnreadCountRead)
def unread_count(
    user: User = Depends(get_existing_user),
    db: Session = Depends(get_db),
) -> UnreadCountRead:
    return UnreadCountRead(unread=count_unread_notifications(db, user.id))


@router.get(
    "/users/{user_id}/notifications/stats", response_model=NotificationStatisticsRead
)
def notification_statistics(
    user: User = Depends(get_existing_user),
    db: Session = Depends(get_db),
) -> NotificationStatisticsRead:
    return NotificationStatisticsRead.model_validate(get_notification_statistics(db, user.id))


@router.post(
    "/users/{user_id}/notifications/read-all", response_model=MarkAllReadResponse
)
def mark_all_read(
    user: User = Depends(get_existing_user),
    db: Session = Depends(get_db),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=mark_all_notifications_as_read(db, user.id))


@router.post(
    "/users/{user_id}/notifications/{notification_id}/read",
    response_model=NotificationRead,
)
def mark_read(
    notification_id: int,
    user: User = Depends(get_existing_user),
    db: Session = Depends(get_db),
) -> NotificationRead:
    """Mark one notification as read; repeating the call is harmless."""

    try:
        notification = mark_notification_as_read(db, notification_id, user_id=user.id)
    except ValueError as exc:
        raise http_error_from(exc) from exc
    return _notification_to_schema(notification)


@router.websocket("/notifications/ws/{user_id}")
async def notifications_websocket(websocket: WebSocket, user_id: int) -> None:
    """Websocket feeding the in-app channel of ``user_id``."""

    session = SessionLocal()
    try:
        pending_notifications = NotificationRepository(session).list_for_user(
            user_id, status=NotificationStatus.SENT
        )
    except Exception:  # pragma: no cover - database unavailable
        logger.exception("Could not load unread notifications for user %s", user_id)
        await websocket.close(code=1011)
        return
    finally:
        session.close()

    await notification_manager.connect(user_id, websocket)
    try:
        if pending_notifications:
            await websocket.send_json(
                {
                    "type": "init",
                    "data": [serialize_notification(n) for n in pending_notifications],
                }
            )
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    _acknowledge(user_id, ids)
                continue
    except WebSocketDisconnect:
        notification_manager.disconnect(user_id, websocket)
    except Exception:  # pragma: no cover - unexpected socket failure
        notification_manager.disconnect(user_id, websocket)
        raise


def _acknowledge(user_id: int, ids: list) -> None:
    ack_session = SessionLocal()
    try:
        for raw_id in ids:
            try:
                mark_notification_as_read(ack_session, int(raw_id), user_id=user_id)
            except (TypeError, ValueError) as exc:
                logger.debug("Ignoring ack for notification %s: %s", raw_id, exc)
    finally:
        ack_session.close()


__all__ = ["router"]
