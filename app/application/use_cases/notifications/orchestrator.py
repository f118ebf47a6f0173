"""Create notifications and fan them out across delivery channels."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.application.channels import SenderMap, build_default_senders, failed_result
from app.application.notification_templates import get_notification_template
from app.application.use_cases.preferences import (
    get_or_create_preferences,
    is_within_quiet_hours,
    quiet_hours_release_at,
    resolve_channels,
)
from app.config import get_settings
from app.domain.entities import (
    BulkSendResult,
    DeliveryChannel,
    DeliveryResult,
    Notification,
    NotificationSendResult,
    NotificationStatus,
    NotificationType,
)
from app.domain.exceptions import NotificationStateError, NotificationValidationError
from app.infrastructure.repositories import NotificationRepository
from app.utils import ensure_app_timezone, now_in_app_timezone

logger = logging.getLogger(__name__)


def _ensure_type(notification_type: NotificationType | str) -> NotificationType:
    try:
        return NotificationType(notification_type)
    except ValueError as exc:
        raise NotificationValidationError(
            f"Tipo de notificación inválido: {notification_type}"
        ) from exc


def _ensure_text(value: str | None, field_name: str) -> str:
    normalized = (value or "").strip()
    if not normalized:
        raise NotificationValidationError(f"El campo {field_name} es obligatorio")
    return normalized


def _ensure_channels(channels: Iterable[DeliveryChannel | str]) -> list[DeliveryChannel]:
    resolved: list[DeliveryChannel] = []
    for channel in channels:
        try:
            value = DeliveryChannel(channel)
        except ValueError as exc:
            raise NotificationValidationError(f"Canal de entrega inválido: {channel}") from exc
        if value not in resolved:
            resolved.append(value)
    if not resolved:
        raise NotificationValidationError("Debe indicar al menos un canal de entrega")
    return resolved


class NotificationOrchestrator:
    """Persist notifications and deliver them through the configured senders.

    ``senders`` must provide one :class:`ChannelSender` for every
    :class:`DeliveryChannel`; by default the production senders bound to
    ``session`` are used.
    """

    def __init__(
        self,
        session: Session,
        senders: SenderMap | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.session = session
        self._senders = dict(senders) if senders is not None else build_default_senders(session)
        missing = [channel.value for channel in DeliveryChannel if channel not in self._senders]
        if missing:
            raise ValueError(f"Missing channel senders for: {', '.join(missing)}")
        self._clock = clock or now_in_app_timezone
        self._claim_timeout = timedelta(seconds=get_settings().dispatch_claim_timeout_seconds)
        self._notifications = NotificationRepository(session)

    def now(self) -> datetime:
        return ensure_app_timezone(self._clock())

    async def create_and_send(
        self,
        user_id: int,
        notification_type: NotificationType | str,
        title: str,
        body: str,
        data: Mapping[str, Any] | None = None,
        channels: Iterable[DeliveryChannel | str] | None = None,
        scheduled_at: datetime | None = None,
    ) -> NotificationSendResult:
        """Create a notification for ``user_id`` and deliver it when due.

        Channel failures are reported in the result, never raised. While
        the user is in quiet hours push is held back until the window ends.
        """

        event_type = _ensure_type(notification_type)
        title = _ensure_text(title, "título")
        body = _ensure_text(body, "mensaje")
        explicit_channels = _ensure_channels(channels) if channels is not None else None
        now = self.now()
        scheduled = ensure_app_timezone(scheduled_at)
        if scheduled is not None and scheduled < now:
            raise NotificationValidationError(
                "La fecha programada no puede estar en el pasado"
            )

        resolved = (
            explicit_channels
            if explicit_channels is not None
            else resolve_channels(self.session, user_id, event_type)
        )

        deferred_push_at = None
        if scheduled is None and DeliveryChannel.PUSH in resolved:
            preferences = get_or_create_preferences(self.session, user_id)
            if is_within_quiet_hours(preferences, now):
                deferred_push_at = ensure_app_timezone(
                    quiet_hours_release_at(preferences, now)
                )

        payload = dict(data or {})
        if deferred_push_at is not None:
            remaining = [channel for channel in resolved if channel is not DeliveryChannel.PUSH]
            if not remaining:
                notification = self._create(
                    user_id, event_type, title, body, payload, [DeliveryChannel.PUSH],
                    deferred_push_at, now,
                )
                logger.info(
                    "Push notification %s for user %s deferred until %s (quiet hours)",
                    notification.id,
                    user_id,
                    deferred_push_at.isoformat(),
                )
                return NotificationSendResult(notification=notification)
            resolved = remaining

        notification = self._create(
            user_id, event_type, title, body, payload, resolved, scheduled, now
        )
        follow_up = None
        if deferred_push_at is not None:
            follow_up = self._create(
                user_id, event_type, title, body, payload, [DeliveryChannel.PUSH],
                deferred_push_at, now,
            )
            logger.info(
                "Push follow-up %s for user %s scheduled at %s (quiet hours)",
                follow_up.id,
                user_id,
                deferred_push_at.isoformat(),
            )

        results: list[DeliveryResult] = []
        if notification.is_due(now):
            results = await self.dispatch(notification)
        return NotificationSendResult(
            notification=notification, delivery_results=results, follow_up=follow_up
        )

    async def dispatch(self, notification: Notification) -> list[DeliveryResult]:
        """Send a pending notification through each of its channels concurrently."""

        if notification.status is not NotificationStatus.PENDING:
            raise NotificationStateError(
                f"Notification {notification.id} is {notification.status.value}, not pending"
            )

        claimed_at = self.now()
        if not self._notifications.claim_for_dispatch(
            notification.id,
            claimed_at=claimed_at,
            stale_before=claimed_at - self._claim_timeout,
        ):
            logger.info("Notification %s is already being dispatched; skipping", notification.id)
            return []

        if not notification.channels:
            notification.mark_failed(self.now())
            self._finish(notification)
            logger.warning("Notification %s has no delivery channels", notification.id)
            return []

        results = list(
            await asyncio.gather(
                *(self._send_through(channel, notification) for channel in notification.channels)
            )
        )

        finished_at = self.now()
        if any(result.success for result in results):
            notification.mark_sent(finished_at)
        else:
            notification.mark_failed(finished_at)
        if self._finish(notification):
            await self._announce(notification, results)

        failed = [result for result in results if not result.success]
        if failed:
            logger.warning(
                "Notification %s delivered with %s failed channel(s): %s",
                notification.id,
                len(failed),
                ", ".join(f"{result.channel.value}={result.error}" for result in failed),
            )
        else:
            logger.info("Notification %s sent to user %s", notification.id, notification.user_id)
        return results

    async def send_bulk(
        self,
        user_ids: Iterable[int],
        notification_type: NotificationType | str,
        title: str,
        body: str,
        data: Mapping[str, Any] | None = None,
        channels: Iterable[DeliveryChannel | str] | None = None,
    ) -> BulkSendResult:
        """Send the same notification to each user, one user at a time.

        A failure for one user is recorded in ``errors`` and the remaining
        users are still processed.
        """

        channel_list = list(channels) if channels is not None else None
        bulk = BulkSendResult()
        for user_id in user_ids:
            try:
                outcome = await self.create_and_send(
                    user_id, notification_type, title, body, data=data, channels=channel_list
                )
            except Exception as exc:
                self.session.rollback()
                logger.exception("Failed to send notification to user %s", user_id)
                bulk.errors[user_id] = str(exc) or exc.__class__.__name__
                continue
            bulk.notifications.append(outcome.notification)
            bulk.delivery_results[user_id] = outcome.delivery_results

        logger.info(
            "Bulk notification completed: %s succeeded, %s failed",
            len(bulk.notifications),
            len(bulk.errors),
        )
        return bulk

    async def send_templated(
        self,
        user_id: int,
        notification_type: NotificationType | str,
        data: Mapping[str, Any] | None = None,
        channels: Iterable[DeliveryChannel | str] | None = None,
        scheduled_at: datetime | None = None,
    ) -> NotificationSendResult:
        template = get_notification_template(_ensure_type(notification_type), data)
        return await self.create_and_send(
            user_id,
            notification_type,
            template.title,
            template.body,
            data=data,
            channels=channels,
            scheduled_at=scheduled_at,
        )

    async def wait_for_background_tasks(self) -> None:
        """Join work the senders left running, such as token deactivations."""

        for sender in self._senders.values():
            waiter = getattr(sender, "wait_for_pending_deactivations", None)
            if waiter is not None:
                await waiter()

    async def _send_through(
        self, channel: DeliveryChannel, notification: Notification
    ) -> DeliveryResult:
        sender = self._senders[channel]
        try:
            return await sender.send(notification)
        except Exception as exc:
            logger.exception(
                "Channel %s raised while sending notification %s", channel.value, notification.id
            )
            return failed_result(channel, str(exc) or exc.__class__.__name__)

    def _create(
        self,
        user_id: int,
        event_type: NotificationType,
        title: str,
        body: str,
        data: dict[str, Any],
        channels: list[DeliveryChannel],
        scheduled_at: datetime | None,
        now: datetime,
    ) -> Notification:
        return self._notifications.create(
            Notification(
                id=None,
                user_id=user_id,
                type=event_type,
                title=title,
                body=body,
                data=dict(data),
                channels=list(channels),
                scheduled_at=scheduled_at,
                created_at=now,
                updated_at=now,
            )
        )

    def _finish(self, notification: Notification) -> bool:
        if self._notifications.complete_dispatch(notification):
            return True
        logger.warning(
            "Notification %s is no longer pending; %s outcome not stored",
            notification.id,
            notification.status.value,
        )
        return False

    async def _announce(
        self, notification: Notification, results: list[DeliveryResult]
    ) -> None:
        """Let senders react to the stored outcome, e.g. push it to live clients."""

        for result in results:
            hook = getattr(self._senders[result.channel], "after_dispatch", None)
            if hook is None or not result.success:
                continue
            try:
                await hook(notification)
            except Exception:
                logger.exception(
                    "Channel %s failed after dispatching notification %s",
                    result.channel.value,
                    notification.id,
                )


__all__ = ["NotificationOrchestrator"]
