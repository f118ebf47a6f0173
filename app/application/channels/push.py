"""Push channel backed by Firebase Cloud Messaging."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Iterable, Sequence

from anyio import to_thread
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.application.use_cases.device_tokens import (
    bulk_deactivate_device_tokens,
    list_active_device_tokens,
    list_active_device_tokens_for_users,
)
from app.config import get_settings
from app.domain.entities import (
    DeliveryChannel,
    DeliveryResult,
    Notification,
    PushAggregateResult,
)
from app.infrastructure.push import FirebasePushClient, PushPayload, TopicSubscriptionOutcome
from app.infrastructure.repositories import DeviceTokenRepository

logger = logging.getLogger(__name__)

NO_ACTIVE_TOKENS = "No active device tokens found"
VALIDATION_PAYLOAD = PushPayload(title="Test", body="Test")


class PushSender:
    """Send push notifications and keep the token registry in sync with FCM.

    Tokens reported as permanently invalid are deactivated by background
    tasks so the aggregate result is returned without waiting for the
    database. :meth:`wait_for_pending_deactivations` joins those tasks.
    """

    channel = DeliveryChannel.PUSH

    def __init__(
        self,
        session: Session,
        *,
        client: FirebasePushClient | None = None,
        validation_batch_size: int | None = None,
    ) -> None:
        self._session = session
        self._client = client or FirebasePushClient()
        self._validation_batch_size = (
            validation_batch_size or get_settings().push_validation_batch_size
        )
        self._pending_deactivations: set[asyncio.Task[int]] = set()

    async def send_to_tokens(
        self, tokens: Iterable[str], payload: PushPayload
    ) -> PushAggregateResult:
        unique_tokens = list(dict.fromkeys(token for token in tokens if token))
        if not unique_tokens:
            return PushAggregateResult(success=False, error=NO_ACTIVE_TOKENS)

        try:
            outcomes = await to_thread.run_sync(
                functools.partial(self._client.send_multicast, unique_tokens, payload)
            )
        except Exception as exc:
            logger.exception("Error sending push notification to %s tokens", len(unique_tokens))
            return PushAggregateResult(
                success=False,
                failure_count=len(unique_tokens),
                error=str(exc) or exc.__class__.__name__,
                failed_tokens=unique_tokens,
            )

        succeeded = [outcome for outcome in outcomes if outcome.success]
        failed = [outcome for outcome in outcomes if not outcome.success]
        invalid_tokens = [outcome.token for outcome in failed if outcome.token_invalid]
        for outcome in failed:
            logger.warning(
                "Push delivery failed for token %s...: %s", outcome.token[:10], outcome.error
            )
        if invalid_tokens:
            self._schedule_deactivation(invalid_tokens)

        logger.info(
            "Push notification sent: %s successful, %s failed",
            len(succeeded),
            len(failed),
        )
        return PushAggregateResult(
            success=bool(succeeded),
            success_count=len(succeeded),
            failure_count=len(failed),
            provider_message_id=succeeded[0].message_id if succeeded else None,
            error=None if succeeded else (failed[0].error if failed else NO_ACTIVE_TOKENS),
            failed_tokens=[outcome.token for outcome in failed],
            invalid_tokens=invalid_tokens,
        )

    async def send_to_user(self, user_id: int, payload: PushPayload) -> PushAggregateResult:
        tokens = list_active_device_tokens(self._session, user_id)
        if not tokens:
            logger.info("No active device tokens for user %s", user_id)
            return PushAggregateResult(success=False, error=NO_ACTIVE_TOKENS)
        return await self.send_to_tokens((item.token for item in tokens), payload)

    async def send_to_users(
        self, user_ids: Iterable[int], payload: PushPayload
    ) -> PushAggregateResult:
        tokens = list_active_device_tokens_for_users(self._session, user_ids)
        if not tokens:
            return PushAggregateResult(success=False, error=NO_ACTIVE_TOKENS)
        return await self.send_to_tokens((item.token for item in tokens), payload)

    async def send_to_topic(self, topic: str, payload: PushPayload) -> PushAggregateResult:
        """Broadcast ``payload`` to a topic; provider errors become a failed result."""

        try:
            message_id = await to_thread.run_sync(
                functools.partial(self._client.send_to_topic, topic, payload)
            )
        except Exception as exc:
            logger.exception("Error sending push notification to topic %s", topic)
            return PushAggregateResult(success=False, error=str(exc) or exc.__class__.__name__)
        logger.info("Push notification sent to topic %s", topic)
        return PushAggregateResult(success=True, success_count=1, provider_message_id=message_id)

    async def subscribe_to_topic(
        self, tokens: Sequence[str], topic: str
    ) -> TopicSubscriptionOutcome:
        try:
            outcome = await to_thread.run_sync(
                functools.partial(self._client.subscribe_to_topic, list(tokens), topic)
            )
        except Exception:
            logger.exception("Error subscribing %s tokens to topic %s", len(tokens), topic)
            raise
        self._log_topic_outcome("Subscribed", "to", outcome)
        return outcome

    async def unsubscribe_from_topic(
        self, tokens: Sequence[str], topic: str
    ) -> TopicSubscriptionOutcome:
        try:
            outcome = await to_thread.run_sync(
                functools.partial(self._client.unsubscribe_from_topic, list(tokens), topic)
            )
        except Exception:
            logger.exception("Error unsubscribing %s tokens from topic %s", len(tokens), topic)
            raise
        self._log_topic_outcome("Unsubscribed", "from", outcome)
        return outcome

    @staticmethod
    def _log_topic_outcome(
        action: str, preposition: str, outcome: TopicSubscriptionOutcome
    ) -> None:
        logger.info(
            "%s %s tokens %s topic %s", action, outcome.success_count, preposition, outcome.topic
        )
        if outcome.failure_count:
            logger.warning(
                "%s of %s tokens failed for topic %s: %s",
                outcome.failure_count,
                outcome.success_count + outcome.failure_count,
                outcome.topic,
                "; ".join(outcome.errors),
            )

    async def send(self, notification: Notification) -> DeliveryResult:
        data = dict(notification.data or {})
        data["notification_id"] = notification.id
        data["type"] = notification.type.value
        payload = PushPayload(
            title=notification.title,
            body=notification.body,
            data=data,
            image_url=data.get("image_url"),
            click_action=data.get("click_action"),
        )
        result = await self.send_to_user(notification.user_id, payload)
        return result.to_delivery_result()

    async def validate_token(self, token: str) -> bool:
        """Check ``token`` with a dry-run send.

        Only a permanent token error makes the token invalid; any other
        failure keeps it.
        """

        try:
            outcome = await to_thread.run_sync(self._client.dry_run, token)
        except Exception:
            logger.exception("Unexpected error validating token %s...", token[:10])
            return True
        if outcome.success:
            return True
        if outcome.token_invalid:
            return False
        logger.warning("Token validation inconclusive for %s...: %s", token[:10], outcome.error)
        return True

    async def cleanup_invalid_tokens(self) -> int:
        """Dry-run every active token in batches and deactivate the rejected ones."""

        tokens = DeviceTokenRepository(self._session).list_active_token_values()
        deactivated = 0
        for start in range(0, len(tokens), self._validation_batch_size):
            batch = tokens[start : start + self._validation_batch_size]
            try:
                outcomes = await to_thread.run_sync(
                    functools.partial(
                        self._client.send_multicast, batch, VALIDATION_PAYLOAD, dry_run=True
                    )
                )
            except Exception:
                logger.exception("Error validating token batch starting at %s", start)
                continue
            invalid = [outcome.token for outcome in outcomes if outcome.token_invalid]
            if invalid:
                deactivated += bulk_deactivate_device_tokens(self._session, invalid)

        logger.info("Cleaned up %s invalid device tokens", deactivated)
        return deactivated

    async def wait_for_pending_deactivations(self) -> None:
        while True:
            pending = [task for task in self._pending_deactivations if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _schedule_deactivation(self, tokens: Sequence[str]) -> None:
        task = asyncio.get_running_loop().create_task(self._deactivate_invalid(list(tokens)))
        self._pending_deactivations.add(task)
        task.add_done_callback(self._pending_deactivations.discard)

    async def _deactivate_invalid(self, tokens: list[str]) -> int:
        try:
            return bulk_deactivate_device_tokens(self._session, tokens)
        except SQLAlchemyError:
            self._session.rollback()
            logger.exception("Error deactivating %s invalid tokens", len(tokens))
            return 0


__all__ = ["NO_ACTIVE_TOKENS", "PushSender"]
