"""Email channel backed by SendGrid."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence

from anyio import to_thread
from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session

from app.application.notification_templates import get_notification_template
from app.config import get_settings
from app.domain.entities import DeliveryChannel, DeliveryResult, Notification, User
from app.infrastructure.email import EmailSendOutcome, build_notification_html, send_email
from app.infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)

NO_ADDRESS = "no address"
INVALID_ADDRESS = "invalid address"

EmailSendFunc = Callable[..., EmailSendOutcome]


class EmailSender:
    """Send notification emails, one request per recipient."""

    channel = DeliveryChannel.EMAIL

    def __init__(
        self,
        session: Session,
        *,
        send_func: EmailSendFunc = send_email,
        batch_size: int | None = None,
        batch_delay_seconds: float | None = None,
    ) -> None:
        settings = get_settings()
        self._session = session
        self._send_func = send_func
        self._batch_size = batch_size or settings.email_batch_size
        self._batch_delay_seconds = (
            settings.email_batch_delay_seconds
            if batch_delay_seconds is None
            else batch_delay_seconds
        )

    async def send_to_address(
        self,
        address: str,
        subject: str,
        html_content: str,
        *,
        categories: Sequence[str] = (),
        custom_args: Mapping[str, str] | None = None,
    ) -> DeliveryResult:
        try:
            address = validate_email(address, check_deliverability=False).normalized
        except EmailNotValidError as exc:
            logger.warning("Refusing to email invalid address %s: %s", address, exc)
            return DeliveryResult(channel=self.channel, success=False, error=INVALID_ADDRESS)

        try:
            outcome = await to_thread.run_sync(
                functools.partial(
                    self._send_func,
                    subject,
                    html_content,
                    address,
                    categories=categories,
                    custom_args=custom_args,
                )
            )
        except Exception as exc:
            logger.exception("Error sending email to %s", address)
            return DeliveryResult(
                channel=self.channel, success=False, error=str(exc) or exc.__class__.__name__
            )
        if outcome.success:
            logger.info("Email sent to %s", address)
        return DeliveryResult(
            channel=self.channel,
            success=outcome.success,
            error=outcome.error,
            provider_message_id=outcome.message_id,
        )

    async def send_to_user(
        self,
        user_id: int,
        subject: str,
        html_content: str,
        *,
        categories: Sequence[str] = (),
        custom_args: Mapping[str, str] | None = None,
    ) -> DeliveryResult:
        user = UserRepository(self._session).get(user_id)
        return await self._send_to_recipient(
            user_id, user, subject, html_content, categories, custom_args
        )

    async def send_bulk(
        self, user_ids: Iterable[int], subject: str, html_content: str
    ) -> dict[int, DeliveryResult]:
        """Email every user, ``batch_size`` at a time with a pause between batches."""

        ordered_ids = list(dict.fromkeys(int(user_id) for user_id in user_ids))
        users = UserRepository(self._session).get_map_by_ids(ordered_ids)
        results: dict[int, DeliveryResult] = {}
        for start in range(0, len(ordered_ids), self._batch_size):
            batch = ordered_ids[start : start + self._batch_size]
            outcomes = await asyncio.gather(
                *(
                    self._send_to_recipient(
                        user_id, users.get(user_id), subject, html_content, (), None
                    )
                    for user_id in batch
                )
            )
            results.update(zip(batch, outcomes))
            if start + self._batch_size < len(ordered_ids) and self._batch_delay_seconds > 0:
                await asyncio.sleep(self._batch_delay_seconds)

        sent = sum(1 for result in results.values() if result.success)
        logger.info("Bulk email completed: %s sent, %s failed", sent, len(results) - sent)
        return results

    async def send(self, notification: Notification) -> DeliveryResult:
        template = get_notification_template(notification.type, notification.data)
        return await self.send_to_user(
            notification.user_id,
            template.email_subject,
            build_notification_html(notification.title, notification.body),
            categories=("notification", notification.type.value),
            custom_args={"notification_id": str(notification.id)},
        )

    async def _send_to_recipient(
        self,
        user_id: int,
        user: User | None,
        subject: str,
        html_content: str,
        categories: Sequence[str],
        custom_args: Mapping[str, str] | None,
    ) -> DeliveryResult:
        if user is None or not user.has_email():
            logger.info("User %s has no email address; skipping email", user_id)
            return DeliveryResult(channel=self.channel, success=False, error=NO_ADDRESS)
        return await self.send_to_address(
            user.email,
            subject,
            html_content,
            categories=categories,
            custom_args=custom_args,
        )


__all__ = ["EmailSender", "INVALID_ADDRESS", "NO_ADDRESS"]
