"""Tests for the email channel sender."""

from __future__ import annotations

import pytest

from conftest import FakeEmailSend

from app.application.channels import NO_ADDRESS, EmailSender
from app.application.channels import email as email_channel
from app.domain.entities import DeliveryChannel, Notification, NotificationType

pytestmark = pytest.mark.anyio


async def test_user_without_address_fails_without_raising(db_session, make_user) -> None:
    user = make_user(email=None)
    outbox = FakeEmailSend()
    sender = EmailSender(db_session, send_func=outbox)

    result = await sender.send_to_user(user.id, "Asunto", "<p>Hola</p>")

    assert result.channel is DeliveryChannel.EMAIL
    assert result.success is False
    assert result.error == NO_ADDRESS
    assert outbox.sent == []


async def test_unknown_user_is_treated_as_missing_address(db_session) -> None:
    sender = EmailSender(db_session, send_func=FakeEmailSend())

    result = await sender.send_to_user(404, "Asunto", "<p>Hola</p>")

    assert result.error == NO_ADDRESS


async def test_send_to_user_returns_provider_message_id(db_session, make_user) -> None:
    user = make_user(email="ana@example.com")
    outbox = FakeEmailSend()
    sender = EmailSender(db_session, send_func=outbox)

    result = await sender.send_to_user(user.id, "Asunto", "<p>Hola</p>")

    assert result.success is True
    assert result.provider_message_id == "sg-1"
    assert outbox.sent[0]["recipient"] == "ana@example.com"


async def test_invalid_address_is_not_sent(db_session) -> None:
    outbox = FakeEmailSend()
    sender = EmailSender(db_session, send_func=outbox)

    result = await sender.send_to_address("not-an-email", "Asunto", "<p>Hola</p>")

    assert result.success is False
    assert outbox.sent == []


async def test_provider_exception_becomes_failed_result(db_session) -> None:
    def exploding_send(*_args, **_kwargs):
        raise ConnectionError("timeout")

    sender = EmailSender(db_session, send_func=exploding_send)

    result = await sender.send_to_address("ana@example.com", "Asunto", "<p>Hola</p>")

    assert result.success is False
    assert result.error == "timeout"


async def test_bulk_send_paces_batches_and_isolates_failures(
    db_session, make_user, monkeypatch: pytest.MonkeyPatch
) -> None:
    users = [make_user(email=f"user{index}@example.com") for index in range(5)]
    no_address = make_user(email=None)
    outbox = FakeEmailSend(failing={"user1@example.com"})
    pauses: list[float] = []

    async def fake_sleep(delay: float) -> None:
        pauses.append(delay)

    monkeypatch.setattr(email_channel.asyncio, "sleep", fake_sleep)
    sender = EmailSender(db_session, send_func=outbox, batch_size=2, batch_delay_seconds=0.5)

    results = await sender.send_bulk(
        [user.id for user in users] + [no_address.id], "Asunto", "<p>Hola</p>"
    )

    assert len(results) == 6
    assert pauses == [0.5, 0.5]
    assert results[users[1].id].success is False
    assert results[no_address.id].error == NO_ADDRESS
    assert sum(1 for result in results.values() if result.success) == 4


async def test_send_notification_uses_template_subject(db_session, make_user) -> None:
    user = make_user(email="ana@example.com")
    outbox = FakeEmailSend()
    sender = EmailSender(db_session, send_func=outbox)
    notification = Notification(
        id=3,
        user_id=user.id,
        type=NotificationType.EXPORT_READY,
        title="Exportación lista",
        body="Ya puedes descargarla",
    )

    result = await sender.send(notification)

    sent = outbox.sent[0]
    assert result.success is True
    assert sent["subject"] == "Tu exportación está lista"
    assert "Exportación lista" in sent["html"]
    assert sent["categories"] == ("notification", "export_ready")
    assert sent["custom_args"] == {"notification_id": "3"}
