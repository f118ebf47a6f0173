"""Tests for the in-app channel and the websocket connection manager."""

from __future__ import annotations

import pytest

from app.application.channels import InAppSender
from app.domain.entities import DeliveryChannel, Notification, NotificationStatus, NotificationType
from app.infrastructure.notifications import NotificationConnectionManager, NotificationPublisher

pytestmark = pytest.mark.anyio


class FakeWebSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.accepted = False
        self.broken = broken
        self.messages: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.messages.append(message)


def _notification(user_id: int = 7) -> Notification:
    return Notification(
        id=42,
        user_id=user_id,
        type=NotificationType.STORY_PROCESSED,
        title="Historia lista",
        body="Ya puedes verla",
        channels=[DeliveryChannel.IN_APP],
        status=NotificationStatus.PENDING,
    )


async def test_in_app_sender_publishes_to_live_connections() -> None:
    manager = NotificationConnectionManager()
    socket = FakeWebSocket()
    await manager.connect(7, socket)
    sender = InAppSender(NotificationPublisher(manager))

    result = await sender.send(_notification())
    delivered = await sender.after_dispatch(_notification())

    assert socket.accepted
    assert result.success
    assert result.channel is DeliveryChannel.IN_APP
    assert result.provider_message_id == "in_app_42"
    assert delivered == 1
    assert socket.messages[0]["type"] == "notification"
    assert socket.messages[0]["data"]["id"] == 42
    assert socket.messages[0]["data"]["channels"] == ["in_app"]


async def test_in_app_send_does_not_publish_before_outcome_is_stored() -> None:
    manager = NotificationConnectionManager()
    socket = FakeWebSocket()
    await manager.connect(7, socket)

    await InAppSender(NotificationPublisher(manager)).send(_notification())

    assert socket.messages == []


async def test_in_app_sender_succeeds_without_connections() -> None:
    sender = InAppSender(NotificationPublisher(NotificationConnectionManager()))

    result = await sender.send(_notification(user_id=99))

    assert result.success
    assert await sender.after_dispatch(_notification(user_id=99)) == 0


async def test_stale_sockets_are_dropped() -> None:
    manager = NotificationConnectionManager()
    healthy = FakeWebSocket()
    stale = FakeWebSocket(broken=True)
    await manager.connect(7, healthy)
    await manager.connect(7, stale)

    delivered = await manager.send_to_user(7, {"type": "ping"})

    assert delivered == 1
    assert manager.connection_count(7) == 1
    manager.disconnect(7, healthy)
    assert manager.connection_count(7) == 0
