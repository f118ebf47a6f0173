"""Common interface implemented by every delivery channel."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from app.domain.entities import DeliveryChannel, DeliveryResult, Notification


@runtime_checkable
class ChannelSender(Protocol):
    """Deliver a notification through one channel.

    Implementations report provider failures through the returned
    :class:`DeliveryResult` instead of raising.
    A sender may also define ``async def after_dispatch(notification)``,
    called once the final status is stored when its channel succeeded.
    """

    channel: DeliveryChannel

    async def send(self, notification: Notification) -> DeliveryResult: ...


SenderMap = Mapping[DeliveryChannel, ChannelSender]


def failed_result(channel: DeliveryChannel, error: str) -> DeliveryResult:
    return DeliveryResult(channel=channel, success=False, error=error)


__all__ = ["ChannelSender", "SenderMap", "failed_result"]
