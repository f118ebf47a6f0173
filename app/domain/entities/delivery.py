"""Value objects describing the outcome of a delivery attempt."""

from __future__ import annotations

from dataclasses import dataclass, field

from .notification import DeliveryChannel, Notification


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of sending one notification through one channel."""

    channel: DeliveryChannel
    success: bool
    error: str | None = None
    provider_message_id: str | None = None


@dataclass
class PushAggregateResult:
    """Combined verdict of a multicast push across several tokens."""

    success: bool
    success_count: int = 0
    failure_count: int = 0
    provider_message_id: str | None = None
    error: str | None = None
    failed_tokens: list[str] = field(default_factory=list)
    invalid_tokens: list[str] = field(default_factory=list)

    def to_delivery_result(self) -> DeliveryResult:
        return DeliveryResult(
            channel=DeliveryChannel.PUSH,
            success=self.success,
            error=self.error,
            provider_message_id=self.provider_message_id,
        )


@dataclass
class NotificationSendResult:
    """Notification persisted by a send request and its channel outcomes.

    ``follow_up`` holds the push-only notification scheduled after the
    recipient's quiet hours, when one was created.
    """

    notification: Notification
    delivery_results: list[DeliveryResult] = field(default_factory=list)
    follow_up: Notification | None = None

    @property
    def degraded(self) -> bool:
        return any(not result.success for result in self.delivery_results)


@dataclass
class BulkSendResult:
    """Per-user outcome of a bulk send."""

    notifications: list[Notification] = field(default_factory=list)
    delivery_results: dict[int, list[DeliveryResult]] = field(default_factory=dict)
    errors: dict[int, str] = field(default_factory=dict)


__all__ = [
    "BulkSendResult",
    "DeliveryResult",
    "NotificationSendResult",
    "PushAggregateResult",
]
