"""Delivery channels used by the notification orchestrator."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.domain.entities import DeliveryChannel

from .base import ChannelSender, SenderMap, failed_result
from .email import NO_ADDRESS, EmailSender
from .in_app import InAppSender
from .push import NO_ACTIVE_TOKENS, PushSender


def build_default_senders(session: Session) -> dict[DeliveryChannel, ChannelSender]:
    """Return the production sender for every channel bound to ``session``."""

    return {
        DeliveryChannel.PUSH: PushSender(session),
        DeliveryChannel.EMAIL: EmailSender(session),
        DeliveryChannel.IN_APP: InAppSender(),
    }


__all__ = [
    "ChannelSender",
    "EmailSender",
    "InAppSender",
    "NO_ACTIVE_TOKENS",
    "NO_ADDRESS",
    "PushSender",
    "SenderMap",
    "build_default_senders",
    "failed_result",
]
