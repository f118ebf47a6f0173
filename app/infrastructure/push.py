"""Firebase Cloud Messaging client used by the push channel."""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import firebase_admin
from firebase_admin import credentials, exceptions as firebase_exceptions, messaging

from app.config import get_settings

logger = logging.getLogger(__name__)

ANDROID_CHANNEL_ID = "notifications"
DEFAULT_CLICK_ACTION = "FLUTTER_NOTIFICATION_CLICK"
WEB_ICON = "/icon-192x192.png"
WEB_BADGE = "/badge-72x72.png"

_init_lock = threading.Lock()


@dataclass(frozen=True)
class PushPayload:
    """Content of a push message, independent of the target platform."""

    title: str
    body: str
    data: Mapping[str, Any] = field(default_factory=dict)
    image_url: str | None = None
    click_action: str | None = None


@dataclass(frozen=True)
class PushTokenOutcome:
    """Provider verdict for a single token."""

    token: str
    success: bool
    message_id: str | None = None
    error: str | None = None
    token_invalid: bool = False


@dataclass(frozen=True)
class TopicSubscriptionOutcome:
    """Result of adding tokens to, or removing them from, an FCM topic."""

    topic: str
    success_count: int
    failure_count: int
    errors: list[str] = field(default_factory=list)


def is_permanent_token_error(exc: BaseException | None) -> bool:
    """Return ``True`` when FCM reports the token as unusable for good."""

    if exc is None:
        return False
    if isinstance(exc, (messaging.UnregisteredError, messaging.SenderIdMismatchError)):
        return True
    if isinstance(exc, firebase_exceptions.InvalidArgumentError):
        return "registration token" in str(exc).lower()
    return False


def stringify_data(data: Mapping[str, Any] | None) -> dict[str, str]:
    """Convert ``data`` into the string-only mapping FCM requires."""

    result: dict[str, str] = {}
    for key, value in (data or {}).items():
        if isinstance(value, str):
            result[str(key)] = value
        else:
            result[str(key)] = json.dumps(value, default=str)
    return result


def _ensure_firebase_app(credentials_path: str | None) -> firebase_admin.App:
    with _init_lock:
        try:
            return firebase_admin.get_app()
        except ValueError:
            pass
        if credentials_path and os.path.exists(credentials_path):
            credential = credentials.Certificate(credentials_path)
        else:
            if credentials_path:
                logger.warning(
                    "Firebase credentials file '%s' not found; using application default credentials",
                    credentials_path,
                )
            credential = credentials.ApplicationDefault()
        logger.info("Initializing Firebase Admin SDK")
        return firebase_admin.initialize_app(credential)


class FirebasePushClient:
    """Thin synchronous wrapper around ``firebase_admin.messaging``.

    Calls block on network I/O; async callers are expected to run them in a
    worker thread.
    """

    def __init__(
        self,
        *,
        credentials_path: str | None = None,
        chunk_size: int | None = None,
        app: firebase_admin.App | None = None,
    ) -> None:
        settings = get_settings()
        self._credentials_path = credentials_path or settings.firebase_credentials_path
        self._chunk_size = chunk_size or settings.push_multicast_chunk_size
        self._app = app

    @property
    def app(self) -> firebase_admin.App:
        if self._app is None:
            self._app = _ensure_firebase_app(self._credentials_path)
        return self._app

    def send_multicast(
        self, tokens: Sequence[str], payload: PushPayload, *, dry_run: bool = False
    ) -> list[PushTokenOutcome]:
        """Send ``payload`` to every token, returning one outcome per token in order."""

        outcomes: list[PushTokenOutcome] = []
        for start in range(0, len(tokens), self._chunk_size):
            chunk = list(tokens[start : start + self._chunk_size])
            message = self._build_multicast(chunk, payload)
            response = messaging.send_each_for_multicast(
                message, dry_run=dry_run, app=self.app
            )
            for token, item in zip(chunk, response.responses):
                if item.success:
                    outcomes.append(
                        PushTokenOutcome(token=token, success=True, message_id=item.message_id)
                    )
                    continue
                outcomes.append(
                    PushTokenOutcome(
                        token=token,
                        success=False,
                        error=str(item.exception) if item.exception else "Unknown FCM error",
                        token_invalid=is_permanent_token_error(item.exception),
                    )
                )
        return outcomes

    def dry_run(self, token: str) -> PushTokenOutcome:
        """Validate ``token`` with a dry-run send that delivers nothing."""

        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title="Test", body="Test"),
        )
        try:
            message_id = messaging.send(message, dry_run=True, app=self.app)
        except (firebase_exceptions.FirebaseError, ValueError) as exc:
            return PushTokenOutcome(
                token=token,
                success=False,
                error=str(exc),
                token_invalid=is_permanent_token_error(exc),
            )
        return PushTokenOutcome(token=token, success=True, message_id=message_id)

    def send_to_topic(self, topic: str, payload: PushPayload) -> str:
        """Broadcast ``payload`` to every device subscribed to ``topic``.

        Returns the FCM message id; provider errors propagate.
        """

        message = messaging.Message(topic=topic, **self._message_options(payload))
        return messaging.send(message, app=self.app)

    def subscribe_to_topic(self, tokens: Sequence[str], topic: str) -> TopicSubscriptionOutcome:
        response = messaging.subscribe_to_topic(list(tokens), topic, app=self.app)
        return self._topic_outcome(topic, response)

    def unsubscribe_from_topic(
        self, tokens: Sequence[str], topic: str
    ) -> TopicSubscriptionOutcome:
        response = messaging.unsubscribe_from_topic(list(tokens), topic, app=self.app)
        return self._topic_outcome(topic, response)

    @staticmethod
    def _topic_outcome(topic: str, response: Any) -> TopicSubscriptionOutcome:
        return TopicSubscriptionOutcome(
            topic=topic,
            success_count=response.success_count,
            failure_count=response.failure_count,
            errors=[f"token {error.index}: {error.reason}" for error in response.errors],
        )

    @staticmethod
    def _build_multicast(tokens: list[str], payload: PushPayload) -> messaging.MulticastMessage:
        return messaging.MulticastMessage(
            tokens=tokens, **FirebasePushClient._message_options(payload)
        )

    @staticmethod
    def _message_options(payload: PushPayload) -> dict[str, Any]:
        """Platform settings shared by token and topic messages."""

        click_action = payload.click_action or DEFAULT_CLICK_ACTION
        return dict(
            notification=messaging.Notification(
                title=payload.title, body=payload.body, image=payload.image_url
            ),
            data=stringify_data(payload.data) or None,
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(
                    click_action=click_action,
                    channel_id=ANDROID_CHANNEL_ID,
                ),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(
                        alert=messaging.ApsAlert(title=payload.title, body=payload.body),
                        badge=1,
                        sound="default",
                        category=payload.click_action,
                    )
                )
            ),
            webpush=messaging.WebpushConfig(
                notification=messaging.WebpushNotification(
                    title=payload.title,
                    body=payload.body,
                    icon=WEB_ICON,
                    badge=WEB_BADGE,
                    image=payload.image_url,
                    require_interaction=False,
                )
            ),
        )


__all__ = [
    "FirebasePushClient",
    "PushPayload",
    "PushTokenOutcome",
    "TopicSubscriptionOutcome",
    "is_permanent_token_error",
    "stringify_data",
]
