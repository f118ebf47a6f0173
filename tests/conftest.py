"""Shared fixtures: an in-memory database and fake delivery providers."""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.pop("SENDGRID_API_KEY", None)
os.environ.pop("SENDGRID_SENDER", None)

from collections.abc import Iterable
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.domain.entities import DeliveryChannel, DeliveryResult, Notification, User
from app.infrastructure import models  # noqa: F401  # register ORM tables
from app.infrastructure.database import Base
from app.infrastructure.email import EmailSendOutcome
from app.infrastructure.push import PushPayload, PushTokenOutcome, TopicSubscriptionOutcome
from app.infrastructure.repositories import UserRepository


def android_token(label: str) -> str:
    """Return a token long enough to pass the Android length check."""

    return f"{label}-" + "x" * 120


class FakePushClient:
    """In-memory stand-in for :class:`FirebasePushClient`."""

    def __init__(
        self,
        *,
        invalid: Iterable[str] = (),
        failing: Iterable[str] = (),
        error: Exception | None = None,
    ) -> None:
        self.invalid = set(invalid)
        self.failing = set(failing)
        self.error = error
        self.calls: list[tuple[list[str], PushPayload, bool]] = []
        self.dry_runs: list[str] = []
        self.topic_messages: list[tuple[str, PushPayload]] = []
        self.subscriptions: dict[str, set[str]] = {}

    def _outcome(self, token: str) -> PushTokenOutcome:
        if token in self.invalid:
            return PushTokenOutcome(
                token=token,
                success=False,
                error="Requested entity was not found.",
                token_invalid=True,
            )
        if token in self.failing:
            return PushTokenOutcome(token=token, success=False, error="Internal error")
        return PushTokenOutcome(token=token, success=True, message_id=f"msg-{token[:8]}")

    def send_multicast(self, tokens, payload, *, dry_run=False):
        self.calls.append((list(tokens), payload, dry_run))
        if self.error is not None:
            raise self.error
        return [self._outcome(token) for token in tokens]

    def dry_run(self, token):
        self.dry_runs.append(token)
        if self.error is not None:
            raise self.error
        return self._outcome(token)

    def send_to_topic(self, topic, payload):
        self.topic_messages.append((topic, payload))
        if self.error is not None:
            raise self.error
        return f"topic-msg-{len(self.topic_messages)}"

    def subscribe_to_topic(self, tokens, topic):
        return self._change_topic(self.subscriptions.setdefault(topic, set()).add, tokens, topic)

    def unsubscribe_from_topic(self, tokens, topic):
        return self._change_topic(
            self.subscriptions.setdefault(topic, set()).discard, tokens, topic
        )

    def _change_topic(self, apply, tokens, topic):
        if self.error is not None:
            raise self.error
        errors = []
        for index, token in enumerate(tokens):
            if token in self.invalid:
                errors.append(f"token {index}: invalid-argument")
            else:
                apply(token)
        return TopicSubscriptionOutcome(
            topic=topic,
            success_count=len(tokens) - len(errors),
            failure_count=len(errors),
            errors=errors,
        )


class FakeEmailSend:
    """Callable replacing :func:`app.infrastructure.email.send_email`."""

    def __init__(self, *, failing: Iterable[str] = ()) -> None:
        self.failing = set(failing)
        self.sent: list[dict] = []

    def __call__(self, subject, html_content, recipient, *, categories=(), custom_args=None):
        self.sent.append(
            {
                "subject": subject,
                "html": html_content,
                "recipient": recipient,
                "categories": tuple(categories),
                "custom_args": dict(custom_args or {}),
            }
        )
        if recipient in self.failing:
            return EmailSendOutcome(success=False, error="SendGrid status 500")
        return EmailSendOutcome(success=True, message_id=f"sg-{len(self.sent)}")


class StubSender:
    """Channel sender returning a fixed verdict and recording calls."""

    def __init__(
        self,
        channel: DeliveryChannel,
        *,
        success: bool = True,
        error: str | None = None,
        raises: Exception | None = None,
    ) -> None:
        self.channel = channel
        self.success = success
        self.error = error
        self.raises = raises
        self.sent: list[Notification] = []

    async def send(self, notification: Notification) -> DeliveryResult:
        self.sent.append(notification)
        if self.raises is not None:
            raise self.raises
        return DeliveryResult(
            channel=self.channel,
            success=self.success,
            error=None if self.success else (self.error or f"{self.channel.value} failed"),
            provider_message_id=f"{self.channel.value}-1" if self.success else None,
        )


def stub_senders(**overrides: StubSender) -> dict[DeliveryChannel, StubSender]:
    senders = {channel: StubSender(channel) for channel in DeliveryChannel}
    for name, sender in overrides.items():
        senders[DeliveryChannel(name)] = sender
    return senders


def fixed_clock(moment: datetime):
    return lambda: moment


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db_session):
    counter = {"value": 0}

    def _make_user(email: str | None = "default", *, name: str | None = None) -> User:
        counter["value"] += 1
        if email == "default":
            email = f"user{counter['value']}@example.com"
        return UserRepository(db_session).create(
            User(id=None, name=name or f"User {counter['value']}", email=email)
        )

    return _make_user


@pytest.fixture
def push_client():
    return FakePushClient()


@pytest.fixture
def email_outbox():
    return FakeEmailSend()


@pytest.fixture
def utc_noon():
    return datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)
