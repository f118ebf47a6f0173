"""Utility helpers for sending transactional email notifications via SendGrid."""

from __future__ import annotations

import html
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Category, CustomArg, Mail

from app.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailSendOutcome:
    """Result of a single SendGrid API call."""

    success: bool
    message_id: str | None = None
    error: str | None = None


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages: list[str] = []
            for item in errors:
                if not isinstance(item, dict):
                    continue
                message = item.get("message")
                field = item.get("field")
                if message and field:
                    messages.append(f"{field}: {message}")
                elif message:
                    messages.append(str(message))
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _describe_sendgrid_exception(exc: Exception) -> str:
    """Log a SendGrid API error and return a short description of it."""

    status_code = getattr(exc, "status_code", None)
    details = _extract_sendgrid_error_details(getattr(exc, "body", None))

    if status_code and details:
        logger.error("SendGrid API request failed with status %s: %s", status_code, details)
        return f"SendGrid status {status_code}: {details}"
    if status_code:
        logger.error("SendGrid API request failed with status %s", status_code)
        return f"SendGrid status {status_code}"
    if details:
        logger.error("SendGrid API request failed: %s", details)
        return details
    logger.exception("Error sending email via SendGrid: %s", exc)
    return str(exc) or exc.__class__.__name__


def _extract_message_id(response: Any) -> str | None:
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    try:
        return headers.get("X-Message-Id") or headers.get("x-message-id")
    except AttributeError:
        return None


def send_email(
    subject: str,
    html_content: str,
    recipient: str,
    *,
    categories: Sequence[str] = (),
    custom_args: Mapping[str, str] | None = None,
) -> EmailSendOutcome:
    """Send an email using the configured SendGrid credentials."""

    settings = get_settings()
    if not (settings.sendgrid_api_key and settings.sendgrid_sender):
        logger.info("SendGrid configuration incomplete; skipping email delivery")
        return EmailSendOutcome(success=False, error="Email provider not configured")

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
    )
    for category in categories:
        message.add_category(Category(category))
    for key, value in (custom_args or {}).items():
        message.add_custom_arg(CustomArg(key, str(value)))

    try:
        client = SendGridAPIClient(settings.sendgrid_api_key)
        response = client.send(message)
    except Exception as exc:  # pragma: no cover - network failures depend on environment
        return EmailSendOutcome(success=False, error=_describe_sendgrid_exception(exc))

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        details = _extract_sendgrid_error_details(getattr(response, "body", None))
        if details:
            logger.error("SendGrid API responded with status %s: %s", status_code, details)
        else:
            logger.error("SendGrid API responded with status %s", status_code)
        return EmailSendOutcome(
            success=False, error=details or f"SendGrid status {status_code}"
        )

    return EmailSendOutcome(success=True, message_id=_extract_message_id(response))


def build_notification_html(title: str, body: str) -> str:
    """Return a minimal HTML document for a notification email."""

    paragraphs = "".join(
        f"<p>{html.escape(line)}</p>" for line in body.splitlines() if line.strip()
    )
    return "".join(
        (
            f"<h2>{html.escape(title)}</h2>",
            paragraphs or f"<p>{html.escape(body)}</p>",
            "<p>Puedes gestionar tus preferencias de notificación desde tu perfil.</p>",
        )
    )


__all__ = ["EmailSendOutcome", "build_notification_html", "send_email"]
