"""Default copy used for each notification type."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from app.domain.entities import NotificationType


@dataclass(frozen=True)
class NotificationTemplate:
    title: str
    body: str
    email_subject: str


GENERIC_TEMPLATE = NotificationTemplate(
    title="Notificación",
    body="Tienes una nueva notificación",
    email_subject="Nueva notificación",
)


def _format_date(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime("%d/%m/%Y")
    try:
        return datetime.fromisoformat(str(value)).strftime("%d/%m/%Y")
    except ValueError:
        return str(value)


def _story_uploaded(data: Mapping[str, Any]) -> NotificationTemplate:
    storyteller = data.get("storyteller_name")
    if storyteller:
        body = f'{storyteller} compartió una nueva historia: "{data.get("story_title", "")}"'
    else:
        body = "Se subió una nueva historia a tu proyecto"
    return NotificationTemplate("Nueva historia", body, "Nueva historia en tu proyecto")


def _interaction_added(data: Mapping[str, Any]) -> NotificationTemplate:
    facilitator = data.get("facilitator_name")
    body = (
        f"{facilitator} comentó tu historia"
        if facilitator
        else "Alguien comentó tu historia"
    )
    return NotificationTemplate("Nuevo comentario", body, "Nuevo comentario en tu historia")


def _follow_up_question(data: Mapping[str, Any]) -> NotificationTemplate:
    facilitator = data.get("facilitator_name")
    body = (
        f"{facilitator} hizo una pregunta de seguimiento"
        if facilitator
        else "Tienes una nueva pregunta de seguimiento"
    )
    return NotificationTemplate(
        "Pregunta de seguimiento", body, "Nueva pregunta de seguimiento"
    )


def _invitation_received(data: Mapping[str, Any]) -> NotificationTemplate:
    facilitator = data.get("facilitator_name")
    body = (
        f"{facilitator} te invitó a compartir tus historias familiares"
        if facilitator
        else "Te invitaron a compartir tus historias familiares"
    )
    return NotificationTemplate(
        "Invitación para compartir historias",
        body,
        "Invitación para compartir tus historias familiares",
    )


def _subscription_expiring(data: Mapping[str, Any]) -> NotificationTemplate:
    days = data.get("days_remaining") or 7
    return NotificationTemplate(
        "Tu suscripción vence pronto",
        f"Tu suscripción vence en {days} días",
        "Tu suscripción está por vencer",
    )


def _project_archived(data: Mapping[str, Any]) -> NotificationTemplate:
    project = data.get("project_name")
    prefix = f'Tu proyecto "{project}"' if project else "Tu proyecto"
    return NotificationTemplate(
        "Proyecto archivado",
        f"{prefix} fue archivado. Aún puedes ver y exportar todo su contenido.",
        "Tu proyecto fue archivado",
    )


def _subscription_renewed(data: Mapping[str, Any]) -> NotificationTemplate:
    project = data.get("project_name")
    expiry = data.get("new_expiry_date")
    if project and expiry:
        body = f'La suscripción de "{project}" se renovó hasta el {_format_date(expiry)}.'
    else:
        body = "Tu suscripción fue renovada."
    return NotificationTemplate("Suscripción renovada", body, "Tu suscripción fue renovada")


_TEMPLATES: dict[NotificationType, Callable[[Mapping[str, Any]], NotificationTemplate]] = {
    NotificationType.STORY_UPLOADED: _story_uploaded,
    NotificationType.STORY_PROCESSED: lambda _data: NotificationTemplate(
        "Historia lista",
        "Tu historia fue procesada y ya está disponible",
        "Tu historia está lista",
    ),
    NotificationType.INTERACTION_ADDED: _interaction_added,
    NotificationType.FOLLOW_UP_QUESTION: _follow_up_question,
    NotificationType.EXPORT_READY: lambda _data: NotificationTemplate(
        "Exportación lista",
        "La exportación de tus historias familiares está lista para descargar",
        "Tu exportación está lista",
    ),
    NotificationType.INVITATION_RECEIVED: _invitation_received,
    NotificationType.SUBSCRIPTION_EXPIRING: _subscription_expiring,
    NotificationType.SUBSCRIPTION_EXPIRED: lambda _data: NotificationTemplate(
        "Suscripción vencida",
        "Tu suscripción venció. Renuévala para seguir compartiendo historias.",
        "Tu suscripción venció",
    ),
    NotificationType.PROJECT_ARCHIVED: _project_archived,
    NotificationType.SUBSCRIPTION_RENEWED: _subscription_renewed,
}


def get_notification_template(
    notification_type: NotificationType | str, data: Mapping[str, Any] | None = None
) -> NotificationTemplate:
    """Return the title, body and email subject for ``notification_type``.

    Unknown types get a generic template instead of an error.
    """

    try:
        resolved = NotificationType(notification_type)
    except ValueError:
        return GENERIC_TEMPLATE
    builder = _TEMPLATES.get(resolved)
    if builder is None:
        return GENERIC_TEMPLATE
    return builder(data or {})


__all__ = ["GENERIC_TEMPLATE", "NotificationTemplate", "get_notification_template"]
