"""Retention cleanup for old notifications."""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from app.infrastructure.repositories import NotificationRepository
from app.utils import now_in_app_timezone

logger = logging.getLogger(__name__)


def cleanup_old_notifications(session: Session, days_old: int = 30) -> int:
    """Delete notifications created more than ``days_old`` days ago."""

    cutoff = now_in_app_timezone() - timedelta(days=days_old)
    deleted = NotificationRepository(session).delete_created_before(cutoff)
    logger.info("Cleaned up %s notifications older than %s days", deleted, days_old)
    return deleted


__all__ = ["cleanup_old_notifications"]
