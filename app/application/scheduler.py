"""Background jobs draining due notifications and cleaning up stale data."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.application.channels import PushSender
from app.application.use_cases.device_tokens import (
    deactivate_stale_device_tokens,
    prune_inactive_device_tokens,
)
from app.application.use_cases.notifications import (
    NotificationOrchestrator,
    cleanup_old_notifications,
)
from app.config import Settings, get_settings
from app.domain.entities import NotificationStatus
from app.infrastructure.database import SessionLocal
from app.infrastructure.repositories import NotificationRepository
from app.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

DISPATCH_JOB_ID = "notifications-dispatch"
HYGIENE_JOB_ID = "notifications-hygiene"

SessionFactory = Callable[[], Session]
OrchestratorFactory = Callable[[Session], NotificationOrchestrator]
PushSenderFactory = Callable[[Session], PushSender]
HygieneStep = Callable[[], Union[int, Awaitable[int]]]


@dataclass
class DispatchTickReport:
    processed: int = 0
    sent: int = 0
    failed: int = 0
    pending: int = 0


@dataclass
class HygieneReport:
    notifications_deleted: int = 0
    stale_tokens_deactivated: int = 0
    inactive_tokens_pruned: int = 0
    invalid_tokens_deactivated: int = 0
    failed_steps: list[str] = field(default_factory=list)


class NotificationScheduler:
    """Own the periodic dispatch and hygiene jobs of one process.

    Dispatch ticks are single-flight: a tick that starts while another is
    still running is skipped. The lock only covers this process, so several
    replicas may still dispatch the same notification.
    """

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        orchestrator_factory: OrchestratorFactory | None = None,
        *,
        push_sender_factory: PushSenderFactory | None = None,
        settings: Settings | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self._orchestrator_factory = orchestrator_factory or NotificationOrchestrator
        self._push_sender_factory = push_sender_factory or PushSender
        self._settings = settings or get_settings()
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self._dispatch_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        if self._scheduler.running:
            logger.warning("Notification scheduler already running")
            return

        self._scheduler.add_job(
            self.run_dispatch_tick,
            "interval",
            seconds=self._settings.scheduler_dispatch_interval_seconds,
            id=DISPATCH_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.add_job(
            self.run_hygiene_tick,
            "interval",
            seconds=self._settings.scheduler_hygiene_interval_seconds,
            id=HYGIENE_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            "Notification scheduler started (dispatch every %ss, hygiene every %ss)",
            self._settings.scheduler_dispatch_interval_seconds,
            self._settings.scheduler_hygiene_interval_seconds,
        )

    async def shutdown(self) -> None:
        """Stop the jobs and wait for an in-flight dispatch tick to finish."""

        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        async with self._dispatch_lock:
            pass
        logger.info("Notification scheduler stopped")

    async def run_dispatch_tick(self) -> DispatchTickReport | None:
        """Dispatch due notifications, or return ``None`` if a tick is already running."""

        if self._dispatch_lock.locked():
            logger.info("Previous dispatch tick still running; skipping")
            return None
        async with self._dispatch_lock:
            return await self._dispatch_due()

    async def run_hygiene_tick(self) -> HygieneReport:
        """Run each cleanup step independently; failures are only logged."""

        settings = self._settings
        report = HygieneReport()
        session = self._session_factory()
        try:
            push_sender = self._push_sender_factory(session)
            report.notifications_deleted = await self._run_step(
                session,
                report,
                "cleanup_old_notifications",
                lambda: cleanup_old_notifications(session, settings.notification_retention_days),
            )
            report.stale_tokens_deactivated = await self._run_step(
                session,
                report,
                "deactivate_stale_device_tokens",
                lambda: deactivate_stale_device_tokens(session, settings.device_token_stale_days),
            )
            report.inactive_tokens_pruned = await self._run_step(
                session,
                report,
                "prune_inactive_device_tokens",
                lambda: prune_inactive_device_tokens(session, settings.device_token_inactive_days),
            )
            report.invalid_tokens_deactivated = await self._run_step(
                session, report, "cleanup_invalid_tokens", push_sender.cleanup_invalid_tokens
            )
        finally:
            session.close()

        logger.info("Notification hygiene completed: %s", report)
        return report

    async def _dispatch_due(self) -> DispatchTickReport:
        report = DispatchTickReport()
        session = self._session_factory()
        try:
            orchestrator = self._orchestrator_factory(session)
            repository = NotificationRepository(session)
            now = orchestrator.now()
            due = repository.list_due(
                now,
                limit=self._settings.scheduler_dispatch_batch_size,
                claimed_before=now
                - timedelta(seconds=self._settings.dispatch_claim_timeout_seconds),
            )
            for notification in due:
                report.processed += 1
                try:
                    await orchestrator.dispatch(notification)
                    status = notification.status
                except Exception:
                    session.rollback()
                    logger.exception("Error dispatching notification %s", notification.id)
                    status = self._mark_failed(session, notification.id)

                if status is NotificationStatus.SENT:
                    report.sent += 1
                elif status is NotificationStatus.FAILED:
                    report.failed += 1
                else:
                    report.pending += 1
            await orchestrator.wait_for_background_tasks()
        finally:
            session.close()

        if report.processed:
            logger.info(
                "Dispatch tick processed %s notifications (%s sent, %s failed)",
                report.processed,
                report.sent,
                report.failed,
            )
        return report

    @staticmethod
    def _mark_failed(session: Session, notification_id: int | None) -> NotificationStatus | None:
        if notification_id is None:
            return None
        repository = NotificationRepository(session)
        try:
            stored = repository.get(notification_id)
            if stored is None:
                return None
            if stored.status is NotificationStatus.PENDING:
                stored.mark_failed(now_in_app_timezone())
                if not repository.complete_dispatch(stored):
                    stored = repository.get(notification_id) or stored
            return stored.status
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Could not mark notification %s as failed", notification_id)
            return None

    @staticmethod
    async def _run_step(
        session: Session, report: HygieneReport, name: str, step: HygieneStep
    ) -> int:
        try:
            result = step()
            if inspect.isawaitable(result):
                result = await result
            return int(result)
        except Exception:
            session.rollback()
            logger.exception("Notification hygiene step %s failed", name)
            report.failed_steps.append(name)
            return 0


__all__ = [
    "DispatchTickReport",
    "HygieneReport",
    "NotificationScheduler",
]
