"""
AssetDrop - Review Notification Batcher
Debounces review notification emails per project.

Every approve/reject with a client email restarts the project's countdown;
when it runs out (or the owner sends early) each affected client receives one
summary email. The countdown is an APScheduler date job per project that is
replaced on every review.
"""
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import AssetDropError
from core.logging import get_logger
from models.project_models import Asset, AssetStatus
from services.activity_service import ActivityAction, ActivityService
from services.review_batch import ReviewBatch
from services.review_notification_service import ReviewNotificationService

logger = get_logger("assetdrop.services.review_batcher")


class ReviewNotificationBatcher:
    """
    Service for batching review notifications.
    Uses APScheduler for the per-project deadline.
    """

    def __init__(
        self,
        delay_minutes: Optional[float] = None,
        session_factory: Optional[Callable[[], Any]] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        mailer=None,
    ):
        minutes = delay_minutes if delay_minutes is not None else settings.REVIEW_NOTIFICATION_DELAY_MINUTES
        self.delay = timedelta(minutes=minutes)
        self.clock = clock
        self.mailer = mailer
        self._session_factory = session_factory
        self._batches: Dict[UUID, ReviewBatch] = {}
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._initialized = False

    def initialize(self):
        """Initialize the scheduler."""
        if self._initialized:
            return

        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.scheduler.start()
        self._initialized = True
        logger.info("Review notification scheduler initialized", action="scheduler_init")

    def shutdown(self):
        """Shutdown the scheduler gracefully."""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Review notification scheduler shutdown", action="scheduler_shutdown")
        self._initialized = False

    @property
    def session_factory(self):
        if self._session_factory is None:
            from core.database import AsyncSessionLocal
            self._session_factory = AsyncSessionLocal
        return self._session_factory

    @staticmethod
    def _job_id(project_id: UUID) -> str:
        return f"review_batch_{project_id}"

    # ------------------------------------------------------------------
    # Batch state
    # ------------------------------------------------------------------

    def get_batch(self, project_id: UUID) -> Optional[ReviewBatch]:
        return self._batches.get(project_id)

    def record_review(self, project_id: UUID, asset_id: UUID, client_email: str) -> ReviewBatch:
        """Register a reviewed asset and push the project's deadline out."""
        batch = self._batches.get(project_id)
        if batch is None:
            batch = ReviewBatch(self.delay, clock=self.clock)
            self._batches[project_id] = batch

        deadline = batch.record(asset_id, client_email)
        self._schedule(project_id, deadline)
        return batch

    def _schedule(self, project_id: UUID, deadline: datetime) -> None:
        if not self.scheduler:
            return

        self.scheduler.add_job(
            self._on_deadline,
            trigger=DateTrigger(run_date=deadline, timezone="UTC"),
            args=[str(project_id)],
            id=self._job_id(project_id),
            replace_existing=True,
        )

    def _cancel_job(self, project_id: UUID) -> None:
        if not self.scheduler:
            return
        try:
            self.scheduler.remove_job(self._job_id(project_id))
        except JobLookupError:
            pass

    def stop(self, project_id: UUID) -> bool:
        """Cancel the countdown and forget the batch without sending."""
        self._cancel_job(project_id)
        return self._batches.pop(project_id, None) is not None

    async def _on_deadline(self, project_id: str) -> None:
        """Scheduler callback; a deadline moved by a later review is ignored."""
        project_uuid = UUID(project_id)
        batch = self._batches.get(project_uuid)
        if batch is None or not batch.is_expired():
            return
        await self.send_now(project_uuid)

    # ------------------------------------------------------------------
    # Confirmation summary
    # ------------------------------------------------------------------

    async def summary(self, db: AsyncSession, project_id: UUID) -> Dict[str, Any]:
        """
        Per-client review counts for the emails in the batch.

        Pending assets are counted for display only; they are never emailed.
        """
        batch = self._batches.get(project_id)
        status = batch.to_dict() if batch else {"active": False, "emails": []}

        clients: List[Dict[str, Any]] = []
        for email in status["emails"]:
            result = await db.execute(
                select(Asset.status).where(Asset.project_id == project_id, Asset.client_email == email)
            )
            statuses = [row[0] for row in result.all()]
            clients.append({
                "email": email,
                "approved": statuses.count(AssetStatus.APPROVED),
                "rejected": statuses.count(AssetStatus.REJECTED),
                "pending": statuses.count(AssetStatus.PENDING),
            })

        status["clients"] = clients
        return status

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send_now(self, project_id: UUID, db: Optional[AsyncSession] = None) -> Dict[str, Any]:
        """
        Email every client in the batch, one after another.

        Failures are tallied per client and not retried. The batch is
        detached before sending, so reviews made meanwhile start a new one.
        """
        self._cancel_job(project_id)
        batch = self._batches.pop(project_id, None)
        emails = batch.emails if batch else []
        if not emails:
            return {"sent": 0, "failed": 0, "total": 0, "errors": []}

        if db is not None:
            return await self._send_all(db, project_id, emails)
        async with self.session_factory() as session:
            return await self._send_all(session, project_id, emails)

    async def _send_all(self, db: AsyncSession, project_id: UUID, emails: List[str]) -> Dict[str, Any]:
        notifier = ReviewNotificationService(db, mailer=self.mailer)
        sent, errors = 0, []

        for email in emails:
            try:
                await notifier.send(email, project_id)
                sent += 1
            except AssetDropError as e:
                errors.append({"email": email, "error": e.message, "status_code": e.status_code})
                logger.warning(
                    f"Review notification to {email} failed: {e.message}",
                    action="review_batch_email_failed",
                    project_id=project_id,
                )

        result = {"sent": sent, "failed": len(errors), "total": len(emails), "errors": errors}
        logger.info(
            f"Review batch sent: {sent}/{len(emails)}",
            action="review_batch_sent",
            project_id=project_id,
        )
        await ActivityService(db).log(project_id, ActivityAction.REVIEW_BATCH_SENT, {
            "sent": sent,
            "failed": len(errors),
            "total": len(emails),
        })
        return result


# Singleton instance
review_batcher = ReviewNotificationBatcher()
