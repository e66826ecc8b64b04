"""
AssetDrop Activity Service

Writes to the per-project activity trail. Logging is best-effort: a failed
insert is reported to the application log and never fails the caller.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging import get_logger
from models.project_models import ActivityLog

logger = get_logger("assetdrop.services.activity")


class ActivityAction:
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    PROJECT_ARCHIVED = "project_archived"
    FORM_SAVED = "form_saved"
    ASSET_UPLOADED = "asset_uploaded"
    ASSET_APPROVED = "asset_approved"
    ASSET_REJECTED = "asset_rejected"
    ASSET_DOWNLOADED = "asset_downloaded"
    REVIEW_NOTIFICATION_SENT = "review_notification_sent"
    REVIEW_BATCH_SENT = "review_batch_sent"


class ActivityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        project_id: UUID,
        action_type: str,
        details: Optional[Dict[str, Any]] = None,
        user_id: Optional[UUID] = None,
    ) -> bool:
        """Append an activity row and commit. Returns False when the write failed."""
        try:
            self.db.add(ActivityLog(
                project_id=project_id,
                user_id=user_id,
                action_type=action_type,
                action_details=details or {},
            ))
            await self.db.commit()
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(
                f"Failed to log activity {action_type}: {e}",
                action="activity_log_failed",
                project_id=project_id,
            )
            return False

    async def list_for_project(self, project_id: UUID, limit: int = 50) -> List[ActivityLog]:
        result = await self.db.execute(
            select(ActivityLog)
            .where(ActivityLog.project_id == project_id)
            .order_by(desc(ActivityLog.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())
