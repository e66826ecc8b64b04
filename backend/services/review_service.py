"""
AssetDrop Review Service

Owner decisions on submitted assets. Reviews move an asset from pending to
approved or rejected exactly once; rejected files are removed from Drive.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import AssetDropError, ConflictError, NotFoundError
from core.logging import get_logger
from models.project_models import Asset, AssetStatus, Project
from services.activity_service import ActivityAction, ActivityService
from services.drive_credentials_service import DriveCredentialsService
from services.review_batcher_service import ReviewNotificationBatcher, review_batcher

logger = get_logger("assetdrop.services.review")


class ReviewService:
    def __init__(
        self,
        db: AsyncSession,
        batcher: Optional[ReviewNotificationBatcher] = None,
        credentials: Optional[DriveCredentialsService] = None,
    ):
        self.db = db
        self.batcher = batcher or review_batcher
        self.credentials = credentials or DriveCredentialsService(db)
        self.activity = ActivityService(db)

    async def _get_reviewable(self, asset_id: UUID, user_id: UUID, project_id: Optional[UUID] = None) -> Asset:
        stmt = (
            select(Asset)
            .join(Project, Project.id == Asset.project_id)
            .where(Asset.id == asset_id, Project.user_id == user_id)
        )
        if project_id is not None:
            stmt = stmt.where(Asset.project_id == project_id)
        result = await self.db.execute(stmt)
        asset = result.scalar_one_or_none()
        if asset is None:
            raise NotFoundError("Asset not found")
        if asset.status != AssetStatus.PENDING:
            raise ConflictError(f"Asset has already been {asset.status}")
        return asset

    async def _delete_from_drive(self, asset: Asset, user_id: UUID) -> bool:
        """One best-effort delete of the rejected file; failures are only logged"""
        if asset.is_text_response:
            return False
        try:
            drive = await self.credentials.get_drive_client(user_id)
            async with drive:
                await drive.delete_file(asset.google_drive_file_id)
            return True
        except AssetDropError as e:
            logger.warning(
                f"Could not delete rejected file from Drive: {e.message}",
                action="rejected_file_delete_failed",
                asset_id=asset.id,
            )
            return False

    async def approve(self, asset_id: UUID, user_id: UUID, remark: Optional[str] = None,
                      project_id: Optional[UUID] = None) -> Dict[str, Any]:
        asset = await self._get_reviewable(asset_id, user_id, project_id)

        asset.status = AssetStatus.APPROVED
        asset.approval_remark = (remark or "").strip() or None
        asset.rejection_reason = None
        asset.updated_at = datetime.utcnow()
        await self.db.commit()

        await self.activity.log(asset.project_id, ActivityAction.ASSET_APPROVED, {
            "asset_id": str(asset.id),
            "file_name": asset.file_name,
            "remark": asset.approval_remark,
        }, user_id=user_id)
        return self._finish(asset)

    async def reject(self, asset_id: UUID, user_id: UUID, reason: Optional[str] = None,
                     project_id: Optional[UUID] = None) -> Dict[str, Any]:
        asset = await self._get_reviewable(asset_id, user_id, project_id)

        deleted_from_drive = await self._delete_from_drive(asset, user_id)

        asset.status = AssetStatus.REJECTED
        asset.rejection_reason = (reason or "").strip() or None
        asset.approval_remark = None
        asset.updated_at = datetime.utcnow()
        await self.db.commit()

        await self.activity.log(asset.project_id, ActivityAction.ASSET_REJECTED, {
            "asset_id": str(asset.id),
            "file_name": asset.file_name,
            "reason": asset.rejection_reason,
            "deleted_from_drive": deleted_from_drive,
        }, user_id=user_id)
        result = self._finish(asset)
        result["deleted_from_drive"] = deleted_from_drive
        return result

    def _finish(self, asset: Asset) -> Dict[str, Any]:
        logger.info(f"Asset {asset.status}", action=f"asset_{asset.status}",
                    project_id=asset.project_id, asset_id=asset.id)

        batch = None
        if asset.client_email:
            batch = self.batcher.record_review(asset.project_id, asset.id, asset.client_email)

        return {
            "success": True,
            "asset": asset.to_dict(),
            "review_batch": batch.to_dict() if batch else None,
        }
