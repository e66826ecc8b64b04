"""
AssetDrop Review Notification Service

Emails one client the outcome of the review of their submissions.
"""

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import EmailNotConfiguredError, NotFoundError, ValidationError
from core.logging import get_logger
from models.project_models import AssetStatus
from services.activity_service import ActivityAction, ActivityService
from services.email_templates import (
    ReviewEmailData,
    ReviewedItem,
    render_review_email_html,
    render_review_email_text,
    review_email_subject,
)
from services.project_service import ProjectService, parse_uuid
from services.sendgrid_service import SendGridService, sendgrid_service

logger = get_logger("assetdrop.services.review_notification")


def shareable_link(link_id: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/collect/{link_id}"


class ReviewNotificationService:
    def __init__(self, db: AsyncSession, mailer: Optional[SendGridService] = None):
        self.db = db
        self.mailer = mailer or sendgrid_service
        self.projects = ProjectService(db)
        self.activity = ActivityService(db)

    async def send(self, client_email: Optional[str], project_id: Any) -> Dict[str, Any]:
        """
        Send the review summary email for (client, project).

        Only approved and rejected assets are listed; pending ones are left
        out, and a client with nothing reviewed yet gets no email.
        """
        if not self.mailer.is_configured:
            raise EmailNotConfiguredError()
        if not client_email or not project_id:
            raise ValidationError("Client email and project ID are required")

        project_uuid = parse_uuid(project_id)
        project = await self.projects.get_project(project_uuid) if project_uuid else None
        if project is None:
            raise NotFoundError("Project not found")

        assets = await self.projects.list_assets(project.id, client_email=client_email)
        if not assets:
            raise NotFoundError("No assets found for this client")

        approved = [ReviewedItem(a.file_name, a.approval_remark) for a in assets if a.status == AssetStatus.APPROVED]
        rejected = [ReviewedItem(a.file_name, a.rejection_reason) for a in assets if a.status == AssetStatus.REJECTED]
        if not approved and not rejected:
            raise ValidationError("No reviewed assets found. All assets are still pending.")

        data = ReviewEmailData(
            project_name=project.name,
            shareable_link=shareable_link(project.shareable_link_id),
            approved=approved,
            rejected=rejected,
        )
        result = await self.mailer.send_email(
            to=client_email,
            subject=review_email_subject(project.name),
            html=render_review_email_html(data),
            text=render_review_email_text(data),
        )
        email_id = result.get("message_id")

        logger.info(
            f"Review notification sent ({len(approved)} approved, {len(rejected)} rejected)",
            action="review_notification_sent",
            project_id=project.id,
        )
        await self.activity.log(project.id, ActivityAction.REVIEW_NOTIFICATION_SENT, {
            "client_email": client_email,
            "approved_count": len(approved),
            "rejected_count": len(rejected),
            "email_id": email_id,
        })

        return {
            "success": True,
            "emailId": email_id,
            "summary": {"approved": len(approved), "rejected": len(rejected)},
        }
