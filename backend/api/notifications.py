"""
AssetDrop - Review Notification API
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user
from middleware.rate_limit import RateLimits, rate_limit
from services.project_service import ProjectService, parse_uuid
from services.review_notification_service import ReviewNotificationService

router = APIRouter(tags=["Notifications"])


class ReviewNotificationRequest(BaseModel):
    clientEmail: Optional[str] = None
    projectId: Optional[str] = None


@router.post("/send-review-notification")
@rate_limit(RateLimits.NOTIFICATION_SEND)
async def send_review_notification(
    request: Request,
    body: ReviewNotificationRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Email one client the approved/rejected outcome of their submissions"""
    project_id = parse_uuid(body.projectId)
    if project_id is not None:
        # Only the owner may notify clients of a project
        await ProjectService(db).get_owned_project(project_id, current_user["id"])
    return await ReviewNotificationService(db).send(body.clientEmail, body.projectId)
