"""
AssetDrop - Projects API
Owner dashboard: projects, form builder, asset review and the review batch
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user
from models.project_models import ProjectStatus
from services.activity_service import ActivityService
from services.project_service import ProjectService
from services.review_batcher_service import review_batcher
from services.review_service import ReviewService

router = APIRouter(prefix="/projects", tags=["Projects"])


# ===========================================
# Request Models
# ===========================================

class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    client_name: Optional[str] = None
    description: Optional[str] = None
    status: str = ProjectStatus.PENDING
    link_password: Optional[str] = None
    link_expiry: Optional[datetime] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    client_name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    link_password: Optional[str] = None
    link_expiry: Optional[datetime] = None
    link_disabled: Optional[bool] = None


class FormFieldInput(BaseModel):
    id: Optional[str] = None
    field_type: str
    label: str
    help_text: Optional[str] = None
    internal_note: Optional[str] = None
    is_required: bool = False
    storage_subfolder: Optional[str] = None


class FormFieldsUpdate(BaseModel):
    fields: List[FormFieldInput]


class ApproveRequest(BaseModel):
    remark: Optional[str] = None


class RejectRequest(BaseModel):
    reason: Optional[str] = None


async def _owned(db: AsyncSession, project_id: UUID, current_user: dict):
    return await ProjectService(db).get_owned_project(project_id, current_user["id"])


# ===========================================
# Projects
# ===========================================

@router.get("")
async def list_projects(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Owner's projects, newest first, with completion stats"""
    projects = await ProjectService(db).list_projects_with_stats(current_user["id"])
    return {"projects": projects, "count": len(projects)}


@router.post("", status_code=201)
async def create_project(
    request: ProjectCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await ProjectService(db).create_project(current_user["id"], **request.model_dump())
    return project.to_dict()


@router.get("/{project_id}")
async def get_project(
    project_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ProjectService(db)
    project = await service.get_owned_project(project_id, current_user["id"])
    fields = await service.get_form_fields(project.id)
    data = project.to_dict()
    data["form_fields"] = [f.to_dict() for f in fields]
    return data


@router.patch("/{project_id}")
async def update_project(
    project_id: UUID,
    request: ProjectUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Edit project settings; only the fields present in the body change"""
    service = ProjectService(db)
    project = await service.get_owned_project(project_id, current_user["id"])
    project = await service.update_project(project, current_user["id"], request.model_dump(exclude_unset=True))
    return project.to_dict()


@router.post("/{project_id}/archive")
async def archive_project(
    project_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ProjectService(db)
    project = await service.get_owned_project(project_id, current_user["id"])
    project = await service.archive_project(project, current_user["id"])
    return project.to_dict()


@router.delete("/{project_id}")
async def delete_project(
    project_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ProjectService(db)
    project = await service.get_owned_project(project_id, current_user["id"])
    review_batcher.stop(project.id)
    return await service.delete_project(project, current_user["id"])


# ===========================================
# Form builder
# ===========================================

@router.get("/{project_id}/form-fields")
async def get_form_fields(
    project_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ProjectService(db)
    project = await service.get_owned_project(project_id, current_user["id"])
    fields = await service.get_form_fields(project.id)
    return {"fields": [f.to_dict() for f in fields]}


@router.put("/{project_id}/form-fields")
async def save_form_fields(
    project_id: UUID,
    request: FormFieldsUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Replace the form definition with the submitted ordered list"""
    service = ProjectService(db)
    project = await service.get_owned_project(project_id, current_user["id"])
    saved = await service.save_form_fields(project, current_user["id"], [f.model_dump() for f in request.fields])
    return {"success": True, "fields": [f.to_dict() for f in saved]}


# ===========================================
# Assets
# ===========================================

@router.get("/{project_id}/assets")
async def get_assets(
    project_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ProjectService(db)
    project = await service.get_owned_project(project_id, current_user["id"])
    return await service.get_assets_grouped(project)


@router.get("/{project_id}/download")
async def download_asset(
    project_id: UUID,
    fileId: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ProjectService(db)
    project = await service.get_owned_project(project_id, current_user["id"])
    return await service.get_download(project, current_user["id"], fileId)


@router.get("/{project_id}/activity")
async def get_activity(
    project_id: UUID,
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await _owned(db, project_id, current_user)
    entries = await ActivityService(db).list_for_project(project.id, limit=limit)
    return {"activity": [e.to_dict() for e in entries]}


@router.post("/{project_id}/assets/{asset_id}/approve")
async def approve_asset(
    project_id: UUID,
    asset_id: UUID,
    request: Optional[ApproveRequest] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    remark = request.remark if request else None
    return await ReviewService(db).approve(asset_id, current_user["id"], remark, project_id=project_id)


@router.post("/{project_id}/assets/{asset_id}/reject")
async def reject_asset(
    project_id: UUID,
    asset_id: UUID,
    request: Optional[RejectRequest] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Reject an asset; uploaded files are removed from Drive when possible"""
    reason = request.reason if request else None
    return await ReviewService(db).reject(asset_id, current_user["id"], reason, project_id=project_id)


# ===========================================
# Review notification batch
# ===========================================

@router.get("/{project_id}/review-batch")
async def get_review_batch(
    project_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Countdown state plus per-client counts for the confirmation view"""
    project = await _owned(db, project_id, current_user)
    return await review_batcher.summary(db, project.id)


@router.post("/{project_id}/review-batch/send")
async def send_review_batch(
    project_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await _owned(db, project_id, current_user)
    return await review_batcher.send_now(project.id, db=db)


@router.delete("/{project_id}/review-batch")
async def stop_review_batch(
    project_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await _owned(db, project_id, current_user)
    return {"success": True, "stopped": review_batcher.stop(project.id)}
