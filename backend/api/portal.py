"""
AssetDrop - Client Portal API
Public access to a project's collection form through its shareable link
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.exceptions import NotFoundError, UnauthorizedError
from middleware.rate_limit import RateLimits, rate_limit
from models.project_models import Project
from services.drive_credentials_service import DriveCredentialsService
from services.portal_gate import (
    INCORRECT_PASSWORD_MESSAGE,
    LINK_NOT_FOUND_MESSAGE,
    PortalGate,
    PortalState,
)
from services.project_service import ProjectService

router = APIRouter(prefix="/portal", tags=["Client Portal"])


class UnlockRequest(BaseModel):
    password: Optional[str] = None


async def _load_project(db: AsyncSession, link_id: str) -> Project:
    project = await ProjectService(db).get_by_link_id(link_id)
    if project is None:
        raise NotFoundError(LINK_NOT_FOUND_MESSAGE)
    return project


async def _portal_payload(db: AsyncSession, gate: PortalGate) -> dict:
    """Only an open gate reveals the project and its public form"""
    data = {"state": gate.state}
    if gate.message:
        data["message"] = gate.message
    if not gate.is_open:
        return data

    project = gate.project
    fields = await ProjectService(db).get_form_fields(project.id)
    data["project"] = {
        "id": str(project.id),
        "name": project.name,
        "client_name": project.client_name,
        "description": project.description,
    }
    data["fields"] = [f.to_dict(public=True) for f in fields]
    data["driveConnected"] = await DriveCredentialsService(db).is_connected(project.user_id)
    return data


@router.get("/{link_id}")
@rate_limit(RateLimits.PORTAL_READ)
async def get_portal(
    request: Request,
    link_id: str,
    x_link_password: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Portal state for a shareable link.

    Disabled and expired links answer with their state only. A protected
    link stays locked unless X-Link-Password carries the exact password.
    """
    gate = PortalGate(await _load_project(db, link_id))
    if x_link_password is not None:
        gate.unlock(x_link_password)
    return await _portal_payload(db, gate)


@router.post("/{link_id}/unlock")
@rate_limit(RateLimits.PORTAL_UNLOCK)
async def unlock_portal(
    request: Request,
    link_id: str,
    body: UnlockRequest,
    db: AsyncSession = Depends(get_db),
):
    gate = PortalGate(await _load_project(db, link_id))
    if gate.state == PortalState.LOCKED and not gate.unlock(body.password):
        raise UnauthorizedError(INCORRECT_PASSWORD_MESSAGE)
    return await _portal_payload(db, gate)


@router.get("/{link_id}/status")
@rate_limit(RateLimits.PORTAL_READ)
async def submission_status(
    request: Request,
    link_id: str,
    email: Optional[str] = Query(None),
    x_link_password: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """A client's submission history for the Submitted view"""
    gate = PortalGate(await _load_project(db, link_id))
    gate.unlock(x_link_password)
    if not gate.is_open:
        return {"state": gate.state, "message": gate.message, "submissions": []}

    gate.mark_submitted()
    assets = await ProjectService(db).list_assets(gate.project.id, client_email=email) if email else []
    return {
        "state": gate.state,
        "submissions": [
            {
                "id": str(a.id),
                "file_name": a.file_name,
                "status": a.status,
                "rejection_reason": a.rejection_reason,
                "approval_remark": a.approval_remark,
                "created_at": a.created_at.isoformat() if a.created_at else None,
            }
            for a in assets
        ],
    }
