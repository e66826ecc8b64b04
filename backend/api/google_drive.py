"""
AssetDrop - Google Drive API
Connecting, refreshing and disconnecting an owner's Google Drive
"""
from typing import Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from core.exceptions import (
    AssetDropError,
    DriveFileNotFoundError,
    DriveNotConnectedError,
    NotFoundError,
    ValidationError,
)
from core.logging import get_logger
from core.security import get_current_user
from services.drive_credentials_service import DriveCredentialsService
from services.google_oauth_service import google_oauth_service

router = APIRouter(prefix="/google-drive", tags=["Google Drive"])
logger = get_logger("assetdrop.api.google_drive")


# ===========================================
# Request Models
# ===========================================

class DeleteFileRequest(BaseModel):
    fileId: Optional[str] = None


class DeleteFolderRequest(BaseModel):
    folderId: Optional[str] = None


def dashboard_redirect(query: str) -> RedirectResponse:
    return RedirectResponse(url=f"{settings.APP_URL.rstrip('/')}/dashboard?{query}", status_code=307)


async def _owner_drive(db: AsyncSession, user_id: UUID):
    try:
        return await DriveCredentialsService(db).get_drive_client(user_id)
    except DriveNotConnectedError:
        raise NotFoundError("Google Drive not connected")


# ===========================================
# OAuth
# ===========================================

@router.get("/auth-url")
async def get_auth_url(current_user: dict = Depends(get_current_user)):
    """Consent URL for connecting Drive; the state is bound to the caller"""
    return {"url": google_oauth_service.get_drive_auth_url(str(current_user["id"]))}


@router.get("/callback")
async def drive_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Exchange the code and store the owner's tokens"""
    if error:
        return dashboard_redirect(f"error={quote(error)}")
    if not code:
        return dashboard_redirect("error=missing_code")

    state_data = google_oauth_service.validate_state(state, "drive")
    if state_data is None or not state_data.get("user_id"):
        return dashboard_redirect("error=auth_required")

    try:
        tokens = await google_oauth_service.exchange_code(code, google_oauth_service.drive_redirect_uri)
        await DriveCredentialsService(db).save_tokens(
            UUID(state_data["user_id"]),
            tokens["access_token"],
            tokens.get("refresh_token"),
            tokens["expires_at"],
        )
    except AssetDropError as e:
        logger.error(f"Drive connection failed: {e.message}", action="drive_connect_failed")
        return dashboard_redirect(f"error={quote(e.message)}")

    logger.info("Google Drive connected", action="drive_connected", user_id=state_data["user_id"])
    return dashboard_redirect("drive_connected=true")


@router.post("/refresh-token")
async def refresh_token(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """
    Force a token refresh.

    A revoked grant deletes the stored credentials and answers 401 with
    `requiresReconnect: true`.
    """
    tokens = await DriveCredentialsService(db).refresh(current_user["id"])
    return {
        "access_token": tokens["access_token"],
        "refresh_token": tokens.get("refresh_token"),
        "expires_at": tokens["expires_at"].isoformat() + "Z",
    }


@router.get("/status")
async def drive_status(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    row = await DriveCredentialsService(db).get_token_row(current_user["id"])
    return {
        "connected": row is not None,
        "token_expiry": row.token_expiry.isoformat() + "Z" if row and row.token_expiry else None,
    }


@router.delete("/disconnect")
async def disconnect(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    deleted = await DriveCredentialsService(db).delete_tokens(current_user["id"])
    if not deleted:
        raise NotFoundError("Google Drive not connected")
    logger.info("Google Drive disconnected", action="drive_disconnected", user_id=current_user["id"])
    return {"success": True}


# ===========================================
# Files
# ===========================================

async def _delete(db: AsyncSession, user_id: UUID, file_id: Optional[str], what: str):
    if not file_id:
        raise ValidationError(f"{what} ID is required")

    drive = await _owner_drive(db, user_id)
    try:
        async with drive:
            await drive.delete_file(file_id)
    except DriveFileNotFoundError:
        return JSONResponse(status_code=404, content={"error": f"{what} not found in Google Drive", "success": False})
    return {"success": True, "message": f"{what} deleted from Google Drive"}


@router.delete("/delete-file")
async def delete_file(
    request: DeleteFileRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _delete(db, current_user["id"], request.fileId, "File")


@router.delete("/delete-folder")
async def delete_folder(
    request: DeleteFolderRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _delete(db, current_user["id"], request.folderId, "Folder")
