"""
AssetDrop Intake Service

Accepts anonymous client submissions for a project: files are stored in the
project owner's Google Drive, text responses are stored inline.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import (
    DriveFileNotFoundError,
    ForbiddenError,
    NotFoundError,
    PayloadTooLargeError,
    ValidationError,
)
from core.logging import get_logger
from models.asset_metadata import parse_asset_metadata
from models.project_models import (
    Asset,
    AssetStatus,
    FieldType,
    FormField,
    Project,
    TEXT_RESPONSE_SENTINEL,
)
from services.activity_service import ActivityAction, ActivityService
from services.drive_credentials_service import DriveCredentialsService
from services.google_drive_service import GoogleDriveClient
from services.portal_gate import PORTAL_MESSAGES, link_closed_state

logger = get_logger("assetdrop.services.intake")

CLIENT_UPLOADER = "client"
READ_CHUNK_BYTES = 1024 * 1024


def ensure_upload_size(size: Optional[int]) -> None:
    if size is not None and size > settings.MAX_UPLOAD_BYTES:
        raise PayloadTooLargeError(
            details=f"Maximum upload size is {settings.MAX_UPLOAD_BYTES // (1024 * 1024)} MB"
        )


async def read_upload(file) -> bytes:
    """
    Read an UploadFile into memory in chunks.

    The declared size is checked first and the running total after every
    chunk, so an oversized body is refused before it is held in memory.
    """
    ensure_upload_size(getattr(file, "size", None))
    chunks = []
    total = 0
    while True:
        chunk = await file.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        ensure_upload_size(total)
        chunks.append(chunk)
    return b"".join(chunks)


def _as_uuid(value: Any, label: str) -> UUID:
    try:
        return value if isinstance(value, UUID) else UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {label}")


class IntakeService:
    """Service for client submissions."""

    def __init__(self, db: AsyncSession, credentials: Optional[DriveCredentialsService] = None):
        self.db = db
        self.credentials = credentials or DriveCredentialsService(db)
        self.activity = ActivityService(db)

    async def _open_project(self, project_id: Any) -> Project:
        """Resolve the target project and refuse intake on closed links"""
        if not project_id:
            raise ValidationError("Project ID is required")
        result = await self.db.execute(select(Project).where(Project.id == _as_uuid(project_id, "project ID")))
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project not found")

        closed = link_closed_state(project)
        if closed:
            raise ForbiddenError(PORTAL_MESSAGES[closed])
        return project

    async def _get_field(self, project: Project, form_field_id: Any) -> Optional[FormField]:
        if not form_field_id:
            return None
        result = await self.db.execute(
            select(FormField).where(
                FormField.id == _as_uuid(form_field_id, "form field ID"),
                FormField.project_id == project.id,
            )
        )
        field = result.scalar_one_or_none()
        if field is None:
            raise ValidationError("Form field does not belong to this project")
        return field

    async def _project_folder(self, drive: GoogleDriveClient, project: Project) -> str:
        """Drive folder for the project, created under the AssetDrop root on first use"""
        if project.google_drive_folder_id:
            return project.google_drive_folder_id

        root_id = await drive.ensure_folder(settings.DRIVE_ROOT_FOLDER_NAME)
        folder_id = await drive.ensure_folder(project.name, root_id)
        project.google_drive_folder_id = folder_id
        await self.db.commit()
        return folder_id

    async def upload_file(
        self,
        project_id: Any,
        file_name: Optional[str],
        content: Optional[bytes],
        mime_type: Optional[str],
        form_field_id: Any = None,
        client_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Store one uploaded file in the owner's Drive and record it as a pending asset.

        No asset row is written unless the Drive upload succeeded.
        """
        if content is None or not file_name:
            raise ValidationError("No file provided")
        ensure_upload_size(len(content))

        project = await self._open_project(project_id)
        field = await self._get_field(project, form_field_id)
        mime_type = mime_type or "application/octet-stream"

        drive = await self.credentials.get_drive_client(project.user_id)
        async with drive:
            folder_id = await self._project_folder(drive, project)
            if field is not None and field.storage_subfolder:
                target_id = await drive.ensure_folder(field.storage_subfolder, folder_id)
            else:
                target_id = folder_id

            try:
                uploaded = await drive.upload_file(file_name, content, mime_type, target_id)
            except DriveFileNotFoundError:
                if target_id != folder_id:
                    raise
                # Cached project folder was removed from Drive
                logger.warning("Project folder missing in Drive, recreating",
                               action="project_folder_recreated", project_id=project.id)
                project.google_drive_folder_id = None
                target_id = await self._project_folder(drive, project)
                uploaded = await drive.upload_file(file_name, content, mime_type, target_id)

        asset = Asset(
            project_id=project.id,
            form_field_id=field.id if field is not None else None,
            file_name=file_name,
            file_type=mime_type,
            file_size=uploaded.size or len(content),
            google_drive_file_id=uploaded.id,
            status=AssetStatus.PENDING,
            uploaded_by=CLIENT_UPLOADER,
            client_email=client_email or None,
        )
        self.db.add(asset)
        await self.db.commit()
        await self.db.refresh(asset)

        logger.info(f"Uploaded {file_name}", action="asset_uploaded",
                    project_id=project.id, asset_id=asset.id)
        await self.activity.log(project.id, ActivityAction.ASSET_UPLOADED, {
            "asset_id": str(asset.id),
            "file_name": file_name,
            "file_type": mime_type,
            "file_size": len(content),
        })

        return {
            "success": True,
            "asset": {
                "id": str(asset.id),
                "file_name": asset.file_name,
                "file_type": asset.file_type,
                "file_size": asset.file_size,
                "google_drive_file_id": asset.google_drive_file_id,
                "created_at": asset.created_at.isoformat() if asset.created_at else None,
            },
        }

    async def submit_text_responses(self, project_id: Any, responses: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
        """
        Record form text responses as pending assets.

        Each response carries `metadata` ({field_type, content, ...}) and
        optionally form_field_id, file_name and client_email.
        """
        if not project_id:
            raise ValidationError("Project ID is required")
        if not responses:
            raise ValidationError("No text responses provided")

        project = await self._open_project(project_id)

        assets = []
        for response in responses:
            try:
                metadata = parse_asset_metadata(response.get("metadata") or {})
            except PydanticValidationError as e:
                raise ValidationError("Invalid text response", details=str(e.errors()[0].get("msg")))

            field = await self._get_field(project, response.get("form_field_id"))
            if field is not None and field.field_type not in FieldType.TEXT_TYPES:
                raise ValidationError(f"{field.label} does not accept text responses")

            default_name = f"{field.label}.txt" if field is not None else f"{metadata.field_type}.txt"
            asset = Asset(
                project_id=project.id,
                form_field_id=field.id if field is not None else None,
                file_name=response.get("file_name") or default_name,
                file_type=response.get("file_type") or "text/plain",
                file_size=len(metadata.content.encode("utf-8")),
                google_drive_file_id=TEXT_RESPONSE_SENTINEL,
                status=AssetStatus.PENDING,
                uploaded_by=CLIENT_UPLOADER,
                asset_metadata=metadata.model_dump(exclude_none=True),
                client_email=response.get("client_email") or None,
            )
            self.db.add(asset)
            assets.append(asset)

        await self.db.commit()
        for asset in assets:
            await self.db.refresh(asset)

        await self.activity.log(project.id, ActivityAction.ASSET_UPLOADED, {
            "text_responses_count": len(assets),
            "field_types": [a.asset_metadata.get("field_type") for a in assets],
        })

        return {"success": True, "count": len(assets), "assets": [a.to_dict() for a in assets]}
