"""
AssetDrop Project Service

Owner-side project management: CRUD, dashboard statistics, form definition,
asset listing and downloads.
"""

import secrets
import string
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, delete, desc, asc
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    AssetDropError,
    DriveNotConnectedError,
    NotFoundError,
    ValidationError,
)
from core.logging import get_logger
from models.project_models import (
    ActivityLog,
    Asset,
    AssetStatus,
    FieldType,
    FormField,
    Project,
    ProjectStatus,
)
from services.activity_service import ActivityAction, ActivityService
from services.drive_credentials_service import DriveCredentialsService

logger = get_logger("assetdrop.services.projects")

LINK_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
LINK_ID_LENGTH = 12

# Fields an owner may change from the settings screen
EDITABLE_PROJECT_FIELDS = (
    "name",
    "client_name",
    "description",
    "status",
    "link_password",
    "link_expiry",
    "link_disabled",
)


def generate_link_id(length: int = LINK_ID_LENGTH) -> str:
    """URL-safe random id for the client link"""
    return "".join(secrets.choice(LINK_ID_ALPHABET) for _ in range(length))


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def normalize_field_type(field_type: str) -> str:
    """Accept builder spellings such as 'file-upload' for 'file_upload'"""
    normalized = field_type.strip().lower().replace("-", "_")
    if normalized not in FieldType.ALL:
        raise ValidationError(f"Unknown field type: {field_type}")
    return normalized


def parse_uuid(value: Any) -> Optional[UUID]:
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class ProjectService:
    """Service for managing projects and their forms."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityService(db)

    # ===========================================
    # Lookups
    # ===========================================

    async def get_project(self, project_id: UUID) -> Optional[Project]:
        result = await self.db.execute(select(Project).where(Project.id == project_id))
        return result.scalar_one_or_none()

    async def get_by_link_id(self, link_id: str) -> Optional[Project]:
        result = await self.db.execute(select(Project).where(Project.shareable_link_id == link_id))
        return result.scalar_one_or_none()

    async def get_owned_project(self, project_id: UUID, user_id: UUID) -> Project:
        """Project owned by the caller, otherwise NotFoundError"""
        result = await self.db.execute(
            select(Project).where(Project.id == project_id, Project.user_id == user_id)
        )
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project not found or access denied")
        return project

    # ===========================================
    # CRUD
    # ===========================================

    async def list_projects_with_stats(self, user_id: UUID) -> List[Dict[str, Any]]:
        """Owner's projects, newest first, with asset completion stats"""
        result = await self.db.execute(
            select(Project).where(Project.user_id == user_id).order_by(desc(Project.created_at))
        )
        projects = list(result.scalars().all())
        if not projects:
            return []

        stats = {project.id: {"total": 0, "approved": 0} for project in projects}
        rows = await self.db.execute(
            select(Asset.project_id, Asset.status).where(Asset.project_id.in_(list(stats.keys())))
        )
        for project_id, status in rows.all():
            stats[project_id]["total"] += 1
            if status == AssetStatus.APPROVED:
                stats[project_id]["approved"] += 1

        items = []
        for project in projects:
            total = stats[project.id]["total"]
            approved = stats[project.id]["approved"]
            data = project.to_dict()
            data.update({
                "total_assets": total,
                "approved_assets": approved,
                "completion_percentage": round(approved / total * 100) if total else 0,
            })
            items.append(data)
        return items

    async def create_project(
        self,
        user_id: UUID,
        name: str,
        client_name: Optional[str] = None,
        description: Optional[str] = None,
        status: str = ProjectStatus.PENDING,
        link_password: Optional[str] = None,
        link_expiry: Optional[datetime] = None,
    ) -> Project:
        if status not in ProjectStatus.ALL:
            raise ValidationError(f"Invalid project status: {status}")

        project = Project(
            user_id=user_id,
            name=name,
            client_name=client_name,
            description=description,
            status=status,
            shareable_link_id=generate_link_id(),
            link_password=link_password or None,
            link_expiry=to_naive_utc(link_expiry),
            link_disabled=False,
        )
        self.db.add(project)
        await self.db.commit()
        await self.db.refresh(project)

        logger.info(f"Created project {project.name}", action="project_created",
                    user_id=user_id, project_id=project.id)
        await self.activity.log(project.id, ActivityAction.PROJECT_CREATED,
                                {"project_name": name}, user_id=user_id)
        return project

    async def update_project(self, project: Project, user_id: UUID, updates: Dict[str, Any]) -> Project:
        """Apply settings changes. The shareable link id is never editable."""
        changed = []
        for key, value in updates.items():
            if key not in EDITABLE_PROJECT_FIELDS:
                raise ValidationError(f"Field cannot be updated: {key}")
            if key == "status" and value not in ProjectStatus.ALL:
                raise ValidationError(f"Invalid project status: {value}")
            if key == "link_expiry":
                value = to_naive_utc(value)
            if key == "link_password" and value == "":
                value = None
            setattr(project, key, value)
            changed.append(key)

        project.updated_at = datetime.utcnow()
        await self.db.commit()
        await self.db.refresh(project)

        await self.activity.log(project.id, ActivityAction.PROJECT_UPDATED,
                                {"updated_fields": changed}, user_id=user_id)
        return project

    async def archive_project(self, project: Project, user_id: UUID) -> Project:
        project.status = ProjectStatus.ARCHIVED
        project.updated_at = datetime.utcnow()
        await self.db.commit()
        await self.activity.log(project.id, ActivityAction.PROJECT_ARCHIVED,
                                {"project_name": project.name}, user_id=user_id)
        return project

    async def delete_project(self, project: Project, user_id: UUID) -> Dict[str, Any]:
        """
        Delete a project with its fields, assets and activity.

        The Drive folder is removed first on a best-effort basis; a Drive
        failure never blocks the database delete.
        """
        deleted_from_drive = False
        if project.google_drive_folder_id:
            try:
                drive = await DriveCredentialsService(self.db).get_drive_client(user_id)
                async with drive:
                    await drive.delete_file(project.google_drive_folder_id)
                deleted_from_drive = True
            except AssetDropError as e:
                logger.warning(f"Could not delete Drive folder for project: {e.message}",
                               action="project_folder_delete_failed", project_id=project.id)

        project_id = project.id
        await self.db.execute(delete(ActivityLog).where(ActivityLog.project_id == project_id))
        await self.db.execute(delete(Asset).where(Asset.project_id == project_id))
        await self.db.execute(delete(FormField).where(FormField.project_id == project_id))
        await self.db.execute(delete(Project).where(Project.id == project_id))
        await self.db.commit()

        logger.info("Deleted project", action="project_deleted", user_id=user_id, project_id=project_id)
        return {"success": True, "deleted_from_drive": deleted_from_drive}

    # ===========================================
    # Form definition
    # ===========================================

    async def get_form_fields(self, project_id: UUID) -> List[FormField]:
        result = await self.db.execute(
            select(FormField).where(FormField.project_id == project_id).order_by(asc(FormField.field_order))
        )
        return list(result.scalars().all())

    async def save_form_fields(self, project: Project, user_id: UUID, fields: List[Dict[str, Any]]) -> List[FormField]:
        """
        Replace the project's form definition with the submitted ordered list.

        Rows whose id comes back are updated in place so assets stay linked to
        them; rows missing from the list are deleted and the rest inserted.
        An incoming id is kept only when it is a valid UUID not used by
        another project.
        """
        existing = {f.id: f for f in await self.get_form_fields(project.id)}

        incoming_ids = {parse_uuid(f.get("id")) for f in fields} - {None} - set(existing)
        taken = set()
        if incoming_ids:
            result = await self.db.execute(select(FormField.id).where(FormField.id.in_(incoming_ids)))
            taken = set(result.scalars().all())

        # Validate everything before any row is touched
        rows = []
        seen_ids = set()
        for index, field in enumerate(fields):
            label = (field.get("label") or "").strip()
            if not label:
                raise ValidationError(f"Field {index + 1} needs a label")

            field_id = parse_uuid(field.get("id"))
            if field_id in seen_ids or field_id in taken:
                field_id = None
            if field_id:
                seen_ids.add(field_id)

            rows.append((field_id, {
                "field_type": normalize_field_type(field.get("field_type") or ""),
                "label": label,
                "help_text": field.get("help_text") or None,
                "internal_note": field.get("internal_note") or None,
                "is_required": bool(field.get("is_required", False)),
                "field_order": index,
                "storage_subfolder": field.get("storage_subfolder") or None,
            }))

        saved = []
        for field_id, values in rows:
            form_field = existing.get(field_id) if field_id else None
            if form_field is None:
                form_field = FormField(project_id=project.id)
                if field_id:
                    form_field.id = field_id
                self.db.add(form_field)
            for key, value in values.items():
                setattr(form_field, key, value)
            saved.append(form_field)

        removed = [field_id for field_id in existing if field_id not in seen_ids]
        if removed:
            await self.db.execute(
                delete(FormField)
                .where(FormField.id.in_(removed))
                .execution_options(synchronize_session=False)
            )
            for field_id in removed:
                self.db.expunge(existing[field_id])

        project.updated_at = datetime.utcnow()
        await self.db.commit()

        await self.activity.log(project.id, ActivityAction.FORM_SAVED,
                                {"field_count": len(saved), "removed_count": len(removed)}, user_id=user_id)
        return saved

    # ===========================================
    # Assets
    # ===========================================

    async def list_assets(self, project_id: UUID, client_email: Optional[str] = None) -> List[Asset]:
        stmt = select(Asset).where(Asset.project_id == project_id)
        if client_email:
            stmt = stmt.where(Asset.client_email == client_email)
        result = await self.db.execute(stmt.order_by(desc(Asset.created_at)))
        return list(result.scalars().all())

    async def get_assets_grouped(self, project: Project) -> Dict[str, Any]:
        """Assets newest first, grouped by form field id"""
        assets = await self.list_assets(project.id)
        grouped: Dict[str, List[dict]] = {}
        ungrouped: List[dict] = []
        for asset in assets:
            if asset.form_field_id:
                grouped.setdefault(str(asset.form_field_id), []).append(asset.to_dict())
            else:
                ungrouped.append(asset.to_dict())

        return {
            "project": {"id": str(project.id), "name": project.name},
            "assets": {"grouped": grouped, "ungrouped": ungrouped, "total": len(assets)},
        }

    async def get_download(self, project: Project, user_id: UUID, file_id: str) -> Dict[str, Any]:
        if not file_id:
            raise ValidationError("File ID is required")

        result = await self.db.execute(
            select(Asset).where(Asset.project_id == project.id, Asset.google_drive_file_id == file_id)
        )
        asset = result.scalars().first()
        if asset is None or asset.is_text_response:
            raise NotFoundError("File not found in this project")

        try:
            drive = await DriveCredentialsService(self.db).get_drive_client(user_id)
        except DriveNotConnectedError:
            raise NotFoundError("Google Drive not connected. Please authorize first.")

        async with drive:
            download_url = await drive.get_download_url(file_id)
        if not download_url:
            raise AssetDropError("Failed to get download URL")

        await self.activity.log(project.id, ActivityAction.ASSET_DOWNLOADED, {
            "asset_id": str(asset.id),
            "file_name": asset.file_name,
            "google_drive_file_id": file_id,
        }, user_id=user_id)

        return {"success": True, "downloadUrl": download_url, "file_name": asset.file_name}
