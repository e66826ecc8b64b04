"""
AssetDrop Project Models

Projects, their collection forms, the assets clients submit against them and
the per-project activity trail.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Column,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    BigInteger,
    JSON,
    Index,
    Uuid,
)

from core.database import Base


# Drive id stored on assets created from form text responses
TEXT_RESPONSE_SENTINEL = "text-response"


class ProjectStatus:
    PENDING = "pending"
    IN_REVIEW = "in_review"
    COMPLETE = "complete"
    ARCHIVED = "archived"

    ALL = (PENDING, IN_REVIEW, COMPLETE, ARCHIVED)


class AssetStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class FieldType:
    FILE_UPLOAD = "file_upload"
    TEXT_INPUT = "text_input"
    URL_FIELD = "url_field"
    IMAGE_GALLERY = "image_gallery"
    AUDIO_VIDEO = "audio_video"
    CODE_SNIPPET = "code_snippet"
    SECTION_HEADER = "section_header"

    ALL = (FILE_UPLOAD, TEXT_INPUT, URL_FIELD, IMAGE_GALLERY, AUDIO_VIDEO, CODE_SNIPPET, SECTION_HEADER)
    FILE_TYPES = (FILE_UPLOAD, IMAGE_GALLERY, AUDIO_VIDEO)
    TEXT_TYPES = (TEXT_INPUT, URL_FIELD, CODE_SNIPPET)


class Project(Base):
    """
    A collection project owned by a single user.

    The shareable link id is generated once at creation and never edited.
    """
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    client_name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), default=ProjectStatus.PENDING, nullable=False)

    # Client link
    shareable_link_id = Column(String(32), unique=True, nullable=False, index=True)
    link_password = Column(String(255), nullable=True)
    link_expiry = Column(DateTime, nullable=True)
    link_disabled = Column(Boolean, default=False, nullable=False)

    # Drive folder for this project, cached after first upload
    google_drive_folder_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_projects_user_created", "user_id", "created_at"),
    )

    def to_dict(self, include_secrets: bool = True) -> dict:
        data = {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "name": self.name,
            "client_name": self.client_name,
            "description": self.description,
            "status": self.status,
            "shareable_link_id": self.shareable_link_id,
            "link_expiry": self.link_expiry.isoformat() if self.link_expiry else None,
            "link_disabled": self.link_disabled,
            "has_password": bool(self.link_password),
            "google_drive_folder_id": self.google_drive_folder_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_secrets:
            data["link_password"] = self.link_password
        return data


class FormField(Base):
    """A single field of a project's collection form."""
    __tablename__ = "form_fields"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    field_type = Column(String(30), nullable=False)
    label = Column(String(255), nullable=False)
    help_text = Column(Text, nullable=True)
    internal_note = Column(Text, nullable=True)  # Owner-only
    is_required = Column(Boolean, default=False, nullable=False)
    field_order = Column(Integer, default=0, nullable=False)
    storage_subfolder = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self, public: bool = False) -> dict:
        data = {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "field_type": self.field_type,
            "label": self.label,
            "help_text": self.help_text,
            "is_required": self.is_required,
            "field_order": self.field_order,
        }
        if not public:
            data["internal_note"] = self.internal_note
            data["storage_subfolder"] = self.storage_subfolder
        return data


class Asset(Base):
    """
    A submitted file or text response.

    File assets point at a Drive file; text responses carry the
    TEXT_RESPONSE_SENTINEL drive id and keep their content in metadata.
    """
    __tablename__ = "assets"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    form_field_id = Column(Uuid, ForeignKey("form_fields.id", ondelete="SET NULL"), nullable=True)

    file_name = Column(String(500), nullable=False)
    file_type = Column(String(255), nullable=True)
    file_size = Column(BigInteger, nullable=True)
    google_drive_file_id = Column(String(255), nullable=False)

    status = Column(String(20), default=AssetStatus.PENDING, nullable=False, index=True)
    uploaded_by = Column(String(50), default="client")
    # 'metadata' is reserved by the declarative base
    asset_metadata = Column("metadata", JSON, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    approval_remark = Column(Text, nullable=True)
    client_email = Column(String(255), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_assets_project_email", "project_id", "client_email"),
    )

    @property
    def is_text_response(self) -> bool:
        return self.google_drive_file_id == TEXT_RESPONSE_SENTINEL

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "form_field_id": str(self.form_field_id) if self.form_field_id else None,
            "file_name": self.file_name,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "google_drive_file_id": self.google_drive_file_id,
            "status": self.status,
            "uploaded_by": self.uploaded_by,
            "metadata": self.asset_metadata,
            "rejection_reason": self.rejection_reason,
            "approval_remark": self.approval_remark,
            "client_email": self.client_email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ActivityLog(Base):
    """Append-only project activity trail."""
    __tablename__ = "activity_log"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=True)
    action_type = Column(String(50), nullable=False)
    action_details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "user_id": str(self.user_id) if self.user_id else None,
            "action_type": self.action_type,
            "action_details": self.action_details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
