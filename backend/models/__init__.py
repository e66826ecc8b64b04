"""
AssetDrop - Database Models
"""
from .auth_models import Profile, UserToken, HealthCheckLog
from .project_models import (
    Project,
    FormField,
    Asset,
    ActivityLog,
    ProjectStatus,
    AssetStatus,
    FieldType,
    TEXT_RESPONSE_SENTINEL,
)

__all__ = [
    "Profile",
    "UserToken",
    "HealthCheckLog",
    "Project",
    "FormField",
    "Asset",
    "ActivityLog",
    "ProjectStatus",
    "AssetStatus",
    "FieldType",
    "TEXT_RESPONSE_SENTINEL",
]
