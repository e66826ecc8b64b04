"""
AssetDrop API Routers
"""
from .auth import router as auth_router
from .google_drive import router as google_drive_router
from .health import router as health_router
from .notifications import router as notifications_router
from .portal import router as portal_router
from .projects import router as projects_router
from .submissions import router as submissions_router

__all__ = [
    "auth_router",
    "google_drive_router",
    "health_router",
    "notifications_router",
    "portal_router",
    "projects_router",
    "submissions_router",
]
