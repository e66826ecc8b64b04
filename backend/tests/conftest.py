"""
Pytest Configuration and Fixtures

This file contains shared fixtures and configuration for all tests.
"""

import os
from datetime import datetime
from typing import AsyncGenerator
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio
from faker import Faker
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before importing app
os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-assetdrop-tests"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["APP_URL"] = "https://assetdrop.test"
os.environ["GOOGLE_CLIENT_ID"] = "test-client.apps.googleusercontent.com"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ.pop("CRON_SECRET", None)
os.environ.pop("SENDGRID_API_KEY", None)

from main import app
from core.database import Base, get_db
from models import Asset, FormField, Profile, Project, TEXT_RESPONSE_SENTINEL
from services.google_drive_service import DriveFile
from services.review_batcher_service import review_batcher

fake = Faker()


# ===========================================
# Database Fixtures
# ===========================================

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client with overridden database dependency.
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_review_batches():
    """The batcher is a process-wide singleton; start each test empty"""
    review_batcher._batches.clear()
    yield
    review_batcher._batches.clear()


# ===========================================
# Authentication Fixtures
# ===========================================

@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> Profile:
    profile = Profile(email="owner@example.com", full_name="Studio Owner", google_subject="google-sub-1")
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest.fixture
def auth_headers(owner: Profile) -> dict:
    """
    Create authentication headers with a session JWT for the owner.
    """
    from core.security import create_access_token

    token = create_access_token(data={"sub": str(owner.id), "email": owner.email, "name": owner.full_name})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers() -> dict:
    """Session for a different owner"""
    from core.security import create_access_token

    token = create_access_token(data={"sub": str(uuid4()), "email": fake.email()})
    return {"Authorization": f"Bearer {token}"}


# ===========================================
# Factory Fixtures
# ===========================================

@pytest.fixture
def make_project(db_session: AsyncSession, owner: Profile):
    """
    Factory fixture to persist a project for the owner.
    """
    async def _make_project(**overrides) -> Project:
        data = {
            "user_id": owner.id,
            "name": fake.catch_phrase(),
            "client_name": fake.company(),
            "shareable_link_id": uuid4().hex[:12],
            "link_disabled": False,
        }
        data.update(overrides)
        project = Project(**data)
        db_session.add(project)
        await db_session.commit()
        return project

    return _make_project


@pytest.fixture
def make_field(db_session: AsyncSession):
    async def _make_field(project: Project, field_type: str = "file_upload", **overrides) -> FormField:
        data = {
            "project_id": project.id,
            "field_type": field_type,
            "label": fake.word().title(),
            "is_required": False,
            "field_order": 0,
        }
        data.update(overrides)
        field = FormField(**data)
        db_session.add(field)
        await db_session.commit()
        return field

    return _make_field


@pytest.fixture
def make_asset(db_session: AsyncSession):
    async def _make_asset(project: Project, **overrides) -> Asset:
        data = {
            "project_id": project.id,
            "file_name": fake.file_name(extension="png"),
            "file_type": "image/png",
            "file_size": 1024,
            "google_drive_file_id": uuid4().hex,
            "status": "pending",
            "client_email": "client@example.com",
            "created_at": datetime.utcnow(),
        }
        data.update(overrides)
        asset = Asset(**data)
        db_session.add(asset)
        await db_session.commit()
        return asset

    return _make_asset


@pytest.fixture
def make_text_asset(make_asset):
    async def _make_text_asset(project: Project, content: str = "Our mission is...", **overrides) -> Asset:
        overrides.setdefault("file_name", "Mission.txt")
        overrides.setdefault("file_type", "text/plain")
        return await make_asset(
            project,
            google_drive_file_id=TEXT_RESPONSE_SENTINEL,
            asset_metadata={"field_type": "text_input", "content": content},
            **overrides,
        )

    return _make_text_asset


# ===========================================
# Mock Fixtures
# ===========================================

class FakeDrive:
    """Stand-in for GoogleDriveClient used as `async with drive:`"""

    def __init__(self):
        self.ensure_folder = AsyncMock(side_effect=lambda name, parent_id=None: f"folder-{name}")
        self.upload_file = AsyncMock(
            side_effect=lambda name, content, mime_type, folder_id: DriveFile(
                id=f"drive-{uuid4().hex[:8]}", name=name, mime_type=mime_type, size=len(content)
            )
        )
        self.delete_file = AsyncMock(return_value=None)
        self.get_download_url = AsyncMock(return_value="https://drive.google.com/uc?id=abc&export=download")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None


@pytest.fixture
def fake_drive():
    return FakeDrive()


@pytest.fixture
def mock_drive_connected(mocker, fake_drive):
    """
    Owner has Drive connected; every Drive client is the fake.
    """
    mocker.patch(
        "services.drive_credentials_service.DriveCredentialsService.get_drive_client",
        AsyncMock(return_value=fake_drive),
    )
    mocker.patch(
        "services.drive_credentials_service.DriveCredentialsService.is_connected",
        AsyncMock(return_value=True),
    )
    return fake_drive


@pytest.fixture
def mock_mailer():
    """
    Configured SendGrid stand-in.
    """
    mailer = AsyncMock()
    mailer.is_configured = True
    mailer.from_email = "studio@example.com"
    mailer.send_email = AsyncMock(return_value={"success": True, "message_id": "msg-123"})
    return mailer


# ===========================================
# Utility Fixtures
# ===========================================

@pytest.fixture
def sample_image():
    """
    1x1 PNG for upload tests.
    """
    return (
        b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01'
        b'\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\nIDATx\x9cc\x00'
        b'\x01\x00\x00\x05\x00\x01\r\n-\xb4\x00\x00\x00\x00IEND\xaeB`\x82'
    )
