"""
Project Service Unit Tests
"""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.database import Base
from core.exceptions import NotFoundError, ValidationError
from models import ActivityLog, Asset, FormField, Profile, Project
from services.project_service import (
    LINK_ID_LENGTH,
    ProjectService,
    generate_link_id,
    normalize_field_type,
)

pytestmark = pytest.mark.unit


@pytest_asyncio.fixture
async def fk_session():
    """SQLite session with foreign key enforcement, matching PostgreSQL"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_sessionmaker(engine, expire_on_commit=False)() as session:
        yield session

    await engine.dispose()


class TestHelpers:

    def test_link_ids_are_url_safe_and_distinct(self):
        ids = {generate_link_id() for _ in range(200)}

        assert len(ids) == 200
        assert all(len(i) == LINK_ID_LENGTH for i in ids)
        assert all(c.isalnum() or c in "_-" for i in ids for c in i)

    @pytest.mark.parametrize("raw, expected", [
        ("file-upload", "file_upload"),
        ("IMAGE_GALLERY", "image_gallery"),
        ("section-header", "section_header"),
    ])
    def test_normalize_field_type(self, raw, expected):
        assert normalize_field_type(raw) == expected

    def test_unknown_field_type(self):
        with pytest.raises(ValidationError):
            normalize_field_type("signature-pad")


class TestProjects:

    @pytest.mark.asyncio
    async def test_create_logs_activity(self, db_session, owner):
        project = await ProjectService(db_session).create_project(owner.id, "Brand Refresh", client_name="Acme")

        assert len(project.shareable_link_id) == LINK_ID_LENGTH
        assert project.status == "pending"
        activity = (await db_session.execute(select(ActivityLog))).scalars().all()
        assert activity[0].action_type == "project_created"

    @pytest.mark.asyncio
    async def test_list_with_stats(self, db_session, owner, make_project, make_asset):
        project = await make_project()
        await make_asset(project, status="approved")
        await make_asset(project, status="pending")
        await make_asset(project, status="rejected")
        empty = await make_project()

        items = await ProjectService(db_session).list_projects_with_stats(owner.id)

        stats = {i["id"]: i for i in items}
        assert stats[str(project.id)]["total_assets"] == 3
        assert stats[str(project.id)]["approved_assets"] == 1
        assert stats[str(project.id)]["completion_percentage"] == 33
        assert stats[str(empty.id)]["completion_percentage"] == 0

    @pytest.mark.asyncio
    async def test_update_rejects_link_id(self, db_session, owner, make_project):
        project = await make_project()

        with pytest.raises(ValidationError):
            await ProjectService(db_session).update_project(project, owner.id, {"shareable_link_id": "mine"})

    @pytest.mark.asyncio
    async def test_update_records_changed_fields(self, db_session, owner, make_project):
        project = await make_project()

        await ProjectService(db_session).update_project(
            project, owner.id, {"link_disabled": True, "link_password": ""}
        )

        assert project.link_disabled is True
        assert project.link_password is None
        log = (await db_session.execute(select(ActivityLog))).scalars().one()
        assert log.action_details == {"updated_fields": ["link_disabled", "link_password"]}

    @pytest.mark.asyncio
    async def test_owned_project_checks_owner(self, db_session, make_project):
        project = await make_project()

        with pytest.raises(NotFoundError) as exc_info:
            await ProjectService(db_session).get_owned_project(project.id, uuid4())

        assert exc_info.value.message == "Project not found or access denied"

    @pytest.mark.asyncio
    async def test_delete_removes_rows_and_drive_folder(self, db_session, owner, make_project, make_asset,
                                                        mock_drive_connected):
        project = await make_project(google_drive_folder_id="folder-1")
        await make_asset(project)

        result = await ProjectService(db_session).delete_project(project, owner.id)

        assert result == {"success": True, "deleted_from_drive": True}
        mock_drive_connected.delete_file.assert_awaited_once_with("folder-1")
        assert (await db_session.execute(select(Project))).scalars().all() == []
        assert (await db_session.execute(select(Asset))).scalars().all() == []


class TestFormFields:

    @pytest.mark.asyncio
    async def test_save_replaces_definition_in_order(self, db_session, owner, make_project, make_field):
        project = await make_project()
        kept = await make_field(project, label="Logo")
        await make_field(project, label="Old field")

        saved = await ProjectService(db_session).save_form_fields(project, owner.id, [
            {"field_type": "section-header", "label": "Brand"},
            {"id": str(kept.id), "field_type": "file-upload", "label": "Logo", "is_required": True},
            {"id": "temp-123", "field_type": "code-snippet", "label": "Embed"},
        ])

        assert [f.field_order for f in saved] == [0, 1, 2]
        assert saved[1].id == kept.id
        assert saved[1].field_type == "file_upload"
        rows = (await db_session.execute(select(FormField).where(FormField.project_id == project.id))).scalars().all()
        assert sorted(r.label for r in rows) == ["Brand", "Embed", "Logo"]

    @pytest.mark.asyncio
    async def test_label_required(self, db_session, owner, make_project):
        project = await make_project()

        with pytest.raises(ValidationError):
            await ProjectService(db_session).save_form_fields(project, owner.id, [{"field_type": "text_input", "label": " "}])

    @pytest.mark.asyncio
    async def test_assets_stay_linked_to_kept_fields(self, fk_session):
        owner = Profile(email="fk-owner@example.com")
        fk_session.add(owner)
        await fk_session.flush()
        project = Project(user_id=owner.id, name="Rebrand", shareable_link_id=generate_link_id())
        fk_session.add(project)
        await fk_session.flush()
        logo = FormField(project_id=project.id, field_type="file_upload", label="Logo", field_order=0)
        old = FormField(project_id=project.id, field_type="text_input", label="Old", field_order=1)
        fk_session.add_all([logo, old])
        await fk_session.flush()
        logo_asset = Asset(project_id=project.id, form_field_id=logo.id, file_name="logo.png",
                           google_drive_file_id="drive-1")
        old_asset = Asset(project_id=project.id, form_field_id=old.id, file_name="notes.txt",
                          google_drive_file_id="text-response")
        fk_session.add_all([logo_asset, old_asset])
        await fk_session.commit()

        saved = await ProjectService(fk_session).save_form_fields(project, owner.id, [
            {"field_type": "text_input", "label": "Tagline"},
            {"id": str(logo.id), "field_type": "file_upload", "label": "Primary logo"},
        ])

        await fk_session.refresh(logo_asset)
        await fk_session.refresh(old_asset)
        assert logo_asset.form_field_id == logo.id
        assert old_asset.form_field_id is None
        assert [(f.label, f.field_order) for f in saved] == [("Tagline", 0), ("Primary logo", 1)]
        assert saved[1].id == logo.id

    @pytest.mark.asyncio
    async def test_foreign_field_id_is_not_reused(self, db_session, owner, make_project, make_field):
        project = await make_project()
        other = await make_project()
        foreign = await make_field(other, label="Theirs")

        saved = await ProjectService(db_session).save_form_fields(project, owner.id, [
            {"id": str(foreign.id), "field_type": "text_input", "label": "Mine"},
        ])

        assert saved[0].id != foreign.id
        assert saved[0].project_id == project.id
        await db_session.refresh(foreign)
        assert foreign.label == "Theirs"


class TestAssets:

    @pytest.mark.asyncio
    async def test_grouped_by_field(self, db_session, make_project, make_field, make_asset):
        project = await make_project()
        field = await make_field(project)
        await make_asset(project, form_field_id=field.id)
        await make_asset(project, form_field_id=field.id)
        await make_asset(project)

        data = await ProjectService(db_session).get_assets_grouped(project)

        assert data["assets"]["total"] == 3
        assert len(data["assets"]["grouped"][str(field.id)]) == 2
        assert len(data["assets"]["ungrouped"]) == 1

    @pytest.mark.asyncio
    async def test_download_url(self, db_session, owner, make_project, make_asset, mock_drive_connected):
        project = await make_project()
        asset = await make_asset(project, google_drive_file_id="drive-1", file_name="logo.png")

        result = await ProjectService(db_session).get_download(project, owner.id, "drive-1")

        assert result["success"] is True
        assert result["file_name"] == "logo.png"
        assert result["downloadUrl"].startswith("https://drive.google.com/")
        log = (await db_session.execute(select(ActivityLog))).scalars().one()
        assert log.action_type == "asset_downloaded"
        assert log.action_details["asset_id"] == str(asset.id)

    @pytest.mark.asyncio
    async def test_download_unknown_file(self, db_session, owner, make_project, mock_drive_connected):
        project = await make_project()

        with pytest.raises(NotFoundError) as exc_info:
            await ProjectService(db_session).get_download(project, owner.id, "not-in-project")

        assert exc_info.value.message == "File not found in this project"

    @pytest.mark.asyncio
    async def test_download_needs_file_id(self, db_session, owner, make_project):
        project = await make_project()

        with pytest.raises(ValidationError):
            await ProjectService(db_session).get_download(project, owner.id, "")
