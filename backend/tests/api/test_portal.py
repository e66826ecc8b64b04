"""
Client Portal API Tests
"""

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.api


class TestPortalAccess:

    @pytest.mark.asyncio
    async def test_unknown_link(self, client: AsyncClient):
        response = await client.get("/api/portal/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"] == "This link does not exist"

    @pytest.mark.asyncio
    async def test_open_link_shows_public_form(self, client: AsyncClient, make_project, make_field):
        project = await make_project(name="Brand Refresh")
        await make_field(project, label="Logo", internal_note="owner only", storage_subfolder="Logos")

        response = await client.get(f"/api/portal/{project.shareable_link_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "unlocked"
        assert data["project"]["name"] == "Brand Refresh"
        assert data["driveConnected"] is False
        field = data["fields"][0]
        assert field["label"] == "Logo"
        assert "internal_note" not in field
        assert "storage_subfolder" not in field

    @pytest.mark.asyncio
    async def test_locked_link_hides_form(self, client: AsyncClient, make_project):
        project = await make_project(link_password="s3cret")

        response = await client.get(f"/api/portal/{project.shareable_link_id}")

        data = response.json()
        assert data["state"] == "locked"
        assert "project" not in data
        assert "fields" not in data

    @pytest.mark.asyncio
    async def test_password_header_unlocks(self, client: AsyncClient, make_project):
        project = await make_project(link_password="s3cret")

        response = await client.get(f"/api/portal/{project.shareable_link_id}", headers={"X-Link-Password": "s3cret"})

        assert response.json()["state"] == "unlocked"

    @pytest.mark.asyncio
    async def test_unlock(self, client: AsyncClient, make_project):
        project = await make_project(link_password="s3cret")
        url = f"/api/portal/{project.shareable_link_id}/unlock"

        wrong = await client.post(url, json={"password": "S3CRET"})
        right = await client.post(url, json={"password": "s3cret"})

        assert wrong.status_code == 401
        assert wrong.json()["error"] == "Incorrect password"
        assert right.status_code == 200
        assert right.json()["state"] == "unlocked"

    @pytest.mark.asyncio
    async def test_expired_link_ignores_password(self, client: AsyncClient, make_project):
        project = await make_project(link_password="s3cret", link_expiry=datetime.utcnow() - timedelta(hours=1))

        response = await client.get(f"/api/portal/{project.shareable_link_id}", headers={"X-Link-Password": "s3cret"})

        assert response.json() == {"state": "expired", "message": "This link has expired"}

    @pytest.mark.asyncio
    async def test_disabled_link(self, client: AsyncClient, make_project):
        project = await make_project(link_disabled=True)

        response = await client.get(f"/api/portal/{project.shareable_link_id}")

        assert response.json()["state"] == "disabled"


class TestSubmissionStatus:

    @pytest.mark.asyncio
    async def test_client_history(self, client: AsyncClient, make_project, make_asset):
        project = await make_project()
        await make_asset(project, client_email="client@example.com", status="rejected",
                         rejection_reason="Too small", file_name="banner.jpg")
        await make_asset(project, client_email="someone-else@example.com")

        response = await client.get(f"/api/portal/{project.shareable_link_id}/status",
                                    params={"email": "client@example.com"})

        data = response.json()
        assert data["state"] == "submitted"
        assert len(data["submissions"]) == 1
        assert data["submissions"][0]["file_name"] == "banner.jpg"
        assert data["submissions"][0]["rejection_reason"] == "Too small"
