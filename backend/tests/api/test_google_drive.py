"""
Google Drive API Tests
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient

from core.config import settings
from core.exceptions import DriveFileNotFoundError, TokenRevokedError
from services.drive_credentials_service import DriveCredentialsService
from services.google_oauth_service import google_oauth_service

pytestmark = pytest.mark.api


def state_from(url: str) -> str:
    return parse_qs(urlparse(url).query)["state"][0]


class TestDriveConnection:

    @pytest.mark.asyncio
    async def test_auth_url_binds_state_to_owner(self, client: AsyncClient, owner, auth_headers):
        response = await client.get("/api/google-drive/auth-url", headers=auth_headers)

        url = response.json()["url"]
        assert "drive.file" in parse_qs(urlparse(url).query)["scope"][0]
        state = google_oauth_service.validate_state(state_from(url), "drive")
        assert state["user_id"] == str(owner.id)

    @pytest.mark.asyncio
    async def test_callback_stores_tokens(self, client: AsyncClient, db_session, owner, auth_headers, mocker):
        url = (await client.get("/api/google-drive/auth-url", headers=auth_headers)).json()["url"]
        mocker.patch.object(google_oauth_service, "exchange_code", AsyncMock(return_value={
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "expires_at": datetime.utcnow() + timedelta(hours=1),
        }))

        response = await client.get("/api/google-drive/callback", params={"code": "c", "state": state_from(url)})

        assert response.status_code == 307
        assert response.headers["location"] == f"{settings.APP_URL}/dashboard?drive_connected=true"
        assert await DriveCredentialsService(db_session).is_connected(owner.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params, reason", [
        ({"error": "access_denied"}, "error=access_denied"),
        ({"state": "x"}, "error=missing_code"),
        ({"code": "c", "state": "forged"}, "error=auth_required"),
    ])
    async def test_callback_errors_redirect(self, client: AsyncClient, params, reason):
        response = await client.get("/api/google-drive/callback", params=params)

        assert response.status_code == 307
        assert response.headers["location"].endswith(f"/dashboard?{reason}")

    @pytest.mark.asyncio
    async def test_status_and_disconnect(self, client: AsyncClient, db_session, owner, auth_headers):
        await DriveCredentialsService(db_session).save_tokens(owner.id, "a", "r", datetime(2030, 1, 1))

        status = await client.get("/api/google-drive/status", headers=auth_headers)
        disconnected = await client.delete("/api/google-drive/disconnect", headers=auth_headers)
        again = await client.delete("/api/google-drive/disconnect", headers=auth_headers)

        assert status.json() == {"connected": True, "token_expiry": "2030-01-01T00:00:00Z"}
        assert disconnected.json() == {"success": True}
        assert again.status_code == 404


class TestRefreshToken:

    @pytest.mark.asyncio
    async def test_not_connected(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/google-drive/refresh-token", headers=auth_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_revoked_grant_requires_reconnect(self, client: AsyncClient, db_session, owner, auth_headers, mocker):
        await DriveCredentialsService(db_session).save_tokens(owner.id, "a", "r", datetime.utcnow())
        mocker.patch.object(google_oauth_service, "refresh_access_token", AsyncMock(side_effect=TokenRevokedError()))

        response = await client.post("/api/google-drive/refresh-token", headers=auth_headers)

        assert response.status_code == 401
        assert response.json()["error"] == "token_revoked"
        assert response.json()["requiresReconnect"] is True
        assert not await DriveCredentialsService(db_session).is_connected(owner.id)

    @pytest.mark.asyncio
    async def test_refresh(self, client: AsyncClient, db_session, owner, auth_headers, mocker):
        await DriveCredentialsService(db_session).save_tokens(owner.id, "a", "r", datetime.utcnow())
        mocker.patch.object(google_oauth_service, "refresh_access_token", AsyncMock(return_value={
            "access_token": "fresh", "refresh_token": "r", "expires_at": datetime(2030, 1, 1, 12, 0),
        }))

        response = await client.post("/api/google-drive/refresh-token", headers=auth_headers)

        assert response.json() == {"access_token": "fresh", "refresh_token": "r", "expires_at": "2030-01-01T12:00:00Z"}


class TestDriveFileDeletion:

    @pytest.mark.asyncio
    async def test_delete_file(self, client: AsyncClient, auth_headers, mock_drive_connected):
        response = await client.request("DELETE", "/api/google-drive/delete-file", headers=auth_headers,
                                        json={"fileId": "f1"})

        assert response.json()["success"] is True
        mock_drive_connected.delete_file.assert_awaited_once_with("f1")

    @pytest.mark.asyncio
    async def test_delete_missing_file(self, client: AsyncClient, auth_headers, mock_drive_connected):
        mock_drive_connected.delete_file.side_effect = DriveFileNotFoundError()

        response = await client.request("DELETE", "/api/google-drive/delete-folder", headers=auth_headers,
                                        json={"folderId": "gone"})

        assert response.status_code == 404
        assert response.json()["error"] == "Folder not found in Google Drive"

    @pytest.mark.asyncio
    async def test_requires_id(self, client: AsyncClient, auth_headers, mock_drive_connected):
        response = await client.request("DELETE", "/api/google-drive/delete-file", headers=auth_headers, json={})

        assert response.status_code == 400
