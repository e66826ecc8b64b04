"""
Google Drive Client Unit Tests
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from core.exceptions import DriveAPIError, DriveFileNotFoundError, TokenRevokedError
from services.google_drive_service import DriveFile, GoogleDriveClient, _quote

pytestmark = pytest.mark.unit


class TestDriveClientRefresh:
    """401 handling: refresh once, retry once."""

    @pytest.fixture
    def oauth(self):
        oauth = AsyncMock()
        oauth.refresh_access_token = AsyncMock(return_value={
            "access_token": "fresh-token",
            "refresh_token": "refresh-1",
            "expires_at": None,
        })
        return oauth

    @pytest.mark.asyncio
    async def test_refreshes_and_retries_once_on_401(self, oauth, mocker):
        on_tokens = AsyncMock()
        drive = GoogleDriveClient("stale-token", "refresh-1", owner_id="owner", on_tokens=on_tokens, oauth=oauth)
        send = mocker.patch.object(drive, "_send", AsyncMock(side_effect=[(401, {}), (200, {"files": [{"id": "f1"}]})]))

        folder_id = await drive.find_folder("AssetDrop")

        assert folder_id == "f1"
        assert send.await_count == 2
        assert drive.access_token == "fresh-token"
        oauth.refresh_access_token.assert_awaited_once_with("refresh-1")
        on_tokens.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_second_401_is_revocation(self, oauth, mocker):
        drive = GoogleDriveClient("stale-token", "refresh-1", owner_id="owner", oauth=oauth)
        mocker.patch.object(drive, "_send", AsyncMock(return_value=(401, {})))

        with pytest.raises(TokenRevokedError):
            await drive.delete_file("abc")

        assert oauth.refresh_access_token.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_grant_calls_on_revoked(self, oauth, mocker):
        oauth.refresh_access_token = AsyncMock(side_effect=TokenRevokedError())
        on_revoked = AsyncMock()
        drive = GoogleDriveClient("stale-token", "refresh-1", owner_id="owner", on_revoked=on_revoked, oauth=oauth)
        mocker.patch.object(drive, "_send", AsyncMock(return_value=(401, {})))

        with pytest.raises(TokenRevokedError):
            await drive.get_file("abc")

        on_revoked.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_refresh_token_means_no_retry(self, oauth, mocker):
        drive = GoogleDriveClient("stale-token", None, owner_id="owner", oauth=oauth)
        send = mocker.patch.object(drive, "_send", AsyncMock(return_value=(401, {})))

        with pytest.raises(TokenRevokedError):
            await drive.get_file("abc")

        assert send.await_count == 1
        oauth.refresh_access_token.assert_not_awaited()


class TestDriveClientErrors:

    @pytest.mark.asyncio
    async def test_404_is_file_not_found(self, mocker):
        drive = GoogleDriveClient("token", owner_id="owner")
        mocker.patch.object(drive, "_send", AsyncMock(return_value=(404, {"error": {"message": "File not found"}})))

        with pytest.raises(DriveFileNotFoundError) as exc_info:
            await drive.delete_file("missing")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_other_errors(self, mocker):
        drive = GoogleDriveClient("token", owner_id="owner")
        mocker.patch.object(drive, "_send", AsyncMock(return_value=(403, {"error": {"message": "quota exceeded"}})))

        with pytest.raises(DriveAPIError) as exc_info:
            await drive.create_folder("AssetDrop")

        assert exc_info.value.details == "quota exceeded"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("connection reset"), asyncio.TimeoutError()])
    async def test_network_failures_are_drive_errors(self, error, mocker):
        drive = GoogleDriveClient("token", owner_id="owner")
        session = MagicMock()
        session.request = MagicMock(side_effect=error)
        mocker.patch.object(drive, "_get_session", AsyncMock(return_value=session))

        with pytest.raises(DriveAPIError) as exc_info:
            await drive.delete_file("abc")

        assert exc_info.value.message == "Could not reach Google Drive"


class TestDriveFolders:

    @pytest.mark.asyncio
    async def test_ensure_folder_reuses_existing(self, mocker):
        drive = GoogleDriveClient("token", owner_id="owner-a")
        mocker.patch.object(drive, "find_folder", AsyncMock(return_value="existing"))
        create = mocker.patch.object(drive, "create_folder", AsyncMock())

        assert await drive.ensure_folder("AssetDrop") == "existing"
        create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ensure_folder_creates_under_parent(self, mocker):
        drive = GoogleDriveClient("token", owner_id="owner-b")
        find = mocker.patch.object(drive, "find_folder", AsyncMock(return_value=None))
        create = mocker.patch.object(drive, "create_folder", AsyncMock(return_value="new-id"))

        assert await drive.ensure_folder("Brand Refresh", "root-id") == "new-id"
        find.assert_awaited_once_with("Brand Refresh", "root-id")
        create.assert_awaited_once_with("Brand Refresh", "root-id")

    @pytest.mark.asyncio
    async def test_find_folder_query_escapes_quotes(self, mocker):
        drive = GoogleDriveClient("token", owner_id="owner")
        send = mocker.patch.object(drive, "_send", AsyncMock(return_value=(200, {"files": []})))

        assert await drive.find_folder("Bob's Files", "parent") is None

        params = send.await_args.kwargs["params"]
        assert "name='Bob\\'s Files'" in params["q"]
        assert "'parent' in parents" in params["q"]
        assert "trashed=false" in params["q"]

    def test_quote(self):
        assert _quote("a\\b'c") == "a\\\\b\\'c"


class TestDriveFiles:

    @pytest.mark.asyncio
    async def test_upload_returns_drive_file(self, mocker):
        drive = GoogleDriveClient("token", owner_id="owner")
        send = mocker.patch.object(drive, "_send", AsyncMock(return_value=(200, {
            "id": "file-1", "name": "logo.png", "mimeType": "image/png", "size": "2048",
            "webViewLink": "https://drive.google.com/file/d/file-1/view",
        })))

        uploaded = await drive.upload_file("logo.png", b"png", "image/png", "folder-1")

        assert uploaded == DriveFile(
            id="file-1", name="logo.png", mime_type="image/png", size=2048,
            web_view_link="https://drive.google.com/file/d/file-1/view",
        )
        metadata, content, mime_type = send.await_args.kwargs["upload"]
        assert metadata["parents"] == ["folder-1"]
        assert content == b"png"

    @pytest.mark.asyncio
    async def test_download_url_prefers_content_link(self, mocker):
        drive = GoogleDriveClient("token", owner_id="owner")
        mocker.patch.object(drive, "_send", AsyncMock(return_value=(200, {
            "id": "f", "name": "x", "webViewLink": "view", "webContentLink": "download",
        })))

        assert await drive.get_download_url("f") == "download"
