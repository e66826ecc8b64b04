"""
Google Drive client.
Thin aiohttp wrapper over the Drive v3 REST API used for the owner's
AssetDrop folder tree.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple
import aiohttp

from core.exceptions import DriveAPIError, DriveFileNotFoundError, TokenRevokedError
from core.logging import get_logger

logger = get_logger("assetdrop.services.google_drive")

TokenCallback = Callable[[Dict[str, Any]], Awaitable[None]]

# Folder creation is serialized per owner so concurrent intake requests in this
# process never create the same (name, parent) folder twice.
_folder_locks: Dict[str, asyncio.Lock] = {}


def _folder_lock(owner_key: str) -> asyncio.Lock:
    lock = _folder_locks.get(owner_key)
    if lock is None:
        lock = asyncio.Lock()
        _folder_locks[owner_key] = lock
    return lock


def _quote(value: str) -> str:
    """Escape a literal for a Drive search query"""
    return value.replace("\\", "\\\\").replace("'", "\\'")


@dataclass
class DriveFile:
    """Metadata of an uploaded Drive file"""
    id: str
    name: str
    mime_type: Optional[str] = None
    size: Optional[int] = None
    web_view_link: Optional[str] = None
    web_content_link: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DriveFile":
        size = data.get("size")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=data.get("mimeType"),
            size=int(size) if size is not None else None,
            web_view_link=data.get("webViewLink"),
            web_content_link=data.get("webContentLink"),
        )


class GoogleDriveClient:
    """Drive v3 client bound to one owner's credentials"""

    DRIVE_API = "https://www.googleapis.com/drive/v3"
    UPLOAD_API = "https://www.googleapis.com/upload/drive/v3"
    FOLDER_MIME = "application/vnd.google-apps.folder"
    FILE_FIELDS = "id, name, mimeType, size, webViewLink, webContentLink"

    def __init__(
        self,
        access_token: str,
        refresh_token: Optional[str] = None,
        owner_id: Optional[str] = None,
        on_tokens: Optional[TokenCallback] = None,
        on_revoked: Optional[Callable[[], Awaitable[None]]] = None,
        oauth=None,
    ):
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.owner_id = str(owner_id) if owner_id else access_token[-16:]
        self.on_tokens = on_tokens
        self.on_revoked = on_revoked
        self._oauth = oauth
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "GoogleDriveClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=300))
        return self._session

    @property
    def oauth(self):
        if self._oauth is None:
            from services.google_oauth_service import google_oauth_service
            self._oauth = google_oauth_service
        return self._oauth

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _send(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
        upload: Optional[Tuple[dict, bytes, str]] = None,
    ) -> Tuple[int, Dict[str, Any]]:
        """Perform one HTTP call, returning (status, parsed body)"""
        session = await self._get_session()
        headers = {"Authorization": f"Bearer {self.access_token}"}
        kwargs: Dict[str, Any] = {"params": params, "headers": headers}

        if upload is not None:
            metadata, content, mime_type = upload
            writer = aiohttp.MultipartWriter("related")
            writer.append_json(metadata)
            writer.append(content, {"Content-Type": mime_type})
            kwargs["data"] = writer
        elif json_body is not None:
            kwargs["json"] = json_body

        try:
            async with session.request(method, url, **kwargs) as resp:
                status = resp.status
                raw = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Drive request failed: {method} {url}: {e!r}", action="drive_network_error")
            raise DriveAPIError("Could not reach Google Drive", details=str(e) or type(e).__name__)

        if not raw:
            return status, {}
        try:
            return status, json.loads(raw)
        except ValueError:
            return status, {"raw": raw.decode("utf-8", errors="replace")}

    async def _refresh(self) -> None:
        try:
            tokens = await self.oauth.refresh_access_token(self.refresh_token)
        except TokenRevokedError:
            if self.on_revoked:
                await self.on_revoked()
            raise
        self.access_token = tokens["access_token"]
        self.refresh_token = tokens.get("refresh_token") or self.refresh_token
        logger.info("Refreshed Drive access token after 401", action="drive_token_refreshed",
                    user_id=self.owner_id)
        if self.on_tokens:
            await self.on_tokens(tokens)

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        status, body = await self._send(method, url, **kwargs)

        if status == 401 and self.refresh_token:
            await self._refresh()
            status, body = await self._send(method, url, **kwargs)

        if status == 401:
            raise TokenRevokedError()
        if status == 404:
            raise DriveFileNotFoundError(details=url.rsplit("/", 1)[-1])
        if status >= 400:
            message = body.get("error", {}).get("message") if isinstance(body.get("error"), dict) else None
            logger.error(f"Drive API error {status}: {message or body}", action="drive_api_error",
                         status_code=status)
            raise DriveAPIError(details=message or f"HTTP {status}")
        return body

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    async def find_folder(self, name: str, parent_id: Optional[str] = None) -> Optional[str]:
        """Find a non-trashed folder by name (and parent), returning its id"""
        query = f"name='{_quote(name)}' and mimeType='{self.FOLDER_MIME}' and trashed=false"
        if parent_id:
            query += f" and '{_quote(parent_id)}' in parents"

        data = await self._request(
            "GET",
            f"{self.DRIVE_API}/files",
            params={"q": query, "fields": "files(id, name)", "spaces": "drive", "pageSize": "1"},
        )
        files = data.get("files", [])
        return files[0]["id"] if files else None

    async def create_folder(self, name: str, parent_id: Optional[str] = None) -> str:
        metadata: Dict[str, Any] = {"name": name, "mimeType": self.FOLDER_MIME}
        if parent_id:
            metadata["parents"] = [parent_id]

        data = await self._request("POST", f"{self.DRIVE_API}/files", params={"fields": "id"}, json_body=metadata)
        logger.info(f"Created Drive folder '{name}'", action="drive_folder_created", user_id=self.owner_id)
        return data["id"]

    async def ensure_folder(self, name: str, parent_id: Optional[str] = None) -> str:
        """Return the id of folder (name, parent), creating it when absent"""
        async with _folder_lock(self.owner_id):
            folder_id = await self.find_folder(name, parent_id)
            if folder_id:
                return folder_id
            return await self.create_folder(name, parent_id)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def upload_file(self, name: str, content: bytes, mime_type: str, folder_id: str) -> DriveFile:
        metadata = {"name": name, "parents": [folder_id], "mimeType": mime_type}
        data = await self._request(
            "POST",
            f"{self.UPLOAD_API}/files",
            params={"uploadType": "multipart", "fields": self.FILE_FIELDS},
            upload=(metadata, content, mime_type),
        )
        return DriveFile.from_api(data)

    async def get_file(self, file_id: str, fields: Optional[str] = None) -> DriveFile:
        data = await self._request(
            "GET",
            f"{self.DRIVE_API}/files/{file_id}",
            params={"fields": fields or self.FILE_FIELDS},
        )
        return DriveFile.from_api(data)

    async def delete_file(self, file_id: str) -> None:
        """Permanently delete a file or folder (folders take their contents along)"""
        await self._request("DELETE", f"{self.DRIVE_API}/files/{file_id}")
        logger.info("Deleted Drive file", action="drive_file_deleted", user_id=self.owner_id, file_id=file_id)

    async def get_download_url(self, file_id: str) -> Optional[str]:
        drive_file = await self.get_file(file_id, fields="id, name, webViewLink, webContentLink")
        return drive_file.web_content_link or drive_file.web_view_link
