"""
AssetDrop portal client.

Talks to the public portal and intake endpoints the way the collection page
does: load the link, unlock it, validate locally, then upload each file and
finally send the text responses.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from core.exceptions import (
    AssetDropError,
    DriveNotConnectedError,
    ValidationError,
)
from core.logging import get_logger
from models.project_models import FieldType
from services.form_validation import validate_submission

logger = get_logger("assetdrop.portal_client")

DRIVE_NOT_CONNECTED_MESSAGE = (
    "The project owner needs to connect their Google Drive account before files can be "
    "uploaded. Please contact them to set this up."
)


@dataclass
class UploadFile:
    name: str
    content: bytes
    content_type: str = "application/octet-stream"


class PortalClient:
    """Async client for one AssetDrop deployment"""

    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, transport=self._transport, timeout=self.timeout)

    @staticmethod
    def _error_from(response: httpx.Response) -> AssetDropError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("error") or body.get("details") or f"HTTP {response.status_code}"
        return AssetDropError(message, details=body.get("details"), status_code=response.status_code)

    async def load(self, link_id: str, password: Optional[str] = None) -> Dict[str, Any]:
        """Fetch the portal view; the `state` key tells whether it is open"""
        headers = {"X-Link-Password": password} if password else {}
        async with self._client() as client:
            response = await client.get(f"/api/portal/{link_id}", headers=headers)
        if response.status_code != 200:
            raise self._error_from(response)
        return response.json()

    async def unlock(self, link_id: str, password: str) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.post(f"/api/portal/{link_id}/unlock", json={"password": password})
        if response.status_code != 200:
            raise self._error_from(response)
        return response.json()

    @staticmethod
    def validate(fields: Sequence[Dict[str, Any]], values: Dict[str, Any]) -> List[str]:
        return validate_submission(fields, values)

    async def submit(
        self,
        project_id: str,
        fields: Sequence[Dict[str, Any]],
        values: Dict[str, Any],
        client_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Submit a filled form.

        `values` maps field id to a list of UploadFile for file fields or a
        string for text fields. Nothing is sent when validation fails.
        """
        errors = self.validate(fields, values)
        if errors:
            raise ValidationError(errors[0], details="; ".join(errors))

        uploaded = []
        text_responses = []
        async with self._client() as client:
            for field in fields:
                field_id = str(field["id"])
                value = values.get(field_id)
                if field["field_type"] in FieldType.FILE_TYPES:
                    for upload in value or []:
                        uploaded.append(await self._upload(client, project_id, field_id, upload, client_email))
                elif field["field_type"] in FieldType.TEXT_TYPES and isinstance(value, str) and value.strip():
                    text_responses.append({
                        "form_field_id": field_id,
                        "file_name": f"{field['label']}.txt",
                        "file_type": "text/plain",
                        "metadata": {"field_type": field["field_type"], "content": value},
                        "client_email": client_email,
                    })

            text_count = 0
            if text_responses:
                response = await client.post(
                    "/api/submit-text",
                    json={"projectId": project_id, "textResponses": text_responses},
                )
                if response.status_code != 200:
                    raise self._error_from(response)
                text_count = response.json().get("count", 0)

        logger.info(f"Submitted {len(uploaded)} files and {text_count} text responses",
                    action="portal_submitted", project_id=project_id)
        return {"uploaded": uploaded, "text_count": text_count}

    async def _upload(
        self,
        client: httpx.AsyncClient,
        project_id: str,
        field_id: str,
        upload: UploadFile,
        client_email: Optional[str],
    ) -> Dict[str, Any]:
        data = {"projectId": project_id, "formFieldId": field_id}
        if client_email:
            data["clientEmail"] = client_email
        response = await client.post(
            "/api/upload",
            data=data,
            files={"file": (upload.name, upload.content, upload.content_type)},
        )
        if response.status_code == 200:
            return response.json()

        error = self._error_from(response)
        if "Google Drive not connected" in error.message:
            raise DriveNotConnectedError(DRIVE_NOT_CONNECTED_MESSAGE)
        raise AssetDropError(f"Failed to upload {upload.name}: {error.message}",
                             status_code=error.status_code)
