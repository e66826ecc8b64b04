"""
AssetDrop - SendGrid Service
Transactional email via the SendGrid v3 mail-send API
"""
import httpx
from typing import Any, Dict, List, Optional
from core.config import settings
from core.exceptions import (
    EmailNotConfiguredError,
    EmailProviderError,
    EmailRateLimitedError,
    InvalidRecipientError,
    SenderNotVerifiedError,
)
from core.logging import get_logger

logger = get_logger("assetdrop.services.sendgrid")


class SendGridService:
    """SendGrid API integration for review notification emails"""

    BASE_URL = "https://api.sendgrid.com/v3"

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.SENDGRID_API_KEY
        self.from_email = from_email if from_email is not None else settings.SENDGRID_FROM_EMAIL
        self.from_name = from_name or settings.SENDGRID_FROM_NAME
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.from_email)

    def _ensure_configured(self) -> None:
        if not self.api_key:
            raise EmailNotConfiguredError(details="SENDGRID_API_KEY is not set")
        if not self.from_email:
            raise EmailNotConfiguredError(details="SENDGRID_FROM_EMAIL is not set")

    async def _request(self, method: str, endpoint: str, json_body: dict = None) -> httpx.Response:
        """Make authenticated request to SendGrid API"""
        async with httpx.AsyncClient(
            base_url=self.BASE_URL,
            transport=self._transport,
            timeout=30.0,
        ) as client:
            try:
                return await client.request(
                    method,
                    endpoint,
                    json=json_body,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            except httpx.HTTPError as e:
                logger.error(f"SendGrid request failed: {e}", action="sendgrid_transport_error")
                raise EmailProviderError(details=str(e))

    @staticmethod
    def _error_messages(response: httpx.Response) -> List[Dict[str, Any]]:
        try:
            return response.json().get("errors", []) or []
        except ValueError:
            return [{"message": response.text}]

    def _raise_for_response(self, response: httpx.Response, to: str) -> None:
        errors = self._error_messages(response)
        joined = "; ".join(str(e.get("message", "")) for e in errors) or response.text
        status = response.status_code

        logger.error(
            f"SendGrid rejected email to {to}: {joined}",
            action="sendgrid_send_failed",
            status_code=status,
        )

        if status == 401:
            raise EmailNotConfiguredError("Email service credentials are invalid", details=joined)
        if status == 403 and "sender" in joined.lower():
            raise SenderNotVerifiedError(details=joined)
        if status == 429:
            raise EmailRateLimitedError(details=joined)
        if status == 400 and any(
            "email" in str(e.get("field") or "").lower() or "recipient" in str(e.get("message", "")).lower()
            for e in errors
        ):
            raise InvalidRecipientError(details=joined)
        raise EmailProviderError(details=joined or f"HTTP {status}")

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send a single email.

        Returns:
            {"success": True, "message_id": <X-Message-Id or None>}
        """
        self._ensure_configured()

        content = []
        if text:
            content.append({"type": "text/plain", "value": text})
        content.append({"type": "text/html", "value": html})

        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": subject,
            "content": content,
        }

        response = await self._request("POST", "/mail/send", payload)
        if response.status_code not in (200, 202):
            self._raise_for_response(response, to)

        message_id = response.headers.get("X-Message-Id")
        logger.info(f"Email sent to {to}", action="email_sent", message_id=message_id)
        return {"success": True, "message_id": message_id}


sendgrid_service = SendGridService()
