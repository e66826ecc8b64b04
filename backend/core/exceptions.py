"""
AssetDrop - Service Error Hierarchy

Services raise these; the handlers registered in main.py turn them into
`{"error": ..., "details": ...}` JSON responses with the carried status code.
"""
from typing import Any, Dict, Optional


class AssetDropError(Exception):
    """Base error carrying an HTTP status and a client-facing message."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[str] = None,
        status_code: Optional[int] = None,
        **extra: Any,
    ):
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        body.update(self.extra)
        return body


class ValidationError(AssetDropError):
    status_code = 400
    default_message = "Invalid request"


class UnauthorizedError(AssetDropError):
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AssetDropError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AssetDropError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AssetDropError):
    status_code = 409
    default_message = "Conflict"


class PayloadTooLargeError(AssetDropError):
    status_code = 413
    default_message = "File too large"


# ---------------------------------------------------------------------------
# Google credentials / Drive
# ---------------------------------------------------------------------------

class DriveNotConnectedError(AssetDropError):
    """The project owner has no stored Google credentials."""
    status_code = 403
    default_message = "Google Drive not connected. Project owner needs to authorize Google Drive."


class TokenRevokedError(AssetDropError):
    """Google answered invalid_grant; the owner must reconnect."""
    status_code = 401
    default_message = "Google Drive access has been revoked. Please reconnect your account."

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "token_revoked",
            "message": self.message,
            "requiresReconnect": True,
        }


class OAuthError(AssetDropError):
    status_code = 500
    default_message = "Google authorization failed"


class DriveAPIError(AssetDropError):
    status_code = 500
    default_message = "Google Drive request failed"


class DriveFileNotFoundError(DriveAPIError):
    status_code = 404
    default_message = "File not found in Google Drive"


# ---------------------------------------------------------------------------
# Email delivery
# ---------------------------------------------------------------------------

class EmailError(AssetDropError):
    status_code = 500
    default_message = "Failed to send email"


class EmailNotConfiguredError(EmailError):
    status_code = 500
    default_message = "Email service not configured"


class SenderNotVerifiedError(EmailError):
    status_code = 403
    default_message = "Sender email is not verified with the email provider"


class EmailRateLimitedError(EmailError):
    status_code = 429
    default_message = "Email rate limit reached. Please try again later."


class InvalidRecipientError(EmailError):
    status_code = 400
    default_message = "Invalid recipient email address"


class EmailProviderError(EmailError):
    status_code = 502
    default_message = "Email provider error"
