"""
Google OAuth service.
Handles the consent URL, code exchange, token refresh and userinfo lookups
for both owner sign-in and the Drive connection flow.
"""

import asyncio
import base64
import hashlib
import secrets
from typing import Optional, Dict, Any
from datetime import datetime, timedelta
from urllib.parse import urlencode
import aiohttp
from cryptography.fernet import Fernet, InvalidToken

from core.config import settings
from core.exceptions import OAuthError, TokenRevokedError
from core.logging import get_logger

logger = get_logger("assetdrop.services.google_oauth")


class GoogleOAuthService:
    """Handle Google OAuth flows"""

    GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
    GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

    DRIVE_SCOPES = [
        "https://www.googleapis.com/auth/drive.file",
        "https://www.googleapis.com/auth/userinfo.profile",
    ]
    LOGIN_SCOPES = [
        "openid",
        "email",
        "profile",
        "https://www.googleapis.com/auth/drive.file",
    ]

    STATE_TTL = timedelta(minutes=10)
    DEFAULT_EXPIRES_IN = 3600

    def __init__(self, encryption_key: Optional[str] = None):
        key = encryption_key or settings.ENCRYPTION_KEY
        if not key:
            # Stable per deployment so stored tokens survive restarts
            digest = hashlib.sha256(settings.SECRET_KEY.encode()).digest()
            key = base64.urlsafe_b64encode(digest).decode()
            logger.warning("ENCRYPTION_KEY not set, deriving token key from SECRET_KEY",
                           action="oauth_key_derived")
        self.fernet = Fernet(key.encode())

        self._state_store: Dict[str, dict] = {}

    # ------------------------------------------------------------------
    # Token encryption
    # ------------------------------------------------------------------

    def encrypt_token(self, token: Optional[str]) -> str:
        """Encrypt token for storage"""
        if not token:
            return ""
        return self.fernet.encrypt(token.encode()).decode()

    def decrypt_token(self, encrypted: Optional[str]) -> str:
        """Decrypt stored token"""
        if not encrypted:
            return ""
        try:
            return self.fernet.decrypt(encrypted.encode()).decode()
        except InvalidToken:
            raise OAuthError("Stored Google credentials could not be decrypted")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def generate_state(self, purpose: str, user_id: Optional[str] = None, next_path: Optional[str] = None) -> str:
        """Generate OAuth state parameter, dropping abandoned ones"""
        now = datetime.utcnow()
        self.purge_expired_states(now)

        state = secrets.token_urlsafe(32)
        self._state_store[state] = {
            "purpose": purpose,
            "user_id": user_id,
            "next": next_path,
            "created_at": now,
        }
        return state

    def purge_expired_states(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.utcnow()
        expired = [key for key, data in self._state_store.items() if now - data["created_at"] > self.STATE_TTL]
        for key in expired:
            del self._state_store[key]
        return len(expired)

    def validate_state(self, state: Optional[str], purpose: str) -> Optional[dict]:
        """Validate and consume state parameter"""
        if not state:
            return None
        data = self._state_store.pop(state, None)
        if not data or data["purpose"] != purpose:
            return None
        if datetime.utcnow() - data["created_at"] > self.STATE_TTL:
            return None
        return data

    # ------------------------------------------------------------------
    # Consent URLs
    # ------------------------------------------------------------------

    def _auth_url(self, scopes, redirect_uri: str, state: str) -> str:
        if not settings.GOOGLE_CLIENT_ID:
            raise OAuthError("Google OAuth is not configured", details="GOOGLE_CLIENT_ID not set")

        params = {
            "client_id": settings.GOOGLE_CLIENT_ID,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes),
            "state": state,
            "access_type": "offline",  # Get refresh token
            "prompt": "consent",  # Force consent to get refresh token
        }
        return f"{self.GOOGLE_AUTH_URL}?{urlencode(params)}"

    def get_drive_auth_url(self, user_id: str) -> str:
        """Consent URL for connecting the owner's Drive"""
        state = self.generate_state("drive", user_id=user_id)
        return self._auth_url(self.DRIVE_SCOPES, self.drive_redirect_uri, state)

    def get_login_auth_url(self, next_path: str = "/dashboard", store_drive_tokens: bool = True) -> str:
        """
        Consent URL for owner sign-in.

        With store_drive_tokens the callback also keeps the Google tokens as
        the owner's Drive connection.
        """
        redirect_uri = self.login_redirect_uri if store_drive_tokens else self.session_redirect_uri
        state = self.generate_state("login", next_path=next_path)
        self._state_store[state]["redirect_uri"] = redirect_uri
        return self._auth_url(self.LOGIN_SCOPES, redirect_uri, state)

    @property
    def drive_redirect_uri(self) -> str:
        return settings.GOOGLE_REDIRECT_URI or f"{settings.APP_URL}/api/google-drive/callback"

    @property
    def login_redirect_uri(self) -> str:
        return settings.GOOGLE_LOGIN_REDIRECT_URI or f"{settings.APP_URL}/api/auth/google/callback"

    @property
    def session_redirect_uri(self) -> str:
        return f"{settings.APP_URL}/api/auth/callback"

    # ------------------------------------------------------------------
    # Token endpoint
    # ------------------------------------------------------------------

    async def _post_token(self, data: Dict[str, str]) -> tuple:
        """POST to the token endpoint, returning (status, json body)"""
        payload = {
            "client_id": settings.GOOGLE_CLIENT_ID or "",
            "client_secret": settings.GOOGLE_CLIENT_SECRET or "",
            **data,
        }
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(self.GOOGLE_TOKEN_URL, data=payload) as resp:
                    try:
                        body = await resp.json(content_type=None)
                    except ValueError:
                        body = {"error": await resp.text()}
                    return resp.status, body or {}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Google token endpoint unreachable: {e!r}", action="oauth_network_error")
            raise OAuthError("Could not reach Google", details=str(e) or type(e).__name__)

    async def exchange_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        """Exchange authorization code for tokens"""
        status, data = await self._post_token({
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri,
        })
        if status != 200 or "access_token" not in data:
            logger.error(f"Google token exchange failed: {data}", action="oauth_exchange_failed",
                         status_code=status)
            raise OAuthError("Token exchange failed", details=str(data.get("error", status)))

        return {
            "access_token": data["access_token"],
            "refresh_token": data.get("refresh_token"),
            "expires_in": data.get("expires_in", self.DEFAULT_EXPIRES_IN),
            "expires_at": self.expiry_from(data.get("expires_in")),
            "id_token": data.get("id_token"),
            "scope": data.get("scope", "").split(),
        }

    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Refresh an access token.

        Raises TokenRevokedError when Google answers invalid_grant, OAuthError
        for every other failure.
        """
        status, data = await self._post_token({
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        })
        if status == 200 and "access_token" in data:
            return {
                "access_token": data["access_token"],
                # Google only rotates the refresh token occasionally
                "refresh_token": data.get("refresh_token") or refresh_token,
                "expires_in": data.get("expires_in", self.DEFAULT_EXPIRES_IN),
                "expires_at": self.expiry_from(data.get("expires_in")),
            }

        error = data.get("error")
        if error == "invalid_grant":
            logger.warning("Google refresh token revoked", action="oauth_invalid_grant")
            raise TokenRevokedError()

        logger.error(f"Google token refresh failed: {data}", action="oauth_refresh_failed",
                     status_code=status)
        raise OAuthError("Failed to refresh token", details=str(data.get("error_description") or error or status))

    async def get_userinfo(self, access_token: str) -> Dict[str, Any]:
        """Fetch the OpenID profile for a freshly issued token"""
        try:
            async with aiohttp.ClientSession(headers={"Authorization": f"Bearer {access_token}"}) as session:
                async with session.get(self.GOOGLE_USERINFO_URL) as resp:
                    if resp.status != 200:
                        raise OAuthError("Failed to fetch Google profile", details=str(resp.status))
                    data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Google userinfo unreachable: {e!r}", action="oauth_network_error")
            raise OAuthError("Could not reach Google", details=str(e) or type(e).__name__)

        if not data.get("email"):
            raise OAuthError("Google profile has no email address")
        return {
            "sub": data.get("sub"),
            "email": data["email"],
            "name": data.get("name"),
            "picture": data.get("picture"),
        }

    def expiry_from(self, expires_in: Optional[int]) -> datetime:
        return datetime.utcnow() + timedelta(seconds=int(expires_in or self.DEFAULT_EXPIRES_IN))


# Singleton
google_oauth_service = GoogleOAuthService()
