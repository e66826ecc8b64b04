"""
AssetDrop Drive Credentials Service

Stores each owner's Google tokens and hands out ready-to-use Drive clients.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import DriveNotConnectedError, TokenRevokedError, ValidationError
from core.logging import get_logger
from models.auth_models import UserToken
from services.google_drive_service import GoogleDriveClient
from services.google_oauth_service import GoogleOAuthService, google_oauth_service

logger = get_logger("assetdrop.services.drive_credentials")


class DriveCredentialsService:
    """Credential store for owners' Google Drive tokens."""

    def __init__(self, db: AsyncSession, oauth: Optional[GoogleOAuthService] = None):
        self.db = db
        self.oauth = oauth or google_oauth_service

    async def get_token_row(self, user_id: UUID) -> Optional[UserToken]:
        result = await self.db.execute(select(UserToken).where(UserToken.user_id == user_id))
        return result.scalar_one_or_none()

    async def is_connected(self, user_id: UUID) -> bool:
        return await self.get_token_row(user_id) is not None

    async def save_tokens(
        self,
        user_id: UUID,
        access_token: str,
        refresh_token: Optional[str],
        token_expiry: Optional[datetime],
    ) -> UserToken:
        """
        Upsert the owner's tokens.

        A missing refresh token keeps the previously stored one; Google only
        returns it on the first consent.
        """
        row = await self.get_token_row(user_id)
        if row is None:
            row = UserToken(user_id=user_id)
            self.db.add(row)
        elif not refresh_token and row.refresh_token:
            refresh_token = self.oauth.decrypt_token(row.refresh_token)

        row.access_token = self.oauth.encrypt_token(access_token)
        row.refresh_token = self.oauth.encrypt_token(refresh_token) if refresh_token else None
        row.token_expiry = token_expiry
        row.updated_at = datetime.utcnow()

        await self.db.commit()
        logger.info("Stored Google Drive tokens", action="drive_tokens_saved", user_id=user_id)
        return row

    async def delete_tokens(self, user_id: UUID) -> bool:
        result = await self.db.execute(delete(UserToken).where(UserToken.user_id == user_id))
        await self.db.commit()
        return result.rowcount > 0

    async def refresh(self, user_id: UUID) -> Dict[str, Any]:
        """
        Force a token refresh for the owner.

        On invalid_grant the stored row is deleted and TokenRevokedError is
        re-raised so callers can ask the owner to reconnect.
        """
        row = await self.get_token_row(user_id)
        if row is None:
            raise DriveNotConnectedError("Google Drive not connected. Please authorize first.", status_code=404)
        if not row.refresh_token:
            raise ValidationError("No refresh token available. Please reconnect Google Drive.")

        refresh_token = self.oauth.decrypt_token(row.refresh_token)
        try:
            tokens = await self.oauth.refresh_access_token(refresh_token)
        except TokenRevokedError:
            await self.delete_tokens(user_id)
            logger.warning("Deleted revoked Google Drive credentials", action="drive_tokens_revoked",
                           user_id=user_id)
            raise

        await self.save_tokens(user_id, tokens["access_token"], tokens.get("refresh_token"), tokens["expires_at"])
        return tokens

    async def get_drive_client(self, user_id: UUID) -> GoogleDriveClient:
        """
        Build a Drive client for the owner, refreshing expired tokens first.

        Raises DriveNotConnectedError when no credentials are stored and
        TokenRevokedError when Google has revoked them.
        """
        row = await self.get_token_row(user_id)
        if row is None:
            raise DriveNotConnectedError()

        access_token = self.oauth.decrypt_token(row.access_token)
        refresh_token = self.oauth.decrypt_token(row.refresh_token) if row.refresh_token else None

        if row.token_expiry and row.token_expiry <= datetime.utcnow() and refresh_token:
            tokens = await self.refresh(user_id)
            access_token = tokens["access_token"]
            refresh_token = tokens.get("refresh_token") or refresh_token

        async def persist(tokens: Dict[str, Any]) -> None:
            await self.save_tokens(user_id, tokens["access_token"], tokens.get("refresh_token"),
                                   tokens.get("expires_at"))

        async def revoked() -> None:
            await self.delete_tokens(user_id)
            logger.warning("Deleted revoked Google Drive credentials", action="drive_tokens_revoked",
                           user_id=user_id)

        return GoogleDriveClient(
            access_token=access_token,
            refresh_token=refresh_token,
            owner_id=str(user_id),
            on_tokens=persist,
            on_revoked=revoked,
            oauth=self.oauth,
        )
