"""
AssetDrop Account Service

Creates or refreshes owner profiles after Google sign-in and issues the
session token.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging import get_logger
from core.security import create_access_token
from models.auth_models import Profile

logger = get_logger("assetdrop.services.account")


class AccountService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_profile(self, user_id: UUID) -> Optional[Profile]:
        result = await self.db.execute(select(Profile).where(Profile.id == user_id))
        return result.scalar_one_or_none()

    async def upsert_profile(self, userinfo: Dict[str, Any]) -> Profile:
        """Match on Google subject or email; update name and avatar on every sign-in"""
        conditions = [Profile.email == userinfo["email"]]
        if userinfo.get("sub"):
            conditions.append(Profile.google_subject == userinfo["sub"])
        result = await self.db.execute(select(Profile).where(or_(*conditions)))
        profile = result.scalars().first()

        if profile is None:
            profile = Profile(email=userinfo["email"])
            self.db.add(profile)
            logger.info("Created owner profile", action="profile_created")

        profile.email = userinfo["email"]
        profile.google_subject = userinfo.get("sub") or profile.google_subject
        profile.full_name = userinfo.get("name") or profile.full_name
        profile.avatar_url = userinfo.get("picture") or profile.avatar_url
        profile.updated_at = datetime.utcnow()

        await self.db.commit()
        await self.db.refresh(profile)
        return profile

    @staticmethod
    def issue_session(profile: Profile) -> str:
        return create_access_token({
            "sub": str(profile.id),
            "email": profile.email,
            "name": profile.full_name,
        })
