"""
AssetDrop Account Models

Owner profiles, their stored Google tokens and the health-check bookkeeping.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid

from core.database import Base


class Profile(Base):
    """A signed-in project owner."""
    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True, default=uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    avatar_url = Column(String(1000), nullable=True)
    google_subject = Column(String(255), unique=True, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "email": self.email,
            "full_name": self.full_name,
            "avatar_url": self.avatar_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class UserToken(Base):
    """
    Google Drive credentials for one owner.

    Both tokens are stored Fernet-encrypted. The row is overwritten on refresh
    and removed on disconnect or revoked grant.
    """
    __tablename__ = "user_tokens"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    token_expiry = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class HealthCheckLog(Base):
    """When the keep-alive health email was last sent, per check type."""
    __tablename__ = "health_check_logs"

    id = Column(Uuid, primary_key=True, default=uuid4)
    check_type = Column(String(50), nullable=False, index=True)
    email_sent_at = Column(DateTime, default=datetime.utcnow, nullable=False)
