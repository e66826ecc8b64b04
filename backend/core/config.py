"""
AssetDrop - Configuration
"""
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./assetdrop.db"

    # Owner sessions (JWT)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    SESSION_COOKIE_NAME: str = "assetdrop_session"
    SESSION_COOKIE_SECURE: bool = False

    # Google OAuth / Drive
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_REDIRECT_URI: Optional[str] = None  # Drive connect callback
    GOOGLE_LOGIN_REDIRECT_URI: Optional[str] = None  # Sign-in callback
    DRIVE_ROOT_FOLDER_NAME: str = "AssetDrop"

    # Fernet key for tokens at rest; derived from SECRET_KEY when unset
    ENCRYPTION_KEY: Optional[str] = None

    # SendGrid
    SENDGRID_API_KEY: Optional[str] = None
    SENDGRID_FROM_EMAIL: Optional[str] = None
    SENDGRID_FROM_NAME: str = "AssetDrop"

    # Application
    APP_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = "http://localhost:3000"
    CRON_SECRET: Optional[str] = None
    REVIEW_NOTIFICATION_DELAY_MINUTES: int = 5
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024
    HEALTH_EMAIL_INTERVAL_DAYS: int = 30

    # Rate limiting
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_ENABLED: bool = True

    # Logging / monitoring
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    SENTRY_DSN: Optional[str] = None
    ENVIRONMENT: str = "development"
    TESTING: bool = False

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
