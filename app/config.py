"""
Configuration management for the memorial site API.
Uses Pydantic Settings for environment variable management.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "Memorial Site API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Backend API for the memorial guestbook, gallery and admin panel"

    # "production" switches on secure cookies and proxy-aware client addresses
    ENVIRONMENT: str = "development"

    # CORS Configuration
    # Credentials are allowed, so origins must be listed explicitly
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    # postgres:// and postgresql:// URLs are rewritten to use asyncpg
    DATABASE_URL: str = "sqlite+aiosqlite:///./memorial.db"

    # Cloudinary Configuration
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""

    # Admin Credentials
    # Either ADMIN_PASSWORD (plaintext, hashed at startup) or ADMIN_PASSWORD_HASH (bcrypt)
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = ""
    ADMIN_PASSWORD_HASH: str = ""
    BCRYPT_ROUNDS: int = 12

    # Session Configuration
    # SESSION_SECRET signs the session cookie; use a long random value in production
    SESSION_SECRET: str = "memorial-site-secret-key-change-this"
    SESSION_COOKIE_NAME: str = "memorial_session"
    SESSION_MAX_AGE_HOURS: int = 24

    # Rate limiting
    # "memory://" keeps counters in-process; any other limits storage URI
    # (e.g. redis://host:6379) shares them between instances
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    MEMORY_SUBMISSION_LIMIT: int = 5
    MEMORY_SUBMISSION_WINDOW_SECONDS: int = 60
    ADMIN_LOGIN_LIMIT: int = 5
    ADMIN_LOGIN_WINDOW_SECONDS: int = 15 * 60

    # Uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Build the settings object once per process."""
    return Settings()
