"""
Application configuration using Pydantic Settings
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL
from typing import List, Optional


SUPPORTED_IMAGE_VARIANTS = ("normal", "small", "cropped")


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Database
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    DB_NAME: str = "ygo"
    SQL_ECHO: bool = False

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Remote card database
    YGOPRODECK_BASE_URL: str = "https://db.ygoprodeck.com/api/v7"
    HTTP_TIMEOUT: float = 30.0
    DOWNLOAD_TIMEOUT: float = 120.0
    MAX_RETRIES: int = 3
    RETRY_DELAY: float = 1.0

    # Object storage
    AWS_REGION: Optional[str] = None
    S3_BUCKET: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None

    # Image rehosting
    IMAGE_CATEGORY: str = "cards"
    IMAGE_VARIANTS: List[str] = ["normal", "small"]
    IMAGE_CONTENT_TYPE: str = "image/jpeg"
    IMAGE_BATCH_SIZE: int = 19
    IMAGE_BATCH_PAUSE_MS: int = 1000
    STAGING_DIR: str = "images"

    # Static seed data
    SEED_BATCH_SIZE: int = 10

    # Scheduler
    SYNC_INTERVAL_MINUTES: int = 1440

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @field_validator("IMAGE_BATCH_SIZE", "SEED_BATCH_SIZE", "MAX_RETRIES", "SYNC_INTERVAL_MINUTES")
    @classmethod
    def check_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("IMAGE_BATCH_PAUSE_MS")
    @classmethod
    def check_pause(cls, v: int) -> int:
        if v < 0:
            raise ValueError("pause cannot be negative")
        return v

    @field_validator("IMAGE_VARIANTS")
    @classmethod
    def check_variants(cls, v: List[str]) -> List[str]:
        unknown = [variant for variant in v if variant not in SUPPORTED_IMAGE_VARIANTS]
        if unknown:
            raise ValueError(f"unsupported image variants: {unknown}")
        return v

    @property
    def database_url(self) -> str:
        """
        Async SQLAlchemy URL for the card database.

        DATABASE_URL wins when set (hosted environments hand out plain
        postgres:// URLs, which are rewritten to the asyncpg driver);
        otherwise the URL is assembled from the DB_* parts.
        """
        if self.DATABASE_URL:
            url = self.DATABASE_URL
            for prefix in ("postgres://", "postgresql://"):
                if url.startswith(prefix):
                    return "postgresql+asyncpg://" + url[len(prefix):]
            return url

        return URL.create(
            drivername="postgresql+asyncpg",
            username=self.DB_USER,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
        ).render_as_string(hide_password=False)


settings = Settings()
