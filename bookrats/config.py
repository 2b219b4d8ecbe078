"""Application configuration."""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_debug: bool = True
    app_version: str = "1.0.0"
    log_level: str = "DEBUG"

    # Database - required
    database_url: str = Field(
        ...,
        description="Database connection URL (required)",
    )
    db_pool_size: int = Field(
        default=10,
        description="DB connection pool size",
    )
    db_max_overflow: int = Field(
        default=20,
        description="Max overflow connections",
    )
    db_pool_recycle: int = Field(
        default=1800,
        description="Connection recycle time in seconds",
    )
    db_create_all: bool = Field(
        default=False,
        description="Create missing tables from ORM metadata at startup",
    )

    # Identity provider (Google OAuth is brokered by the provider)
    identity_jwt_secret: str = Field(
        ...,
        description="Shared secret used by the identity provider to sign access tokens (required)",
    )
    identity_jwt_algorithm: str = "HS256"
    identity_jwt_audience: str | None = Field(
        default="authenticated",
        description="Expected `aud` claim; None disables the audience check",
    )

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Object storage (S3 compatible)
    storage_checkin_bucket: str = "check-in-pictures"
    storage_group_bucket: str = "group-photos"
    storage_public_url: str = Field(
        default="http://localhost:9000",
        description="Base URL that serves public objects as {base}/{bucket}/{key}",
    )
    s3_region: str = Field(
        default="us-east-1",
        description="AWS region for S3",
    )
    s3_access_key_id: Optional[str] = Field(
        default=None,
        description="AWS access key ID (or use IAM role)",
    )
    s3_secret_access_key: Optional[str] = Field(
        default=None,
        description="AWS secret access key (or use IAM role)",
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom S3 endpoint (for MinIO, LocalStack, Supabase Storage)",
    )

    # Photos
    photo_max_bytes: int = 5 * 1024 * 1024
    photo_allowed_types: str = "image/jpeg,image/png,image/webp,image/gif"

    # Feed
    feed_page_size: int = Field(
        default=20,
        description="Number of check-ins shown on the group page",
    )

    # Sentry Error Tracking
    sentry_dsn: str | None = Field(
        default=None,
        description="Sentry DSN for error tracking",
    )
    sentry_traces_sample_rate: float = Field(
        default=0.05,
        description="Sentry transaction sampling rate (0.0-1.0, default 5%)",
    )

    @property
    def allowed_photo_types(self) -> list[str]:
        return [t.strip() for t in self.photo_allowed_types.split(",") if t.strip()]

    @field_validator("identity_jwt_secret")
    @classmethod
    def validate_identity_jwt_secret(cls, v: str) -> str:
        """Validate identity secret length."""
        if len(v) < 32:
            raise ValueError(
                "identity_jwt_secret must be at least 32 characters long"
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.app_env == "production":
            if self.app_debug:
                raise ValueError(
                    "app_debug must be False in production environment"
                )

            origins = [o.strip() for o in self.cors_origins.split(",")]
            if "*" in origins:
                raise ValueError(
                    "CORS wildcard '*' is not allowed in production environment. "
                    "Specify explicit allowed origins."
                )

            if self.log_level == "DEBUG":
                import warnings
                warnings.warn(
                    "DEBUG log level in production may expose sensitive information"
                )

        return self

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
