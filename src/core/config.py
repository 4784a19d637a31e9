"""Application configuration using pydantic-settings."""
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str

    # Bearer tokens (HS256 JWTs signed with secret_key)
    secret_key: str = Field(default="change-me", validation_alias="SECRET_KEY")
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = Field(
        default=60 * 24, validation_alias="ACCESS_TOKEN_TTL_MINUTES",
    )

    # Two-factor authentication
    otp_issuer: str = Field(default="Prompt Library", validation_alias="OTP_ISSUER")
    otp_pending_ttl_minutes: int = Field(default=5, validation_alias="OTP_PENDING_TTL_MINUTES")
    # Clock drift tolerated when verifying a code at sign-in vs. when enabling 2FA
    otp_sign_in_drift_seconds: int = Field(
        default=60, validation_alias="OTP_SIGN_IN_DRIFT_SECONDS",
    )
    otp_setup_drift_seconds: int = Field(
        default=30, validation_alias="OTP_SETUP_DRIFT_SECONDS",
    )

    # Blob storage for prompt attachments
    storage_dir: Path = Field(default=Path("storage"), validation_alias="STORAGE_DIR")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, validation_alias="MAX_UPLOAD_BYTES")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Field length limits
    min_title_length: int = 3
    max_title_length: int = 200
    min_content_length: int = 10
    max_content_length: int = 10_000
    max_description_length: int = 500
    max_category_length: int = 50
    max_tag_name_length: int = 50
    max_user_name_length: int = 100

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
