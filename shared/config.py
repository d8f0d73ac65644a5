"""
Shared configuration management for the Firebase token verifier.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

GOOGLE_CERTIFICATE_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)


class VerifierConfig(BaseSettings):
    """Verifier settings, read from FIREBASE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Project
    project_id: str = Field(default="", description="Firebase project id tokens must be issued for")

    # Certificate endpoint
    certificate_url: str = Field(default=GOOGLE_CERTIFICATE_URL)
    http_timeout: float = Field(default=10.0, gt=0)

    # Certificate cache
    cache_enabled: bool = Field(default=True)
    cache_default_ttl: float = Field(default=3600.0, ge=0, description="Used when the endpoint sends no max-age")
    min_refresh_interval: float = Field(default=60.0, ge=0, description="Floor between refreshes forced by unknown kids")

    # Fetch retry
    fetch_max_attempts: int = Field(default=3, ge=1, le=10)
    fetch_retry_base_delay: float = Field(default=0.2, ge=0)

    # Observability
    log_level: str = Field(default="info")


@lru_cache()
def get_config() -> VerifierConfig:
    """Get the process-wide verifier configuration."""
    return VerifierConfig()
