"""
Application settings using pydantic-settings.

Environment variables are prefixed with SMART_VITALS_.
"""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SMART_VITALS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_storage_settings(self) -> "Settings":
        """Reject a plaintext Redis URL when TLS is required."""
        if self.require_redis_tls and self.redis_url and not self.redis_url.startswith("rediss://"):
            raise ValueError(
                "SMART_VITALS_REQUIRE_REDIS_TLS is set but SMART_VITALS_REDIS_URL "
                "does not use the rediss:// scheme."
            )
        return self

    @property
    def cors_allow_credentials(self) -> bool:
        """Allow credentials only when specific origins are configured (not wildcard)."""
        return self.cors_origins != "*"

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Outbound HTTP
    request_timeout: float = 30.0
    discovery_timeout: float = 10.0

    # SMART client registration
    client_id: str = "smart-vitals"
    redirect_uri: str = "http://localhost:8000/"

    # Browser session cookie
    session_cookie_name: str = "smart_vitals_session"
    session_max_age: int = 3600
    session_cookie_secure: bool = True  # Set to False for local development over HTTP

    # CORS settings
    cors_origins: str = "*"

    # Launch state storage (in-memory when unset)
    redis_url: str | None = None  # e.g., redis://localhost:6379 or rediss://... for TLS
    require_redis_tls: bool = False

    # Observation feed
    observation_count: int = Field(default=10, gt=0)  # _count sent to the FHIR server
    display_page_size: int = Field(default=5, gt=0)  # window increment
    cache_ttl_seconds: float = Field(default=30.0, ge=0)
    reconcile_delay_seconds: float = Field(default=2.0, ge=0)

    # Background purge of expired launch state and orphaned feeds
    session_cleanup_interval: float = Field(default=300.0, gt=0)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    get_settings.cache_clear()
