"""
Unified Configuration
All environment variables and settings in one place

ARCHITECTURE:
- Provider feeds are reached over HTTP (BASE_URL + per-platform feed path)
- DATABASE_URL selects the PostgreSQL record store; without it leads and
  sync runs live in process memory (local dev, tests)
- Periodic sync runs inside the service process, toggled at runtime
"""
from typing import Optional
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings.
    Validates all environment variables at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================================================
    # SERVER
    # ============================================================================

    environment: str = Field(default="production", description="Environment: development/staging/production")
    port: int = Field(default=4000, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")

    # ============================================================================
    # DATABASE (PostgreSQL, optional)
    # ============================================================================

    database_url: Optional[str] = Field(default=None, description="PostgreSQL connection string (psycopg). In-memory store when unset")

    # ============================================================================
    # PROVIDER FEEDS
    # ============================================================================

    base_url: Optional[str] = Field(default=None, description="Base URL of the provider feeds (defaults to this service)")
    meta_feed_path: str = Field(default="/mock/meta/leads", description="META lead feed path")
    google_feed_path: str = Field(default="/mock/google/leads", description="GOOGLE lead feed path")
    fetch_timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout for a single feed fetch")
    fetch_retry_attempts: int = Field(default=3, ge=1, description="Attempts per fetch on transport errors")
    mock_providers_enabled: bool = Field(default=True, description="Serve the simulated provider feeds")

    # ============================================================================
    # SYNC
    # ============================================================================

    lead_concurrency: int = Field(default=5, ge=1, description="Max leads upserted concurrently within one adapter run")
    auto_sync_enabled: bool = Field(default=False, description="Start the periodic sync scheduler on startup")
    sync_interval_seconds: float = Field(default=300.0, gt=0, description="Seconds between periodic syncs")

    # ============================================================================
    # PRODUCTION INFRASTRUCTURE
    # ============================================================================

    sentry_dsn: Optional[str] = Field(default=None, description="Sentry DSN for error tracking")
    cors_allowed_origins: str = Field(default="http://localhost:3000", description="Comma-separated list of allowed CORS origins")

    @property
    def feed_base_url(self) -> str:
        """Base URL for provider feeds, falling back to this service's own mock endpoints."""
        return (self.base_url or f"http://localhost:{self.port}").rstrip("/")

    @model_validator(mode='after')
    def validate_settings(self):
        """
        Validate settings at startup and log a summary.
        """
        if self.environment == "production":
            if self.debug:
                logger.warning("⚠️  DEBUG MODE ENABLED IN PRODUCTION! This is insecure.")

            if not self.database_url:
                logger.warning("⚠️  DATABASE_URL not set in production. Leads will not survive a restart.")

            if self.mock_providers_enabled:
                logger.warning("⚠️  Mock provider feeds enabled in production.")

        logger.info("=" * 80)
        logger.info("LeadSync Configuration Loaded")
        logger.info("=" * 80)
        logger.info(f"Environment: {self.environment}")
        logger.info(f"Debug: {self.debug}")
        logger.info(f"Record store: {'PostgreSQL' if self.database_url else 'in-memory'}")
        logger.info(f"Feed base URL: {self.feed_base_url}")
        logger.info(f"Auto sync: {'✅ Enabled' if self.auto_sync_enabled else '❌ Disabled'} (every {self.sync_interval_seconds:.0f}s)")
        logger.info(f"Sentry: {'✅ Configured' if self.sentry_dsn else '❌ Not configured'}")
        logger.info("=" * 80)

        return self


# Global settings instance
settings = Settings()
