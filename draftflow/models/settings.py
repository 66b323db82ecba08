"""Settings and configuration management."""

import logging
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings loaded from environment variables or ``.env``."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Generative API
    gemini_api_key: Optional[str] = Field(None, description="Gemini API key")
    text_models: str = Field(
        "gemini-2.0-flash,gemini-2.0-flash-lite-001,gemini-flash-latest",
        description="Comma-separated model fallback chain, best first",
    )
    image_model: str = Field(
        "imagen-3.0-generate-002", description="Model used for image generation"
    )

    # Canva Connect
    canva_client_id: Optional[str] = Field(None, description="Canva client ID")
    canva_client_secret: Optional[str] = Field(None, description="Canva secret")
    canva_redirect_uri: str = Field(
        "http://localhost:8000/api/canva/callback",
        description="OAuth redirect URI registered with Canva",
    )

    # Storage
    database_path: str = Field("draftflow.db", description="SQLite database file")
    export_dir: str = Field("out", description="Directory for exported files")

    # Scheduler
    broker_url: str = Field(
        "redis://localhost:6379/0", description="Celery broker and result backend"
    )

    # Identity
    dev_user_id: Optional[str] = Field(
        None,
        description="Identity used when a request carries none. Leave unset in production.",
    )

    # Application Settings
    debug: bool = Field(False, description="Debug mode")
    log_level: str = Field("INFO", description="Log level for CLI and worker output")
    default_user_agent: str = Field(
        "Draftflow/1.0",
        min_length=5,
        max_length=100,
        description="Default User-Agent for HTTP requests",
    )

    # API Timeout Settings (in seconds)
    generation_timeout: float = Field(
        60.0, ge=5.0, le=300.0, description="Per-attempt generation timeout in seconds"
    )
    canva_timeout: float = Field(
        20.0, ge=5.0, le=120.0, description="Canva API request timeout in seconds"
    )
    trend_feed_timeout: float = Field(
        20.0, ge=5.0, le=120.0, description="Trend source fetch timeout in seconds"
    )

    # Retry Settings
    retry_max_attempts: int = Field(
        3, ge=1, le=10, description="Attempts per generation before giving up"
    )
    retry_base_delay: float = Field(
        5.0, ge=0.0, le=60.0, description="Seconds to wait before the first retry"
    )
    retry_multiplier: float = Field(
        2.0, ge=1.0, le=10.0, description="Backoff multiplier applied per retry"
    )

    # Monitoring
    stale_pending_minutes: int = Field(
        15, ge=1, le=1440, description="Pending drafts older than this are stale"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def model_chain(self) -> List[str]:
        """Model fallback chain as a list."""
        return [m.strip() for m in self.text_models.split(",") if m.strip()]
