"""
Configuration Management

Uses Pydantic BaseSettings to load configuration from environment variables.
All settings can be overridden via .env file or environment variables.

Environment Variables:
    GEMA_API_URL: Base URL of the practice-management backend functions
    GEMA_ANON_KEY: Public (anon) key sent as bearer token to the backend
    REDIS_URL: Redis connection string (chat sessions)
    CONTENT_CACHE_TTL: Freshness window for chat content snapshots (default: 300)
    CONTENT_CACHE_MAX_PRACTICES: Practices held in the content cache (default: 256)
    PHONE_COUNTRY_CODE: Calling code prefixed to local phone numbers (default: 54)
    APP_ENV: Environment name (development/staging/production)
    DEBUG: Enable debug mode (default: False)
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend Configuration
    gema_api_url: str = "http://localhost:54321/functions/v1"
    """Base URL of the booking/content backend.

    Exposes:
    - GET  /get-medical-group-website
    - GET  /get-available-slots
    - POST /create-public-booking
    """

    gema_anon_key: str = ""
    """Public key sent as `Authorization: Bearer` and `apikey` headers."""

    http_timeout: float = 15.0
    """Backend request timeout in seconds."""

    # Redis Configuration
    redis_url: str = "redis://localhost:6379/0"
    """Redis connection URL.

    Format: redis://host:port/db

    Used for chat session storage. The service keeps working without it
    (in-memory fallback).
    """

    redis_session_ttl: int = 1800
    """Chat session TTL in seconds (default: 30 minutes)."""

    # Chat
    content_cache_ttl: int = 300
    """How long (seconds) a fetched content snapshot is reused by the chat."""

    content_cache_max_practices: int = 256
    """Most practices whose content snapshots are held at once (least recently used are evicted)."""

    handoff_delay_ms: int = 1500
    """Delay before the client should redirect a handed-off conversation."""

    whatsapp_default_message: str = "Hola, me gustaría hacer una consulta"
    """Prefilled text for the WhatsApp hand-off link."""

    # Booking
    default_slot_duration: int = 30
    """Appointment length in minutes when the caller does not provide one."""

    phone_country_code: str = "54"
    """Calling code prefixed to phone numbers that lack a leading `+`.

    Defaults to Argentina; this is a regional formatting policy.
    """

    # Application Environment
    app_env: Literal["development", "staging", "production"] = "development"
    """Current application environment."""

    debug: bool = False
    """Enable debug mode (verbose logging, error details in responses)."""

    app_name: str = "practice-site"
    """Application name."""

    host: str = "0.0.0.0"
    """Host to bind the application server."""

    port: int = 8000
    """Port to bind the application server."""

    cors_origins: str = "http://localhost:5173"
    """Comma-separated list of allowed CORS origins."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @property
    def cors_origins_list(self) -> list[str]:
        """Split cors_origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Example:
        >>> from practice_site.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.content_cache_ttl)
        300
    """
    return Settings()


# Module-level settings instance for easy imports
settings = get_settings()
