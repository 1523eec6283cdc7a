"""Application configuration using Pydantic settings."""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from custify.core.exceptions import ConfigurationError, ServerMisconfigured

logger = logging.getLogger(__name__)

DEFAULT_SCOPES = "read_customers,write_customers"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True

    # API
    project_name: str = "Custify API"
    version: str = "0.1.0"

    # Database
    database_url: str = "sqlite+aiosqlite:///./dev.sqlite"

    # Redis (OAuth state nonces)
    redis_url: str = "redis://localhost:6379/0"

    # Shopify
    shopify_api_key: str = ""
    shopify_api_secret: str = ""
    shopify_app_url: str = ""
    shopify_webhook_secret: str | None = None
    scopes: str = DEFAULT_SCOPES

    # Security
    encryption_key: str = "CHANGE-ME-IN-PRODUCTION-use-openssl-rand-hex-32"
    # Retired keys, still accepted for decryption while stored tokens are rotated
    previous_encryption_keys: list[str] = []

    # Logs computed signatures on verification failure. Keep off in production.
    log_signature_details: bool = False

    # Observability
    sentry_dsn: str = ""

    # CORS (embedded admin origins; the storefront proxy is open to any origin)
    cors_origins: list[str] = ["https://admin.shopify.com"]


@dataclass(frozen=True)
class AppConfig:
    """Shopify app settings handed to request handlers.

    Built once per process from ``Settings``. Fields may be empty when the
    deployment is incomplete; handlers call ``require`` for what they need.
    """

    api_key: str
    api_secret: str
    app_url: str
    scopes: tuple[str, ...]
    webhook_secret: str | None = None
    log_signature_details: bool = False

    def require(self, *fields: str) -> None:
        """Raise ServerMisconfigured if any of the named fields is empty."""
        missing = [name for name in fields if not getattr(self, name)]
        if missing:
            logger.error("Shopify app not configured, missing: %s", ", ".join(missing))
            raise ServerMisconfigured()

    @property
    def webhook_key(self) -> str:
        """Key used to verify webhook bodies (dedicated secret, else the API secret)."""
        return self.webhook_secret or self.api_secret


def parse_scopes(raw: str | None) -> tuple[str, ...]:
    """Split a comma-separated scope list, keeping order. Empty falls back to the default."""
    scopes = tuple(s.strip() for s in (raw or "").split(",") if s.strip())
    return scopes or tuple(DEFAULT_SCOPES.split(","))


def build_app_config(settings: Settings) -> AppConfig:
    """Build the handler config without validating required values."""
    return AppConfig(
        api_key=settings.shopify_api_key,
        api_secret=settings.shopify_api_secret,
        app_url=settings.shopify_app_url.rstrip("/"),
        scopes=parse_scopes(settings.scopes),
        webhook_secret=settings.shopify_webhook_secret or None,
        log_signature_details=settings.log_signature_details,
    )


_REQUIRED_ENV = {
    "api_key": "SHOPIFY_API_KEY",
    "api_secret": "SHOPIFY_API_SECRET",
    "app_url": "SHOPIFY_APP_URL",
}


def get_config(settings: Settings) -> AppConfig:
    """Build the handler config, failing fast on missing required values.

    Raises:
        ConfigurationError: If the API key, API secret, or app URL is unset.
    """
    config = build_app_config(settings)
    missing = [env for field, env in _REQUIRED_ENV.items() if not getattr(config, field)]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )
    return config


def validate_config(settings: Settings) -> bool:
    """Log whether the deployment config is complete. Never raises."""
    try:
        config = get_config(settings)
    except ConfigurationError as e:
        logger.error("Configuration validation failed: %s", e)
        return False
    logger.info("Configuration validated successfully")
    logger.info("App URL: %s", config.app_url)
    logger.info("Scopes: %s", ", ".join(config.scopes))
    return True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
