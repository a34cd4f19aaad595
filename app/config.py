"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. The identity provider credentials have no defaults, so the
service refuses to start until they are set.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from app.config import settings
    print(settings.IDENTITY_PROVIDER_URL)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the credential provisioning service.

    Required fields (no defaults) MUST be set in .env or environment:
      - IDENTITY_PROVIDER_URL: Base URL of the identity provider (no trailing path)
      - IDENTITY_PROVIDER_SERVICE_KEY: Service-role key for admin calls
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Credential Provisioner"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Directory Store ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/directory.db"

    # --- Identity Provider ---
    IDENTITY_PROVIDER_URL: str
    IDENTITY_PROVIDER_SERVICE_KEY: str
    IDENTITY_PROVIDER_TIMEOUT_SECONDS: float = 10.0

    # --- Credential policy ---
    # Domain appended to derived login identifiers; never shown to end users
    LOGIN_DOMAIN: str = "local.tcc"
    MIN_PASSWORD_LENGTH: int = 8


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()


# Sent on every response, including errors rendered outside the middleware stack
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, content-type, apikey, x-client-info",
}
