"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

import logging
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Keys the service cannot do its real work without. Missing ones are only
# warned about so the API still boots in development (mock AI, no S3).
REQUIRED_SETTINGS = (
    "openai_api_key",
    "s3_bucket",
    "s3_region",
    "aws_access_key_id",
    "aws_secret_access_key",
    "base_url",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    analysis_max_tokens: int = 1200

    # PayPal
    paypal_client_id: str | None = None
    paypal_client_secret: str | None = None
    paypal_mode: str = "sandbox"
    paypal_currency: str = "USD"

    # Public URL of this service, used for PayPal return/cancel and success redirects
    base_url: str | None = "http://localhost:8000"

    # S3 blob storage
    s3_bucket: str | None = None
    s3_region: str | None = "eu-north-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None

    # Credit pricing: reference_price buys reference_credits
    reference_price: Decimal = Decimal("15.00")
    reference_credits: int = 50

    # Deadline applied to every outbound call (PayPal, OpenAI, S3, downloads)
    outbound_timeout_seconds: float = 30.0

    # Optional database; when unset the ledger and document store are in-memory
    database_url: str | None = None

    cors_allow_origins: list[str] = ["*"]
    max_upload_bytes: int = 25 * 1024 * 1024

    # Debug flags
    sql_debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the package directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )

    @property
    def paypal_base_url(self) -> str:
        """PayPal REST host for the configured mode."""
        if self.paypal_mode.lower() == "live":
            return "https://api-m.paypal.com"
        return "https://api-m.sandbox.paypal.com"

    def missing_required(self) -> list[str]:
        """Names of required settings that are not set."""
        return [name for name in REQUIRED_SETTINGS if not getattr(self, name)]


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()


def warn_missing_settings(settings: Settings) -> None:
    """Log a warning for each required setting that is not configured."""
    for name in settings.missing_required():
        logger.warning("Warning: environment variable %s is not set.", name.upper())
