"""Settings for the staffing API."""

from typing import Optional

from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the staffing API.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) is a popular
    framework for organizing, validating, and reading configuration values from a variety of sources
    including environment variables.

    This class automatically reads from:
    1. Environment variables (production)
    2. .env file (local development)

    Environment variable names are treated case-insensitively.
    """

    # Booking domain database
    domain_db_connection_string: Optional[str] = None
    """PostgreSQL connection string for the booking database. When unset, the in-memory store is used."""

    db_pool_min_size: int = 2
    """Minimum connections kept in the booking database pool."""

    db_pool_max_size: int = 10
    """Maximum connections in the booking database pool."""

    # Logging
    log_level: str = "INFO"
    """Minimum log level written to stdout (DEBUG, INFO, WARNING, ERROR)."""

    log_file: Optional[str] = None
    """Optional path of a rotating log file."""

    # Notifications
    enable_notification_outbox: bool = False
    """Write booking events to the notifications outbox table (requires the booking database)."""

    # Offer expiry
    enable_offer_expiry: bool = False
    """Run the background task that cancels stale offers and reopens their seats."""

    offer_expiry_hours: float = 48.0
    """Hours an offer may stay pending before it expires."""

    offer_expiry_interval_seconds: float = 300.0
    """Seconds between two offer expiry scans."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables not defined in the model
        validate_default=True,
    )
