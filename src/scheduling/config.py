"""Engine configuration loaded from environment variables."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class SchedulingConfig(BaseSettings):
    """Scheduling engine configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Remote API (JSON over HTTP)
    api_base_url: str = Field(
        default="http://localhost:3000/api",
        description="Base URL of the scheduling dashboard API",
    )
    api_token: str = Field(
        default="",
        description="Bearer token sent with every API request",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        description="Per-request timeout for API calls",
    )

    # Retry policy for the fetch layer
    retry_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per request, including the first one",
    )
    retry_backoff_ms: int = Field(
        default=500,
        ge=0,
        description="Fixed wait between attempts in milliseconds",
    )

    # Cache TTLs
    resource_ttl_seconds: float = Field(
        default=300.0,
        description="TTL for the teacher list",
    )
    booking_ttl_seconds: float = Field(
        default=300.0,
        description="TTL for booking grids (also invalidated on every mutation)",
    )
    availability_ttl_seconds: float = Field(
        default=3600.0,
        description="Upper bound for availability declarations within one form session",
    )
    type_catalog_ttl_seconds: float = Field(
        default=86400.0,
        description="TTL for the course/schedule type catalog",
    )
    cache_max_entries: int = Field(
        default=256,
        ge=1,
        description="Maximum number of keys held by each cache",
    )

    # Policy
    on_unknown: Literal["exclude", "block"] = Field(
        default="exclude",
        description="How unparseable times are treated: exclude (fail-open) or block",
    )
    display_timezone: str = Field(
        default="Asia/Shanghai",
        description="Timezone used to take the calendar date of aware timestamps",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: SchedulingConfig | None = None


def get_config() -> SchedulingConfig:
    """Get the scheduling configuration singleton.

    Returns:
        SchedulingConfig: Configuration instance
    """
    global _config
    if _config is None:
        _config = SchedulingConfig()
    return _config
