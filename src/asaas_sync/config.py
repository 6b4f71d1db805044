"""Configuration settings for Asaas Sync."""

from enum import StrEnum
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ThrottleCheckPolicy(StrEnum):
    """When the rate limit governor inspects the remaining budget."""

    EVERY_CALL = "every_call"
    """Check before every outbound request (conservative)."""

    EVERY_N = "every_n"
    """Check before the first request of every group of N (throughput)."""


class BackoffStrategy(StrEnum):
    """Delay growth between retry attempts."""

    FIXED = "fixed"
    EXPONENTIAL = "exponential"


class RateLimitConfig(BaseModel):
    """Configuration for the rate limit governor.

    Asaas reports its budget through RateLimit-* headers on every response.
    The governor waits out the window once the remaining budget drops to
    the safe threshold.
    """

    safe_threshold: int = Field(
        default=10,
        ge=0,
        description="Remaining calls at or below which the governor waits for the reset",
    )
    safety_margin_seconds: int = Field(
        default=2,
        ge=0,
        description="Extra seconds added to the reset window before resuming",
    )
    check_policy: ThrottleCheckPolicy = Field(
        default=ThrottleCheckPolicy.EVERY_CALL,
        description="Check the budget before every call or every N calls",
    )
    check_interval: int = Field(
        default=20,
        ge=1,
        description="N for the every_n check policy",
    )

    # Optimistic state before the first response is observed
    initial_limit: int = Field(default=140, ge=1)
    initial_remaining: int = Field(default=999, ge=0)
    initial_reset_seconds: int = Field(default=60, ge=0)

    # Threshold percentages for status reporting
    warning_threshold_pct: float = Field(
        default=50.0,
        ge=0.0,
        le=100.0,
        description="% remaining below which status is WARNING",
    )
    critical_threshold_pct: float = Field(
        default=20.0,
        ge=0.0,
        le=100.0,
        description="% remaining below which status is CRITICAL",
    )


class ClientConfig(BaseModel):
    """Configuration for the Asaas HTTP client and its retry loop."""

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries after the first attempt for throttle/transport errors",
    )
    retry_delay_ms: int = Field(
        default=300,
        ge=0,
        description="Base delay before retrying a throttled or failed request",
    )
    throttle_retry_delay_ms: int = Field(
        default=500,
        ge=0,
        description="Base delay before retrying an HTTP 429 response",
    )
    max_retry_delay_ms: int = Field(
        default=5000,
        ge=0,
        description="Upper bound for a single retry delay",
    )
    backoff: BackoffStrategy = Field(
        default=BackoffStrategy.FIXED,
        description="Fixed or exponential growth between attempts",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout per request",
    )


class SyncConfig(BaseModel):
    """Configuration for sync runs.

    Controls page size, batch width, pauses between batches and how often
    reconciled records are committed.
    """

    page_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Records requested per page (Asaas maximum is 100)",
    )
    batch_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Records reconciled concurrently per chunk",
    )
    inter_batch_delay_ms: int = Field(
        default=100,
        ge=0,
        description="Pause between chunks (0 when the governor is enough)",
    )
    inter_page_delay_ms: int = Field(
        default=0,
        ge=0,
        description="Pause between page requests",
    )
    commit_batch_size: int = Field(
        default=25,
        ge=1,
        le=500,
        description="Writes to commit per transaction (limits data loss on failure)",
    )
    max_failure_retries: int = Field(
        default=3,
        ge=1,
        description="Retry passes before a recorded failure is marked permanent",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging behavior."""

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Database
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./asaas_sync.db",
        description="Async database connection string",
    )

    # --------------------------------------------------------------------------
    # Asaas API
    # --------------------------------------------------------------------------
    asaas_api_key: str = Field(
        default="",
        description="Asaas access token",
    )
    asaas_api_url: str = Field(
        default="https://api.asaas.com/v3",
        description="Asaas API base URL (use the sandbox URL for testing)",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Rate Limiting & Retries
    # --------------------------------------------------------------------------
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig,
        description="Rate limit governor configuration",
    )
    client: ClientConfig = Field(
        default_factory=ClientConfig,
        description="HTTP client and retry configuration",
    )

    # --------------------------------------------------------------------------
    # Sync Configuration
    # --------------------------------------------------------------------------
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Sync run configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )

    @model_validator(mode="after")
    def _strip_trailing_slash(self) -> "Settings":
        self.asaas_api_url = self.asaas_api_url.rstrip("/")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
