"""
Provider account settings for payspine.

One ``ProviderAccountSettings`` instance describes one external payment
provider account: where it lives, how fast it is expected to answer, how
much traffic it accepts, and how the attempt loop should treat deadlines.

All fields can be set through ``PAYSPINE_*`` environment variables or a
``.env`` file, e.g. ``PAYSPINE_RATE_LIMIT_PER_SEC=50``.

Examples:
    >>> from payspine.core.settings import ProviderAccountSettings
    >>> settings = ProviderAccountSettings(account_name="acc-12", parallel_requests=5)
    >>> settings.initial_timeout_ms
    2000

Tags:
    settings, configuration, pydantic, environment, payspine
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderAccountSettings(BaseSettings):
    """Settings for a single provider account.

    Fields
    ──────
    service_name               : Service name sent to the provider
    account_name               : Provider account; also the adapter's name
    base_url                   : Provider base URL
    average_processing_time_ms : Expected provider latency, drives budget/backoff
    rate_limit_per_sec         : Calls admitted per 1-second window
    parallel_requests          : Maximum in-flight calls
    price                      : Price of one call on this account
    enabled                    : Whether the account accepts payments
    timeout_percentile         : Latency percentile used as the adaptive timeout
    max_latency_samples        : Latency samples retained (FIFO)
    histogram_buckets          : Resolution of the latency histogram
    strict_deadline            : Bound rate waits and backoff sleeps by the deadline
    worker_threads             : Threads running submitted payments
    """

    model_config = SettingsConfigDict(
        env_prefix="PAYSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Provider ─────────────────────────────────────────────────
    service_name: str = Field(default="payspine")
    account_name: str = Field(default="default")
    base_url: str = Field(default="http://localhost:1234")
    price: int = Field(default=30, ge=0)
    enabled: bool = Field(default=True)

    # ── Limits ───────────────────────────────────────────────────
    average_processing_time_ms: int = Field(default=1000, gt=0)
    rate_limit_per_sec: int = Field(default=10, gt=0)
    parallel_requests: int = Field(default=10, gt=0)

    # ── Adaptive timeout ─────────────────────────────────────────
    timeout_percentile: float = Field(default=92.0, gt=0.0, le=100.0)
    max_latency_samples: int = Field(default=10_000, gt=0)
    histogram_buckets: int = Field(default=200, gt=0)

    # ── Attempt loop ─────────────────────────────────────────────
    strict_deadline: bool = Field(default=False)
    worker_threads: int = Field(default=32, gt=0)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @model_validator(mode="after")
    def _check_log_format(self) -> ProviderAccountSettings:
        if self.log_format not in ("json", "console"):
            raise ValueError(f"log_format must be 'json' or 'console', got {self.log_format!r}")
        return self

    @property
    def initial_timeout_ms(self) -> int:
        """Per-call timeout before any latency has been observed."""
        return self.average_processing_time_ms * 2


@lru_cache(maxsize=1)
def get_settings() -> ProviderAccountSettings:
    """Return the process-wide settings, loaded once."""
    return ProviderAccountSettings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next ``get_settings()`` reloads."""
    get_settings.cache_clear()
