# fanout/core/config.py
from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Library settings, loaded from environment variables and/or .env file.
    """

    # Environment settings
    APP_NAME: str = "fanout"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Executor defaults
    EXECUTOR_DEFAULT_CONCURRENCY: int = Field(
        default=10,
        ge=1,
        description="Concurrency cap used when a caller does not pass one",
    )
    EXECUTOR_DRAIN_TIMEOUT_SECONDS: Optional[float] = None

    # Retry defaults
    RETRY_MAX_ATTEMPTS: int = Field(default=3, ge=0)
    RETRY_BACKOFF_BASE_SECONDS: float = 0.2
    RETRY_BACKOFF_MULTIPLIER: float = 2.0
    RETRY_BACKOFF_MAX_SECONDS: float = 5.0
    RETRY_SPACED_INTERVAL_SECONDS: float = 1.0
    RETRY_MAX_ELAPSED_SECONDS: float = 30.0

    # Monitoring
    METRICS_ENABLED: bool = True

    @field_validator(
        "EXECUTOR_DRAIN_TIMEOUT_SECONDS",
        "RETRY_BACKOFF_BASE_SECONDS",
        "RETRY_BACKOFF_MAX_SECONDS",
        "RETRY_SPACED_INTERVAL_SECONDS",
        "RETRY_MAX_ELAPSED_SECONDS",
    )
    @classmethod
    def _non_negative(cls, value: Optional[float]) -> Optional[float]:
        """Durations are seconds and may not be negative."""
        if value is not None and value < 0:
            raise ValueError("duration must be >= 0 seconds")
        return value

    @field_validator("RETRY_BACKOFF_MULTIPLIER")
    @classmethod
    def _positive_multiplier(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("backoff multiplier must be > 0")
        return value

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() in ("development", "dev", "local")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


settings = Settings()
