"""
Monte Carlo engine configuration.

Centralized runtime settings using Pydantic settings with environment variable
support. Every field can be overridden with a ``MONTE_CARLO_`` prefixed
environment variable or a ``.env`` file.
"""

import logging
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MONTE_CARLO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    # Simulation defaults
    DEFAULT_ITERATIONS: int = Field(default=10000, gt=0)
    DEFAULT_YEARS: int = Field(default=20, gt=0)
    MIN_RECOMMENDED_ITERATIONS: int = Field(default=100, ge=0)
    MAX_SEED: int = Field(default=1_000_000, gt=0)

    # Execution
    BATCH_SIZE: int = Field(default=1000, gt=0)
    MAX_WORKERS: int = Field(default=1, gt=0)
    EXECUTOR: Literal["thread", "process"] = Field(default="thread")
    MAX_FAILURE_RATE: float = Field(default=0.5, ge=0.0, le=1.0)
    TIMEOUT_SECONDS: Optional[float] = Field(default=None, gt=0)


def configure_logging(level: Optional[str] = None) -> None:
    """Apply ``LOG_LEVEL`` (or an explicit level) to the root logger."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Global settings instance
settings = Settings()
