"""
Configuration module for the QR recovery pipeline.

This module defines the settings schema using Pydantic BaseSettings,
supporting environment variable overrides and LRU caching.
"""

import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("qr-recovery.config")

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """
    Runtime settings for recovery and damage assessment.

    Attributes:
        environment: Deployment environment name.
        log_level: Root log level used by setup_logging.
        json_logs: Emit structured JSON logs instead of plain text.
        decoder_backend: Single-shot decoder used by the pipeline.
        contrast_sample_size: Random pixels sampled by the contrast estimate.
        contrast_seed: Seed for the contrast sampler; None draws fresh entropy.
        rotation_fill: Gray level painted into canvas areas exposed by
            rotation and shear.
        enable_profiling: Record per-strategy timings in a PerformanceProfiler.
        enable_tracing: Export OpenTelemetry spans to the console.
    """

    environment: str = "development"
    log_level: str = "INFO"
    json_logs: bool = True

    decoder_backend: Literal["zxing", "opencv"] = "zxing"

    contrast_sample_size: int = Field(1000, ge=1)
    contrast_seed: Optional[int] = None
    rotation_fill: int = Field(255, ge=0, le=255)

    enable_profiling: bool = False
    enable_tracing: bool = False

    model_config = SettingsConfigDict(
        env_prefix="QR_RECOVERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{value}'. Expected one of: {', '.join(_LOG_LEVELS)}"
            )
        return level

    @field_validator("decoder_backend", mode="before")
    @classmethod
    def normalize_backend(cls, value):
        return value.lower() if isinstance(value, str) else value


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the settings.
    """
    logger.debug("Loading settings from environment and .env file.")
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as e:
        logger.error("Settings validation error: %s", e)
        raise
