"""
Cloud BPA Engine Configuration
Environment-driven settings for analysis budgets, concurrency and caching
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models.enums import CacheBackend, WeightPolicy

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Engine settings loaded from CLOUDBPA_* environment variables"""

    model_config = SettingsConfigDict(env_prefix="CLOUDBPA_", env_file=".env", extra="ignore")

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Analysis budget (15 minutes end-to-end)
    analysis_timeout_seconds: float = 900.0
    framework_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Per-framework timeout, capped by the remaining analysis budget",
    )

    # Fan-out
    parallel_execution: bool = True
    max_concurrent_frameworks: int = 3
    evaluation_yield_interval: int = Field(
        default=50, description="Resources evaluated between event loop yields"
    )

    # Scoring
    recommendation_limit: int = 10
    weight_policy: WeightPolicy = WeightPolicy.EXCLUDE_AND_RENORMALIZE

    # Registry cache
    cache_backend: CacheBackend = CacheBackend.MEMORY
    redis_url: str = "redis://localhost:6379"
    redis_db: int = 0
    cache_ttl_seconds: int = 3600
    cache_key_prefix: str = "cloudbpa:ruleset"

    @field_validator("analysis_timeout_seconds", "framework_timeout_seconds")
    @classmethod
    def timeout_must_be_positive(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Timeouts must be positive")
        return v

    @field_validator("max_concurrent_frameworks", "recommendation_limit", "evaluation_yield_interval")
    @classmethod
    def limit_must_be_positive(cls, v):
        if v < 1:
            raise ValueError("Limits must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
