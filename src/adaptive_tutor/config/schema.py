from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class ModelConfig(BaseModel):
    """Model-level settings for the completion service used to generate content."""

    name: str = Field("gpt-4o-mini", description="LLM identifier.")
    request_timeout_seconds: float = Field(
        60.0, gt=0, description="Client-side timeout before a call is classified as timed out."
    )


class CacheConfig(BaseModel):
    """Response cache sizing and expiry."""

    ttl_seconds: float = Field(30 * 60, gt=0)
    max_size: int = Field(200, ge=1)
    key_length: int = Field(
        100, ge=1, description="Serialized parameters are truncated to this many characters."
    )


class ThrottleConfig(BaseModel):
    """Minimum spacing between outbound generation calls."""

    min_delay_seconds: float = Field(1.0, ge=0)


class RetryConfig(BaseModel):
    """Retry policy applied to every generation call."""

    max_retries: int = Field(2, ge=1)
    backoff_base_seconds: float = Field(
        2.0, ge=0, description="Delay before the second attempt; doubles for each later attempt."
    )


class ProgressConfig(BaseModel):
    """Tuning for the adaptive progress engine."""

    review_ratio: float = Field(0.8, gt=0, le=1)
    engagement_window: int = Field(5, ge=1)
    recency_decay_hours: float = Field(24.0, gt=0)
    default_engagement: float = Field(0.5, ge=0, le=1)


class LoggingConfig(BaseModel):
    """Controls for engine logging output and format."""

    level: str = Field("INFO")
    use_json: bool = False

    @field_validator("level")
    def normalize_level(cls, value: str) -> str:
        """Store log levels upper-cased so they map onto `logging` constants."""
        return value.upper()


class Settings(BaseModel):
    """Top-level project configuration aggregating all sub-settings."""

    project_name: str = Field("Adaptive Tutor Engine")
    model: ModelConfig = Field(default_factory=ModelConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    throttle: ThrottleConfig = Field(default_factory=ThrottleConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
