from .loader import load_settings
from .schema import (
    CacheConfig,
    LoggingConfig,
    ModelConfig,
    ProgressConfig,
    RetryConfig,
    Settings,
    ThrottleConfig,
)

__all__ = [
    "CacheConfig",
    "LoggingConfig",
    "ModelConfig",
    "ProgressConfig",
    "RetryConfig",
    "Settings",
    "ThrottleConfig",
    "load_settings",
]
