"""Configuration models with Pydantic validation."""

from stubborn.domain.config.app import AppConfig
from stubborn.domain.config.log import LoggingConfig
from stubborn.domain.config.retry import RetryConfig

__all__ = [
    "AppConfig",
    "LoggingConfig",
    "RetryConfig",
]
