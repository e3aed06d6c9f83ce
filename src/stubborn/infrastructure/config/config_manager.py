"""Configuration manager for loading and validating .stubborn.yml"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from stubborn.domain.config import AppConfig, LoggingConfig, RetryConfig
from stubborn.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".stubborn.yml"


class ConfigManager:
    """Manages configuration from .stubborn.yml and environment variables

    Loads configuration with validation using Pydantic models. Configuration priority:
    1. Default values (defined in Pydantic models)
    2. .stubborn.yml file (searched from current directory upwards)
    3. Environment variables (STUBBORN_*)
    4. CLI arguments (handled by CLI layer)
    """

    # Environment variable -> (section, key)
    ENV_OVERRIDES = {
        "STUBBORN_RETRIES": ("retry", "max_retries"),
        "STUBBORN_DELAY": ("retry", "delay"),
        "STUBBORN_TIME_SCALE": ("retry", "time_scale"),
        "STUBBORN_STRATEGY": ("retry", "strategy"),
        "STUBBORN_JITTER": ("retry", "jitter"),
        "STUBBORN_LABEL": ("retry", "label"),
        "STUBBORN_LOG_LEVEL": ("logging", "level"),
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager

        Args:
            config_path: Path to .stubborn.yml (searches from current dir if None)

        Raises:
            ConfigurationError: If configuration validation fails
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)
        self.config_path = config_path or self._find_config_file()
        try:
            self.config: AppConfig = self._load_config()
        except ValidationError as e:
            # Format validation errors for user
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                msg = error["msg"]
                errors.append(f"  - {field}: {msg}")
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(errors)
            ) from e

    def _find_config_file(self) -> Optional[Path]:
        """Find .stubborn.yml starting from current directory

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            config_file = parent / CONFIG_FILE_NAME
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return config_file
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        return None

    def _load_config(self) -> AppConfig:
        """Load configuration from file and validate with Pydantic

        Returns:
            Validated AppConfig instance

        Raises:
            ValidationError: If configuration is invalid
            ConfigurationError: If the file is not valid YAML
        """
        config_dict: Dict[str, Any] = copy.deepcopy(AppConfig().model_dump())

        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"Expected a mapping at the top of {self.config_path}")
            config_dict = self._merge_config(config_dict, file_config)
            logger.info(f"Loaded configuration from {self.config_path}")

        config_dict = self._apply_env_overrides(config_dict)

        return AppConfig(**config_dict)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries

        Args:
            base: Base configuration
            override: Override configuration

        Returns:
            Merged configuration
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides

        Values are passed as strings; Pydantic coerces numeric fields.

        Args:
            config: Configuration dictionary

        Returns:
            Configuration with env overrides applied
        """
        for env_name, (section, key) in self.ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if not value:
                continue
            if key in ("time_scale", "strategy", "jitter"):
                value = value.lower()
            elif key == "level":
                value = value.upper()
            logger.debug(f"Overriding {section}.{key} from {env_name}")
            config.setdefault(section, {})[key] = value
        return config

    def get_retry_config(self) -> RetryConfig:
        """Get retry configuration

        Returns:
            Retry configuration model
        """
        return self.config.retry

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration

        Returns:
            Logging configuration model
        """
        return self.config.logging

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key (supports dot notation)

        Args:
            key: Configuration key (e.g., "retry.delay" or "retry")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self.config.model_dump()
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value
