"""Configuration management for secretary."""

import logging
import os
from typing import Any, Dict, Optional

import yaml

from .settings import SecretaryConfig, signal_number
from .validator import ConfigValidationError, ConfigValidator

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("secretary.yml", "secretary.yaml")


class ConfigManager:
    """Manages secretary configuration files."""

    def __init__(self, path: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            path: Optional directory to search (defaults to current directory)
        """
        self.path = path or os.getcwd()
        self.validator = ConfigValidator()
        self._config_cache: Dict[str, Dict[str, Any]] = {}

    def get_config_path(self) -> Optional[str]:
        """Get path to the configuration file in the search directory, if any."""
        for filename in CONFIG_FILENAMES:
            candidate = os.path.join(self.path, filename)
            if os.path.exists(candidate):
                return candidate
        return None

    def load_config_file(self, config_path: str, validate: bool = True) -> Dict[str, Any]:
        """
        Load configuration from a specific file.

        Args:
            config_path: Path to configuration file
            validate: Whether to validate the configuration

        Returns:
            Dict[str, Any]: Loaded configuration

        Raises:
            ConfigValidationError: If configuration is invalid
            FileNotFoundError: If config file doesn't exist
        """
        if config_path in self._config_cache:
            return self._config_cache[config_path]

        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError([f"Invalid YAML in {config_path}: {e}"]) from e

        if validate:
            errors = self.validator.validate_config(config)
            if errors:
                raise ConfigValidationError(errors)

        self._config_cache[config_path] = config
        return config

    def load_settings(self, config_path: Optional[str] = None, **overrides: Any) -> SecretaryConfig:
        """
        Build runtime settings.

        Values come from defaults, then the config file (explicit path or
        one found in the search directory), then non-None overrides.

        Args:
            config_path: Optional explicit configuration file
            **overrides: Setting values that take precedence over the file

        Returns:
            SecretaryConfig: Resolved settings
        """
        config_path = config_path or self.get_config_path()
        config: Dict[str, Any] = {}

        if config_path:
            logger.debug("Loading configuration from %s", config_path)
            config = self.load_config_file(config_path)

        try:
            settings = SecretaryConfig.from_dict(config.get("secretary", {}))
            settings = settings.with_overrides(**overrides)
            signal_number(settings.reload_signal)
            signal_number(settings.kill_signal)
            return settings
        except ValueError as e:
            raise ConfigValidationError([str(e)]) from e
