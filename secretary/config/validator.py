"""Configuration validation for secretary."""

import signal
from typing import Any, Dict, List

import jsonschema
import yaml

from secretary.utils.errors import ConfigurationError, format_validation_errors

from .schemas import CONFIG_SCHEMA


class ConfigValidationError(ConfigurationError):
    """Raised when configuration validation fails."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(
            f"Configuration validation failed: {'; '.join(errors)}",
            details=format_validation_errors(errors),
        )


class ConfigValidator:
    """Validates secretary configuration files."""

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Validate secretary configuration.

        Args:
            config: Configuration dictionary to validate

        Returns:
            List[str]: List of validation errors (empty if valid)
        """
        errors = []

        try:
            jsonschema.validate(config, CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            errors.append(f"Schema validation failed: {e.message}")
            return errors
        except jsonschema.SchemaError as e:
            errors.append(f"Schema error: {e.message}")
            return errors

        settings = config.get("secretary", {})
        for key in ("reload_signal", "kill_signal"):
            if key in settings:
                errors.extend(self._validate_signal(key, settings[key]))

        return errors

    def validate_config_file(self, file_path: str) -> List[str]:
        """
        Validate configuration file.

        Args:
            file_path: Path to configuration file

        Returns:
            List[str]: List of validation errors (empty if valid)
        """
        try:
            with open(file_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except FileNotFoundError:
            return [f"Configuration file not found: {file_path}"]
        except yaml.YAMLError as e:
            return [f"YAML parsing error: {e}"]
        except OSError as e:
            return [f"Error reading configuration file: {e}"]

        if config is None:
            return ["Configuration file is empty"]

        return self.validate_config(config)

    def _validate_signal(self, key: str, name: str) -> List[str]:
        """Check that a signal name exists on this platform."""
        if not isinstance(getattr(signal, name, None), signal.Signals):
            return [f"{key}: unknown signal '{name}'"]
        return []
