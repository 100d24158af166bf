"""Configuration management for secretary."""

from .manager import ConfigManager
from .schemas import CONFIG_SCHEMA
from .settings import SecretaryConfig, parse_duration, signal_number
from .validator import ConfigValidationError, ConfigValidator

__all__ = [
    "CONFIG_SCHEMA",
    "ConfigManager",
    "ConfigValidationError",
    "ConfigValidator",
    "SecretaryConfig",
    "parse_duration",
    "signal_number",
]
