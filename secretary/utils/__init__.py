"""Utilities for secretary."""

from .errors import ErrorHandler, SecretaryError
from .logging import setup_logging

__all__ = ["ErrorHandler", "SecretaryError", "setup_logging"]
