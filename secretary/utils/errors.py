"""Error handling utilities for secretary."""

import sys
import traceback
from typing import Optional

import click


class SecretaryError(Exception):
    """Base exception for secretary errors."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        suggestions: Optional[list] = None,
    ):
        self.message = message
        self.details = details
        self.suggestions = suggestions or []
        super().__init__(message)


class ConfigurationError(SecretaryError):
    """Raised when configuration is invalid or missing."""

    pass


class SecretSourceError(SecretaryError):
    """Raised when a secret source cannot return a value or version."""

    pass


class SecretTimeoutError(SecretSourceError):
    """Raised when a secret source call exceeds its deadline."""

    pass


class ProviderError(SecretSourceError):
    """Raised when no provider can handle an identifier."""

    pass


class MaterializationError(SecretaryError):
    """Raised when a secret file or its environment variable cannot be written."""

    pass


class WatcherError(SecretaryError):
    """Raised when the rotation watcher is misused."""

    pass


class ProcessStartError(SecretaryError):
    """Raised when the wrapped command cannot be started."""

    pass


class SignalDeliveryError(SecretaryError):
    """Raised when a signal cannot be delivered to the wrapped command."""

    pass


class ChildExitError(SecretaryError):
    """Raised when the wrapped command exits with a non-zero status."""

    def __init__(self, returncode: int, command: Optional[str] = None):
        self.returncode = returncode
        self.command = command
        if returncode < 0:
            message = f"Command terminated by signal {-returncode}"
        else:
            message = f"Command exited with status {returncode}"
        super().__init__(message, details=command)

    @property
    def exit_code(self) -> int:
        """Shell-style exit code for this outcome."""
        if self.returncode < 0:
            return 128 - self.returncode
        return self.returncode


class ErrorHandler:
    """Handles and formats errors for user-friendly display."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def handle_error(self, error: Exception, context: Optional[str] = None) -> None:
        """
        Handle and display error with appropriate formatting.

        Args:
            error: Exception to handle
            context: Optional context about when/where error occurred
        """
        if isinstance(error, SecretaryError):
            self._handle_secretary_error(error, context)
        else:
            self._handle_generic_error(error, context)

    def _handle_secretary_error(self, error: SecretaryError, context: Optional[str]) -> None:
        """Handle secretary-specific errors."""
        click.echo(f"✗ {error.message}", err=True)

        if context:
            click.echo(f"Context: {context}", err=True)

        if error.details:
            click.echo(f"Details: {error.details}", err=True)

        if error.suggestions:
            click.echo("\nSuggestions:", err=True)
            for suggestion in error.suggestions:
                click.echo(f"  • {suggestion}", err=True)

        if self.verbose:
            click.echo("\nFull traceback:", err=True)
            traceback.print_exc()

    def _handle_generic_error(self, error: Exception, context: Optional[str]) -> None:
        """Handle generic Python exceptions."""
        error_type = type(error).__name__

        if isinstance(error, FileNotFoundError):
            message = f"File not found: {error}"
            suggestions = create_error_suggestions("command_not_found")
        elif isinstance(error, PermissionError):
            message = f"Permission denied: {error}"
            suggestions = create_error_suggestions("permission_denied")
        elif isinstance(error, ConnectionError):
            message = f"Connection failed: {error}"
            suggestions = [
                "Check your network connection",
                "Verify that the secret backend endpoint is reachable",
            ]
        else:
            message = f"{error_type}: {error}"
            suggestions = []

        click.echo(f"✗ {message}", err=True)

        if context:
            click.echo(f"Context: {context}", err=True)

        if suggestions:
            click.echo("\nSuggestions:", err=True)
            for suggestion in suggestions:
                click.echo(f"  • {suggestion}", err=True)

        if self.verbose:
            click.echo("\nFull traceback:", err=True)
            traceback.print_exc()

    def exit_with_error(self, error: Exception, context: Optional[str] = None, exit_code: int = 1) -> None:
        """Handle error and exit with specified code."""
        self.handle_error(error, context)
        sys.exit(exit_code)


def create_error_suggestions(error_type: str, **kwargs) -> list:
    """
    Create contextual error suggestions based on error type and context.

    Args:
        error_type: Type of error
        **kwargs: Additional context information

    Returns:
        list: List of suggestion strings
    """
    suggestions = {
        "aws_credentials_missing": [
            "Configure AWS credentials (environment, profile or instance role)",
            "Set AWS_DEFAULT_REGION or pass --region",
            "Verify the role can call secretsmanager:DescribeSecret and ssm:GetParameter",
        ],
        "secret_not_found": [
            "Check the identifier in the SECRETARY_* variable",
            "Verify the secret exists in the selected region",
        ],
        "permission_denied": [
            "Check permissions on the secrets directory",
            "Choose another directory with --path",
        ],
        "command_not_found": [
            "Check that the command is installed and on PATH",
            "Pass the command after '--' so its flags are not parsed by secretary",
        ],
        "configuration_invalid": [
            "Check YAML syntax in configuration file",
            "Verify durations are positive numbers of seconds",
            "Validate signal names (e.g. SIGHUP, SIGTERM, SIGKILL)",
        ],
    }

    result = list(suggestions.get(error_type, []))
    secret = kwargs.get("secret")
    if secret and error_type == "secret_not_found":
        result.insert(0, f"Secret reference was: {secret}")
    return result


def format_validation_errors(errors: list) -> str:
    """
    Format validation errors for display.

    Args:
        errors: List of validation error messages

    Returns:
        str: Formatted error message
    """
    if not errors:
        return "No validation errors"

    if len(errors) == 1:
        return f"Validation error: {errors[0]}"

    formatted = "Validation errors:\n"
    for i, error in enumerate(errors, 1):
        formatted += f"  {i}. {error}\n"

    return formatted.strip()
