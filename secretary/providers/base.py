"""Secret source interface."""

from abc import ABC, abstractmethod
from typing import NamedTuple

from secretary.utils.errors import ProviderError


class SecretSource(ABC):
    """A backend that can return a secret's value and its current version."""

    @abstractmethod
    def get_value(self, identifier: str) -> bytes:
        """Return the raw value of the secret."""

    @abstractmethod
    def get_version(self, identifier: str) -> str:
        """Return an opaque token that changes whenever the value changes."""


class Arn(NamedTuple):
    """Parsed Amazon Resource Name."""

    partition: str
    service: str
    region: str
    account: str
    resource: str


def parse_arn(identifier: str) -> Arn:
    """
    Split an ARN into its components.

    Raises:
        ProviderError: If ``identifier`` is not a well-formed ARN
    """
    parts = identifier.split(":", 5)
    if len(parts) != 6 or parts[0] != "arn":
        raise ProviderError(f"Malformed ARN: {identifier}")
    return Arn(*parts[1:])
