"""Process environment access for secret publication."""

import os
from abc import ABC, abstractmethod
from typing import Dict, Iterator, Mapping, Optional, Tuple


class Environment(ABC):
    """Read/write access to a set of environment variables."""

    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        """Return the value of ``name`` or None."""

    @abstractmethod
    def set(self, name: str, value: str) -> None:
        """Set ``name`` to ``value``."""

    @abstractmethod
    def unset(self, name: str) -> None:
        """Remove ``name``; missing variables are ignored."""

    @abstractmethod
    def items(self) -> Iterator[Tuple[str, str]]:
        """Iterate over (name, value) pairs."""

    def snapshot(self) -> Dict[str, str]:
        """Copy of the current variables, suitable for a child process."""
        return dict(self.items())


class OSEnvironment(Environment):
    """The real process environment (``os.environ``)."""

    def get(self, name: str) -> Optional[str]:
        return os.environ.get(name)

    def set(self, name: str, value: str) -> None:
        os.environ[name] = value

    def unset(self, name: str) -> None:
        os.environ.pop(name, None)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(list(os.environ.items()))


class MemoryEnvironment(Environment):
    """In-memory environment used by tests and dry runs."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._variables: Dict[str, str] = dict(initial or {})

    def get(self, name: str) -> Optional[str]:
        return self._variables.get(name)

    def set(self, name: str, value: str) -> None:
        self._variables[name] = value

    def unset(self, name: str) -> None:
        self._variables.pop(name, None)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._variables.items()))

    def __contains__(self, name: object) -> bool:
        return name in self._variables
