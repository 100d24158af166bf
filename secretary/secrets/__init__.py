"""Secret materialization and rotation for secretary."""

from .environment import Environment, MemoryEnvironment, OSEnvironment
from .models import Secret
from .rotation import RotationWatcher
from .store import SecretStore, parse_declarations

__all__ = [
    "Environment",
    "MemoryEnvironment",
    "OSEnvironment",
    "RotationWatcher",
    "Secret",
    "SecretStore",
    "parse_declarations",
]
