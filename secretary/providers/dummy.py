"""Stand-in secret source for local runs."""

import random
from typing import Optional

from .base import SecretSource

DUMMY_VALUE = b"dummy-secret-value"


class DummySource(SecretSource):
    """Returns a fixed value and a version that changes at random.

    Each version lookup has a one in five chance of bumping the version,
    which exercises rotation without a real backend.
    """

    def __init__(self, value: bytes = DUMMY_VALUE, rng: Optional[random.Random] = None):
        self.value = value
        self.version = 0
        self._rng = rng or random.Random()

    def get_value(self, identifier: str) -> bytes:
        return self.value

    def get_version(self, identifier: str) -> str:
        if self._rng.randrange(5) == 0:
            self.version += 1
        return f"v{self.version}"
