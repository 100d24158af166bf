"""Data models for materialized secrets."""

from dataclasses import dataclass


@dataclass
class Secret:
    """A secret tracked by the store.

    ``version`` stays empty until the first successful materialization.
    """

    identifier: str
    env_name: str
    path: str
    version: str = ""

    @property
    def materialized(self) -> bool:
        return bool(self.version)
