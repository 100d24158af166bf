"""Runtime settings for secretary."""

import re
import signal
import tempfile
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional, Union

DEFAULT_PREFIX = "SECRETARY_"
DEFAULT_POLL_FREQUENCY = 15.0
DEFAULT_POLL_TIMEOUT = 10.0

_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h)$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Union[int, float, str]) -> float:
    """
    Convert a duration to seconds.

    Numbers are taken as seconds; strings use a unit suffix
    (``500ms``, ``15s``, ``2m``, ``1h``).

    Raises:
        ValueError: If the value is not a positive duration
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        match = _DURATION_RE.match(text)
        if match:
            seconds = float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        else:
            try:
                seconds = float(text)
            except ValueError:
                raise ValueError(f"Invalid duration: {value!r}") from None

    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return seconds


def signal_number(name: str) -> signal.Signals:
    """Resolve a signal name such as ``SIGHUP`` to its number."""
    sig = getattr(signal, name.upper(), None)
    if not isinstance(sig, signal.Signals):
        raise ValueError(f"Unknown signal: {name}")
    return sig


@dataclass
class SecretaryConfig:
    """
    Settings shared by the secret store, rotation watcher and supervisor.

    Attributes:
        poll_frequency: Seconds between rotation checks
        poll_timeout: Deadline in seconds for each secret source call
        base_path: Directory where secret files are written
        prefix: Environment variable prefix that declares a secret
        provider: Secret source to use (auto, aws, awsssm, dummy)
        reload_signal: Signal sent to the command after a rotation
        kill_signal: Signal sent to the command on shutdown
        aws_region: Region for AWS clients (boto3 default chain when unset)
    """

    poll_frequency: float = DEFAULT_POLL_FREQUENCY
    poll_timeout: float = DEFAULT_POLL_TIMEOUT
    base_path: str = field(default_factory=tempfile.gettempdir)
    prefix: str = DEFAULT_PREFIX
    provider: str = "auto"
    reload_signal: str = "SIGHUP"
    kill_signal: str = "SIGKILL"
    aws_region: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecretaryConfig":
        """Build settings from the ``secretary`` section of a config file."""
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known and value is not None}
        for key in ("poll_frequency", "poll_timeout"):
            if key in values:
                values[key] = parse_duration(values[key])
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "SecretaryConfig":
        """Return a copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        for key in ("poll_frequency", "poll_timeout"):
            if key in values:
                values[key] = parse_duration(values[key])
        return replace(self, **values)

    @property
    def reload_signum(self) -> signal.Signals:
        return signal_number(self.reload_signal)

    @property
    def kill_signum(self) -> signal.Signals:
        return signal_number(self.kill_signal)
