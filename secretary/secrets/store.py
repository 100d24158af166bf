"""Materialization of secrets to files and environment variables."""

import logging
import os
import tempfile
import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from secretary.config.settings import SecretaryConfig
from secretary.providers.base import SecretSource
from secretary.utils.errors import (
    MaterializationError,
    SecretaryError,
    SecretSourceError,
    SecretTimeoutError,
    create_error_suggestions,
)

from .environment import Environment, OSEnvironment
from .models import Secret

logger = logging.getLogger(__name__)

EnvironmentEntries = Union[Mapping[str, str], Iterable[str]]


def parse_declarations(environ: EnvironmentEntries, prefix: str, base_path: str) -> List[Secret]:
    """
    Find secret declarations in environment entries.

    Args:
        environ: Mapping of variables, or ``KEY=VALUE`` strings
        prefix: Prefix that marks a variable as a secret declaration
        base_path: Directory the secret files are placed in

    Returns:
        List[Secret]: One unmaterialized secret per declaration, in input order
    """
    if isinstance(environ, Mapping):
        pairs = list(environ.items())
    else:
        pairs = []
        for entry in environ:
            if not entry.startswith(prefix):
                continue
            key, sep, value = entry.partition("=")
            if not sep:
                logger.warning("Ignoring malformed secret declaration: %s", key)
                continue
            pairs.append((key, value))

    declarations = []
    for key, identifier in pairs:
        if not key.startswith(prefix):
            continue
        env_name = key[len(prefix):]
        if not env_name:
            logger.warning("Ignoring secret declaration with empty name: %s", key)
            continue
        path = os.path.abspath(os.path.join(base_path, env_name))
        declarations.append(Secret(identifier=identifier, env_name=env_name, path=path))

    return declarations


class SecretStore:
    """Owns the tracked secrets and their files on disk.

    The tracked set is mutated only during setup and from the rotation
    watcher's single polling thread, so it carries no lock. Polling secrets
    in parallel would require adding one.
    """

    def __init__(
        self,
        source: SecretSource,
        config: Optional[SecretaryConfig] = None,
        environment: Optional[Environment] = None,
    ):
        """
        Initialize secret store.

        Args:
            source: Backend that returns secret values and versions
            config: Runtime settings (base path, prefix, call deadline)
            environment: Environment that receives ``NAME=path`` entries
        """
        self.source = source
        self.config = config or SecretaryConfig()
        self.environment = environment or OSEnvironment()
        self._secrets: List[Secret] = []
        # path -> env name for every file ever written
        self._outputs: Dict[str, str] = {}

    @property
    def secrets(self) -> List[Secret]:
        """Tracked secrets in insertion order."""
        return list(self._secrets)

    def get_secret(self, identifier: str) -> Optional[Secret]:
        """Return the tracked secret for ``identifier``, if any."""
        for secret in self._secrets:
            if secret.identifier == identifier:
                return secret
        return None

    def declarations(self, environ: EnvironmentEntries) -> List[Secret]:
        """Secret declarations found in ``environ`` using this store's settings."""
        return parse_declarations(environ, self.config.prefix, self.config.base_path)

    def materialize_from_environment(self, environ: EnvironmentEntries) -> List[Secret]:
        """
        Materialize every secret declared in ``environ``.

        Each ``<prefix><NAME>=<identifier>`` entry becomes a file at
        ``<base_path>/<NAME>`` and ``NAME=<path>`` in the environment; the
        prefixed variable is removed. Stops at the first failure; secrets
        materialized earlier in the call stay in place.

        Args:
            environ: Mapping of variables, or ``KEY=VALUE`` strings

        Returns:
            List[Secret]: Secrets materialized by this call

        Raises:
            SecretaryError: If any declaration cannot be materialized
        """
        materialized = []

        for declaration in self.declarations(environ):
            secret = self.create_secret(declaration)
            self.environment.unset(self.config.prefix + declaration.env_name)
            materialized.append(secret)

        logger.info("Materialized %d secret(s) into %s", len(materialized), self.config.base_path)
        return materialized

    def create_secret(self, secret: Secret) -> Secret:
        """
        Fetch a secret and write it to disk.

        The version is fetched before the value. Nothing is registered or
        changed when either fetch fails. On success the file is written
        atomically, ``env_name`` is pointed at it and the secret is tracked
        (or its tracked entry updated when the identifier is already known).

        Args:
            secret: Secret to materialize

        Returns:
            Secret: The tracked entry for the identifier

        Raises:
            SecretSourceError: If the version or value cannot be fetched
            MaterializationError: If the file cannot be written
        """
        version = self.get_version(secret.identifier)
        value = self.get_value(secret.identifier)

        logger.info("Creating secret %s (version %s) at %s", secret.identifier, version, secret.path)
        self._write_file(secret.path, value)
        self._outputs[secret.path] = secret.env_name
        self.environment.set(secret.env_name, secret.path)

        tracked = self.get_secret(secret.identifier)
        if tracked is None:
            secret.version = version
            self._secrets.append(secret)
            return secret

        tracked.version = version
        tracked.env_name = secret.env_name
        tracked.path = secret.path
        return tracked

    def get_version(self, identifier: str) -> str:
        """Fetch the current version token for ``identifier`` under the call deadline."""
        return str(self._call(self.source.get_version, identifier, "version"))

    def get_value(self, identifier: str) -> bytes:
        """Fetch the current value for ``identifier`` under the call deadline."""
        value = self._call(self.source.get_value, identifier, "value")
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)

    def clean(self) -> Dict[str, Any]:
        """
        Remove every secret file and unset its environment variable.

        Failures are logged and do not stop the remaining removals.

        Returns:
            Dict[str, Any]: Cleanup results
        """
        results: Dict[str, Any] = {
            "total": len(self._outputs),
            "removed": 0,
            "failed": 0,
            "errors": [],
        }

        for path, env_name in list(self._outputs.items()):
            failed = False

            try:
                os.remove(path)
                logger.debug("Removed secret file %s", path)
            except FileNotFoundError:
                logger.debug("Secret file already gone: %s", path)
            except OSError as e:
                failed = True
                results["errors"].append(f"Failed to remove {path}: {e}")
                logger.error("Failed to remove secret file %s: %s", path, e)

            try:
                self.environment.unset(env_name)
            except Exception as e:
                failed = True
                results["errors"].append(f"Failed to unset {env_name}: {e}")
                logger.error("Failed to unset %s: %s", env_name, e)

            if failed:
                results["failed"] += 1
            else:
                results["removed"] += 1

        self._outputs.clear()
        self._secrets.clear()

        logger.info("Cleaned %d/%d secret(s)", results["removed"], results["total"])
        return results

    def _call(self, fetch: Callable[[str], Any], identifier: str, what: str) -> Any:
        """Run a source call, bounded by ``poll_timeout`` when one is set."""
        timeout = self.config.poll_timeout

        try:
            if not timeout:
                return fetch(identifier)
            return self._call_with_deadline(fetch, identifier, what, timeout)

        except SecretaryError:
            raise
        except Exception as e:
            raise SecretSourceError(
                f"Failed to fetch {what} of {identifier}: {e}",
                suggestions=create_error_suggestions("secret_not_found", secret=identifier),
            ) from e

    def _call_with_deadline(self, fetch: Callable[[str], Any], identifier: str, what: str, timeout: float) -> Any:
        # A call that overruns is abandoned on its daemon thread; it cannot delay exit
        outcome: Dict[str, Any] = {}

        def target() -> None:
            try:
                outcome["result"] = fetch(identifier)
            except Exception as e:
                outcome["error"] = e

        worker = threading.Thread(target=target, name="secretary-source", daemon=True)
        worker.start()
        worker.join(timeout)

        if worker.is_alive():
            raise SecretTimeoutError(f"Timed out after {timeout}s fetching {what} of {identifier}")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["result"]

    def _write_file(self, path: str, value: bytes) -> None:
        """
        Replace ``path`` with ``value`` atomically, readable by the owner only.

        The value is written to a temporary file in the same directory and
        renamed over ``path``, so readers never see a partial file and the
        previous value survives a failed write.
        """
        temp_path = None
        try:
            directory = os.path.dirname(path) or "."
            os.makedirs(directory, exist_ok=True)

            fd, temp_path = tempfile.mkstemp(prefix=f".{os.path.basename(path)}.", dir=directory)
            with os.fdopen(fd, "wb") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())

            os.chmod(temp_path, 0o600)
            os.replace(temp_path, path)
            temp_path = None
        except OSError as e:
            raise MaterializationError(
                f"Failed to write secret file {path}: {e}",
                suggestions=create_error_suggestions("permission_denied"),
            ) from e
        finally:
            if temp_path is not None:
                try:
                    os.remove(temp_path)
                except OSError:
                    logger.debug("Could not remove temporary file %s", temp_path)
