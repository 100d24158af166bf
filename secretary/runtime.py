"""Lifecycle of a secretary run: materialize, watch, supervise, clean up."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from secretary.config.settings import SecretaryConfig
from secretary.process.supervisor import ProcessSupervisor
from secretary.providers import create_source
from secretary.providers.base import SecretSource
from secretary.secrets.environment import Environment, OSEnvironment
from secretary.secrets.models import Secret
from secretary.secrets.rotation import RotationWatcher
from secretary.secrets.store import EnvironmentEntries, SecretStore
from secretary.utils.errors import SecretaryError

logger = logging.getLogger(__name__)


class Secretary:
    """Wires the secret store, rotation watcher and process supervisor together."""

    def __init__(
        self,
        config: Optional[SecretaryConfig] = None,
        source: Optional[SecretSource] = None,
        environment: Optional[Environment] = None,
    ):
        """
        Initialize runtime.

        Args:
            config: Runtime settings
            source: Secret source (built from ``config.provider`` if omitted)
            environment: Environment scanned for declarations and handed to the command
        """
        self.config = config or SecretaryConfig()
        self.environment = environment or OSEnvironment()
        self.source = source or create_source(self.config.provider, self.config)
        self.store = SecretStore(self.source, self.config, environment=self.environment)
        self.watcher = RotationWatcher(self.store, poll_frequency=self.config.poll_frequency)
        self.supervisor: Optional[ProcessSupervisor] = None

    def setup(self, environ: Optional[EnvironmentEntries] = None) -> List[Secret]:
        """Materialize every secret declared in ``environ`` (the runtime environment by default)."""
        if environ is None:
            environ = self.environment.snapshot()
        return self.store.materialize_from_environment(environ)

    def run(self, command: Sequence[str]) -> None:
        """
        Materialize secrets, run ``command`` under supervision and clean up.

        The watcher is stopped and every secret file removed on every exit
        path, including a failed setup.

        Raises:
            SecretaryError: On setup failure, start failure, signal delivery
                failure or an abnormal exit of the command
        """
        try:
            self.setup()
            channel = self.watcher.start()
            self.supervisor = ProcessSupervisor(
                command,
                channel=channel,
                environment=self.environment,
                reload_signal=self.config.reload_signum,
                kill_signal=self.config.kill_signum,
            )
            self.supervisor.run()
        finally:
            self.shutdown()

    def shutdown(self) -> Dict[str, Any]:
        """Stop the watcher, then remove secret files and variables."""
        self.watcher.stop()
        return self.store.clean()

    def check(self, environ: Optional[EnvironmentEntries] = None) -> List[Dict[str, Any]]:
        """
        Look up the current version of every declared secret without writing anything.

        Returns:
            List[Dict[str, Any]]: One entry per declaration with ``version`` or ``error``
        """
        if environ is None:
            environ = self.environment.snapshot()

        results = []
        for declaration in self.store.declarations(environ):
            entry: Dict[str, Any] = {
                "env_name": declaration.env_name,
                "identifier": declaration.identifier,
                "path": declaration.path,
                "version": None,
                "error": None,
            }
            try:
                entry["version"] = self.store.get_version(declaration.identifier)
            except SecretaryError as e:
                entry["error"] = e.message
                logger.debug("Version lookup failed for %s: %s", declaration.identifier, e)
            results.append(entry)

        return results
