"""Secret rotation watching for secretary."""

import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional

from secretary.events import CHANGE, EventChannel
from secretary.utils.errors import SecretaryError, WatcherError

from .models import Secret
from .store import SecretStore

logger = logging.getLogger(__name__)


class RotationWatcher:
    """Polls tracked secrets for version drift and re-materializes them.

    Secrets are checked one after another on a single thread, in the order
    the store tracks them. Any number of rotations within one poll produce a
    single change notification.
    """

    def __init__(self, store: SecretStore, poll_frequency: Optional[float] = None):
        """
        Initialize rotation watcher.

        Args:
            store: Store holding the tracked secrets
            poll_frequency: Seconds between polls (defaults to the store's config)
        """
        self.store = store
        self.poll_frequency = poll_frequency or store.config.poll_frequency
        self.channel: Optional[EventChannel] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Called with each rotated secret
        self.post_rotation_hooks: List[Callable[[Secret], None]] = []

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_rotation_hook(self, hook: Callable[[Secret], None]) -> None:
        """Register a function called after each successful rotation."""
        self.post_rotation_hooks.append(hook)

    def start(self, channel: Optional[EventChannel] = None) -> EventChannel:
        """
        Start polling in a background thread.

        Args:
            channel: Channel to publish change notifications on (created if omitted)

        Returns:
            EventChannel: The channel carrying change notifications

        Raises:
            WatcherError: If the watcher was already started
        """
        if self._thread is not None:
            raise WatcherError("Rotation watcher already started")

        self.channel = channel or EventChannel()
        self._thread = threading.Thread(target=self._watch_loop, name="secretary-watcher", daemon=True)
        self._thread.start()

        logger.debug(
            "Started rotation watcher for %d secret(s), polling every %ss",
            len(self.store.secrets),
            self.poll_frequency,
        )
        return self.channel

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop polling and wait for the polling thread to finish. Safe to call more than once.

        With no ``timeout`` this waits for an in-flight poll, which is bounded
        by the store's per-call deadline, so nothing is rewritten after return.
        """
        already_stopped = self._stop_event.is_set()
        self._stop_event.set()
        if self.channel is not None:
            self.channel.interrupt()

        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)

        if not already_stopped:
            logger.debug("Stopped rotation watcher")

    def check_for_changes(self) -> bool:
        """
        Run one poll over every tracked secret.

        Version lookup and re-materialization failures are logged and the
        secret is retried on the next poll; its file and version are left
        untouched.

        Returns:
            bool: True if at least one secret was rotated
        """
        rotated = False

        for secret in self.store.secrets:
            if self._stop_event.is_set():
                break

            try:
                version = self.store.get_version(secret.identifier)
            except SecretaryError as e:
                logger.warning("Error retrieving version of %s: %s", secret.identifier, e)
                continue

            if version == secret.version:
                continue

            if self._stop_event.is_set():
                break

            logger.info("Secret %s changed (%s -> %s), recreating", secret.identifier, secret.version, version)

            try:
                self.store.create_secret(secret)
            except SecretaryError as e:
                logger.error("Error recreating secret %s: %s", secret.identifier, e)
                continue

            rotated = True
            self._run_hooks(secret)

        return rotated

    def _watch_loop(self) -> None:
        """Main polling loop."""
        while not self._stop_event.wait(self.poll_frequency):
            if not self.check_for_changes():
                continue

            change = datetime.now().isoformat()
            if self.channel.send(CHANGE, change, cancel=self._stop_event):
                logger.debug("Change notification %s delivered", change)

    def _run_hooks(self, secret: Secret) -> None:
        for hook in self.post_rotation_hooks:
            try:
                hook(secret)
            except Exception as e:
                logger.warning("Post-rotation hook failed for %s: %s", secret.identifier, e)
