"""Supervision of the wrapped command."""

import logging
import os
import signal
import subprocess
import threading
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from secretary.events import CHANGE, EXIT, SIGNAL, EventChannel
from secretary.secrets.environment import Environment, OSEnvironment
from secretary.utils.errors import (
    ChildExitError,
    ProcessStartError,
    SignalDeliveryError,
    create_error_suggestions,
)

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# Seconds to wait for the command to be reaped after the kill signal
REAP_TIMEOUT = 5.0


class SupervisorState(Enum):
    """Lifecycle states of the supervised command."""

    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


class ProcessSupervisor:
    """Runs one command and relays signals to it.

    A single loop waits on one channel fed by three producers: the rotation
    watcher (change notifications), the supervisor's own signal handler
    (termination requests) and a thread waiting for the command to exit.
    Whichever event arrives first is handled; a termination request or the
    command's exit ends the loop and later events are never read.
    """

    def __init__(
        self,
        command: Sequence[str],
        channel: Optional[EventChannel] = None,
        environment: Optional[Environment] = None,
        reload_signal: signal.Signals = signal.SIGHUP,
        kill_signal: signal.Signals = signal.SIGKILL,
    ):
        """
        Initialize process supervisor.

        Args:
            command: Program and arguments to run
            channel: Channel carrying change notifications (created if omitted)
            environment: Environment copied into the command
            reload_signal: Signal sent to the command after a rotation
            kill_signal: Signal sent to the command on shutdown
        """
        self.command = list(command)
        self.channel = channel or EventChannel()
        self.environment = environment or OSEnvironment()
        self.reload_signal = reload_signal
        self.kill_signal = kill_signal

        self.state = SupervisorState.STARTING
        self.process: Optional[subprocess.Popen] = None
        self._waiter: Optional[threading.Thread] = None
        self._previous_handlers: Dict[int, Any] = {}

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    def start(self) -> subprocess.Popen:
        """
        Launch the command with inherited standard streams.

        Raises:
            ProcessStartError: If the command cannot be executed
        """
        if not self.command:
            raise ProcessStartError("No command given to run")

        try:
            self.process = subprocess.Popen(self.command, env=self.environment.snapshot())
        except (OSError, ValueError) as e:
            raise ProcessStartError(
                f"Failed to start {self.command[0]}: {e}",
                suggestions=create_error_suggestions("command_not_found"),
            ) from e

        logger.info("Started %s with PID %d", self.command[0], self.process.pid)

        self._waiter = threading.Thread(target=self._wait_for_exit, name="secretary-child-wait", daemon=True)
        self._waiter.start()
        return self.process

    def run(self) -> None:
        """
        Start the command (unless already started) and supervise it until it stops.

        Returns normally when the command exits cleanly or when a termination
        signal is received and the command has been killed.

        Raises:
            ProcessStartError: If the command cannot be started
            ChildExitError: If the command exits with a non-zero status
            SignalDeliveryError: If a signal cannot be delivered to the command
        """
        self._install_signal_handlers()
        try:
            if self.process is None:
                self.start()
            self.state = SupervisorState.RUNNING
            self._control_loop()
        finally:
            self.state = SupervisorState.STOPPED
            self._restore_signal_handlers()

    def send_signal(self, sig: signal.Signals) -> None:
        """
        Deliver ``sig`` to the command.

        Raises:
            SignalDeliveryError: If the command is not running
        """
        process = self.process
        if process is None or process.returncode is not None:
            raise SignalDeliveryError(f"Cannot send {sig.name}: process is not running")

        try:
            os.kill(process.pid, sig)
        except OSError as e:
            raise SignalDeliveryError(f"Failed to send {sig.name} to PID {process.pid}: {e}") from e

    def _control_loop(self) -> None:
        while True:
            event = self.channel.receive()

            if event.kind == CHANGE:
                logger.info("Change detected: %s, sending %s to %d", event.payload, self.reload_signal.name, self.pid)
                self.send_signal(self.reload_signal)

            elif event.kind == SIGNAL:
                logger.info("Received %s, sending %s to %d", _signal_name(event.payload), self.kill_signal.name, self.pid)
                self.send_signal(self.kill_signal)
                self._reap()
                return

            elif event.kind == EXIT:
                self._handle_exit(event.payload)
                return

            else:
                logger.warning("Ignoring unknown event %r", event)

    def _handle_exit(self, returncode: int) -> None:
        if returncode == 0:
            logger.info("%s exited cleanly", self.command[0])
            return
        raise ChildExitError(returncode, command=" ".join(self.command))

    def _wait_for_exit(self) -> None:
        returncode = self.process.wait()
        self.channel.publish(EXIT, returncode)

    def _reap(self) -> None:
        if self._waiter is not None:
            self._waiter.join(timeout=REAP_TIMEOUT)
            if self._waiter.is_alive():
                logger.warning("PID %d still running %ss after %s", self.pid, REAP_TIMEOUT, self.kill_signal.name)

    def _handle_signal(self, signum: int, frame: Any) -> None:
        self.channel.publish(SIGNAL, signum)

    def _install_signal_handlers(self) -> None:
        # signal.signal only works on the main thread
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; termination signals will not be relayed")
            return

        for sig in TERMINATION_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)
        self._previous_handlers.clear()


def _signal_name(signum: Any) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)
