"""Event channel shared by the rotation watcher, child waiter and signal handler."""

import queue
import threading
from typing import Any, NamedTuple, Optional

CHANGE = "change"
SIGNAL = "signal"
EXIT = "exit"


class Event(NamedTuple):
    """A single item on the channel."""

    kind: str
    payload: Any = None


class EventChannel:
    """Many-producer, single-consumer channel with first-ready-wins delivery.

    ``publish`` never blocks and is safe to call from a signal handler.
    ``send`` blocks the producer until the consumer has received the event,
    or until ``cancel`` is set and :meth:`interrupt` is called.
    """

    def __init__(self) -> None:
        self._queue: "queue.SimpleQueue" = queue.SimpleQueue()
        # Guards delivery flags; never taken by publish
        self._delivered = threading.Condition()

    def publish(self, kind: str, payload: Any = None) -> None:
        """Enqueue an event without waiting for it to be received."""
        self._queue.put((Event(kind, payload), None))

    def send(self, kind: str, payload: Any = None, cancel: Optional[threading.Event] = None) -> bool:
        """
        Enqueue an event and wait until it is received.

        Args:
            kind: Event kind
            payload: Event payload
            cancel: Event that aborts the wait when set; whoever sets it
                must call :meth:`interrupt` to wake the sender

        Returns:
            bool: True if the event was received, False if the wait was cancelled
        """
        received = threading.Event()
        self._queue.put((Event(kind, payload), received))

        with self._delivered:
            while not received.is_set():
                if cancel is not None and cancel.is_set():
                    return False
                self._delivered.wait()
        return True

    def receive(self, timeout: Optional[float] = None) -> Event:
        """
        Block until the next event is available.

        Raises:
            queue.Empty: If ``timeout`` elapses first
        """
        event, received = self._queue.get(timeout=timeout)
        if received is not None:
            with self._delivered:
                received.set()
                self._delivered.notify_all()
        return event

    def interrupt(self) -> None:
        """Wake every blocked sender so it re-checks its cancel event."""
        with self._delivered:
            self._delivered.notify_all()

    def empty(self) -> bool:
        return self._queue.empty()
