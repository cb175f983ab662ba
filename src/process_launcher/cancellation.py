"""Cancellation monitors for synchronous launches.

A monitor only has to answer ``is_canceled()``. Monitors that can also push a
notification (``add_cancel_callback``) let the wait loop wake up immediately
instead of at the next poll.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol, runtime_checkable

__all__ = [
    "CancelMonitor",
    "CancellationToken",
    "NullMonitor",
    "subscribe_cancel",
]

logger = logging.getLogger(__name__)


@runtime_checkable
class CancelMonitor(Protocol):
    """Anything that can report cancellation."""

    def is_canceled(self) -> bool: ...


class NullMonitor:
    """Monitor that is never canceled."""

    def is_canceled(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NullMonitor()"


class CancellationToken:
    """Thread-safe cancellation flag with callbacks.

    Example:
        token = CancellationToken()
        threading.Timer(5.0, token.cancel).start()
        exit_code = launcher.launch_sync(["make"], monitor=token)
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    def is_canceled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Request cancellation.

        Returns:
            True if this call canceled the token, False if it already was
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Error in cancel callback: {e}")
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until canceled or the timeout expires."""
        return self._event.wait(timeout)

    def add_cancel_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback run on cancellation.

        The callback runs immediately if the token is already canceled.

        Returns:
            A function that removes the callback
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._remove_callback(callback)

        callback()
        return lambda: None

    def _remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def __repr__(self) -> str:
        return f"CancellationToken(canceled={self.is_canceled()})"


def subscribe_cancel(
    monitor: CancelMonitor,
    callback: Callable[[], None],
) -> Callable[[], None] | None:
    """Register ``callback`` on monitors that support push notification.

    Returns:
        The unsubscribe function, or None when the monitor can only be polled
    """
    add_callback = getattr(monitor, "add_cancel_callback", None)
    if add_callback is None:
        return None
    return add_callback(callback)
