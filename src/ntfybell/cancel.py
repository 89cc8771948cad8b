"""Process-wide cancellation token.

One token is shared by the supervisor and every subscription worker.
Waits that must end on shutdown either wait on the token directly or
register a callback that wakes them.
"""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """One-shot shutdown signal.

    Usage:
        token = CancellationToken()
        unregister = token.on_cancel(wake.set)
        ...
        token.cancel()
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._next_id = 0

    def cancel(self) -> None:
        """Trip the token and run registered callbacks.

        Only the first call has any effect.
        """
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()

        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancellation callback failed")

    @property
    def cancelled(self) -> bool:
        """Return True once the token has tripped."""
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the token trips or the timeout elapses.

        Returns:
            True if the token tripped.
        """
        return self._event.wait(timeout)

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback to run when the token trips.

        Runs the callback immediately if the token has already tripped.

        Returns:
            Function that unregisters the callback.
        """
        with self._lock:
            if not self._event.is_set():
                handle = self._next_id
                self._next_id += 1
                self._callbacks[handle] = callback

                def unregister() -> None:
                    with self._lock:
                        self._callbacks.pop(handle, None)

                return unregister

        callback()
        return lambda: None


__all__ = ["CancellationToken"]
