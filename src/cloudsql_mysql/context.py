"""Cancellation and deadlines for resource operations."""

import threading
import time
from collections.abc import Callable
from collections.abc import Iterator
from contextlib import contextmanager

from cloudsql_mysql.errors import OperationCancelledError


class OperationContext:
    """Carries the cancellation signal and optional deadline of one operation.

    The runtime invoking a resource operation may cancel it from another thread.
    Work registered with `interrupting` is told to stop as soon as the context
    fires, either through `cancel()` or when the deadline passes.

    Args:
        timeout (float | None): Seconds from now after which the context counts
            as cancelled, or None for no deadline.
    """

    def __init__(self, timeout: float | None = None):
        self._cancelled = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    def cancel(self):
        """Fire the context and run the registered interrupt callbacks, once."""
        with self._lock:
            if self._cancelled.is_set():
                return
            self._cancelled.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self._deadline_passed()

    def remaining(self) -> float | None:
        """Seconds left until the deadline, or None if there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self):
        """Raise OperationCancelledError if the context has fired."""
        if self._deadline_passed():
            raise OperationCancelledError('Operation deadline exceeded')
        if self._cancelled.is_set():
            raise OperationCancelledError('Operation cancelled')

    @contextmanager
    def interrupting(self, callback: Callable[[], None]) -> Iterator[None]:
        """Run `callback` if the context fires while the block is running.

        With a deadline, a timer fires the context when it passes. The callback
        runs on the thread that fires the context.

        Raises:
            OperationCancelledError: if the context has already fired.
        """
        with self._lock:
            self._callbacks.append(callback)
        timer = None
        try:
            # Checked after registering, so a concurrent cancel() either raises here or runs the callback
            self.check()
            remaining = self.remaining()
            if remaining is not None:
                timer = threading.Timer(remaining, self.cancel)
                timer.daemon = True
                timer.start()
            yield
        finally:
            if timer is not None:
                timer.cancel()
            with self._lock:
                self._callbacks.remove(callback)

    def _deadline_passed(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline
