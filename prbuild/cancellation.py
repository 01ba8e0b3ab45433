"""Cooperative cancellation for network-bound operations."""

import threading
import time

from prbuild.exceptions import OperationCancelledError


class CancellationToken:
    """
    Caller-supplied cancellation signal.

    Checked at every network boundary. A token may also carry a deadline,
    after which it reports itself as cancelled.

    Example:
        ```python
        token = CancellationToken(timeout=120)
        resolution = client.resolve(12345, cancel=token)
        ```
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        """Signal cancellation to every operation holding this token."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if cancellation was requested."""
        if self.cancelled:
            raise OperationCancelledError()

    def remaining(self, default: float) -> float:
        """Time left before the deadline, capped at ``default``."""
        if self._deadline is None:
            return default
        return max(0.0, min(default, self._deadline - time.monotonic()))

    def wait(self, seconds: float) -> None:
        """
        Sleep for ``seconds`` unless cancelled first.

        Raises:
            OperationCancelledError: If the token fires during the wait
        """
        if self._event.wait(self.remaining(seconds)):
            raise OperationCancelledError()
        self.raise_if_cancelled()
