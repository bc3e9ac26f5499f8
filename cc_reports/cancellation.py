"""Caller-supplied cancellation for report requests."""

import threading
import time

from .errors import AggregationCancelledError


class CancelToken:
    """Signals that a report request should be abandoned.

    A token is cancelled either explicitly through :meth:`cancel` (from any
    thread) or implicitly once its timeout has elapsed.

    Attributes:
        deadline: Monotonic time after which the token counts as cancelled,
            or None for no timeout.
    """

    def __init__(self, *, timeout: float | None = None):
        """Initialize the token.

        Args:
            timeout: Seconds from now after which the token expires.
        """
        self._event = threading.Event()
        self.deadline = None if timeout is None else time.monotonic() + timeout

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def raise_if_cancelled(self, step: str) -> None:
        """Raise AggregationCancelledError naming ``step`` if cancelled."""
        if self.cancelled:
            raise AggregationCancelledError(step)
