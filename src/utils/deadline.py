"""Overall deadline and cancellation signal for long-running fetches and batches."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from src.core.errors import DeadlineExceededError


class Deadline:
    """Expires after ``seconds`` or when ``cancel_event`` is set, whichever comes first.

    Checked only between remote calls and before backoff waits, never mid-call.
    """

    def __init__(
        self,
        seconds: float | None = None,
        cancel_event: threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._expires_at = clock() + seconds if seconds is not None else None
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def remaining(self) -> float | None:
        """Seconds left, or None when only cancellation can end it."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        if self.cancel_event.is_set():
            return True
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self) -> None:
        """Raise DeadlineExceededError if the deadline has passed or was cancelled."""
        if self.cancel_event.is_set():
            raise DeadlineExceededError("operation cancelled")
        if self.expired():
            raise DeadlineExceededError("deadline exceeded")
