"""Cooperative cancellation token."""

import threading

from ..errors import OutlineCancelled


class CancellationToken:
    """A flag shared between a request and the code serving it.

    Work is never preempted; long-running code calls
    `raise_if_cancelled()` before each unit of work.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OutlineCancelled()
