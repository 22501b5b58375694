"""
PhageCompare Cancellation
Cooperative cancellation for long scans (windows, islands, DTW rows)

Version: 1.0.0
License: MIT
"""

import threading

from .errors import Cancelled

STATUS_COMPLETE = "complete"
STATUS_CANCELLED = "cancelled"


class CancelToken:
    """Thread-safe flag checked by the engine between windows, islands and DTW rows.

    A host (event loop, worker thread, signal handler) calls ``cancel()``;
    the running analysis notices it at its next checkpoint and returns a
    result whose ``status`` is ``"cancelled"``.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self):
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise Cancelled("analysis cancelled by caller")


def checkpoint(cancel):
    """Raise Cancelled if an optional token has been triggered"""
    if cancel is not None:
        cancel.raise_if_cancelled()
