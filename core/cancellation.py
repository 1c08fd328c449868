"""Cancellation token threaded through the reader, publisher and bridge loop"""
import threading
from typing import Optional


class CancellationToken:
    def __init__(self):
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Set the flag. Returns False if it was already set."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Sleep up to `timeout` seconds, waking early on cancellation."""
        return self._event.wait(timeout)
