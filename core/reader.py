"""Base reader abstraction

A reader adapts one platform input layer into a sequence of RawInputEvents.
Subclasses implement `_open`, `_read` and `_release`; the base class owns the
event queue, the Connected/Disconnected framing and the cancellation checks.
"""
import abc
import logging
from collections import deque
from dataclasses import dataclass
from typing import Iterator, List, Optional

from core.cancellation import CancellationToken
from core.errors import DeviceDisconnected
from core.events import Connected, Disconnected, RawInputEvent

LOG = logging.getLogger("padbridge.reader")


@dataclass(frozen=True)
class DeviceSelector:
    index: Optional[int] = None  # position among matching devices
    name: Optional[str] = None  # case-insensitive substring of the product name
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None

    def matches_name(self, name: str) -> bool:
        return self.name is None or self.name.lower() in (name or "").lower()


@dataclass(frozen=True)
class DeviceInfo:
    index: int
    name: str
    path: str = ""
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None


class DeviceReader(abc.ABC):
    def __init__(self):
        self._pending = deque()
        self._finished = True
        self.info: Optional[DeviceInfo] = None

    @abc.abstractmethod
    def list_devices(self) -> List[DeviceInfo]:
        raise NotImplementedError

    @abc.abstractmethod
    def _open(self, selector: DeviceSelector) -> DeviceInfo:
        """Acquire the device handle or raise DeviceNotFound."""
        raise NotImplementedError

    @abc.abstractmethod
    def _read(self, timeout: float) -> List[RawInputEvent]:
        """Wait up to `timeout` seconds and return translated events (maybe none)."""
        raise NotImplementedError

    @abc.abstractmethod
    def _release(self):
        raise NotImplementedError

    def open(self, selector: DeviceSelector) -> DeviceInfo:
        if not self._finished:
            self.close()
        self._pending.clear()
        info = self._open(selector)
        self.info = info
        # _open may have queued the device's initial state behind this
        self._pending.appendleft(Connected(name=info.name))
        self._finished = False
        return info

    def poll(self, timeout: float) -> Optional[RawInputEvent]:
        if not self._pending:
            if self._finished:
                raise DeviceDisconnected("device is not open")
            self._pending.extend(self._read(timeout))
        if not self._pending:
            return None
        event = self._pending.popleft()
        if isinstance(event, Disconnected):
            LOG.warning("device %s disconnected", self.info.name if self.info else "?")
            self.close()
        return event

    def events(self, token: CancellationToken, poll_timeout: float,
               include_idle: bool = False) -> Iterator[Optional[RawInputEvent]]:
        """Yield events until Disconnected or cancellation.

        With `include_idle`, a poll that timed out yields None so the caller
        gets a chance to act on every poll cycle.
        """
        while not token.cancelled:
            event = self.poll(poll_timeout)
            if event is None:
                if include_idle:
                    yield None
                continue
            yield event
            if isinstance(event, Disconnected):
                return

    def close(self):
        self._pending.clear()
        was_open = not self._finished
        self._finished = True
        if was_open:
            self._release()
