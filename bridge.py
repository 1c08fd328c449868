"""Pipeline loop: device events -> accumulated state -> published snapshots"""
import logging
import time
from typing import Optional

from bus.publisher import MessagePublisher
from core.cancellation import CancellationToken
from core.errors import DeviceDisconnected, DeviceNotFound, OperationCancelled, PublishError
from core.reader import DeviceReader, DeviceSelector
from core.state import StateAccumulator

LOG = logging.getLogger("padbridge.bridge")


class GamepadBridge:
    def __init__(
        self,
        reader: DeviceReader,
        publisher: MessagePublisher,
        selector: DeviceSelector,
        token: CancellationToken,
        poll_timeout: float = 0.05,
        on_disconnect: str = "exit",
        reconnect_interval: float = 1.0,
        on_publish_error: str = "exit",
        heartbeat_interval: Optional[float] = None,
    ):
        self.reader = reader
        self.publisher = publisher
        self.selector = selector
        self.token = token
        self.poll_timeout = poll_timeout
        self.on_disconnect = on_disconnect
        self.reconnect_interval = reconnect_interval
        self.on_publish_error = on_publish_error
        # None: republish once per poll timeout; 0 disables idle republishing
        self.heartbeat_interval = poll_timeout if heartbeat_interval is None else heartbeat_interval
        self.accumulator = StateAccumulator()
        self._last_publish = 0.0

    def run(self, session):
        """Run until the token is cancelled.

        Every event publishes a snapshot. While the controller is idle the
        current snapshot is republished every `heartbeat_interval` seconds so
        subscribers can tell a still stick from a dead link.

        Raises DeviceNotFound if the device cannot be opened at startup,
        DeviceDisconnected when the device goes away under the `exit` policy,
        and PublishError under the `exit` publish policy.
        """
        self.reader.open(self.selector)
        try:
            while not self.token.cancelled:
                for event in self.reader.events(self.token, self.poll_timeout, include_idle=True):
                    if event is not None:
                        self._publish(session, self.accumulator.apply(event))
                    elif self._heartbeat_due():
                        self._publish(session, self.accumulator.snapshot())
                if self.token.cancelled:
                    break
                # events() only ends early on Disconnected
                if self.on_disconnect != "reconnect":
                    raise DeviceDisconnected("gamepad disconnected")
                if not self._reopen(session):
                    break
        except OperationCancelled:
            LOG.debug("publish interrupted by shutdown")
        finally:
            self.reader.close()
        LOG.info("bridge stopped after %d message(s)", self.publisher.next_sequence)

    def _heartbeat_due(self) -> bool:
        if self.heartbeat_interval <= 0 or self.token.cancelled:
            return False
        return time.monotonic() - self._last_publish >= self.heartbeat_interval

    def _publish(self, session, state):
        self._last_publish = time.monotonic()
        try:
            self.publisher.publish(session, state, self.token)
        except PublishError as e:
            if self.on_publish_error != "skip":
                raise
            LOG.warning("dropping snapshot: %s", e)

    def _reopen(self, session) -> bool:
        LOG.info("waiting for gamepad to reconnect")
        while not self.token.wait(self.reconnect_interval):
            try:
                info = self.reader.open(self.selector)
            except DeviceNotFound as e:
                LOG.debug("reconnect attempt failed: %s", e)
                # keep announcing the disconnected snapshot while waiting
                if self._heartbeat_due():
                    self._publish(session, self.accumulator.snapshot())
                continue
            LOG.info("gamepad reconnected: %s", info.name)
            return True
        return False
