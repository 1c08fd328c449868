"""ZeroMQ publish session

`BusSession` owns the PUB socket for the whole run. It is opened once,
closed once, and used as a context manager so the socket and context are
released on every exit path.
"""
import enum
import logging
import threading
from typing import List, Optional

import zmq

from core.config import SessionConfig
from core.errors import PublishError, SessionUnreachable

LOG = logging.getLogger("padbridge.bus")


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class BusSession:
    def __init__(self, config: SessionConfig, context: Optional[zmq.Context] = None):
        self.config = config
        self.state = SessionState.UNINITIALIZED
        self._lock = threading.Lock()
        self._context = context
        self._own_context = context is None
        self._socket = None
        self.endpoints: List[str] = []

    def open(self) -> "BusSession":
        with self._lock:
            if self.state is not SessionState.UNINITIALIZED:
                raise SessionUnreachable(f"session cannot be opened from state {self.state.value}")
            connect, listen = self.config.endpoints()
            try:
                if self._context is None:
                    self._context = zmq.Context()
                sock = self._context.socket(zmq.PUB)
                self._socket = sock
                sock.setsockopt(zmq.LINGER, self.config.linger_ms)
                sock.setsockopt(zmq.SNDHWM, self.config.send_hwm)
                for endpoint in listen:
                    LOG.info("Listening on %s", endpoint)
                    sock.bind(endpoint)
                    self.endpoints.append(sock.getsockopt_string(zmq.LAST_ENDPOINT))
                for endpoint in connect:
                    LOG.info("Connecting to %s", endpoint)
                    sock.connect(endpoint)
                    self.endpoints.append(endpoint)
            except zmq.ZMQError as e:
                self._release()
                self.state = SessionState.CLOSED
                raise SessionUnreachable(f"cannot open pub/sub session: {e}") from e
            self.state = SessionState.OPEN
            LOG.info("pub/sub session open")
        return self

    def put(self, key: str, payload: bytes):
        with self._lock:
            if self.state is not SessionState.OPEN:
                raise PublishError(f"session not ready ({self.state.value})")
            try:
                self._socket.send_multipart([key.encode("utf-8"), payload], flags=zmq.NOBLOCK)
            except zmq.Again as e:
                raise PublishError(f"send would block on {key}") from e
            except zmq.ZMQError as e:
                raise PublishError(f"send failed on {key}: {e}") from e

    def close(self) -> bool:
        """Release the session. Returns False if it was already released."""
        with self._lock:
            if self.state in (SessionState.CLOSING, SessionState.CLOSED):
                return False
            if self.state is SessionState.UNINITIALIZED:
                self.state = SessionState.CLOSED
                return False
            self.state = SessionState.CLOSING
            try:
                self._release()
            finally:
                self.state = SessionState.CLOSED
            LOG.info("pub/sub session closed")
            return True

    def _release(self):
        sock, self._socket = self._socket, None
        if sock is not None:
            sock.close(linger=self.config.linger_ms)
        if self._own_context and self._context is not None:
            self._context.term()
            self._context = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
