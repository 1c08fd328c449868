"""Publishes GamepadState snapshots as sequenced JSON messages"""
import logging
from typing import Optional

from core.cancellation import CancellationToken
from core.errors import OperationCancelled
from core.message import OutboundMessage, encode
from core.state import GamepadState

LOG = logging.getLogger("padbridge.bus")


class MessagePublisher:
    """Assigns sequence numbers and sends snapshots on a fixed topic.

    Sequence numbers start at 0 and only advance when the session accepted
    the message, so subscribers see gaps only for messages lost downstream.
    Failures propagate as PublishError; nothing is retried here.
    """

    def __init__(self, topic: str):
        self.topic = topic
        self._next_sequence = 0

    @property
    def next_sequence(self) -> int:
        return self._next_sequence

    def publish(self, session, state: GamepadState,
                token: Optional[CancellationToken] = None) -> OutboundMessage:
        if token is not None and token.cancelled:
            raise OperationCancelled("publish skipped, shutdown in progress")
        message = OutboundMessage(sequence=self._next_sequence, state=state.copy())
        session.put(self.topic, encode(message))
        self._next_sequence += 1
        LOG.debug("published #%d on %s", message.sequence, self.topic)
        return message
