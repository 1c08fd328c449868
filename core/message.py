"""Wire format for published gamepad snapshots

Payloads are UTF-8 JSON objects so subscribers in any language can decode them
without shared code.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime

from core.events import utc_now
from core.state import GamepadState

MESSAGE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "GamepadMessage",
    "type": "object",
    "required": [
        "sequence",
        "time",
        "connected",
        "name",
        "last_event_time",
        "buttons",
        "axes",
        "button_down_event_counter",
        "button_up_event_counter",
    ],
    "properties": {
        "sequence": {"type": "integer", "minimum": 0},
        "time": {"type": "string", "format": "date-time"},
        "connected": {"type": "boolean"},
        "name": {"type": "string"},
        "last_event_time": {"type": "string", "format": "date-time"},
        "buttons": {"type": "object", "additionalProperties": {"type": "boolean"}},
        "axes": {
            "type": "object",
            "additionalProperties": {"type": "number", "minimum": -1.0, "maximum": 1.0},
        },
        "button_down_event_counter": {
            "type": "object",
            "additionalProperties": {"type": "integer", "minimum": 0},
        },
        "button_up_event_counter": {
            "type": "object",
            "additionalProperties": {"type": "integer", "minimum": 0},
        },
    },
}


@dataclass(frozen=True)
class OutboundMessage:
    sequence: int
    state: GamepadState
    time: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        s = self.state
        return {
            "sequence": self.sequence,
            "time": self.time.isoformat(),
            "connected": s.connected,
            "name": s.name,
            "last_event_time": s.last_update.isoformat(),
            "buttons": dict(s.buttons),
            "axes": dict(s.axes),
            "button_down_event_counter": dict(s.button_down_counts),
            "button_up_event_counter": dict(s.button_up_counts),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OutboundMessage":
        state = GamepadState(
            buttons={str(k): bool(v) for k, v in data["buttons"].items()},
            axes={str(k): float(v) for k, v in data["axes"].items()},
            connected=bool(data["connected"]),
            last_update=datetime.fromisoformat(data["last_event_time"]),
            name=data.get("name", ""),
            button_down_counts={str(k): int(v) for k, v in data.get("button_down_event_counter", {}).items()},
            button_up_counts={str(k): int(v) for k, v in data.get("button_up_event_counter", {}).items()},
        )
        return cls(
            sequence=int(data["sequence"]),
            state=state,
            time=datetime.fromisoformat(data["time"]),
        )


def encode(message: OutboundMessage) -> bytes:
    return json.dumps(message.to_dict(), sort_keys=True).encode("utf-8")


def decode(payload: bytes) -> OutboundMessage:
    return OutboundMessage.from_dict(json.loads(payload.decode("utf-8")))
