import json
from datetime import datetime, timezone

from core.message import MESSAGE_SCHEMA, OutboundMessage, decode, encode
from core.state import GamepadState


def _message():
    state = GamepadState(
        buttons={"0": True, "1": False, "5.3": True},
        axes={"0": -0.123456789, "hat0_x": 1.0, "3": 0.0078125},
        connected=True,
        last_update=datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc),
        name="Xbox Wireless Controller",
        button_down_counts={"0": 3},
        button_up_counts={"0": 2, "1": 1},
    )
    return OutboundMessage(
        sequence=17,
        state=state,
        time=datetime(2024, 5, 1, 12, 0, 1, 654321, tzinfo=timezone.utc),
    )


def test_roundtrip_is_exact():
    msg = _message()
    assert decode(encode(msg)) == msg


def test_payload_is_plain_json():
    data = json.loads(encode(_message()).decode("utf-8"))
    assert data["sequence"] == 17
    assert data["time"] == "2024-05-01T12:00:01.654321+00:00"
    assert data["connected"] is True
    assert data["buttons"]["5.3"] is True
    assert data["axes"]["hat0_x"] == 1.0
    assert data["button_up_event_counter"] == {"0": 2, "1": 1}


def test_schema_lists_every_payload_field():
    data = _message().to_dict()
    assert set(MESSAGE_SCHEMA["required"]) == set(data)
    assert set(MESSAGE_SCHEMA["properties"]) == set(data)
