import pytest

from core.config import DEFAULT_LISTEN, BridgeConfig, SessionConfig
from core.errors import ConfigError

PROFILE = """
topic: robots/hopper/gamepad
poll_timeout_ms: 20
on_disconnect: reconnect
device:
  backend: hid
  vendor_id: 0x045e
  button_bytes: [10, 11]
session:
  connect:
    - tcp://192.168.1.10:7447
"""


def test_load_yaml(tmp_path):
    path = tmp_path / "padbridge.yaml"
    path.write_text(PROFILE, encoding="utf-8")

    cfg = BridgeConfig.load(str(path))

    assert cfg.topic == "robots/hopper/gamepad"
    assert cfg.poll_timeout == pytest.approx(0.02)
    assert cfg.on_disconnect == "reconnect"
    assert cfg.device.backend == "hid"
    assert cfg.device.selector().vendor_id == 0x045E
    assert cfg.device.button_bytes == (10, 11)
    assert cfg.session.connect == ["tcp://192.168.1.10:7447"]
    assert cfg.session.endpoints() == (["tcp://192.168.1.10:7447"], [])


def test_defaults():
    cfg = BridgeConfig.from_dict({})
    assert cfg.topic == "remote-control/gamepad"
    assert cfg.on_disconnect == "exit"
    assert cfg.on_publish_error == "exit"
    assert cfg.device.backend == "sdl"
    assert SessionConfig().endpoints() == ([], [DEFAULT_LISTEN])


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert BridgeConfig.load(str(path)).topic == "remote-control/gamepad"


@pytest.mark.parametrize("data", [
    {"topik": "x"},
    {"device": {"backend": "evdev"}},
    {"session": {"port": 1}},
    {"on_disconnect": "retry"},
    {"poll_timeout_ms": 0},
    {"topic": ""},
    {"device": ["sdl"]},
    {"poll_timeout_ms": "fast"},
    {"poll_timeout_ms": True},
    {"reconnect_interval": "soon"},
    {"heartbeat_ms": -1},
    {"session": {"connect": [1]}},
    {"session": {"listen": {"tcp": 1}}},
    {"device": {"index": "first"}},
    {"device": {"button_bytes": ["5"]}},
])
def test_invalid_config_rejected(data):
    with pytest.raises(ConfigError):
        BridgeConfig.from_dict(data)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        BridgeConfig.load(str(tmp_path / "nope.yaml"))


def test_single_endpoint_string_is_one_endpoint():
    cfg = BridgeConfig.from_dict({"session": {"connect": "tcp://10.0.0.2:7447"}})
    assert cfg.session.connect == ["tcp://10.0.0.2:7447"]
    assert cfg.session.endpoints() == (["tcp://10.0.0.2:7447"], [])


def test_integer_reconnect_interval_is_accepted():
    assert BridgeConfig.from_dict({"reconnect_interval": 2}).reconnect_interval == 2.0


def test_heartbeat_follows_poll_timeout_unless_set():
    assert BridgeConfig.from_dict({"poll_timeout_ms": 20}).heartbeat_interval == pytest.approx(0.02)
    assert BridgeConfig.from_dict({"heartbeat_ms": 500}).heartbeat_interval == pytest.approx(0.5)
    assert BridgeConfig.from_dict({"heartbeat_ms": 0}).heartbeat_interval == 0.0
