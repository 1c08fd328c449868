"""Bridge configuration: YAML file values, overridden by command-line flags"""
from dataclasses import dataclass, field, fields
from typing import List, Optional, Tuple

import yaml

from core.errors import ConfigError
from core.reader import DeviceSelector

DEFAULT_TOPIC = "remote-control/gamepad"
DEFAULT_LISTEN = "tcp://*:7447"

BACKENDS = ("sdl", "hid")
DISCONNECT_POLICIES = ("exit", "reconnect")
PUBLISH_ERROR_POLICIES = ("exit", "skip")


@dataclass
class DeviceConfig:
    backend: str = "sdl"
    index: Optional[int] = None
    name: Optional[str] = None
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None
    axis_bytes: Tuple[int, ...] = (0, 1, 2, 3, 4)
    button_bytes: Tuple[int, ...] = (5, 6)

    def selector(self) -> DeviceSelector:
        return DeviceSelector(
            index=self.index, name=self.name, vendor_id=self.vendor_id, product_id=self.product_id
        )


@dataclass
class SessionConfig:
    connect: List[str] = field(default_factory=list)
    listen: List[str] = field(default_factory=list)
    linger_ms: int = 0
    send_hwm: int = 100

    def endpoints(self) -> Tuple[List[str], List[str]]:
        """Listen on the default endpoint when nothing else is configured."""
        if not self.connect and not self.listen:
            return [], [DEFAULT_LISTEN]
        return list(self.connect), list(self.listen)


@dataclass
class BridgeConfig:
    topic: str = DEFAULT_TOPIC
    poll_timeout_ms: int = 50
    on_disconnect: str = "exit"
    reconnect_interval: float = 1.0
    on_publish_error: str = "exit"
    heartbeat_ms: Optional[int] = None  # None: same as poll_timeout_ms, 0: off
    device: DeviceConfig = field(default_factory=DeviceConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    @property
    def poll_timeout(self) -> float:
        return self.poll_timeout_ms / 1000.0

    @property
    def heartbeat_interval(self) -> float:
        if self.heartbeat_ms is None:
            return self.poll_timeout
        return self.heartbeat_ms / 1000.0

    @classmethod
    def from_dict(cls, data: dict) -> "BridgeConfig":
        data = dict(data or {})
        device = _build(DeviceConfig, data.pop("device", None) or {}, "device")
        session = _build(SessionConfig, data.pop("session", None) or {}, "session")
        cfg = _build(cls, data, "")
        cfg.device = device
        cfg.session = session
        cfg.validate()
        return cfg

    @classmethod
    def load(cls, path: str) -> "BridgeConfig":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e
        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping")
        return cls.from_dict(data or {})

    def validate(self):
        self.topic = _check(self.topic, str, "topic")
        self.poll_timeout_ms = _check(self.poll_timeout_ms, int, "poll_timeout_ms")
        self.reconnect_interval = _check(self.reconnect_interval, float, "reconnect_interval")
        self.on_disconnect = _check(self.on_disconnect, str, "on_disconnect")
        self.on_publish_error = _check(self.on_publish_error, str, "on_publish_error")
        if self.heartbeat_ms is not None:
            self.heartbeat_ms = _check(self.heartbeat_ms, int, "heartbeat_ms")

        dev = self.device
        dev.backend = _check(dev.backend, str, "device.backend")
        for name in ("index", "vendor_id", "product_id"):
            if getattr(dev, name) is not None:
                setattr(dev, name, _check(getattr(dev, name), int, f"device.{name}"))
        if dev.name is not None:
            dev.name = _check(dev.name, str, "device.name")
        dev.axis_bytes = tuple(_check_list(dev.axis_bytes, int, "device.axis_bytes"))
        dev.button_bytes = tuple(_check_list(dev.button_bytes, int, "device.button_bytes"))

        sess = self.session
        sess.connect = _check_list(sess.connect, str, "session.connect")
        sess.listen = _check_list(sess.listen, str, "session.listen")
        sess.linger_ms = _check(sess.linger_ms, int, "session.linger_ms")
        sess.send_hwm = _check(sess.send_hwm, int, "session.send_hwm")

        if not self.topic:
            raise ConfigError("topic must not be empty")
        if self.poll_timeout_ms <= 0:
            raise ConfigError("poll_timeout_ms must be positive")
        if self.heartbeat_ms is not None and self.heartbeat_ms < 0:
            raise ConfigError("heartbeat_ms must not be negative")
        if self.reconnect_interval <= 0:
            raise ConfigError("reconnect_interval must be positive")
        if self.on_disconnect not in DISCONNECT_POLICIES:
            raise ConfigError(f"on_disconnect must be one of {DISCONNECT_POLICIES}")
        if self.on_publish_error not in PUBLISH_ERROR_POLICIES:
            raise ConfigError(f"on_publish_error must be one of {PUBLISH_ERROR_POLICIES}")
        if dev.backend not in BACKENDS:
            raise ConfigError(f"device.backend must be one of {BACKENDS}")
        if dev.index is not None and dev.index < 0:
            raise ConfigError("device.index must not be negative")


def _check(value, kind, name: str):
    """Return `value` as `kind`, or raise ConfigError.

    bools are rejected for numbers; ints are accepted where a float is expected.
    """
    if isinstance(value, bool) and kind is not bool:
        raise ConfigError(f"{name} must be {kind.__name__}, got {value!r}")
    if kind is float and isinstance(value, int):
        return float(value)
    if not isinstance(value, kind):
        raise ConfigError(f"{name} must be {kind.__name__}, got {value!r}")
    return value


def _check_list(value, kind, name: str) -> list:
    # a single scalar is accepted as a one-item list
    if isinstance(value, (str, int)):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"{name} must be a list of {kind.__name__}, got {value!r}")
    return [_check(v, kind, f"{name}[{i}]") for i, v in enumerate(value)]


def _build(kind, data: dict, section: str):
    if not isinstance(data, dict):
        raise ConfigError(f"{section or 'config'} must be a mapping")
    known = {f.name for f in fields(kind)}
    unknown = sorted(set(data) - known)
    if unknown:
        prefix = f"{section}." if section else ""
        raise ConfigError("unknown config key(s): " + ", ".join(prefix + k for k in unknown))
    try:
        return kind(**data)
    except TypeError as e:
        raise ConfigError(str(e)) from e
