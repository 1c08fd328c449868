"""Raw input events produced by device readers"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Union


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ButtonChanged:
    button_id: str
    pressed: bool
    timestamp: datetime = field(default_factory=utc_now)
    initial: bool = False  # state sync on open, not a real press/release


@dataclass(frozen=True)
class AxisChanged:
    axis_id: str
    value: float  # -1..1, clamped by the accumulator
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class Connected:
    name: str = ""
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class Disconnected:
    timestamp: datetime = field(default_factory=utc_now)


RawInputEvent = Union[ButtonChanged, AxisChanged, Connected, Disconnected]
