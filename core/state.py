"""Gamepad state model and the event fold that maintains it"""
import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional

from core.events import AxisChanged, ButtonChanged, Connected, Disconnected, RawInputEvent, utc_now

LOG = logging.getLogger("padbridge.state")

AXIS_MIN = -1.0
AXIS_MAX = 1.0


@dataclass
class GamepadState:
    buttons: Dict[str, bool] = field(default_factory=dict)
    axes: Dict[str, float] = field(default_factory=dict)  # axis id -> -1..1
    connected: bool = False
    last_update: datetime = field(default_factory=utc_now)
    name: str = ""
    button_down_counts: Dict[str, int] = field(default_factory=dict)
    button_up_counts: Dict[str, int] = field(default_factory=dict)

    def copy(self) -> "GamepadState":
        return replace(
            self,
            buttons=dict(self.buttons),
            axes=dict(self.axes),
            button_down_counts=dict(self.button_down_counts),
            button_up_counts=dict(self.button_up_counts),
        )


def clamp_axis(value: float) -> float:
    return max(AXIS_MIN, min(AXIS_MAX, float(value)))


def fold(state: GamepadState, event: RawInputEvent) -> GamepadState:
    """Return a new state with `event` applied; `state` is left untouched."""
    new = state.copy()
    new.last_update = event.timestamp

    if isinstance(event, ButtonChanged):
        bid = event.button_id
        new.buttons[bid] = bool(event.pressed)
        if not event.initial:
            counts = new.button_down_counts if event.pressed else new.button_up_counts
            counts[bid] = counts.get(bid, 0) + 1
    elif isinstance(event, AxisChanged):
        value = float(event.value)
        if math.isnan(value):
            LOG.debug("rejecting NaN value for axis %s", event.axis_id)
        else:
            new.axes[event.axis_id] = clamp_axis(value)
    elif isinstance(event, Connected):
        new.connected = True
        if event.name:
            new.name = event.name
    elif isinstance(event, Disconnected):
        new.connected = False
    else:
        raise TypeError(f"unsupported input event: {event!r}")
    return new


class StateAccumulator:
    """Sole owner of the current GamepadState.

    `apply` folds one event in and hands back a copy, so callers can keep or
    publish the snapshot without seeing later updates.
    """

    def __init__(self, initial: Optional[GamepadState] = None):
        self._state = initial.copy() if initial is not None else GamepadState()

    def apply(self, event: RawInputEvent) -> GamepadState:
        self._state = fold(self._state, event)
        return self._state.copy()

    def snapshot(self) -> GamepadState:
        return self._state.copy()
