"""Gamepad reader using SDL via pygame.joystick

Works with any controller SDL can see (XInput, DirectInput, evdev, IOKit).
Button and axis ids are the SDL indices as strings; each hat is exposed as
two axes, `hat<N>_x` and `hat<N>_y`, with values in {-1, 0, 1}.
"""
import logging
import os
import time
from typing import List

try:
    import pygame
except ImportError:
    pygame = None

from core.errors import DeviceNotFound
from core.events import AxisChanged, ButtonChanged, Disconnected
from core.reader import DeviceInfo, DeviceReader, DeviceSelector

LOG = logging.getLogger("padbridge.sdl")

# SDL reads these when it initialises; no window is ever opened.
SDL_HINTS = {
    "SDL_VIDEODRIVER": "dummy",
    "SDL_JOYSTICK_ALLOW_BACKGROUND_EVENTS": "1",
}


class SdlGamepadReader(DeviceReader):
    """Reads the first joystick matching a DeviceSelector.

    pygame's event queue is shared by every joystick, so events from other
    devices are dropped by instance id.
    """

    def __init__(self):
        super().__init__()
        self._joystick = None
        self._instance_id = None

    def _init_sdl(self):
        if pygame is None:
            raise DeviceNotFound("pygame not available — SDL backend disabled")
        for key, value in SDL_HINTS.items():
            os.environ.setdefault(key, value)
        try:
            pygame.init()
            pygame.joystick.init()
            # SDL refreshes its hotplug list only while pumping events
            pygame.event.pump()
        except pygame.error as e:
            raise DeviceNotFound(f"SDL joystick subsystem unavailable: {e}") from e

    def list_devices(self) -> List[DeviceInfo]:
        self._init_sdl()
        found = []
        try:
            for i in range(pygame.joystick.get_count()):
                js = pygame.joystick.Joystick(i)
                found.append(DeviceInfo(index=i, name=js.get_name() or "", path=js.get_guid()))
        except pygame.error as e:
            raise DeviceNotFound(f"cannot enumerate joysticks: {e}") from e
        return found

    def _open(self, selector: DeviceSelector) -> DeviceInfo:
        self._init_sdl()
        try:
            return self._open_joystick(selector)
        except pygame.error as e:
            self._joystick = None
            self._instance_id = None
            raise DeviceNotFound(f"cannot open gamepad: {e}") from e

    def _open_joystick(self, selector: DeviceSelector) -> DeviceInfo:
        count = pygame.joystick.get_count()
        LOG.info("%d gamepad(s) found", count)
        candidates = []
        for i in range(count):
            js = pygame.joystick.Joystick(i)
            name = js.get_name() or ""
            LOG.debug("candidate %d: %s", i, name)
            if selector.matches_name(name):
                candidates.append((i, js))
        if selector.index is not None:
            candidates = candidates[selector.index:selector.index + 1]
        if not candidates:
            raise DeviceNotFound(f"no gamepad matching {selector}")

        i, js = candidates[0]
        js.init()
        info = DeviceInfo(index=i, name=js.get_name() or "", path=js.get_guid())
        LOG.info(
            "Using gamepad: %s (index %d, axes=%d, buttons=%d, hats=%d)",
            info.name, i, js.get_numaxes(), js.get_numbuttons(), js.get_numhats(),
        )
        self._pending.extend(self.current_state(js))
        self._joystick = js
        self._instance_id = js.get_instance_id()
        return info

    @staticmethod
    def current_state(js) -> list:
        """Every button, axis and hat value, so a reopened pad does not keep stale state."""
        events = [ButtonChanged(str(b), bool(js.get_button(b)), initial=True) for b in range(js.get_numbuttons())]
        events += [AxisChanged(str(a), js.get_axis(a)) for a in range(js.get_numaxes())]
        for h in range(js.get_numhats()):
            x, y = js.get_hat(h)
            events += [AxisChanged(f"hat{h}_x", float(x)), AxisChanged(f"hat{h}_y", float(y))]
        return events

    def translate(self, ev) -> list:
        """Map one pygame event to RawInputEvents for the opened joystick."""
        if getattr(ev, "instance_id", None) != self._instance_id:
            return []
        if ev.type == pygame.JOYBUTTONDOWN:
            return [ButtonChanged(str(ev.button), True)]
        if ev.type == pygame.JOYBUTTONUP:
            return [ButtonChanged(str(ev.button), False)]
        if ev.type == pygame.JOYAXISMOTION:
            return [AxisChanged(str(ev.axis), ev.value)]
        if ev.type == pygame.JOYHATMOTION:
            x, y = ev.value
            return [AxisChanged(f"hat{ev.hat}_x", float(x)), AxisChanged(f"hat{ev.hat}_y", float(y))]
        if ev.type == pygame.JOYDEVICEREMOVED:
            return [Disconnected()]
        return []

    def _read(self, timeout: float) -> list:
        deadline = time.monotonic() + timeout
        while True:
            # pygame treats a 0 ms timeout as "wait forever"
            remaining_ms = max(1, int((deadline - time.monotonic()) * 1000))
            try:
                ev = pygame.event.wait(remaining_ms)
            except pygame.error as e:
                LOG.warning("SDL event wait failed: %s", e)
                return [Disconnected()]
            if ev.type == pygame.NOEVENT:
                return []
            events = self.translate(ev)
            if events:
                LOG.debug("sdl event %s -> %s", ev, events)
                return events
            if time.monotonic() >= deadline:
                return []

    def _release(self):
        js, self._joystick = self._joystick, None
        self._instance_id = None
        if js is not None:
            try:
                js.quit()
            except pygame.error:
                LOG.debug("joystick already gone on release")
