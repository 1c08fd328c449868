"""Gamepad reader using hidapi (direct HID, bypasses SDL and DirectInput)

Reports are decoded with a simple byte layout: each entry of `axis_bytes` is
an unsigned 8-bit axis centred on 128, each entry of `button_bytes` is a
bitfield of eight buttons. Ids are `<byte offset>` for axes and
`<byte offset>.<bit>` for buttons. Only entries that changed since the
previous report are emitted.
"""
import logging
from typing import Dict, List, Optional, Sequence

try:
    import hid
except ImportError:
    hid = None

from core.errors import DeviceNotFound
from core.events import AxisChanged, ButtonChanged, Disconnected
from core.reader import DeviceInfo, DeviceReader, DeviceSelector

LOG = logging.getLogger("padbridge.hid")

# HID Generic Desktop page: Joystick (0x04) and Game Pad (0x05)
GENERIC_DESKTOP_PAGE = 0x01
GAMEPAD_USAGES = (0x04, 0x05)

DEFAULT_AXIS_BYTES = (0, 1, 2, 3, 4)
DEFAULT_BUTTON_BYTES = (5, 6)
REPORT_SIZE = 64


def axis_from_byte(raw: int) -> float:
    return max(-1.0, min(1.0, (raw - 128) / 128.0))


class HidGamepadReader(DeviceReader):
    def __init__(self, axis_bytes: Sequence[int] = DEFAULT_AXIS_BYTES,
                 button_bytes: Sequence[int] = DEFAULT_BUTTON_BYTES):
        super().__init__()
        self.axis_bytes = tuple(axis_bytes)
        self.button_bytes = tuple(button_bytes)
        self._device = None
        self._last_axes: Dict[str, float] = {}
        self._last_buttons: Dict[str, bool] = {}

    def _enumerate(self, selector: Optional[DeviceSelector] = None) -> List[dict]:
        if hid is None:
            raise DeviceNotFound("hidapi not available — HID backend disabled")
        selector = selector or DeviceSelector()
        try:
            entries = hid.enumerate(selector.vendor_id or 0, selector.product_id or 0)
        except OSError as e:
            raise DeviceNotFound(f"HID enumeration failed: {e}") from e
        if selector.vendor_id is None and selector.product_id is None:
            # without an explicit id only keep devices that declare themselves gamepads
            entries = [
                e for e in entries
                if e.get("usage_page") == GENERIC_DESKTOP_PAGE and e.get("usage") in GAMEPAD_USAGES
            ]
        return [e for e in entries if selector.matches_name(e.get("product_string") or "")]

    def list_devices(self) -> List[DeviceInfo]:
        return [self._info(i, e) for i, e in enumerate(self._enumerate())]

    @staticmethod
    def _info(index: int, entry: dict) -> DeviceInfo:
        path = entry.get("path", b"")
        if isinstance(path, bytes):
            path = path.decode("utf-8", errors="replace")
        return DeviceInfo(
            index=index,
            name=entry.get("product_string") or "",
            path=path,
            vendor_id=entry.get("vendor_id"),
            product_id=entry.get("product_id"),
        )

    def _open(self, selector: DeviceSelector) -> DeviceInfo:
        entries = self._enumerate(selector)
        LOG.info("%d HID gamepad(s) found", len(entries))
        index = selector.index or 0
        if index >= len(entries):
            raise DeviceNotFound(f"no HID gamepad matching {selector}")
        entry = entries[index]
        try:
            device = hid.device()
            device.open_path(entry["path"])
        except OSError as e:
            raise DeviceNotFound(f"failed to open HID device {entry.get('product_string')!r}: {e}") from e
        self._device = device
        self._last_axes = {}
        self._last_buttons = {}
        info = self._info(index, entry)
        LOG.info("Using HID gamepad: %s (%04x:%04x)", info.name, info.vendor_id or 0, info.product_id or 0)
        return info

    def parse_report(self, data: Sequence[int]) -> list:
        """Diff one raw report against the previous one.

        The first report after open carries the whole button state; those
        buttons are flagged `initial` so they are not counted as presses.
        """
        events = []
        first = not self._last_buttons
        for offset in self.axis_bytes:
            if offset >= len(data):
                continue
            aid = str(offset)
            value = axis_from_byte(data[offset])
            if self._last_axes.get(aid) != value:
                self._last_axes[aid] = value
                events.append(AxisChanged(aid, value))
        for offset in self.button_bytes:
            if offset >= len(data):
                continue
            for bit in range(8):
                bid = f"{offset}.{bit}"
                pressed = bool(data[offset] & (1 << bit))
                if self._last_buttons.get(bid) != pressed:
                    self._last_buttons[bid] = pressed
                    events.append(ButtonChanged(bid, pressed, initial=first))
        return events

    def _read(self, timeout: float) -> list:
        try:
            data = self._device.read(REPORT_SIZE, timeout_ms=max(1, int(timeout * 1000)))
        except (OSError, ValueError) as e:
            LOG.warning("HID read failed: %s", e)
            return [Disconnected()]
        if not data:
            return []
        LOG.debug("hid report (%d bytes): %s", len(data), " ".join(f"{b:02X}" for b in data))
        return self.parse_report(data)

    def _release(self):
        device, self._device = self._device, None
        if device is not None:
            try:
                device.close()
            except OSError:
                LOG.debug("HID device already gone on release")
