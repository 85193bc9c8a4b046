"""Gamepad query adapter using pygame.joystick (SDL)

pygame has no packet counter or keystroke queue, so this adapter builds both:
the sequence number advances whenever the raw readout of a slot changes, and
button / hat events are queued per slot as keystrokes.

All pygame calls happen under one lock because several sampler threads share
the SDL event queue. Some platforms (macOS) only deliver joystick events to the
main thread; prefer XInput on Windows.
"""
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Dict

try:
    import pygame
except Exception:
    pygame = None

from core.errors import BackendUnavailable, DeviceUnavailable
from core.normalize import MOTOR_MAX, THUMB_MAX, TRIGGER_MAX
from core.query import DeviceQuery
from core.state import (
    KEYSTROKE_KEYDOWN,
    KEYSTROKE_KEYUP,
    BatteryDeviceType,
    BatteryLevel,
    BatteryType,
    Button,
    KeyCode,
    RawBattery,
    RawKeystroke,
    RawSample,
)

LOG = logging.getLogger("padbridge.pygame")

MAX_KEYSTROKES = 32  # per slot, oldest dropped

BUTTON_KEYS = {
    Button.A: KeyCode.A,
    Button.B: KeyCode.B,
    Button.X: KeyCode.X,
    Button.Y: KeyCode.Y,
    Button.LEFT_SHOULDER: KeyCode.LEFT_SHOULDER,
    Button.RIGHT_SHOULDER: KeyCode.RIGHT_SHOULDER,
    Button.START: KeyCode.START,
    Button.BACK: KeyCode.BACK,
    Button.LEFT_THUMB: KeyCode.LEFT_THUMB_PRESS,
    Button.RIGHT_THUMB: KeyCode.RIGHT_THUMB_PRESS,
    Button.DPAD_UP: KeyCode.DPAD_UP,
    Button.DPAD_DOWN: KeyCode.DPAD_DOWN,
    Button.DPAD_LEFT: KeyCode.DPAD_LEFT,
    Button.DPAD_RIGHT: KeyCode.DPAD_RIGHT,
}

# pygame power level -> (battery type, level)
POWER_LEVELS = {
    "empty": (BatteryType.UNKNOWN, BatteryLevel.EMPTY),
    "low": (BatteryType.UNKNOWN, BatteryLevel.LOW),
    "medium": (BatteryType.UNKNOWN, BatteryLevel.MEDIUM),
    "full": (BatteryType.UNKNOWN, BatteryLevel.FULL),
    "max": (BatteryType.UNKNOWN, BatteryLevel.FULL),
    "wired": (BatteryType.WIRED, BatteryLevel.FULL),
}


def _default_buttons():
    # SDL2 joystick numbering for XInput pads on Windows
    return {
        0: Button.A,
        1: Button.B,
        2: Button.X,
        3: Button.Y,
        4: Button.LEFT_SHOULDER,
        5: Button.RIGHT_SHOULDER,
        6: Button.BACK,
        7: Button.START,
        8: Button.LEFT_THUMB,
        9: Button.RIGHT_THUMB,
    }


@dataclass(frozen=True)
class PygameLayout:
    """Which pygame axis / button index feeds which control."""
    left_x: int = 0
    left_y: int = 1
    right_x: int = 2
    right_y: int = 3
    left_trigger: int = 4
    right_trigger: int = 5
    buttons: Dict[int, Button] = field(default_factory=_default_buttons)
    dpad_hat: int = 0
    invert_y: bool = True  # SDL reports stick down as positive
    centered_triggers: bool = True  # SDL reports released triggers as -1.0

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError(f"pygame_layout must be a mapping, got {type(data).__name__}")
        axes = data.get("axes") or {}
        buttons = data.get("buttons")
        if not isinstance(axes, dict):
            raise ValueError("pygame_layout.axes must be a mapping")
        if buttons is not None and not isinstance(buttons, dict):
            raise ValueError("pygame_layout.buttons must be a mapping")
        kwargs = {name: int(axes[name]) for name in
                  ("left_x", "left_y", "right_x", "right_y", "left_trigger", "right_trigger")
                  if name in axes}
        if buttons is not None:
            try:
                kwargs["buttons"] = {int(idx): Button[str(name).upper()] for idx, name in buttons.items()}
            except KeyError as e:
                raise ValueError(f"unknown button name {e.args[0]!r} in pygame_layout") from None
        for key in ("dpad_hat", "invert_y", "centered_triggers"):
            if key in data:
                kwargs[key] = data[key]
        return cls(**kwargs)


def axis_to_raw(value: float, invert: bool = False) -> int:
    if invert:
        value = -value
    return max(-THUMB_MAX - 1, min(THUMB_MAX, int(round(value * THUMB_MAX))))


def trigger_to_raw(value: float, centered: bool = True) -> int:
    if centered:
        value = (value + 1.0) / 2.0
    return max(0, min(TRIGGER_MAX, int(round(value * TRIGGER_MAX))))


def hat_to_buttons(hat) -> int:
    x, y = hat
    mask = 0
    if y > 0:
        mask |= Button.DPAD_UP
    elif y < 0:
        mask |= Button.DPAD_DOWN
    if x < 0:
        mask |= Button.DPAD_LEFT
    elif x > 0:
        mask |= Button.DPAD_RIGHT
    return int(mask)


def power_level_to_raw(level: str) -> RawBattery:
    battery_type, battery_level = POWER_LEVELS.get(level, (BatteryType.UNKNOWN, BatteryLevel.EMPTY))
    return RawBattery(int(battery_type), int(battery_level))


class PygameQuery(DeviceQuery):
    def __init__(self, layout=None):
        if pygame is None:
            raise BackendUnavailable("pygame is not installed")
        self.layout = layout or PygameLayout()
        self._lock = threading.RLock()
        self._joysticks = {}
        self._slots = {}  # instance id -> slot index
        self._last_raw = {}
        self._sequence = {}
        self._keystrokes = {}
        self._hats = {}
        pygame.init()
        pygame.joystick.init()
        LOG.info("pygame joystick subsystem initialized (%d joystick(s))", pygame.joystick.get_count())

    def _joystick(self, index):
        js = self._joysticks.get(index)
        if js is not None:
            return js
        js = self._claim(index)
        if js is None:
            raise DeviceUnavailable(index)
        self._joysticks[index] = js
        self._slots[js.get_instance_id()] = index
        self._keystrokes[index] = deque(maxlen=MAX_KEYSTROKES)
        self._hats[index] = 0
        LOG.info(f"Found joystick: {js.get_name()} (slot {index}, axes={js.get_numaxes()}, buttons={js.get_numbuttons()}, hats={js.get_numhats()})")
        return js

    def _claim(self, index):
        # SDL renumbers device indices after a removal, so a free slot takes the
        # first joystick whose instance id no other slot holds, preferring the
        # device index equal to the slot.
        count = pygame.joystick.get_count()
        order = ([index] if index < count else []) + [i for i in range(count) if i != index]
        for i in order:
            try:
                js = pygame.joystick.Joystick(i)
                if js.get_instance_id() in self._slots:
                    continue
                js.init()
            except pygame.error as e:
                LOG.debug("joystick %d could not be opened: %s", i, e)
                continue
            return js
        return None

    def _forget(self, index):
        js = self._joysticks.pop(index, None)
        if js is not None:
            self._slots = {iid: slot for iid, slot in self._slots.items() if slot != index}
            LOG.info("joystick in slot %d removed", index)
        self._keystrokes.pop(index, None)
        self._hats.pop(index, None)
        self._last_raw.pop(index, None)

    def _queue(self, index, button, flags):
        key = BUTTON_KEYS.get(button)
        queue = self._keystrokes.get(index)
        if key is not None and queue is not None:
            queue.append(RawKeystroke(int(key), flags))

    def _pump(self):
        for event in pygame.event.get():
            if event.type == pygame.JOYDEVICEREMOVED:
                index = self._slots.get(event.instance_id)
                if index is not None:
                    self._forget(index)
                continue
            if event.type not in (pygame.JOYBUTTONDOWN, pygame.JOYBUTTONUP, pygame.JOYHATMOTION):
                continue
            index = self._slots.get(event.instance_id)
            if index is None:
                continue
            if event.type == pygame.JOYHATMOTION:
                if event.hat != self.layout.dpad_hat:
                    continue
                old, new = self._hats.get(index, 0), hat_to_buttons(event.value)
                self._hats[index] = new
                for button in (Button.DPAD_UP, Button.DPAD_DOWN, Button.DPAD_LEFT, Button.DPAD_RIGHT):
                    if (old ^ new) & button:
                        self._queue(index, button, KEYSTROKE_KEYDOWN if new & button else KEYSTROKE_KEYUP)
            else:
                button = self.layout.buttons.get(event.button)
                flags = KEYSTROKE_KEYDOWN if event.type == pygame.JOYBUTTONDOWN else KEYSTROKE_KEYUP
                self._queue(index, button, flags)

    def _readout(self, js):
        layout = self.layout

        def axis(i, default=0.0):
            return js.get_axis(i) if i < js.get_numaxes() else default

        buttons = 0
        for i, button in layout.buttons.items():
            if i < js.get_numbuttons() and js.get_button(i):
                buttons |= button
        if layout.dpad_hat < js.get_numhats():
            buttons |= hat_to_buttons(js.get_hat(layout.dpad_hat))
        released = -1.0 if layout.centered_triggers else 0.0
        return (
            int(buttons),
            axis_to_raw(axis(layout.left_x)),
            axis_to_raw(axis(layout.left_y), invert=layout.invert_y),
            axis_to_raw(axis(layout.right_x)),
            axis_to_raw(axis(layout.right_y), invert=layout.invert_y),
            trigger_to_raw(axis(layout.left_trigger, released), layout.centered_triggers),
            trigger_to_raw(axis(layout.right_trigger, released), layout.centered_triggers),
        )

    def read_state(self, index):
        with self._lock:
            self._pump()
            js = self._joystick(index)
            try:
                raw = self._readout(js)
            except pygame.error as e:
                self._forget(index)
                raise DeviceUnavailable(index, str(e)) from e
            if raw != self._last_raw.get(index):
                self._last_raw[index] = raw
                self._sequence[index] = self._sequence.get(index, 0) + 1
            return RawSample(*raw, sequence=self._sequence[index])

    def read_keystroke(self, index):
        with self._lock:
            self._pump()
            self._joystick(index)
            queue = self._keystrokes.get(index)
            return queue.popleft() if queue else None

    def read_battery(self, index, device_type=BatteryDeviceType.GAMEPAD):
        if device_type != BatteryDeviceType.GAMEPAD:
            raise DeviceUnavailable(index, "only gamepad batteries are reported by pygame")
        with self._lock:
            js = self._joystick(index)
            try:
                level = js.get_power_level()
            except pygame.error as e:
                raise DeviceUnavailable(index, str(e)) from e
        return power_level_to_raw(level)

    def write_vibration(self, index, left, right):
        with self._lock:
            js = self._joystick(index)
            if left == 0 and right == 0:
                js.stop_rumble()
                return
            # duration 0 plays until the next call
            if not js.rumble(left / float(MOTOR_MAX), right / float(MOTOR_MAX), 0):
                raise DeviceUnavailable(index, "rumble not supported")
