"""State models and lightweight DTOs"""
from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag
from typing import FrozenSet, Optional, Union

from core.normalize import THUMB_MAX, TRIGGER_MAX, apply_deadzone

# Controller slots supported by the query interface (XInput user indices)
MAX_COUNT = 4


class Button(IntFlag):
    """Digital button bits as reported in RawSample.buttons."""
    DPAD_UP = 0x0001
    DPAD_DOWN = 0x0002
    DPAD_LEFT = 0x0004
    DPAD_RIGHT = 0x0008
    START = 0x0010
    BACK = 0x0020
    LEFT_THUMB = 0x0040
    RIGHT_THUMB = 0x0080
    LEFT_SHOULDER = 0x0100
    RIGHT_SHOULDER = 0x0200
    A = 0x1000
    B = 0x2000
    X = 0x4000
    Y = 0x8000


ALL_BUTTONS = (
    Button.DPAD_UP, Button.DPAD_DOWN, Button.DPAD_LEFT, Button.DPAD_RIGHT,
    Button.START, Button.BACK, Button.LEFT_THUMB, Button.RIGHT_THUMB,
    Button.LEFT_SHOULDER, Button.RIGHT_SHOULDER,
    Button.A, Button.B, Button.X, Button.Y,
)

# Display names in reporting order, shared by describe() and active_input()
BUTTON_NAMES = (
    (Button.A, "A"),
    (Button.B, "B"),
    (Button.X, "X"),
    (Button.Y, "Y"),
    (Button.LEFT_SHOULDER, "L"),
    (Button.RIGHT_SHOULDER, "R"),
    (Button.START, "Start"),
    (Button.BACK, "Back"),
    (Button.DPAD_UP, "DPadUp"),
    (Button.DPAD_DOWN, "DPadDown"),
    (Button.DPAD_LEFT, "DPadLeft"),
    (Button.DPAD_RIGHT, "DPadRight"),
    (Button.LEFT_THUMB, "LeftThumbPress"),
    (Button.RIGHT_THUMB, "RightThumbPress"),
)


class KeyCode(IntEnum):
    """Virtual key codes delivered through the keystroke queue."""
    A = 0x5800
    B = 0x5801
    X = 0x5802
    Y = 0x5803
    RIGHT_SHOULDER = 0x5804
    LEFT_SHOULDER = 0x5805
    LEFT_TRIGGER = 0x5806
    RIGHT_TRIGGER = 0x5807
    DPAD_UP = 0x5810
    DPAD_DOWN = 0x5811
    DPAD_LEFT = 0x5812
    DPAD_RIGHT = 0x5813
    START = 0x5814
    BACK = 0x5815
    LEFT_THUMB_PRESS = 0x5816
    RIGHT_THUMB_PRESS = 0x5817
    LEFT_THUMB_UP = 0x5820
    LEFT_THUMB_DOWN = 0x5821
    LEFT_THUMB_RIGHT = 0x5822
    LEFT_THUMB_LEFT = 0x5823
    LEFT_THUMB_UPLEFT = 0x5824
    LEFT_THUMB_UPRIGHT = 0x5825
    LEFT_THUMB_DOWNRIGHT = 0x5826
    LEFT_THUMB_DOWNLEFT = 0x5827
    RIGHT_THUMB_UP = 0x5830
    RIGHT_THUMB_DOWN = 0x5831
    RIGHT_THUMB_RIGHT = 0x5832
    RIGHT_THUMB_LEFT = 0x5833
    RIGHT_THUMB_UPLEFT = 0x5834
    RIGHT_THUMB_UPRIGHT = 0x5835
    RIGHT_THUMB_DOWNRIGHT = 0x5836
    RIGHT_THUMB_DOWNLEFT = 0x5837


# RawKeystroke.flags bits
KEYSTROKE_KEYDOWN = 0x0001
KEYSTROKE_KEYUP = 0x0002
KEYSTROKE_REPEAT = 0x0004


class KeyTransition(Enum):
    DOWN = "down"
    UP = "up"


class BatteryType(IntEnum):
    DISCONNECTED = 0x00
    WIRED = 0x01
    ALKALINE = 0x02
    NIMH = 0x03
    UNKNOWN = 0xFF


class BatteryLevel(IntEnum):
    EMPTY = 0x00
    LOW = 0x01
    MEDIUM = 0x02
    FULL = 0x03


class BatteryDeviceType(IntEnum):
    GAMEPAD = 0x00
    HEADSET = 0x01


@dataclass(frozen=True)
class RawSample:
    """One readout from DeviceQuery.read_state."""
    buttons: int
    left_thumb_x: int
    left_thumb_y: int
    right_thumb_x: int
    right_thumb_y: int
    left_trigger: int
    right_trigger: int
    sequence: int


@dataclass(frozen=True)
class RawKeystroke:
    virtual_key: int
    flags: int


@dataclass(frozen=True)
class RawBattery:
    battery_type: int
    battery_level: int


def _check_unit_open(name, value):
    if not 0.0 <= value < 1.0:
        raise ValueError(f"{name} must be in [0.0, 1.0), got {value!r}")


@dataclass(frozen=True)
class FilterSettings:
    """Per-stick deadzones and per-trigger thresholds, normalized."""
    left_thumb_deadzone: float = 7849 / THUMB_MAX
    right_thumb_deadzone: float = 8689 / THUMB_MAX
    left_trigger_threshold: float = 30 / TRIGGER_MAX
    right_trigger_threshold: float = 30 / TRIGGER_MAX

    def __post_init__(self):
        _check_unit_open("left_thumb_deadzone", self.left_thumb_deadzone)
        _check_unit_open("right_thumb_deadzone", self.right_thumb_deadzone)
        _check_unit_open("left_trigger_threshold", self.left_trigger_threshold)
        _check_unit_open("right_trigger_threshold", self.right_trigger_threshold)


@dataclass(frozen=True)
class GamepadState:
    """Immutable snapshot of one controller.

    The sampler publishes a new instance per accepted sample; readers hold a
    reference and never see a partially updated state. Unfiltered values are
    stored, filtered ones are derived from the same instance's settings.
    """
    index: int
    sequence: Optional[int] = None
    pressed: FrozenSet[Button] = frozenset()
    left_thumb_x_unfiltered: float = 0.0
    left_thumb_y_unfiltered: float = 0.0
    right_thumb_x_unfiltered: float = 0.0
    right_thumb_y_unfiltered: float = 0.0
    left_trigger_unfiltered: float = 0.0
    right_trigger_unfiltered: float = 0.0
    filters: FilterSettings = field(default_factory=FilterSettings)

    def is_pressed(self, button: Button) -> bool:
        return button in self.pressed

    @property
    def left_thumb_x(self) -> float:
        return apply_deadzone(self.left_thumb_x_unfiltered, self.filters.left_thumb_deadzone)

    @property
    def left_thumb_y(self) -> float:
        return apply_deadzone(self.left_thumb_y_unfiltered, self.filters.left_thumb_deadzone)

    @property
    def right_thumb_x(self) -> float:
        return apply_deadzone(self.right_thumb_x_unfiltered, self.filters.right_thumb_deadzone)

    @property
    def right_thumb_y(self) -> float:
        return apply_deadzone(self.right_thumb_y_unfiltered, self.filters.right_thumb_deadzone)

    @property
    def left_trigger(self) -> float:
        return apply_deadzone(self.left_trigger_unfiltered, self.filters.left_trigger_threshold)

    @property
    def right_trigger(self) -> float:
        return apply_deadzone(self.right_trigger_unfiltered, self.filters.right_trigger_threshold)

    def describe(self) -> str:
        """Pressed buttons followed by the filtered analog values."""
        parts = [name for b, name in BUTTON_NAMES if b in self.pressed]
        parts.append(f"lx: {self.left_thumb_x:.3f}")
        parts.append(f"ly: {self.left_thumb_y:.3f}")
        parts.append(f"rx: {self.right_thumb_x:.3f}")
        parts.append(f"ry: {self.right_thumb_y:.3f}")
        parts.append(f"lt: {self.left_trigger:.3f}")
        parts.append(f"rt: {self.right_trigger:.3f}")
        return ", ".join(parts)


@dataclass(frozen=True)
class Keystroke:
    index: int
    key: Union[KeyCode, int]
    transition: KeyTransition


@dataclass(frozen=True)
class BatteryInfo:
    battery_type: BatteryType
    charge: float


@dataclass(frozen=True)
class VibrationCommand:
    left_motor: float = 0.0  # low-frequency motor, 0..1
    right_motor: float = 0.0  # high-frequency motor, 0..1

    def __post_init__(self):
        for name in ("left_motor", "right_motor"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0.0, 1.0], got {value!r}")
