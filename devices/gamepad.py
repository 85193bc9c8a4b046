"""Gamepad facade and device enumeration

Binds one controller slot to its Sampler, VibrationController and
BatteryMapper. The sampler starts on construction and runs until `stop()`.
"""
import logging

from core.errors import NoActiveInput
from core.events import EventKind
from core.sampler import DEFAULT_POLL_INTERVAL, Sampler, SamplerState
from core.state import BUTTON_NAMES, MAX_COUNT, BatteryDeviceType, VibrationCommand
from devices.battery import BatteryMapper
from devices.vibration import VibrationController

LOG = logging.getLogger("padbridge.gamepad")

# Checked after BUTTON_NAMES by active_input(); first match wins.
_ANALOG_PRIORITY = (
    ("LeftThumbX", "left_thumb_x"),
    ("LeftThumbY", "left_thumb_y"),
    ("RightThumbX", "right_thumb_x"),
    ("RightThumbY", "right_thumb_y"),
    ("LeftTrigger", "left_trigger"),
    ("RightTrigger", "right_trigger"),
)


class Gamepad:
    def __init__(self, index, query, dispatcher=None, filters=None,
                 poll_interval=DEFAULT_POLL_INTERVAL):
        if not 0 <= index < MAX_COUNT:
            raise ValueError(f"device index must be in 0..{MAX_COUNT - 1}, got {index}")
        self.index = index
        self.query = query
        self.sampler = Sampler(index, query, dispatcher, filters, poll_interval)
        self.dispatcher = self.sampler.dispatcher
        self._vibration = VibrationController(index, query)
        self._battery = BatteryMapper(query)
        self.sampler.start()

    @property
    def state(self):
        """Latest published GamepadState."""
        return self.sampler.state

    @property
    def filters(self):
        return self.sampler.state.filters

    @filters.setter
    def filters(self, filters):
        self.sampler.set_filters(filters)

    def subscribe(self, kind: EventKind, handler):
        self.dispatcher.subscribe(kind, handler)

    def unsubscribe(self, kind: EventKind, handler):
        self.dispatcher.unsubscribe(kind, handler)

    @property
    def vibration(self) -> VibrationCommand:
        return self._vibration.command

    @vibration.setter
    def vibration(self, command: VibrationCommand):
        self._vibration.set_vibration(command)

    def set_vibration(self, left_motor, right_motor):
        self._vibration.set_vibration(VibrationCommand(left_motor, right_motor))

    def battery(self, device_type=BatteryDeviceType.GAMEPAD):
        return self._battery.get_battery_status(self.index, device_type)

    def active_input(self):
        """Name of the first active control, or None when the pad is idle."""
        state = self.state
        for button, name in BUTTON_NAMES:
            if state.is_pressed(button):
                return name
        for name, attr in _ANALOG_PRIORITY:
            if getattr(state, attr) != 0:
                return name
        return None

    def require_active_input(self):
        name = self.active_input()
        if name is None:
            raise NoActiveInput(f"no active input on device {self.index}")
        return name

    @property
    def connected(self):
        return self.sampler.connected

    @property
    def stopped(self):
        return self.sampler.status is SamplerState.STOPPED

    def stop(self):
        self.sampler.stop()

    def __str__(self):
        return self.state.describe()

    def __repr__(self):
        return f"<Gamepad index={self.index} status={self.sampler.status.value}>"


def get_connected_devices(query, max_count=MAX_COUNT, **options):
    """Return a started Gamepad for every slot the query reports as connected."""
    if not 1 <= max_count <= MAX_COUNT:
        raise ValueError(f"max_count must be in 1..{MAX_COUNT}, got {max_count}")
    pads = [Gamepad(index, query, **options) for index in query.enumerate_devices(max_count)]
    LOG.info("found %d connected gamepad(s)", len(pads))
    return pads
