"""Device query abstraction

A DeviceQuery reads raw controller state and writes motor speeds for a slot
index. Every read either returns data or raises DeviceUnavailable; the
sampler treats that as "no new data".
"""
import abc
import logging

from core.errors import DeviceUnavailable
from core.state import MAX_COUNT, BatteryDeviceType

LOG = logging.getLogger("padbridge.query")


class DeviceQuery(abc.ABC):
    @abc.abstractmethod
    def read_state(self, index):
        """Return a RawSample for the slot or raise DeviceUnavailable."""
        raise NotImplementedError

    @abc.abstractmethod
    def read_keystroke(self, index):
        """Return the next queued RawKeystroke, or None when the queue is empty."""
        raise NotImplementedError

    @abc.abstractmethod
    def read_battery(self, index, device_type=BatteryDeviceType.GAMEPAD):
        """Return a RawBattery for the slot or raise DeviceUnavailable."""
        raise NotImplementedError

    @abc.abstractmethod
    def write_vibration(self, index, left, right):
        """Write raw uint16 motor speeds; raise DeviceUnavailable on failure."""
        raise NotImplementedError

    def enumerate_devices(self, max_count=MAX_COUNT):
        """Return the slot indices in 0..max_count-1 whose state can be read."""
        found = []
        for index in range(max_count):
            try:
                self.read_state(index)
            except DeviceUnavailable:
                continue
            found.append(index)
        LOG.debug("enumerated %d device(s): %s", len(found), found)
        return found
