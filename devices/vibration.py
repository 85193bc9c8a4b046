"""Rumble motor control

Each assignment is written to the device immediately; there is no batching
or rate limiting. Write failures propagate to the caller as DeviceUnavailable.
"""
import logging
import threading

from core.normalize import to_motor_speed
from core.state import VibrationCommand

LOG = logging.getLogger("padbridge.vibration")


class VibrationController:
    def __init__(self, index, query):
        self.index = index
        self.query = query
        self._command = VibrationCommand()
        self._lock = threading.Lock()

    @property
    def command(self) -> VibrationCommand:
        return self._command

    def set_vibration(self, command: VibrationCommand):
        with self._lock:
            self._command = command
            left = to_motor_speed(command.left_motor)
            right = to_motor_speed(command.right_motor)
            LOG.debug("device %d vibration -> left=%d right=%d", self.index, left, right)
            self.query.write_vibration(self.index, left, right)
