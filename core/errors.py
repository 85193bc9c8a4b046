"""Error types raised by the query adapters and the gamepad layer"""


class PadBridgeError(Exception):
    """Base class for padbridge errors."""


class DeviceUnavailable(PadBridgeError):
    """A query returned not-ready / disconnected for a device slot."""

    def __init__(self, index, reason="not connected"):
        super().__init__(f"device {index}: {reason}")
        self.index = index
        self.reason = reason


class UnknownBatteryLevel(PadBridgeError):
    def __init__(self, code):
        super().__init__(f"unknown battery level code: {code!r}")
        self.code = code


class NoActiveInput(PadBridgeError):
    """No button, stick or trigger is currently active."""


class BackendUnavailable(PadBridgeError):
    """The library behind a query adapter could not be loaded."""
