"""XInput query adapter using direct ctypes calls to the XInput DLL

Windows only. The newest available DLL is loaded; on other platforms
`XINPUT_AVAILABLE` is False and constructing `XInputQuery` raises
BackendUnavailable.
"""
import ctypes
import logging

from core.errors import BackendUnavailable, DeviceUnavailable
from core.query import DeviceQuery
from core.state import BatteryDeviceType, RawBattery, RawKeystroke, RawSample

LOG = logging.getLogger("padbridge.xinput")

ERROR_SUCCESS = 0
ERROR_DEVICE_NOT_CONNECTED = 1167
ERROR_EMPTY = 4306

XINPUT_DLL_NAMES = ("xinput1_4", "xinput1_3", "xinput9_1_0")


class XINPUT_GAMEPAD(ctypes.Structure):
    _fields_ = [
        ("wButtons", ctypes.c_ushort),
        ("bLeftTrigger", ctypes.c_ubyte),
        ("bRightTrigger", ctypes.c_ubyte),
        ("sThumbLX", ctypes.c_short),
        ("sThumbLY", ctypes.c_short),
        ("sThumbRX", ctypes.c_short),
        ("sThumbRY", ctypes.c_short),
    ]


class XINPUT_STATE(ctypes.Structure):
    _fields_ = [
        ("dwPacketNumber", ctypes.c_uint32),
        ("Gamepad", XINPUT_GAMEPAD),
    ]


class XINPUT_VIBRATION(ctypes.Structure):
    _fields_ = [
        ("wLeftMotorSpeed", ctypes.c_ushort),
        ("wRightMotorSpeed", ctypes.c_ushort),
    ]


class XINPUT_BATTERY_INFORMATION(ctypes.Structure):
    _fields_ = [
        ("BatteryType", ctypes.c_ubyte),
        ("BatteryLevel", ctypes.c_ubyte),
    ]


class XINPUT_KEYSTROKE(ctypes.Structure):
    _fields_ = [
        ("VirtualKey", ctypes.c_ushort),
        ("Unicode", ctypes.c_wchar),
        ("Flags", ctypes.c_ushort),
        ("UserIndex", ctypes.c_ubyte),
        ("HidCode", ctypes.c_ubyte),
    ]


def _load_xinput():
    loader = getattr(ctypes, "WinDLL", None)
    if loader is None:
        return None
    for name in XINPUT_DLL_NAMES:
        try:
            dll = loader(name)
            LOG.info("XInput DLL %s loaded", name)
            return dll
        except OSError:
            LOG.debug("XInput DLL %s not found", name)
    LOG.error("Failed to load any XInput DLL (%s)", ", ".join(XINPUT_DLL_NAMES))
    return None


xinput_dll = _load_xinput()
XINPUT_AVAILABLE = xinput_dll is not None

if XINPUT_AVAILABLE:
    xinput_dll.XInputGetState.argtypes = [ctypes.c_uint32, ctypes.POINTER(XINPUT_STATE)]
    xinput_dll.XInputGetState.restype = ctypes.c_uint32
    xinput_dll.XInputSetState.argtypes = [ctypes.c_uint32, ctypes.POINTER(XINPUT_VIBRATION)]
    xinput_dll.XInputSetState.restype = ctypes.c_uint32
    # xinput9_1_0 exports neither battery nor keystroke calls
    if hasattr(xinput_dll, "XInputGetBatteryInformation"):
        xinput_dll.XInputGetBatteryInformation.argtypes = [
            ctypes.c_uint32, ctypes.c_ubyte, ctypes.POINTER(XINPUT_BATTERY_INFORMATION)]
        xinput_dll.XInputGetBatteryInformation.restype = ctypes.c_uint32
    if hasattr(xinput_dll, "XInputGetKeystroke"):
        xinput_dll.XInputGetKeystroke.argtypes = [ctypes.c_uint32, ctypes.c_uint32, ctypes.POINTER(XINPUT_KEYSTROKE)]
        xinput_dll.XInputGetKeystroke.restype = ctypes.c_uint32


def sample_from_struct(state: XINPUT_STATE) -> RawSample:
    pad = state.Gamepad
    return RawSample(
        buttons=pad.wButtons,
        left_thumb_x=pad.sThumbLX,
        left_thumb_y=pad.sThumbLY,
        right_thumb_x=pad.sThumbRX,
        right_thumb_y=pad.sThumbRY,
        left_trigger=pad.bLeftTrigger,
        right_trigger=pad.bRightTrigger,
        sequence=state.dwPacketNumber,
    )


def _check(index, result, call):
    if result == ERROR_DEVICE_NOT_CONNECTED:
        raise DeviceUnavailable(index)
    if result != ERROR_SUCCESS:
        raise DeviceUnavailable(index, f"{call} returned {result}")


class XInputQuery(DeviceQuery):
    """DeviceQuery backed by the XInput API. Older DLLs lack some calls."""

    def __init__(self, dll=None):
        self._dll = dll or xinput_dll
        if self._dll is None:
            raise BackendUnavailable("XInput is not available on this system")

    def read_state(self, index):
        state = XINPUT_STATE()
        _check(index, self._dll.XInputGetState(index, ctypes.byref(state)), "XInputGetState")
        return sample_from_struct(state)

    def read_keystroke(self, index):
        if not hasattr(self._dll, "XInputGetKeystroke"):
            return None
        stroke = XINPUT_KEYSTROKE()
        result = self._dll.XInputGetKeystroke(index, 0, ctypes.byref(stroke))
        if result == ERROR_EMPTY:
            return None
        _check(index, result, "XInputGetKeystroke")
        return RawKeystroke(stroke.VirtualKey, stroke.Flags)

    def read_battery(self, index, device_type=BatteryDeviceType.GAMEPAD):
        if not hasattr(self._dll, "XInputGetBatteryInformation"):
            raise DeviceUnavailable(index, "battery information not supported by this XInput version")
        info = XINPUT_BATTERY_INFORMATION()
        result = self._dll.XInputGetBatteryInformation(index, int(device_type), ctypes.byref(info))
        _check(index, result, "XInputGetBatteryInformation")
        return RawBattery(info.BatteryType, info.BatteryLevel)

    def write_vibration(self, index, left, right):
        vibration = XINPUT_VIBRATION(left, right)
        _check(index, self._dll.XInputSetState(index, ctypes.byref(vibration)), "XInputSetState")
