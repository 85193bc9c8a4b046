"""Battery level mapping"""
import logging

from core.errors import DeviceUnavailable, UnknownBatteryLevel
from core.state import BatteryDeviceType, BatteryInfo, BatteryLevel, BatteryType

LOG = logging.getLogger("padbridge.battery")

CHARGE_BY_LEVEL = {
    BatteryLevel.EMPTY: 0.0,
    BatteryLevel.LOW: 0.33,
    BatteryLevel.MEDIUM: 0.66,
    BatteryLevel.FULL: 1.0,
}


def level_to_charge(code) -> float:
    try:
        return CHARGE_BY_LEVEL[BatteryLevel(code)]
    except ValueError:
        raise UnknownBatteryLevel(code) from None


def classify_battery_type(code) -> BatteryType:
    try:
        return BatteryType(code)
    except ValueError:
        return BatteryType.UNKNOWN


class BatteryMapper:
    def __init__(self, query):
        self.query = query

    def get_battery_status(self, index, device_type=BatteryDeviceType.GAMEPAD) -> BatteryInfo:
        """Query and map the battery of a device slot.

        A failed query reports DISCONNECTED with a 0.0 charge, the same charge
        an empty battery reports. Unrecognized level codes raise
        UnknownBatteryLevel.
        """
        try:
            raw = self.query.read_battery(index, device_type)
        except DeviceUnavailable as e:
            LOG.debug("battery query failed for device %d: %s", index, e.reason)
            return BatteryInfo(BatteryType.DISCONNECTED, 0.0)
        return BatteryInfo(classify_battery_type(raw.battery_type), level_to_charge(raw.battery_level))
