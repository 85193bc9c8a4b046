"""Raw sample normalization and deadzone shaping

All functions here are pure. Sticks report signed 16-bit values, triggers
unsigned bytes; both are mapped to floats before any filtering.
"""

THUMB_MAX = 32767
TRIGGER_MAX = 255
MOTOR_MAX = 0xFFFF


def normalize_axis(raw: int, max_magnitude: int = THUMB_MAX) -> float:
    """Map a raw stick value to [-1.0, 1.0].

    The negative end of an int16 is one larger than the positive end, so
    -32768 is clamped to -1.0.
    """
    value = raw / float(max_magnitude)
    return max(-1.0, min(1.0, value))


def normalize_trigger(raw: int, max_magnitude: int = TRIGGER_MAX) -> float:
    value = raw / float(max_magnitude)
    return max(0.0, min(1.0, value))


def apply_deadzone(value: float, deadzone: float) -> float:
    """Apply a deadzone (or trigger threshold) to a normalized value.

    Magnitudes at or below the deadzone map to 0.0 and the surviving range is
    rescaled linearly back to the full range. The filter is per-axis: the two
    components of a stick are clamped independently, not radially.
    """
    if not 0.0 <= deadzone < 1.0:
        raise ValueError(f"deadzone must be in [0.0, 1.0), got {deadzone!r}")
    if value > 0.0:
        return max((value - deadzone) / (1.0 - deadzone), 0.0)
    return min((value + deadzone) / (1.0 - deadzone), 0.0)


def to_motor_speed(intensity: float, max_speed: int = MOTOR_MAX) -> int:
    """Scale a [0, 1] motor intensity to the raw unsigned motor range (truncating)."""
    return int(intensity * max_speed)
