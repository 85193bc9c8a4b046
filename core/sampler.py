"""Per-device polling loop

A `Sampler` owns one controller slot. Its thread reads raw state through a
DeviceQuery, accepts a sample only when the device sequence number advances,
publishes a new immutable GamepadState and notifies subscribers. Keystrokes
are read and dispatched on their own path in the same iteration.
"""
import dataclasses
import logging
import threading
from enum import Enum

from core.errors import DeviceUnavailable
from core.events import EventDispatcher, EventKind
from core.normalize import normalize_axis, normalize_trigger
from core.state import (
    ALL_BUTTONS,
    KEYSTROKE_KEYDOWN,
    KEYSTROKE_KEYUP,
    FilterSettings,
    GamepadState,
    KeyCode,
    Keystroke,
    KeyTransition,
)

LOG = logging.getLogger("padbridge.sampler")

DEFAULT_POLL_INTERVAL = 0.002  # seconds
ERROR_BACKOFF = 0.25  # seconds to wait after an unexpected query error


class SamplerState(Enum):
    PENDING = "pending"
    RUNNING = "running"
    STOPPED = "stopped"


def decode_key(virtual_key):
    try:
        return KeyCode(virtual_key)
    except ValueError:
        return virtual_key


class Sampler:
    def __init__(self, index, query, dispatcher=None, filters=None,
                 poll_interval=DEFAULT_POLL_INTERVAL):
        self.index = index
        self.query = query
        self.dispatcher = dispatcher or EventDispatcher()
        self.poll_interval = poll_interval
        self._stop = threading.Event()
        self._t = None
        self._status = SamplerState.PENDING
        self._lifecycle = threading.Lock()
        # serializes snapshot writers (the loop and set_filters); readers never lock
        self._write_lock = threading.Lock()
        self._last_sequence = None
        self._connected = None
        self._state = GamepadState(index=index, filters=filters or FilterSettings())

    @property
    def state(self) -> GamepadState:
        return self._state

    @property
    def status(self) -> SamplerState:
        return self._status

    @property
    def connected(self) -> bool:
        return bool(self._connected)

    def start(self):
        with self._lifecycle:
            if self._status is SamplerState.STOPPED:
                raise RuntimeError(f"sampler for device {self.index} was stopped and cannot be restarted")
            if self._status is SamplerState.RUNNING:
                return
            self._status = SamplerState.RUNNING
            self._t = threading.Thread(target=self._loop, name=f"Sampler-{self.index}", daemon=True)
            self._t.start()
        LOG.info("sampler started for device %d", self.index)

    def stop(self, timeout=1.0):
        with self._lifecycle:
            if self._status is SamplerState.STOPPED:
                return
            self._status = SamplerState.STOPPED
            self._stop.set()
            t = self._t
        if t is not None and t is not threading.current_thread():
            t.join(timeout=timeout)
        LOG.info("sampler stopped for device %d", self.index)

    def set_filters(self, filters: FilterSettings):
        with self._write_lock:
            self._state = dataclasses.replace(self._state, filters=filters)

    def poll_once(self):
        """Run one loop iteration without sleeping. Returns True if a sample was accepted.

        Only valid while the polling thread is not running.
        """
        if self._status is SamplerState.RUNNING:
            raise RuntimeError(f"sampler for device {self.index} is running; poll_once is for manual polling")
        return self._poll()

    def _poll(self):
        accepted = self._poll_state()
        self._poll_keystroke()
        return accepted

    def _loop(self):
        failures = 0
        while not self._stop.is_set():
            try:
                self._poll()
            except Exception:
                failures += 1
                if failures == 1:
                    LOG.exception("error polling device %d; backing off", self.index)
                else:
                    LOG.debug("device %d still failing (%d in a row)", self.index, failures, exc_info=True)
                self._stop.wait(ERROR_BACKOFF)
                continue
            if failures:
                LOG.info("device %d polling recovered after %d error(s)", self.index, failures)
                failures = 0
            self._stop.wait(self.poll_interval)

    def _set_connected(self, connected):
        if connected != self._connected:
            if self._connected is not None or connected:
                LOG.info("device %d %s", self.index, "connected" if connected else "disconnected")
            self._connected = connected

    def _poll_state(self):
        try:
            raw = self.query.read_state(self.index)
        except DeviceUnavailable as e:
            LOG.debug("no state for device %d: %s", self.index, e.reason)
            self._set_connected(False)
            return False
        self._set_connected(True)

        with self._write_lock:
            if self._last_sequence is not None and raw.sequence <= self._last_sequence:
                return False
            self._last_sequence = raw.sequence
            self._state = GamepadState(
                index=self.index,
                sequence=raw.sequence,
                pressed=frozenset(b for b in ALL_BUTTONS if raw.buttons & b),
                left_thumb_x_unfiltered=normalize_axis(raw.left_thumb_x),
                left_thumb_y_unfiltered=normalize_axis(raw.left_thumb_y),
                right_thumb_x_unfiltered=normalize_axis(raw.right_thumb_x),
                right_thumb_y_unfiltered=normalize_axis(raw.right_thumb_y),
                left_trigger_unfiltered=normalize_trigger(raw.left_trigger),
                right_trigger_unfiltered=normalize_trigger(raw.right_trigger),
                filters=self._state.filters,
            )
            snapshot = self._state
        LOG.debug("device %d seq %d -> %s", self.index, raw.sequence, snapshot.describe())
        self.dispatcher.notify(EventKind.STATE_CHANGED, snapshot)
        return True

    def _poll_keystroke(self):
        try:
            stroke = self.query.read_keystroke(self.index)
        except DeviceUnavailable:
            return
        if stroke is None:
            return
        # repeat strokes carry KEYDOWN|REPEAT and are not forwarded
        if stroke.flags == KEYSTROKE_KEYUP:
            kind, transition = EventKind.KEY_UP, KeyTransition.UP
        elif stroke.flags == KEYSTROKE_KEYDOWN:
            kind, transition = EventKind.KEY_DOWN, KeyTransition.DOWN
        else:
            return
        key = decode_key(stroke.virtual_key)
        LOG.debug("device %d key %s %s", self.index, key, transition.value)
        self.dispatcher.notify(kind, Keystroke(self.index, key, transition))

    def __repr__(self):
        return f"<Sampler index={self.index} status={self._status.value}>"
