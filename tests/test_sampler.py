import logging
import time

import pytest

from core.errors import DeviceUnavailable
from core.events import EventDispatcher, EventKind
from core.sampler import Sampler, SamplerState
from core.state import (
    KEYSTROKE_KEYDOWN,
    KEYSTROKE_KEYUP,
    KEYSTROKE_REPEAT,
    Button,
    FilterSettings,
    KeyCode,
    KeyTransition,
    RawKeystroke,
)
from fakes import raw_sample, wait_for


class Recorder:
    def __init__(self, dispatcher):
        self.states, self.downs, self.ups = [], [], []
        dispatcher.subscribe(EventKind.STATE_CHANGED, self.states.append)
        dispatcher.subscribe(EventKind.KEY_DOWN, self.downs.append)
        dispatcher.subscribe(EventKind.KEY_UP, self.ups.append)


@pytest.fixture
def sampler(query):
    return Sampler(0, query, EventDispatcher())


def test_non_increasing_sequence_emits_once(query, sampler):
    rec = Recorder(sampler.dispatcher)
    query.feed(0, raw_sample(5), raw_sample(5, buttons=Button.A), raw_sample(4), raw_sample(3), raw_sample(5))
    for _ in range(5):
        sampler.poll_once()
    assert len(rec.states) == 1
    assert rec.states[0].sequence == 5
    assert sampler.state.pressed == frozenset()


def test_each_increasing_sequence_is_accepted(query, sampler):
    rec = Recorder(sampler.dispatcher)
    query.feed(0, raw_sample(1), raw_sample(2), raw_sample(7))
    accepted = [sampler.poll_once() for _ in range(3)]
    assert accepted == [True, True, True]
    assert [s.sequence for s in rec.states] == [1, 2, 7]


def test_sample_is_normalized_into_snapshot(query):
    filters = FilterSettings(left_thumb_deadzone=0.1, right_thumb_deadzone=0.0,
                             left_trigger_threshold=0.0, right_trigger_threshold=0.5)
    sampler = Sampler(0, query, filters=filters)
    query.feed(0, raw_sample(3, buttons=Button.A | Button.DPAD_UP, lx=16383, ly=-32768,
                            rx=-16384, lt=255, rt=51))
    sampler.poll_once()
    state = sampler.state

    assert state.pressed == frozenset({Button.A, Button.DPAD_UP})
    assert state.is_pressed(Button.A)
    assert not state.is_pressed(Button.B)
    assert state.left_thumb_x_unfiltered == pytest.approx(16383 / 32767)
    assert state.left_thumb_x == pytest.approx(((16383 / 32767) - 0.1) / 0.9)
    assert state.left_thumb_y == -1.0
    assert state.right_thumb_x == pytest.approx(-16384 / 32767)
    assert state.left_trigger == 1.0
    assert state.right_trigger_unfiltered == pytest.approx(0.2)
    assert state.right_trigger == 0.0


def test_keystrokes_are_independent_of_state_changes(query, sampler):
    rec = Recorder(sampler.dispatcher)
    sampler.poll_once()
    rec.states.clear()

    query.press(0,
                RawKeystroke(KeyCode.A, KEYSTROKE_KEYDOWN),
                RawKeystroke(KeyCode.A, KEYSTROKE_KEYUP),
                RawKeystroke(KeyCode.START, KEYSTROKE_KEYDOWN))
    for _ in range(3):
        assert sampler.poll_once() is False

    assert rec.states == []
    assert [(k.key, k.transition) for k in rec.downs] == [
        (KeyCode.A, KeyTransition.DOWN), (KeyCode.START, KeyTransition.DOWN)]
    assert [(k.key, k.transition) for k in rec.ups] == [(KeyCode.A, KeyTransition.UP)]
    assert all(k.index == 0 for k in rec.downs + rec.ups)


def test_repeat_keystrokes_are_ignored(query, sampler):
    rec = Recorder(sampler.dispatcher)
    query.press(0, RawKeystroke(KeyCode.B, KEYSTROKE_KEYDOWN | KEYSTROKE_REPEAT))
    sampler.poll_once()
    assert rec.downs == [] and rec.ups == []


def test_unknown_virtual_key_is_passed_through(query, sampler):
    rec = Recorder(sampler.dispatcher)
    query.press(0, RawKeystroke(0x1234, KEYSTROKE_KEYDOWN))
    sampler.poll_once()
    assert rec.downs[0].key == 0x1234


def test_disconnected_device_is_skipped(query):
    sampler = Sampler(3, query)
    rec = Recorder(sampler.dispatcher)
    assert sampler.poll_once() is False
    assert rec.states == [] and rec.downs == []
    assert sampler.connected is False
    assert sampler.state.sequence is None


def test_reconnect_resumes_updates(query, sampler):
    rec = Recorder(sampler.dispatcher)
    query.feed(0, raw_sample(1), raw_sample(2))
    sampler.poll_once()
    query.connected.clear()
    sampler.poll_once()
    assert sampler.connected is False
    query.connected.add(0)
    sampler.poll_once()
    assert sampler.connected is True
    assert [s.sequence for s in rec.states] == [1, 2]


def test_published_snapshot_is_not_mutated(query, sampler):
    query.feed(0, raw_sample(1, lx=32767), raw_sample(2, lx=0))
    sampler.poll_once()
    held = sampler.state
    sampler.poll_once()
    assert held.sequence == 1
    assert held.left_thumb_x_unfiltered == 1.0
    assert sampler.state.sequence == 2


def test_set_filters_republishes_current_state(query, sampler):
    query.feed(0, raw_sample(4, lx=16383))
    sampler.poll_once()
    sampler.set_filters(FilterSettings(left_thumb_deadzone=0.6))
    assert sampler.state.sequence == 4
    assert sampler.state.left_thumb_x == 0.0


def test_loop_survives_query_errors(query, sampler):
    rec = Recorder(sampler.dispatcher)
    query.state_error = RuntimeError("driver hiccup")
    query.feed(0, raw_sample(9))
    sampler.start()
    try:
        assert wait_for(lambda: len(rec.states) == 1)
    finally:
        sampler.stop()
    assert rec.states[0].sequence == 9


def test_loop_treats_unavailable_as_no_data(query, sampler):
    rec = Recorder(sampler.dispatcher)
    query.state_error = DeviceUnavailable(0)
    sampler.start()
    try:
        assert wait_for(lambda: len(rec.states) == 1)
    finally:
        sampler.stop()


def test_stop_is_terminal_and_idempotent(query, sampler):
    sampler.start()
    assert sampler.status is SamplerState.RUNNING
    assert wait_for(lambda: query.state_reads > 0)
    sampler.stop()
    sampler.stop()
    assert sampler.status is SamplerState.STOPPED

    reads = query.state_reads
    time.sleep(0.05)
    assert query.state_reads == reads
    with pytest.raises(RuntimeError):
        sampler.start()
    assert sampler.status is SamplerState.STOPPED


def test_stop_before_start(query, sampler):
    sampler.stop()
    assert sampler.status is SamplerState.STOPPED
    with pytest.raises(RuntimeError):
        sampler.start()


def test_start_twice_is_noop(query, sampler):
    sampler.start()
    thread = sampler._t
    sampler.start()
    assert sampler._t is thread
    sampler.stop()


def test_poll_once_rejected_while_thread_runs(query, sampler):
    sampler.start()
    try:
        assert wait_for(lambda: sampler.state.sequence == 1)
        with pytest.raises(RuntimeError):
            sampler.poll_once()
    finally:
        sampler.stop()
    # the stopped sampler can be polled by hand; sequence 1 was already taken
    assert sampler.poll_once() is False
    assert sampler.state.sequence == 1


def test_repeated_query_errors_log_one_traceback(query, sampler, caplog, monkeypatch):
    calls = []

    def broken(index):
        calls.append(index)
        raise RuntimeError("driver hiccup")

    monkeypatch.setattr(query, "read_state", broken)
    caplog.set_level(logging.DEBUG, logger="padbridge.sampler")
    sampler.start()
    try:
        assert wait_for(lambda: len(calls) >= 3)
    finally:
        sampler.stop()
    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert errors[0].exc_info is not None
    assert any("still failing" in r.getMessage() for r in caplog.records)
