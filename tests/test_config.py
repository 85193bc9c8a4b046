import pytest

from config import Profile, load_profile
from core.state import FilterSettings


def test_defaults_without_profile():
    profile = load_profile(None)
    assert profile.backend == "xinput"
    assert profile.max_devices == 4
    assert profile.poll_interval == pytest.approx(0.002)
    assert profile.filters == FilterSettings()
    assert profile.filters.left_thumb_deadzone == pytest.approx(7849 / 32767)
    assert profile.filters.left_trigger_threshold == pytest.approx(30 / 255)


def test_load_yaml_profile(tmp_path):
    path = tmp_path / "pad.yaml"
    path.write_text(
        "backend: pygame\n"
        "max_devices: 2\n"
        "poll_interval_ms: 5\n"
        "deadzones:\n"
        "  left_thumb: 0.1\n"
        "  right_trigger: 0.05\n"
        "pygame_layout:\n"
        "  axes: {left_trigger: 2, right_trigger: 5}\n",
        encoding="utf-8",
    )
    profile = load_profile(str(path))
    assert profile.backend == "pygame"
    assert profile.max_devices == 2
    assert profile.poll_interval == pytest.approx(0.005)
    assert profile.filters.left_thumb_deadzone == 0.1
    assert profile.filters.right_trigger_threshold == 0.05
    assert profile.filters.right_thumb_deadzone == pytest.approx(8689 / 32767)
    assert (profile.pygame_layout.left_trigger, profile.pygame_layout.right_trigger) == (2, 5)
    assert profile.pygame_layout.left_x == 0


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_profile(str(path)) == Profile()


def test_non_mapping_profile_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_profile(str(path))


@pytest.mark.parametrize("data", [
    {"backend": "dinput"},
    {"max_devices": 0},
    {"max_devices": 5},
    {"poll_interval_ms": -1},
    {"deadzones": {"left_thumb": 1.0}},
    {"deadzones": {"right_trigger": -0.2}},
])
def test_invalid_values_rejected(data):
    with pytest.raises(ValueError):
        Profile.from_dict(data)


def test_profile_without_layout_keeps_default():
    assert Profile.from_dict({"backend": "pygame"}).pygame_layout is None


@pytest.mark.parametrize("text", [
    "deadzones: 0.2\n",
    "deadzones: [0.1, 0.2]\n",
    "deadzones: {left_thumb: wide}\n",
    "max_devices: two\n",
    "pygame_layout: {buttons: {0: turbo}}\n",
    "pygame_layout: [1, 2]\n",
])
def test_malformed_profile_sections_rejected_at_load(tmp_path, text):
    path = tmp_path / "bad.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ValueError):
        load_profile(str(path))
