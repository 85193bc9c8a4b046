"""Profile configuration: YAML settings for backends, polling and deadzones"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from core.state import MAX_COUNT, FilterSettings

LOG = logging.getLogger("padbridge.config")

BACKENDS = ("xinput", "pygame")

_DEADZONE_KEYS = (
    ("left_thumb", "left_thumb_deadzone"),
    ("right_thumb", "right_thumb_deadzone"),
    ("left_trigger", "left_trigger_threshold"),
    ("right_trigger", "right_trigger_threshold"),
)


def _number(value, kind, name):
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None


@dataclass
class Profile:
    backend: str = "xinput"
    max_devices: int = MAX_COUNT
    poll_interval_ms: float = 2.0
    filters: FilterSettings = field(default_factory=FilterSettings)
    pygame_layout: Optional[Any] = None  # devices.pygame_pad.PygameLayout

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ValueError(f"unknown backend {self.backend!r}, expected one of {BACKENDS}")
        if not 1 <= self.max_devices <= MAX_COUNT:
            raise ValueError(f"max_devices must be in 1..{MAX_COUNT}, got {self.max_devices}")
        if self.poll_interval_ms < 0:
            raise ValueError(f"poll_interval_ms must not be negative, got {self.poll_interval_ms}")

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Profile":
        data = data or {}
        dz = data.get("deadzones") or {}
        if not isinstance(dz, dict):
            raise ValueError(f"deadzones must be a mapping, got {type(dz).__name__}")
        defaults = FilterSettings()
        filters = FilterSettings(**{
            attr: _number(dz.get(key, getattr(defaults, attr)), float, f"deadzones.{key}")
            for key, attr in _DEADZONE_KEYS
        })

        layout = data.get("pygame_layout")
        if layout is not None:
            # imported here so the xinput backend never loads pygame
            from devices.pygame_pad import PygameLayout
            layout = PygameLayout.from_dict(layout)

        return cls(
            backend=str(data.get("backend", "xinput")).lower(),
            max_devices=_number(data.get("max_devices", MAX_COUNT), int, "max_devices"),
            poll_interval_ms=_number(data.get("poll_interval_ms", 2.0), float, "poll_interval_ms"),
            filters=filters,
            pygame_layout=layout,
        )

    @classmethod
    def load(cls, path: str) -> "Profile":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is not None and not isinstance(data, dict):
            raise ValueError(f"profile {path} must be a mapping, got {type(data).__name__}")
        profile = cls.from_dict(data)
        LOG.info("loaded profile %s (backend=%s, poll=%.1fms)", path, profile.backend, profile.poll_interval_ms)
        return profile


def load_profile(path: Optional[str]) -> Profile:
    if path is None:
        return Profile()
    return Profile.load(path)
