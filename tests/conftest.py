"""Pytest fixtures shared by the padbridge tests."""
import pytest

from core.state import RawBattery
from fakes import FakeQuery


@pytest.fixture
def query() -> FakeQuery:
    return FakeQuery()


@pytest.fixture
def full_battery() -> RawBattery:
    return RawBattery(battery_type=0x02, battery_level=0x03)
