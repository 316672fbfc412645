"""Shared fixtures for calendarslots tests."""

import os
from collections.abc import Generator
from datetime import date, datetime
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from calendarslots.calendar.recurrence_models import DayEvent, TimeEvent
from calendarslots.domain.slot_store import InMemorySlotStore

_ENV_KEYS = (
    "CALENDARSLOTS_DEFAULT_TIMEZONE",
    "CALENDARSLOTS_STORE_PATH",
    "CALENDARSLOTS_LOG_LEVEL",
    "CALENDARSLOTS_DEBUG",
)


def pytest_configure(config: Any) -> None:
    """Register the markers used across the suite."""
    config.addinivalue_line("markers", "unit: Fast unit tests")


@pytest.fixture
def simple_settings() -> SimpleNamespace:
    """Lightweight settings object accepted by ExpansionSettings.from_settings."""
    return SimpleNamespace(default_timezone="America/New_York")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Keep CALENDARSLOTS_* variables from leaking into or between tests.

    ConfigManager.load_env_file writes os.environ directly, so the keys are
    also cleared after each test.
    """
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    yield
    for key in _ENV_KEYS:
        os.environ.pop(key, None)


@pytest.fixture
def store() -> InMemorySlotStore:
    return InMemorySlotStore()


@pytest.fixture
def make_day_event() -> Callable[..., DayEvent]:
    """Factory for DayEvent values; ``recurrence`` may be a dict or a rule."""

    def _make(
        start: date = date(2024, 9, 4),
        end: date | None = None,
        recurrence: Any = None,
        **fields: Any,
    ) -> DayEvent:
        data: dict[str, Any] = {
            "title": "Team offsite",
            "start_date": start,
            "end_date": end or start,
            **fields,
        }
        if recurrence is not None:
            data["recurrence"] = recurrence
        return DayEvent.model_validate(data)

    return _make


@pytest.fixture
def make_time_event() -> Callable[..., TimeEvent]:
    """Factory for TimeEvent values authored in a single zone by default."""

    def _make(
        start: datetime = datetime(2024, 9, 4, 9, 0),
        end: datetime = datetime(2024, 9, 4, 10, 0),
        zone: str = "America/New_York",
        end_zone: str | None = None,
        recurrence: Any = None,
        **fields: Any,
    ) -> TimeEvent:
        data: dict[str, Any] = {
            "title": "Standup",
            "start_time": start,
            "start_time_zone_id": zone,
            "end_time": end,
            "end_time_zone_id": end_zone or zone,
            **fields,
        }
        if recurrence is not None:
            data["recurrence"] = recurrence
        return TimeEvent.model_validate(data)

    return _make
