"""Shared fixtures for the taskvoice test suite."""

from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from taskvoice.calendar_source import CalendarSource
from taskvoice.event_store import EventStore
from taskvoice.events import CalendarEvent, LocalEvent
from taskvoice.logger import configure_logging
from taskvoice.tts import Speaker

UTC = timezone.utc
DAY = (2024, 5, 2)


def at(hour: int, minute: int = 0, second: int = 0, day: int = DAY[2]) -> datetime:
    """Aware UTC datetime on the test day."""
    return datetime(DAY[0], DAY[1], day, hour, minute, second, tzinfo=UTC)


_ONE_HOUR = object()


def make_event(event_id="task-1", start=None, end=_ONE_HOUR, description="Write report",
               time_zone="UTC") -> CalendarEvent:
    """Calendar event on the test day; pass end=None for an open-ended one."""
    start = start or at(10)
    if end is _ONE_HOUR:
        end = start + timedelta(hours=1)
    return CalendarEvent(id=event_id, start_time=start, end_time=end,
                         time_zone=time_zone, description=description)


def make_local(start=None, end=None, **flags) -> LocalEvent:
    event = CalendarEvent(id=flags.pop("event_id", "task-1"),
                          start_time=start or at(10),
                          end_time=end,
                          time_zone="UTC",
                          description=flags.pop("description", "Write report"))
    return LocalEvent(event=event, **flags)


class MockConfig:
    """Minimal config mock that supports dot-notation get()."""

    def __init__(self, values=None):
        self._values = {
            "reminders.notification_repeats": 3,
            "reminders.interval_seconds": 30,
            "sync.interval_seconds": 15,
            "logging.level": "DEBUG",
        }
        self._values.update(values or {})
        self.reloads = 0

    def get(self, key, default=None):
        return self._values.get(key, default)

    def set(self, key, value):
        self._values[key] = value

    def reload_if_changed(self):
        self.reloads += 1
        return False


class RecordingSpeaker(Speaker):
    """Collects everything it is asked to say."""

    def __init__(self, result=True):
        self.spoken: List[str] = []
        self.result = result

    def speak(self, text: str) -> bool:
        self.spoken.append(text)
        return self.result


class StaticCalendar(CalendarSource):
    """Returns a fixed list of events, or raises a configured error."""

    def __init__(self, events=None, error=None):
        self.events = list(events or [])
        self.error = error
        self.calls = []

    def fetch_events(self, start, end):
        self.calls.append((start, end))
        if self.error is not None:
            raise self.error
        return list(self.events)


class Clock:
    """Settable clock for the scheduler."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def config():
    return MockConfig()


@pytest.fixture
def store(tmp_path, config):
    return EventStore(tmp_path / "events", config)


@pytest.fixture
def speaker():
    return RecordingSpeaker()


@pytest.fixture
def log_file(tmp_path):
    """Route all taskvoice logging to a file for the duration of a test."""
    path = tmp_path / "taskvoice.log"
    configure_logging(MockConfig({"logging.file": str(path), "logging.console": False}))
    yield path
    configure_logging(None)
