"""Tests for the event model and time helpers."""

from datetime import timedelta

import pytest

from conftest import at, make_event, make_local
from taskvoice.events import LocalEvent
from taskvoice.timeutil import format_clock, format_duration, resolve_zone


@pytest.mark.parametrize("minutes, expected", [
    (0, "0 minutes"),
    (1, "1 minute"),
    (45, "45 minutes"),
    (60, "1 hour"),
    (61, "1 hour and 1 minute"),
    (150, "2 hours and 30 minutes"),
])
def test_format_duration(minutes, expected):
    assert format_duration(timedelta(minutes=minutes)) == expected


def test_format_duration_never_negative():
    assert format_duration(timedelta(minutes=-5)) == "0 minutes"


def test_format_clock():
    assert format_clock(at(9, 5)) == "9:05 AM"
    assert format_clock(at(15, 30)) == "3:30 PM"


def test_resolve_zone():
    assert resolve_zone("") is None
    assert resolve_zone("Not/AZone") is None
    assert resolve_zone("Europe/Berlin").key == "Europe/Berlin"


def test_describe_timed_event():
    event = make_event(start=at(10), end=at(11, 30), description="Write report")
    assert event.describe(at(9)) == (
        'Task "Write report" is scheduled for today for 1 hour and 30 minutes, '
        "from 10:00 AM to 11:30 AM")
    assert event.describe(at(12)).startswith('Task "Write report" was scheduled')


def test_describe_open_ended_event():
    event = make_event(start=at(9), end=None, description="Inbox")
    assert event.describe(at(9)) == "Task 'Inbox' is scheduled for whole day, today at 9:00 AM"


def test_dict_roundtrip_keeps_flags():
    record = make_local(at(10), at(11), start_announced=True, last_time_reminded=at(10, 20))
    assert LocalEvent.from_dict(record.to_dict()) == record


def test_from_dict_rejects_missing_start():
    data = make_local(at(10), at(11)).to_dict()
    data["event"]["start_time"] = None
    with pytest.raises(ValueError):
        LocalEvent.from_dict(data)


def test_time_predicates():
    event = make_local(at(14), at(14, 30))

    assert event.scheduled_for_now(at(14))
    assert not event.scheduled_for_now(at(14, 30))
    assert event.near_end(at(14, 29)) and event.near_end(at(14, 31))
    assert not event.near_end(at(14, 31, 1))
    assert event.is_finished(at(14, 30, 1))
    assert not make_local(at(14), None).is_finished(at(23))
    assert not event.scheduled_for_today(at(14, day=3))
