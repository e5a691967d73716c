"""Tests for the sync/reminder scheduler."""

import time

import pytest

from conftest import Clock, MockConfig, RecordingSpeaker, StaticCalendar, at, make_event
from taskvoice.errors import RemoteFetchFailed, StorageWriteFailed
from taskvoice.scheduler import TaskScheduler


@pytest.fixture
def clock():
    return Clock(at(9, 59))


@pytest.fixture
def calendar():
    return StaticCalendar([make_event("report", start=at(10), end=at(11),
                                      description="Write report")])


@pytest.fixture
def scheduler(config, store, calendar, speaker, clock):
    return TaskScheduler(config, store, calendar, speaker, clock=clock)


def tick(scheduler, clock, now):
    clock.now = now
    scheduler.sync_once()
    return scheduler.remind_once()


def test_sync_once_reconciles_todays_window(scheduler, store, calendar, clock):
    result = scheduler.sync_once()

    assert result.saved == ["report"]
    assert store.list_ids() == ["report"]
    start, end = calendar.calls[0]
    assert start == at(0) and end == at(0, day=3)


def test_full_day_of_announcements(scheduler, speaker, clock):
    assert tick(scheduler, clock, at(9, 59)) == 0
    assert tick(scheduler, clock, at(10)) == 1
    assert tick(scheduler, clock, at(10, 0, 30)) == 0
    assert tick(scheduler, clock, at(10, 1)) == 1
    assert tick(scheduler, clock, at(10, 20)) == 1
    assert tick(scheduler, clock, at(10, 40)) == 1
    assert tick(scheduler, clock, at(10, 59)) == 1
    assert tick(scheduler, clock, at(10, 59, 30)) == 0

    assert speaker.spoken == [
        'Hey! Time to tackle "Write report"! You have "Write report" scheduled for now.',
        'Have you started "Write report" yet? It was scheduled to begin at 10:00 AM.',
        "You have 40 minutes left for Write report",
        "You have 20 minutes left for Write report",
        'Hey! The "Write report" is over now!',
    ]


def test_repeated_sync_does_not_replay(scheduler, speaker, clock):
    tick(scheduler, clock, at(10))
    scheduler.sync_once()
    scheduler.sync_once()

    assert scheduler.remind_once() == 0
    assert len(speaker.spoken) == 1


def test_flags_survive_restart(config, store, calendar, clock, speaker):
    first = TaskScheduler(config, store, calendar, speaker, clock=clock)
    tick(first, clock, at(10))

    second = TaskScheduler(config, store, calendar, RecordingSpeaker(), clock=clock)
    assert tick(second, clock, at(10, 0, 30)) == 0
    assert second.speaker.spoken == []


def test_fetch_failure_keeps_existing_records(scheduler, store, calendar, clock):
    scheduler.sync_once()
    calendar.error = RuntimeError("network unreachable")

    assert scheduler.sync_once() is None
    assert store.list_ids() == ["report"]


def test_fetch_failure_retried_next_tick(scheduler, store, calendar):
    calendar.error = RemoteFetchFailed("timeout")
    assert scheduler.sync_once() is None
    assert store.list_ids() == []

    calendar.error = None
    assert scheduler.sync_once() is not None
    assert store.list_ids() == ["report"]


def test_storage_failure_does_not_raise(scheduler, store, monkeypatch):
    def broken_save(event):
        raise StorageWriteFailed("read-only filesystem")

    monkeypatch.setattr(store, "save", broken_save)
    assert scheduler.sync_once() is None


def test_failed_flag_write_skips_announcement(scheduler, store, speaker, clock, monkeypatch):
    scheduler.sync_once()
    clock.now = at(10)

    def broken_update(event_id, mutation):
        raise StorageWriteFailed("disk full")

    monkeypatch.setattr(store, "update_flags", broken_update)

    assert scheduler.remind_once() == 0
    assert speaker.spoken == []


def test_failed_speech_is_not_retried(config, store, calendar, clock):
    speaker = RecordingSpeaker(result=False)
    scheduler = TaskScheduler(config, store, calendar, speaker, clock=clock)

    assert tick(scheduler, clock, at(10)) == 1
    assert store.load("report").start_announced is True
    assert tick(scheduler, clock, at(10, 0, 30)) == 0
    assert len(speaker.spoken) == 1


def test_speaker_exception_does_not_stop_round(config, store, clock):
    calendar = StaticCalendar([make_event("a", start=at(10)), make_event("b", start=at(10))])

    class ExplodingSpeaker(RecordingSpeaker):
        def speak(self, text):
            super().speak(text)
            raise RuntimeError("audio device busy")

    speaker = ExplodingSpeaker()
    scheduler = TaskScheduler(config, store, calendar, speaker, clock=clock)

    assert tick(scheduler, clock, at(10)) == 2
    assert len(speaker.spoken) == 2


def test_overlapping_round_is_skipped(scheduler):
    scheduler._reminding.acquire()
    try:
        assert scheduler.remind_once() is None
    finally:
        scheduler._reminding.release()

    assert scheduler.remind_once() == 0


def test_config_reloaded_every_tick(scheduler, config):
    scheduler.sync_once()
    scheduler.remind_once()
    assert config.reloads == 2


def test_repeat_count_change_applies_next_tick(scheduler, config, speaker, clock):
    tick(scheduler, clock, at(10))
    tick(scheduler, clock, at(10, 1))

    config.set("reminders.notification_repeats", 6)  # every 10 minutes
    assert tick(scheduler, clock, at(10, 10)) == 1
    assert speaker.spoken[-1] == "You have 50 minutes left for Write report"


def test_invalid_template_mid_run_uses_fallback(scheduler, config, speaker, clock):
    tick(scheduler, clock, at(10))
    tick(scheduler, clock, at(10, 1))

    config.set("messages.remind", "Only {minutes_left} left!")
    tick(scheduler, clock, at(10, 20))

    assert speaker.spoken[-1] == "You have 40 minutes left for Write report"


def test_start_and_stop_threads(store, calendar, speaker):
    config = MockConfig({"sync.interval_seconds": 0.05,
                         "reminders.interval_seconds": 0.05})
    scheduler = TaskScheduler(config, store, calendar, speaker, clock=lambda: at(10, 30))

    scheduler.start()
    try:
        deadline = time.monotonic() + 5
        while not speaker.spoken and time.monotonic() < deadline:
            time.sleep(0.05)
        assert scheduler.is_running
    finally:
        scheduler.stop()

    assert not scheduler.is_running
    assert speaker.spoken[0].startswith('Hey! Time to tackle "Write report"')


def test_start_disabled(store, calendar, speaker):
    config = MockConfig({"reminders.enabled": False})
    scheduler = TaskScheduler(config, store, calendar, speaker)

    scheduler.start()

    assert not scheduler.is_running
