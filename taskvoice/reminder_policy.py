"""
Reminder State Machine

Decides which notification, if any, fires for an event at a given moment.
This module is pure: no clock, no storage, no global config. Callers pass
the (zone-normalized) event, ``now`` and a ReminderSettings value, and get
back the decision plus the flag update to persist.

Decisions are checked in strict priority order and at most one fires per
event per evaluation, so a single tick never interrupts the user twice for
the same task:

    1. ANNOUNCE_START  start not announced, event running now
    2. CHECK_STARTED   start announced a minute ago, not yet checked
    3. REMIND          event running, reminder interval elapsed
    4. ANNOUNCE_END    within a minute of the end time
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from taskvoice.config import DEFAULT_NOTIFICATION_REPEATS
from taskvoice.events import CHECK_START_DELAY, LocalEvent


class Decision(Enum):
    """Notification kinds, plus NONE for 'nothing to say'."""

    NONE = "none"
    ANNOUNCE_START = "announce_start"
    CHECK_STARTED = "check_started"
    REMIND = "remind"
    ANNOUNCE_END = "announce_end"


@dataclass(frozen=True)
class ReminderSettings:
    """Per-tick snapshot of the settings the state machine depends on."""

    notification_repeats: int = DEFAULT_NOTIFICATION_REPEATS

    def __post_init__(self):
        repeats = self.notification_repeats
        if isinstance(repeats, bool) or not isinstance(repeats, int) or repeats <= 0:
            object.__setattr__(self, "notification_repeats", DEFAULT_NOTIFICATION_REPEATS)

    @classmethod
    def from_config(cls, config) -> "ReminderSettings":
        raw = config.get("reminders.notification_repeats", DEFAULT_NOTIFICATION_REPEATS)
        if isinstance(raw, bool):
            return cls()
        try:
            repeats = int(raw)
        except (TypeError, ValueError):
            repeats = DEFAULT_NOTIFICATION_REPEATS
        return cls(notification_repeats=repeats)


@dataclass(frozen=True)
class FlagUpdate:
    """Lifecycle fields to set on a record; None leaves a field untouched."""

    start_announced: Optional[bool] = None
    check_start_announced: Optional[bool] = None
    end_announced: Optional[bool] = None
    last_time_reminded: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return (self.start_announced is None and self.check_start_announced is None
                and self.end_announced is None and self.last_time_reminded is None)

    def apply(self, record: LocalEvent):
        if self.start_announced is not None:
            record.start_announced = self.start_announced
        if self.check_start_announced is not None:
            record.check_start_announced = self.check_start_announced
        if self.end_announced is not None:
            record.end_announced = self.end_announced
        if self.last_time_reminded is not None:
            record.last_time_reminded = self.last_time_reminded


@dataclass(frozen=True)
class Evaluation:
    decision: Decision
    update: FlagUpdate = FlagUpdate()


NOTHING = Evaluation(Decision.NONE)


def reminder_interval(event: LocalEvent, settings: ReminderSettings) -> Optional[timedelta]:
    """Spacing between progress reminders, or None without a positive duration."""
    duration = event.event.duration
    if duration is None or duration <= timedelta(0):
        return None
    return duration / settings.notification_repeats


def should_announce_start(event: LocalEvent, now: datetime) -> bool:
    return (not event.start_announced
            and event.scheduled_for_today(now)
            and event.scheduled_for_now(now))


def should_check_started(event: LocalEvent, now: datetime) -> bool:
    return (event.scheduled_for_today(now)
            and event.start_announced
            and not event.check_start_announced
            and now >= event.event.start_time + CHECK_START_DELAY)


def should_remind(event: LocalEvent, now: datetime, settings: ReminderSettings) -> bool:
    if event.end_announced or event.event.end_time is None:
        return False
    if now < event.event.start_time or now > event.event.end_time:
        return False

    interval = reminder_interval(event, settings)
    if interval is None:
        return False

    # remind for the first time
    if event.last_time_reminded is None:
        return True
    return now >= event.last_time_reminded + interval


def should_announce_end(event: LocalEvent, now: datetime) -> bool:
    return (not event.end_announced
            and event.scheduled_for_today(now)
            and event.near_end(now))


def evaluate(event: LocalEvent, now: datetime, settings: ReminderSettings) -> Evaluation:
    """Return the single notification due for event at now."""
    if should_announce_start(event, now):
        # The start announcement counts as the first reminder
        return Evaluation(Decision.ANNOUNCE_START,
                          FlagUpdate(start_announced=True, last_time_reminded=now))

    if should_check_started(event, now):
        return Evaluation(Decision.CHECK_STARTED, FlagUpdate(check_start_announced=True))

    if should_remind(event, now, settings):
        return Evaluation(Decision.REMIND, FlagUpdate(last_time_reminded=now))

    if should_announce_end(event, now):
        return Evaluation(Decision.ANNOUNCE_END, FlagUpdate(end_announced=True))

    return NOTHING
