"""
Event data model.

CalendarEvent is what the calendar hands us on each fetch. LocalEvent wraps
it with the lifecycle flags that record which notifications already fired;
it is the unit the event store persists, one file per event id.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from dateutil.parser import isoparse

from taskvoice.timeutil import (
    format_clock,
    format_duration,
    resolve_zone,
    to_zone,
)

# Width of the window around the end time for the end announcement, and the
# delay before asking whether the task was started.
END_WINDOW = timedelta(minutes=1)
CHECK_START_DELAY = timedelta(minutes=1)


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as local time."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise TypeError(f"expected ISO-8601 string, got {type(value).__name__}")
    parsed = isoparse(value)
    return parsed if parsed.tzinfo is not None else parsed.astimezone()


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class CalendarEvent:
    """A time-boxed task as delivered by the calendar."""

    id: str
    start_time: datetime
    end_time: Optional[datetime] = None   # None: no defined end
    time_zone: str = ""                    # "" : local system zone
    description: str = ""

    @property
    def duration(self) -> Optional[timedelta]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    def describe(self, now: datetime) -> str:
        """One-sentence spoken summary of the event."""
        if self.end_time is None:
            return (f"Task '{self.description}' is scheduled for whole day, "
                    f"today at {format_clock(self.start_time)}")

        is_or_was = "was" if self.end_time < now else "is"
        return (f"Task \"{self.description}\" {is_or_was} scheduled for today "
                f"for {format_duration(self.duration)}, "
                f"from {format_clock(self.start_time)} to {format_clock(self.end_time)}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start_time": _format_time(self.start_time),
            "end_time": _format_time(self.end_time),
            "time_zone": self.time_zone,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalendarEvent":
        start = _parse_time(data["start_time"])
        if start is None:
            raise ValueError("event has no start time")
        return cls(
            id=str(data["id"]),
            start_time=start,
            end_time=_parse_time(data.get("end_time")),
            time_zone=data.get("time_zone") or "",
            description=data.get("description") or "",
        )


@dataclass
class LocalEvent:
    """A stored event plus its notification lifecycle flags."""

    event: CalendarEvent
    start_announced: bool = False
    check_start_announced: bool = False
    end_announced: bool = False
    last_time_reminded: Optional[datetime] = None   # None: never reminded

    @property
    def id(self) -> str:
        return self.event.id

    def copy_flags_from(self, other: "LocalEvent"):
        """Carry lifecycle flags forward from an existing record."""
        self.start_announced = other.start_announced
        self.check_start_announced = other.check_start_announced
        self.end_announced = other.end_announced
        self.last_time_reminded = other.last_time_reminded

    def normalized(self, logger=None) -> "LocalEvent":
        """Copy with all times converted into the event's own zone.

        Unknown zones fall back to the local zone and are reported to logger.
        """
        zone = resolve_zone(self.event.time_zone, logger)
        event = replace(
            self.event,
            start_time=to_zone(self.event.start_time, zone),
            end_time=to_zone(self.event.end_time, zone),
        )
        return replace(self, event=event,
                       last_time_reminded=to_zone(self.last_time_reminded, zone))

    # ------------------------------------------------------------------
    # Time predicates
    # ------------------------------------------------------------------

    def scheduled_for_today(self, now: datetime) -> bool:
        start = self.event.start_time
        return start.date() == now.astimezone(start.tzinfo).date()

    def scheduled_for_now(self, now: datetime) -> bool:
        """True while now is within [start, end), or after start if no end."""
        if now < self.event.start_time:
            return False
        return self.event.end_time is None or now < self.event.end_time

    def near_end(self, now: datetime) -> bool:
        """True within one minute either side of the end time (inclusive)."""
        end = self.event.end_time
        if end is None:
            return False
        return end - END_WINDOW <= now <= end + END_WINDOW

    def is_finished(self, now: datetime) -> bool:
        return self.event.end_time is not None and now > self.event.end_time

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event.to_dict(),
            "start_announced": self.start_announced,
            "check_start_announced": self.check_start_announced,
            "end_announced": self.end_announced,
            "last_time_reminded": _format_time(self.last_time_reminded),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocalEvent":
        if not isinstance(data, dict) or not isinstance(data.get("event"), dict):
            raise ValueError("record is missing its event")
        return cls(
            event=CalendarEvent.from_dict(data["event"]),
            start_announced=bool(data.get("start_announced", False)),
            check_start_announced=bool(data.get("check_start_announced", False)),
            end_announced=bool(data.get("end_announced", False)),
            last_time_reminded=_parse_time(data.get("last_time_reminded")),
        )
