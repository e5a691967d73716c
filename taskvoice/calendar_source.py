"""
Calendar Sources

Boundary to whatever delivers calendar events. The production source talks
CalDAV and lives outside this package; anything implementing
``CalendarSource.fetch_events`` can be plugged into the scheduler.

FileCalendarSource reads events from a YAML file, which is handy for
running without network access::

    - id: standup-2024-05-02
      start: 2024-05-02T09:00:00+02:00
      end: 2024-05-02T09:15:00+02:00
      time_zone: Europe/Berlin
      description: Standup
"""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dateutil.parser import isoparse

from taskvoice.errors import RemoteFetchFailed
from taskvoice.events import CalendarEvent
from taskvoice.logger import get_logger
from taskvoice.timeutil import resolve_zone, start_of_day, start_of_next_day


class CalendarSource(ABC):
    """Anything that can list calendar events in a time window."""

    @abstractmethod
    def fetch_events(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        """Return events overlapping [start, end)."""


def fetch_today_events(source: CalendarSource, now: datetime) -> List[CalendarEvent]:
    """Fetch the events of now's calendar day.

    Any failure inside the source surfaces as RemoteFetchFailed.
    """
    start = start_of_day(now)
    end = start_of_next_day(now)
    try:
        return list(source.fetch_events(start, end))
    except RemoteFetchFailed:
        raise
    except Exception as e:
        raise RemoteFetchFailed(f"calendar fetch failed: {e}") from e


def _to_datetime(value: Any, zone) -> Optional[datetime]:
    """YAML gives datetime objects or strings; return an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = isoparse(value)
    if not isinstance(value, datetime):
        raise ValueError(f"not a timestamp: {value!r}")
    if value.tzinfo is None:
        # Naive times are wall-clock times in the event's zone
        return value.replace(tzinfo=zone) if zone is not None else value.astimezone()
    return value


class FileCalendarSource(CalendarSource):
    """Events listed in a local YAML file."""

    def __init__(self, path, config=None):
        self.path = Path(path)
        self.logger = get_logger(__name__, config)

    def _parse(self, item: Dict[str, Any]) -> CalendarEvent:
        time_zone = item.get("time_zone") or ""
        zone = resolve_zone(time_zone, self.logger)
        start = _to_datetime(item.get("start"), zone)
        if start is None:
            raise ValueError(f"event {item.get('id')!r} has no start")
        return CalendarEvent(
            id=str(item.get("id") or ""),
            start_time=start,
            end_time=_to_datetime(item.get("end"), zone),
            time_zone=time_zone,
            description=str(item.get("description") or ""),
        )

    def fetch_events(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        try:
            with open(self.path) as f:
                items = yaml.safe_load(f) or []
        except (OSError, yaml.YAMLError) as e:
            raise RemoteFetchFailed(f"cannot read calendar file {self.path}: {e}") from e

        if not isinstance(items, list):
            raise RemoteFetchFailed(f"calendar file {self.path} must contain a list of events")

        events = []
        for item in items:
            try:
                event = self._parse(item)
            except (ValueError, TypeError, AttributeError) as e:
                raise RemoteFetchFailed(f"bad event in {self.path}: {e}") from e

            event_end = event.end_time or event.start_time
            if event.start_time < end and event_end >= start:
                events.append(event)
        return events
