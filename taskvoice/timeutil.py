"""Time helpers: day windows, zone lookup and spoken durations."""

from datetime import datetime, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from taskvoice.logger import get_logger


def local_now() -> datetime:
    """Current time as an aware datetime in the system zone."""
    return datetime.now().astimezone()


def start_of_day(t: datetime) -> datetime:
    return t.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_next_day(t: datetime) -> datetime:
    return start_of_day(t) + timedelta(days=1)


def resolve_zone(name: str, logger=None) -> Optional[tzinfo]:
    """Return the zone for an IANA name, or None for the local system zone.

    Unknown names are logged (to logger, if given) and treated as local.
    """
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger = logger or get_logger(__name__)
        logger.warning(f"Unknown time zone {name!r}, using local time zone: {e}")
        return None


def to_zone(t: Optional[datetime], zone: Optional[tzinfo]) -> Optional[datetime]:
    """Convert t into zone (None = local). Naive values are taken as local."""
    if t is None:
        return None
    return t.astimezone(zone)


def format_clock(t: datetime) -> str:
    """12-hour clock for speech, e.g. '9:05 AM'."""
    return t.strftime("%I:%M %p").lstrip("0")


def format_duration(duration: timedelta) -> str:
    """Human-readable duration, e.g. '1 hour and 30 minutes'."""
    total_minutes = max(0, int(duration.total_seconds() // 60))
    hours, minutes = divmod(total_minutes, 60)

    minute_str = f"{minutes} minute{'s' if minutes != 1 else ''}"
    if hours == 0:
        return minute_str
    hour_str = f"{hours} hour{'s' if hours != 1 else ''}"
    if minutes == 0:
        return hour_str
    return f"{hour_str} and {minute_str}"
