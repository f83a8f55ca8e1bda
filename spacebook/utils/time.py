import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

FIRST_SLOT_HOUR = 7
LAST_SLOT_HOUR = 21

_HHMM = re.compile(r"^\d{2}:\d{2}$")


def get_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt.astimezone(timezone.utc)


def parse_hhmm(value: str) -> time:
    if not _HHMM.match(value):
        raise ValueError("Invalid time format")
    hours, minutes = (int(part) for part in value.split(":"))
    if hours > 23 or minutes > 59:
        raise ValueError("Invalid time format")
    return time(hour=hours, minute=minutes)


def combine_local(day: date, hhmm: str, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, parse_hhmm(hhmm), tzinfo=tz)


def offered_time_slots() -> list[str]:
    return [f"{hour:02d}:00" for hour in range(FIRST_SLOT_HOUR, LAST_SLOT_HOUR + 1)]


def end_time_label(start_time: str, duration: int) -> str:
    """
    `start_time` ("HH:MM") plus `duration` hours as a zero-padded "HH:00".
    Raises ValueError when the end would fall after midnight.
    """
    end_hour = parse_hhmm(start_time).hour + duration
    if end_hour > 24:
        raise ValueError(f"end hour {end_hour} is past midnight")
    return f"{end_hour:02d}:00"


def add_hours(dt: datetime, hours: int) -> datetime:
    return dt + timedelta(hours=hours)


def ensure_aware(dt: datetime) -> datetime:
    """Backend timestamps without an offset are UTC."""
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)
