"""iCalendar (RFC 5545) export for confirmed reservations."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .time import to_utc

PRODID = "-//Spacebook//Reservations//EN"
UID_DOMAIN = "spacebook"
_ICS_FORMAT = "%Y%m%dT%H%M%SZ"


@dataclass(frozen=True)
class CalendarEvent:
    title: str
    location: str
    description: str
    start_time: datetime
    end_time: datetime


def format_ics_datetime(dt: datetime) -> str:
    return to_utc(dt).strftime(_ICS_FORMAT)


def parse_ics_datetime(value: str) -> datetime:
    return datetime.strptime(value, _ICS_FORMAT).replace(tzinfo=timezone.utc)


def _escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def generate_ics(event: CalendarEvent, *, now: Optional[datetime] = None, uid: Optional[str] = None) -> str:
    stamp = now or datetime.now(timezone.utc)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{uid or f'{uuid.uuid4().hex}@{UID_DOMAIN}'}",
        f"DTSTAMP:{format_ics_datetime(stamp)}",
        f"DTSTART:{format_ics_datetime(event.start_time)}",
        f"DTEND:{format_ics_datetime(event.end_time)}",
        f"SUMMARY:{_escape(event.title)}",
        f"LOCATION:{_escape(event.location)}",
        f"DESCRIPTION:{_escape(event.description)}",
        "STATUS:CONFIRMED",
        "SEQUENCE:0",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines) + "\r\n"


def read_ics_field(content: str, name: str) -> Optional[str]:
    prefix = f"{name}:"
    for line in content.splitlines():
        if line.startswith(prefix):
            return line[len(prefix):]
    return None
