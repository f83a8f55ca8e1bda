from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from spacebook.utils.time import (
    combine_local,
    end_time_label,
    ensure_aware,
    offered_time_slots,
    parse_hhmm,
    to_utc,
)


def test_offered_slots_cover_seven_to_twenty_one() -> None:
    slots = offered_time_slots()
    assert slots[0] == "07:00"
    assert slots[-1] == "21:00"
    assert len(slots) == 15


@pytest.mark.parametrize(
    ("start", "duration", "expected"),
    [("09:00", 1, "10:00"), ("07:00", 4, "11:00"), ("21:00", 3, "24:00")],
)
def test_end_time_label(start: str, duration: int, expected: str) -> None:
    assert end_time_label(start, duration) == expected


def test_end_time_past_midnight_is_rejected() -> None:
    with pytest.raises(ValueError):
        end_time_label("21:00", 4)


@pytest.mark.parametrize("value", ["9:00", "24:00", "12:60", "noon", ""])
def test_parse_hhmm_rejects_malformed(value: str) -> None:
    with pytest.raises(ValueError):
        parse_hhmm(value)


def test_combine_local_attaches_zone() -> None:
    tz = ZoneInfo("Europe/Berlin")
    combined = combine_local(date(2026, 7, 1), "09:00", tz)
    assert combined.tzinfo is tz
    assert to_utc(combined) == datetime(2026, 7, 1, 7, tzinfo=timezone.utc)


def test_to_utc_requires_aware_datetime() -> None:
    with pytest.raises(ValueError):
        to_utc(datetime(2026, 7, 1, 9))


def test_ensure_aware_treats_naive_as_utc() -> None:
    naive = datetime(2026, 7, 1, 9)
    assert ensure_aware(naive) == datetime(2026, 7, 1, 9, tzinfo=timezone.utc)
    aware = datetime(2026, 7, 1, 9, tzinfo=timezone(timedelta(hours=2)))
    assert ensure_aware(aware) is aware
