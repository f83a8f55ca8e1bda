from datetime import date, datetime
from zoneinfo import ZoneInfo

from ..domain.repositories import SpaceRepository
from ..models import SlotAvailability, SlotStatus
from ..utils.time import combine_local


def classify_past_slots(
    slots: list[SlotAvailability],
    *,
    day: date,
    now: datetime,
    tz: ZoneInfo,
) -> list[SlotAvailability]:
    """Slots that have already started are UNAVAILABLE whatever the backend says."""
    items: list[SlotAvailability] = []
    for slot in slots:
        try:
            starts_at = combine_local(day, slot.time, tz)
        except ValueError:
            # unparseable slot times cannot be offered
            items.append(SlotAvailability(time=slot.time, status=SlotStatus.UNAVAILABLE))
            continue
        if starts_at <= now:
            items.append(SlotAvailability(time=slot.time, status=SlotStatus.UNAVAILABLE))
        else:
            items.append(slot)
    return items


async def list_availability(
    space_repo: SpaceRepository,
    *,
    space_id: str,
    day: date,
    now: datetime,
    tz: ZoneInfo,
) -> list[SlotAvailability]:
    """
    Advisory per-slot occupancy for one space and day. The result is a hint
    only: the creation request's conflict check is the real answer.
    """
    slots = await space_repo.availability(space_id, day)
    return classify_past_slots(slots, day=day, now=now, tz=tz)

