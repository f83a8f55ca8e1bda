from dataclasses import dataclass
from typing import Any, Optional

from ..models import Reservation
from .errors import CapacityError


@dataclass(frozen=True)
class GroupSizeValidation:
    ok: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class Occupancy:
    current: int
    maximum: int

    @property
    def label(self) -> str:
        return f"{self.current}/{self.maximum}"

    @property
    def is_full(self) -> bool:
        return self.current >= self.maximum

    @property
    def available_seats(self) -> int:
        return max(self.maximum - self.current, 0)


def validate_group_size(size: Any, min_capacity: int, max_capacity: int) -> GroupSizeValidation:
    """
    Check a proposed headcount against a room's [min, max] bounds.
    Pure: no I/O, no exceptions. Bools are not accepted as integers.
    """
    if isinstance(size, bool) or not isinstance(size, int):
        return GroupSizeValidation(ok=False, reason="Group size must be a whole number")
    if size < 1:
        return GroupSizeValidation(ok=False, reason="Group size must be at least 1")
    if size < min_capacity:
        return GroupSizeValidation(ok=False, reason=f"This room requires at least {min_capacity} participants")
    if size > max_capacity:
        return GroupSizeValidation(ok=False, reason=f"This room can accommodate maximum {max_capacity} participants")
    return GroupSizeValidation(ok=True)


def ensure_group_size(size: Any, min_capacity: int, max_capacity: int) -> int:
    result = validate_group_size(size, min_capacity, max_capacity)
    if not result.ok:
        raise CapacityError(result.reason)
    return size


def can_join(current_count: int, max_capacity: int) -> bool:
    return current_count < max_capacity


def occupancy(current: int, maximum: int) -> Occupancy:
    return Occupancy(current=current, maximum=maximum)


def current_participant_count(reservation: Reservation) -> int:
    if reservation.participants:
        return len(reservation.participants)
    # the organizer always counts
    return reservation.current_capacity or 1
