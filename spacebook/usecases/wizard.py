"""
Two-step booking wizard.

STEP1 collects date, time, duration and group options; STEP2 reviews notes
and submits. SUBMITTING marks a request in flight so a second submit cannot
reach the backend; SUBMITTED is terminal until `reset()`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Awaitable, Callable, Optional, Sequence
from zoneinfo import ZoneInfo

from ..domain.capacity import GroupSizeValidation, ensure_group_size, validate_group_size
from ..domain.errors import BookingConflictError, BookingValidationError, WizardStateError
from ..domain.services import TimeWindow, find_conflicts
from ..models import PrivacyOption, Reservation, ReservationRequest, ReservationType, Space
from ..utils.time import add_hours, combine_local, end_time_label, offered_time_slots, parse_hhmm

logger = logging.getLogger(__name__)

ALLOWED_DURATIONS = (1, 2, 3, 4)
MAX_NOTES_LENGTH = 500

CreateReservation = Callable[[ReservationRequest], Awaitable[Reservation]]


class WizardState(StrEnum):
    STEP1 = "step1"
    STEP2 = "step2"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


@dataclass
class WizardDraft:
    current_step: int = 1
    space_id: Optional[str] = None
    date: Optional[date] = None
    start_time: Optional[str] = None
    duration: int = 1
    notes: Optional[str] = None
    group_size: Optional[int] = None
    privacy_option: Optional[PrivacyOption] = None


class BookingWizard:
    def __init__(
        self,
        space: Space,
        *,
        tz: ZoneInfo,
        booking_window_days: int = 7,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.space = space
        self.tz = tz
        self.booking_window_days = booking_window_days
        self._clock = clock or (lambda: datetime.now(tz))
        self.state = WizardState.STEP1
        self.draft = WizardDraft()
        self.last_submitted: Optional[Reservation] = None

    @property
    def current_step(self) -> int:
        return self.draft.current_step

    def _now(self) -> datetime:
        return self._clock().astimezone(self.tz)

    def _require(self, *states: WizardState) -> None:
        if self.state not in states:
            raise WizardStateError(f"not allowed while wizard is {self.state.value}")

    # step 1

    def select_date_time(self, day: date, time: Optional[str] = None) -> None:
        """Pick a day (and optionally a time). A different day clears the chosen time."""
        self._require(WizardState.STEP1)
        today = self._now().date()
        if day < today:
            raise BookingValidationError("Cannot book past dates")
        if day > today + timedelta(days=self.booking_window_days):
            raise BookingValidationError(f"Can only book up to {self.booking_window_days} days in advance")

        if day != self.draft.date:
            self.draft.date = day
            self.draft.start_time = None
        if time is not None:
            self._check_time(day, time, self.draft.duration)
            self.draft.start_time = time

    def set_duration(self, hours: int) -> None:
        self._require(WizardState.STEP1)
        if isinstance(hours, bool) or hours not in ALLOWED_DURATIONS:
            raise BookingValidationError("Duration must be between 1 and 4 hours")
        if self.draft.start_time is not None:
            self._check_ends_by_midnight(self.draft.start_time, hours)
        self.draft.duration = hours

    def set_group_options(self, group_size: int, privacy_option: Optional[PrivacyOption] = None) -> GroupSizeValidation:
        """Store group options; an out-of-range size is kept but blocks `advance()`."""
        self._require(WizardState.STEP1)
        if not self.space.is_group_room:
            raise BookingValidationError("Group options only apply to group rooms")
        self.draft.group_size = group_size
        if privacy_option is not None:
            self.draft.privacy_option = PrivacyOption(privacy_option)
        return validate_group_size(group_size, self.space.min_capacity, self.space.max_capacity)

    def set_notes(self, notes: Optional[str]) -> None:
        self._require(WizardState.STEP1, WizardState.STEP2)
        if notes is not None and len(notes) > MAX_NOTES_LENGTH:
            raise BookingValidationError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")
        self.draft.notes = notes or None

    def _check_time(self, day: date, time: str, duration: int) -> None:
        try:
            parse_hhmm(time)
        except ValueError as exc:
            raise BookingValidationError("Invalid time format") from exc
        if time not in offered_time_slots():
            raise BookingValidationError(f"{time} is not an offered time slot")
        if combine_local(day, time, self.tz) <= self._now():
            raise BookingValidationError("Cannot book a time that has already passed")
        self._check_ends_by_midnight(time, duration)

    @staticmethod
    def _check_ends_by_midnight(time: str, duration: int) -> None:
        try:
            end_time_label(time, duration)
        except ValueError as exc:
            raise BookingValidationError("Reservation must end by midnight") from exc

    # derived

    @property
    def group_size(self) -> Optional[int]:
        if not self.space.is_group_room:
            return None
        return self.draft.group_size if self.draft.group_size is not None else self.space.min_capacity

    @property
    def group_size_validation(self) -> Optional[GroupSizeValidation]:
        if not self.space.is_group_room:
            return None
        return validate_group_size(self.group_size, self.space.min_capacity, self.space.max_capacity)

    @property
    def can_advance(self) -> bool:
        if self.state != WizardState.STEP1:
            return False
        if self.draft.date is None or self.draft.start_time is None:
            return False
        validation = self.group_size_validation
        return validation is None or validation.ok

    @property
    def end_time(self) -> Optional[str]:
        if self.draft.start_time is None:
            return None
        return end_time_label(self.draft.start_time, self.draft.duration)

    def time_window(self) -> Optional[TimeWindow]:
        if self.draft.date is None or self.draft.start_time is None:
            return None
        start = combine_local(self.draft.date, self.draft.start_time, self.tz)
        return TimeWindow(start_time=start, end_time=add_hours(start, self.draft.duration))

    def overlapping(self, reservations: Sequence[Reservation]) -> list[Reservation]:
        """The user's own reservations that overlap the draft. Advisory; never blocks."""
        window = self.time_window()
        if window is None:
            return []
        return find_conflicts(window, reservations)

    # transitions

    def advance(self) -> bool:
        if not self.can_advance:
            return False
        self.draft.space_id = self.space.id
        self.draft.current_step = 2
        self.state = WizardState.STEP2
        return True

    def retreat(self) -> bool:
        if self.state != WizardState.STEP2:
            return False
        self.draft.current_step = 1
        self.state = WizardState.STEP1
        return True

    def reset(self) -> None:
        self.draft = WizardDraft()
        self.state = WizardState.STEP1

    def compose_request(self) -> ReservationRequest:
        window = self.time_window()
        if window is None:
            raise BookingValidationError("Select a date and time first")
        if self.space.is_group_room:
            group_size = ensure_group_size(self.group_size, self.space.min_capacity, self.space.max_capacity)
            return ReservationRequest(
                space_id=self.space.id,
                start_time=window.start_time,
                end_time=window.end_time,
                type=ReservationType.GROUP,
                notes=self.draft.notes,
                group_size=group_size,
                privacy_option=self.draft.privacy_option or PrivacyOption.PUBLIC,
            )
        return ReservationRequest(
            space_id=self.space.id,
            start_time=window.start_time,
            end_time=window.end_time,
            type=ReservationType.INDIVIDUAL,
            notes=self.draft.notes,
        )

    async def submit(self, create: CreateReservation) -> Reservation:
        """
        Hand the composed draft to `create`. On success the draft is cleared and
        the wizard is SUBMITTED. A conflict sends the user back to STEP1 with
        notes kept; any other failure returns to STEP2 with the draft intact.
        """
        self._require(WizardState.STEP2)
        request = self.compose_request()
        self.state = WizardState.SUBMITTING
        try:
            reservation = await create(request)
        except BookingConflictError:
            self.draft.current_step = 1
            self.state = WizardState.STEP1
            raise
        except Exception:
            logger.warning("reservation submit failed; draft kept for retry", extra={"space_id": self.space.id})
            self.state = WizardState.STEP2
            raise

        self.draft = WizardDraft()
        self.state = WizardState.SUBMITTED
        self.last_submitted = reservation
        return reservation
