import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import List
from zoneinfo import ZoneInfo

import pytest
from spacebook.domain.errors import (
    BackendError,
    BookingConflictError,
    BookingValidationError,
    CapacityError,
    WizardStateError,
)
from spacebook.models import (
    PrivacyOption,
    Reservation,
    ReservationRequest,
    ReservationStatus,
    ReservationType,
    Space,
    SpaceCategory,
)
from spacebook.usecases.wizard import BookingWizard, WizardDraft, WizardState

NOW = datetime(2026, 3, 2, 8, 30, tzinfo=timezone.utc)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)
UTC = ZoneInfo("UTC")

DESK = Space(id="desk-1", name="Desk 1", category=SpaceCategory.INDIVIDUAL_DESK, max_capacity=1)
ROOM = Space(id="room-1", name="Room 2.14", category=SpaceCategory.GROUP_ROOM, max_capacity=10, min_capacity=4)


def _wizard(space: Space = DESK) -> BookingWizard:
    return BookingWizard(space, tz=UTC, booking_window_days=7, clock=lambda: NOW)


def _ready(space: Space = DESK, *, day: date = TOMORROW, time: str = "10:00", duration: int = 2) -> BookingWizard:
    wizard = _wizard(space)
    wizard.select_date_time(day, time)
    wizard.set_duration(duration)
    return wizard


class FakeCreate:
    def __init__(self, result: Reservation | Exception) -> None:
        self.result = result
        self.requests: List[ReservationRequest] = []

    async def __call__(self, request: ReservationRequest) -> Reservation:
        self.requests.append(request)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _created(request_id: str = "res-1") -> Reservation:
    start = datetime(2026, 3, 3, 10, tzinfo=timezone.utc)
    return Reservation(
        id=request_id,
        space_id=DESK.id,
        start_time=start,
        end_time=start + timedelta(hours=2),
        status=ReservationStatus.CONFIRMED,
        user_id="u-1",
    )


def test_new_wizard_starts_on_step_one() -> None:
    wizard = _wizard()
    assert wizard.state == WizardState.STEP1
    assert wizard.current_step == 1
    assert wizard.draft == WizardDraft()
    assert wizard.can_advance is False


def test_rejects_past_dates() -> None:
    with pytest.raises(BookingValidationError, match="Cannot book past dates"):
        _wizard().select_date_time(TODAY - timedelta(days=1))


def test_rejects_dates_beyond_booking_window() -> None:
    wizard = _wizard()
    wizard.select_date_time(TODAY + timedelta(days=7))
    with pytest.raises(BookingValidationError, match="up to 7 days in advance"):
        wizard.select_date_time(TODAY + timedelta(days=8))


def test_rejects_time_already_passed_today() -> None:
    wizard = _wizard()
    with pytest.raises(BookingValidationError, match="already passed"):
        wizard.select_date_time(TODAY, "08:00")
    wizard.select_date_time(TODAY, "09:00")
    assert wizard.draft.start_time == "09:00"


@pytest.mark.parametrize("time", ["06:00", "22:00", "10:30"])
def test_rejects_times_outside_offered_slots(time: str) -> None:
    with pytest.raises(BookingValidationError):
        _wizard().select_date_time(TOMORROW, time)


def test_rejects_malformed_time() -> None:
    with pytest.raises(BookingValidationError, match="Invalid time format"):
        _wizard().select_date_time(TOMORROW, "ten")


def test_changing_date_clears_selected_time() -> None:
    wizard = _wizard()
    wizard.select_date_time(TOMORROW, "10:00")
    wizard.select_date_time(TOMORROW + timedelta(days=1))
    assert wizard.draft.start_time is None
    assert wizard.can_advance is False


@pytest.mark.parametrize("hours", [0, 5, True])
def test_rejects_duration_outside_one_to_four(hours: int) -> None:
    with pytest.raises(BookingValidationError):
        _wizard().set_duration(hours)


def test_end_time_is_start_plus_duration() -> None:
    wizard = _ready(time="21:00", duration=3)
    assert wizard.end_time == "24:00"


def test_rejects_duration_running_past_midnight() -> None:
    wizard = _ready(time="21:00", duration=3)
    with pytest.raises(BookingValidationError, match="end by midnight"):
        wizard.set_duration(4)
    assert wizard.draft.duration == 3


def test_notes_are_limited_to_five_hundred_characters() -> None:
    wizard = _wizard()
    wizard.set_notes("x" * 500)
    with pytest.raises(BookingValidationError):
        wizard.set_notes("x" * 501)
    wizard.set_notes("")
    assert wizard.draft.notes is None


def test_group_size_below_room_minimum_blocks_advance() -> None:
    wizard = _ready(ROOM)
    validation = wizard.set_group_options(2)
    assert validation.ok is False
    assert "requires at least 4" in (validation.reason or "")
    assert wizard.can_advance is False
    assert wizard.advance() is False
    assert wizard.state == WizardState.STEP1


def test_group_size_defaults_to_room_minimum() -> None:
    wizard = _ready(ROOM)
    assert wizard.group_size == 4
    assert wizard.can_advance is True


def test_group_options_only_for_group_rooms() -> None:
    with pytest.raises(BookingValidationError):
        _ready(DESK).set_group_options(2)


def test_advance_and_retreat_keep_draft() -> None:
    wizard = _ready()
    wizard.set_notes("Team meeting")
    assert wizard.advance() is True
    assert wizard.state == WizardState.STEP2
    assert wizard.current_step == 2
    assert wizard.draft.space_id == DESK.id

    assert wizard.retreat() is True
    assert wizard.state == WizardState.STEP1
    assert wizard.draft.notes == "Team meeting"
    assert wizard.draft.start_time == "10:00"
    assert wizard.retreat() is False


def test_step_one_edits_are_locked_on_review() -> None:
    wizard = _ready()
    wizard.advance()
    with pytest.raises(WizardStateError):
        wizard.set_duration(1)
    wizard.set_notes("still editable")
    assert wizard.draft.notes == "still editable"


@pytest.mark.asyncio
async def test_submit_success_clears_draft() -> None:
    wizard = _ready()
    wizard.advance()
    create = FakeCreate(_created("res-1"))

    reservation = await wizard.submit(create)

    assert reservation.id == "res-1"
    assert reservation.end_time == datetime(2026, 3, 3, 12, tzinfo=timezone.utc)
    assert wizard.state == WizardState.SUBMITTED
    assert wizard.draft == WizardDraft()
    assert wizard.current_step == 1
    assert wizard.last_submitted is reservation

    request = create.requests[0]
    assert request.type == ReservationType.INDIVIDUAL
    assert request.start_time == datetime(2026, 3, 3, 10, tzinfo=UTC)
    assert request.end_time == datetime(2026, 3, 3, 12, tzinfo=UTC)
    assert request.group_size is None


@pytest.mark.asyncio
async def test_submit_conflict_returns_to_step_one_keeping_notes() -> None:
    wizard = _ready()
    wizard.set_notes("Team meeting")
    wizard.advance()
    create = FakeCreate(BookingConflictError(code="BOOKING_CONFLICT", message="taken"))

    with pytest.raises(BookingConflictError) as excinfo:
        await wizard.submit(create)

    assert excinfo.value.user_message == "This time slot is already booked. Please select a different time."
    assert wizard.state == WizardState.STEP1
    assert wizard.current_step == 1
    assert wizard.draft.notes == "Team meeting"
    assert wizard.advance() is True
    assert wizard.draft.notes == "Team meeting"


@pytest.mark.asyncio
async def test_submit_other_failure_stays_on_review() -> None:
    wizard = _ready()
    wizard.advance()
    create = FakeCreate(BackendError(500, "boom"))

    with pytest.raises(BackendError):
        await wizard.submit(create)

    assert wizard.state == WizardState.STEP2
    assert wizard.draft.start_time == "10:00"


@pytest.mark.asyncio
async def test_second_submit_while_in_flight_is_rejected() -> None:
    wizard = _ready()
    wizard.advance()
    release = asyncio.Event()
    calls: List[ReservationRequest] = []

    async def slow_create(request: ReservationRequest) -> Reservation:
        calls.append(request)
        await release.wait()
        return _created()

    first = asyncio.create_task(wizard.submit(slow_create))
    await asyncio.sleep(0)
    assert wizard.state == WizardState.SUBMITTING

    with pytest.raises(WizardStateError):
        await wizard.submit(slow_create)

    release.set()
    await first
    assert len(calls) == 1
    assert wizard.state == WizardState.SUBMITTED


@pytest.mark.asyncio
async def test_submit_from_step_one_is_rejected() -> None:
    create = FakeCreate(_created())
    with pytest.raises(WizardStateError):
        await _ready().submit(create)
    assert create.requests == []


@pytest.mark.asyncio
async def test_group_submit_carries_group_fields() -> None:
    wizard = _ready(ROOM)
    wizard.set_group_options(6, PrivacyOption.PRIVATE)
    wizard.advance()
    create = FakeCreate(_created())

    await wizard.submit(create)

    request = create.requests[0]
    assert request.type == ReservationType.GROUP
    assert request.group_size == 6
    assert request.privacy_option == PrivacyOption.PRIVATE


def test_compose_request_rechecks_group_size() -> None:
    wizard = _ready(ROOM)
    wizard.set_group_options(11)
    with pytest.raises(CapacityError):
        wizard.compose_request()


def test_overlapping_reports_own_reservations_without_blocking() -> None:
    wizard = _ready(time="11:00", duration=1)
    existing = _created()
    assert [r.id for r in wizard.overlapping([existing])] == ["res-1"]
    assert wizard.can_advance is True


def test_reset_returns_to_fresh_draft() -> None:
    wizard = _ready()
    wizard.advance()
    wizard.reset()
    assert wizard.state == WizardState.STEP1
    assert wizard.draft == WizardDraft()
