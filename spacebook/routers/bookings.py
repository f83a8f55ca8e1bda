from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..config import Settings, get_settings
from ..deps import (
    get_booking_session,
    get_clock,
    get_current_principal,
    get_reservation_repo,
    get_space_repo,
)
from ..domain.errors import DomainError
from ..infrastructure.repositories import HttpReservationRepository, HttpSpaceRepository
from ..models import Reservation, ReservationRequest
from ..schemas import (
    BookingStart,
    DateTimeSelection,
    DraftRead,
    DurationUpdate,
    GroupOptionsUpdate,
    NotesUpdate,
    ReservationRead,
)
from ..sessions import BookingSession
from ..usecases import reservations as reservation_usecase
from ..usecases.wizard import BookingWizard
from ..utils.auth import Principal
from ..utils.time import get_zone
from .errors import to_http_exception

router = APIRouter(prefix="/bookings", tags=["bookings"], dependencies=[Depends(get_current_principal)])


def _wizard(session: BookingSession) -> BookingWizard:
    if session.wizard is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="no booking in progress")
    return session.wizard


def _draft_read(session: BookingSession) -> DraftRead:
    wizard = _wizard(session)
    draft = wizard.draft
    validation = wizard.group_size_validation
    return DraftRead(
        state=wizard.state.value,
        current_step=wizard.current_step,
        space_id=wizard.space.id,
        date=draft.date,
        start_time=draft.start_time,
        end_time=wizard.end_time,
        duration=draft.duration,
        notes=draft.notes,
        group_size=wizard.group_size,
        privacy_option=draft.privacy_option,
        group_size_error=validation.reason if validation is not None else None,
        can_advance=wizard.can_advance,
        overlapping_reservation_ids=[r.id for r in wizard.overlapping(session.store.all())],
    )


@router.post("", response_model=DraftRead, status_code=status.HTTP_201_CREATED)
async def start_booking(
    payload: BookingStart,
    session: BookingSession = Depends(get_booking_session),
    space_repo: HttpSpaceRepository = Depends(get_space_repo),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> DraftRead:
    try:
        space = await space_repo.get(payload.space_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    # a new flow replaces any abandoned draft
    session.wizard = BookingWizard(
        space,
        tz=get_zone(settings.timezone),
        booking_window_days=settings.booking_window_days,
        clock=clock,
    )
    return _draft_read(session)


@router.get("/current", response_model=DraftRead)
async def get_booking(session: BookingSession = Depends(get_booking_session)) -> DraftRead:
    return _draft_read(session)


@router.put("/current/datetime", response_model=DraftRead)
async def select_date_time(
    payload: DateTimeSelection,
    session: BookingSession = Depends(get_booking_session),
) -> DraftRead:
    try:
        _wizard(session).select_date_time(payload.date, payload.time)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _draft_read(session)


@router.put("/current/duration", response_model=DraftRead)
async def set_duration(
    payload: DurationUpdate,
    session: BookingSession = Depends(get_booking_session),
) -> DraftRead:
    try:
        _wizard(session).set_duration(payload.hours)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _draft_read(session)


@router.put("/current/group", response_model=DraftRead)
async def set_group_options(
    payload: GroupOptionsUpdate,
    session: BookingSession = Depends(get_booking_session),
) -> DraftRead:
    try:
        _wizard(session).set_group_options(payload.group_size, payload.privacy_option)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _draft_read(session)


@router.put("/current/notes", response_model=DraftRead)
async def set_notes(
    payload: NotesUpdate,
    session: BookingSession = Depends(get_booking_session),
) -> DraftRead:
    try:
        _wizard(session).set_notes(payload.notes)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _draft_read(session)


@router.post("/current/advance", response_model=DraftRead)
async def advance(session: BookingSession = Depends(get_booking_session)) -> DraftRead:
    _wizard(session).advance()
    return _draft_read(session)


@router.post("/current/retreat", response_model=DraftRead)
async def retreat(session: BookingSession = Depends(get_booking_session)) -> DraftRead:
    _wizard(session).retreat()
    return _draft_read(session)


@router.post("/current/submit", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def submit_booking(
    session: BookingSession = Depends(get_booking_session),
    res_repo: HttpReservationRepository = Depends(get_reservation_repo),
    principal: Principal = Depends(get_current_principal),
) -> ReservationRead:
    wizard = _wizard(session)

    async def create(request: ReservationRequest) -> Reservation:
        return await reservation_usecase.create_reservation(
            res_repo,
            session.store,
            request=request,
            user_id=principal.user_id,
        )

    try:
        reservation = await wizard.submit(create)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    session.wizard = None
    return ReservationRead.from_domain(reservation)


@router.delete("/current", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_booking(session: BookingSession = Depends(get_booking_session)) -> Response:
    if session.wizard is not None:
        session.wizard.reset()
        session.wizard = None
    return Response(status_code=status.HTTP_204_NO_CONTENT)
