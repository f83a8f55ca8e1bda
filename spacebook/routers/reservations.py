from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status

from ..config import Settings, get_settings
from ..deps import (
    get_booking_session,
    get_current_principal,
    get_invitation_repo,
    get_notifier,
    get_reservation_repo,
)
from ..domain.errors import DomainError
from ..domain.repositories import CancellationNotifier
from ..infrastructure.repositories import HttpInvitationRepository, HttpReservationRepository
from ..schemas import InvitationRead, ReservationCancel, ReservationRead
from ..sessions import BookingSession
from ..usecases import invitations as invitation_usecase
from ..usecases import participants as participant_usecase
from ..usecases import reservations as reservation_usecase
from ..utils.auth import Principal
from ..utils.ics import generate_ics
from .errors import to_http_exception

router = APIRouter(prefix="/reservations", tags=["reservations"], dependencies=[Depends(get_current_principal)])


@router.get("", response_model=List[ReservationRead])
async def list_my_reservations(
    session: BookingSession = Depends(get_booking_session),
    res_repo: HttpReservationRepository = Depends(get_reservation_repo),
) -> list[ReservationRead]:
    try:
        rows = await reservation_usecase.list_reservations(res_repo, session.store)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return [ReservationRead.from_domain(r) for r in rows]


@router.get("/{reservation_id}", response_model=ReservationRead)
async def get_reservation(
    reservation_id: str = Path(..., min_length=1),
    refresh: bool = Query(default=False),
    session: BookingSession = Depends(get_booking_session),
    res_repo: HttpReservationRepository = Depends(get_reservation_repo),
) -> ReservationRead:
    try:
        reservation = await reservation_usecase.get_reservation(
            res_repo,
            session.store,
            reservation_id=reservation_id,
            refresh=refresh,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return ReservationRead.from_domain(reservation)


@router.post("/{reservation_id}/cancel", response_model=ReservationRead)
async def cancel_reservation(
    payload: ReservationCancel,
    reservation_id: str = Path(..., min_length=1),
    session: BookingSession = Depends(get_booking_session),
    res_repo: HttpReservationRepository = Depends(get_reservation_repo),
    notifier: CancellationNotifier = Depends(get_notifier),
    principal: Principal = Depends(get_current_principal),
) -> ReservationRead:
    try:
        updated = await reservation_usecase.cancel_reservation(
            res_repo,
            session.store,
            notifier,
            reservation_id=reservation_id,
            principal=principal,
            reason=payload.reason,
            notes=payload.notes,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return ReservationRead.from_domain(updated)


@router.delete("/{reservation_id}/participants/{participant_id}", response_model=ReservationRead)
async def remove_participant(
    reservation_id: str = Path(..., min_length=1),
    participant_id: str = Path(..., min_length=1),
    confirm: bool = Query(default=False, description="Must be true to remove the participant"),
    session: BookingSession = Depends(get_booking_session),
    res_repo: HttpReservationRepository = Depends(get_reservation_repo),
    principal: Principal = Depends(get_current_principal),
) -> ReservationRead:
    try:
        refreshed = await participant_usecase.remove_participant(
            res_repo,
            session.store,
            reservation_id=reservation_id,
            participant_id=participant_id,
            requested_by=principal.user_id,
            confirm=lambda _participant: confirm,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    if refreshed is None:
        raise HTTPException(
            status_code=status.HTTP_428_PRECONDITION_REQUIRED,
            detail="removal must be confirmed with confirm=true",
        )
    return ReservationRead.from_domain(refreshed)


@router.get("/{reservation_id}/calendar.ics")
async def export_calendar(
    reservation_id: str = Path(..., min_length=1),
    session: BookingSession = Depends(get_booking_session),
    res_repo: HttpReservationRepository = Depends(get_reservation_repo),
) -> Response:
    try:
        reservation = await reservation_usecase.get_reservation(res_repo, session.store, reservation_id=reservation_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    content = generate_ics(reservation_usecase.calendar_event(reservation))
    return Response(
        content=content,
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="reservation-{reservation_id}.ics"'},
    )


@router.post("/{reservation_id}/invitation", response_model=InvitationRead)
async def share_reservation(
    reservation_id: str = Path(..., min_length=1),
    res_repo: HttpReservationRepository = Depends(get_reservation_repo),
    inv_repo: HttpInvitationRepository = Depends(get_invitation_repo),
    principal: Principal = Depends(get_current_principal),
    settings: Settings = Depends(get_settings),
) -> InvitationRead:
    try:
        invitation = await invitation_usecase.get_or_create_invitation(
            res_repo,
            inv_repo,
            reservation_id=reservation_id,
            user_id=principal.user_id,
            base_url=settings.public_base_url,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return InvitationRead(token=invitation.token, url=invitation.url, discoverable=invitation.discoverable)
