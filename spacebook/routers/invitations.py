from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, status

from ..config import Settings, get_settings
from ..deps import get_booking_session, get_clock, get_current_principal, get_invitation_repo
from ..domain.errors import DomainError
from ..infrastructure.repositories import HttpInvitationRepository
from ..schemas import InvitationDetailsRead, ParticipantRead, ReservationRead
from ..sessions import BookingSession
from ..usecases import invitations as invitation_usecase
from ..utils.auth import Principal
from .errors import to_http_exception

router = APIRouter(prefix="/invitations", tags=["invitations"], dependencies=[Depends(get_current_principal)])


@router.get("/{token}", response_model=InvitationDetailsRead)
async def get_invitation(
    token: str,
    inv_repo: HttpInvitationRepository = Depends(get_invitation_repo),
) -> InvitationDetailsRead:
    try:
        details = await invitation_usecase.get_invitation(inv_repo, token=token)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return InvitationDetailsRead(
        token=details.token,
        created_at=details.created_at,
        reservation=ReservationRead.from_domain(details.reservation),
    )


@router.post("/{token}/join", response_model=ParticipantRead, status_code=status.HTTP_201_CREATED)
async def join_invitation(
    token: str,
    session: BookingSession = Depends(get_booking_session),
    inv_repo: HttpInvitationRepository = Depends(get_invitation_repo),
    principal: Principal = Depends(get_current_principal),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ParticipantRead:
    try:
        participant = await invitation_usecase.join_by_token(
            inv_repo,
            session.store,
            token=token,
            user_id=principal.user_id,
            now=clock(),
            ttl_days=settings.invitation_ttl_days,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return ParticipantRead.from_domain(participant)
