import logging
from datetime import datetime

from ..domain.errors import (
    AuthorizationError,
    BackendError,
    BookingConflictError,
    InvitationRejectedError,
    NotFoundError,
)
from ..domain.repositories import InvitationRepository, ReservationRepository
from ..domain.services import invitation_url, is_valid_invitation_token, validate_invitation
from ..models import (
    Invitation,
    InvitationDetails,
    JoinedVia,
    Participant,
    ParticipantRole,
    PrivacyOption,
)
from ..store import ReservationStore
from ..utils.audit_log import emit_audit_log

logger = logging.getLogger(__name__)


async def get_or_create_invitation(
    res_repo: ReservationRepository,
    inv_repo: InvitationRepository,
    *,
    reservation_id: str,
    user_id: str,
    base_url: str,
) -> Invitation:
    """
    Return the shareable invitation for a group reservation, asking the
    backend to mint a token when none exists yet. Private reservations carry
    a token for direct sharing but are not advertised as discoverable.
    """
    reservation = await res_repo.get(reservation_id)
    if not reservation.is_group:
        raise InvitationRejectedError("NOT_GROUP", "Only group reservations can be shared")
    if user_id != reservation.owner_id and all(p.user_id != user_id for p in reservation.participants):
        raise AuthorizationError("only members of the reservation can share it")

    token = reservation.invitation_token
    if token is None:
        token = await inv_repo.create(reservation_id)
        emit_audit_log(
            action="invitation.created",
            initiator="user",
            reservation_id=reservation_id,
            space_id=reservation.space_id,
            user_id=user_id,
        )
    return Invitation(
        token=token,
        url=invitation_url(token, base_url),
        discoverable=reservation.privacy_option != PrivacyOption.PRIVATE,
    )


async def get_invitation(inv_repo: InvitationRepository, *, token: str) -> InvitationDetails:
    if not is_valid_invitation_token(token):
        raise InvitationRejectedError("INVALID", "This invitation link is not valid")
    try:
        return await inv_repo.get(token)
    except NotFoundError as exc:
        raise InvitationRejectedError("INVALID", "This invitation does not exist") from exc


async def join_by_token(
    inv_repo: InvitationRepository,
    store: ReservationStore,
    *,
    token: str,
    user_id: str,
    now: datetime,
    ttl_days: int,
) -> Participant:
    details = await get_invitation(inv_repo, token=token)
    validate_invitation(
        details.reservation,
        user_id=user_id,
        invitation_created_at=details.created_at,
        now=now,
        ttl_days=ttl_days,
    )

    try:
        updated = await inv_repo.join(token)
    except BookingConflictError as exc:
        # someone else took the last seat between the check and the join
        raise InvitationRejectedError(
            exc.code or "FULL",
            exc.message or "This reservation has reached maximum capacity",
        ) from exc

    participant = next(
        (p for p in updated.participants if p.user_id == user_id and p.role == ParticipantRole.MEMBER),
        None,
    )
    if participant is None:
        logger.error("joined roster does not contain user", extra={"reservation_id": updated.id, "user_id": user_id})
        raise BackendError(502, "join succeeded but the roster does not list the new participant")
    if participant.joined_via != JoinedVia.INVITATION:
        logger.warning("participant joined via %s", participant.joined_via.value, extra={"reservation_id": updated.id})

    store.add(updated)
    store.invalidate_reservation(updated.id)
    emit_audit_log(
        action="participant.joined",
        initiator="user",
        reservation_id=updated.id,
        space_id=updated.space_id,
        user_id=user_id,
        participant_id=participant.id,
    )
    return participant
