from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from ..models import (
    Participant,
    ParticipantRole,
    Reservation,
    ReservationStatus,
    ReservationType,
)
from ..utils.time import ensure_aware
from .capacity import can_join, current_participant_count
from .errors import (
    CancelNotAllowedError,
    CannotRemoveOrganizerError,
    InvitationRejectedError,
    NotOrganizerError,
    ParticipantNotFoundError,
)

CANCELLABLE_STATUSES = frozenset({ReservationStatus.CONFIRMED, ReservationStatus.IN_PROGRESS})
JOINABLE_STATUSES = CANCELLABLE_STATUSES

_UUID4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)


def assert_cancellable(reservation: Reservation) -> None:
    if reservation.status not in CANCELLABLE_STATUSES:
        raise CancelNotAllowedError(f"reservation is {reservation.status.value} and cannot be cancelled")


def ordered_participants(participants: Iterable[Participant]) -> list[Participant]:
    """Organizer first, then by join time; id breaks ties so the order is stable."""
    return sorted(
        participants,
        key=lambda p: (p.role != ParticipantRole.ORGANIZER, p.joined_at, p.id),
    )


def find_participant(reservation: Reservation, participant_id: str) -> Participant:
    for participant in reservation.participants:
        if participant.id == participant_id:
            return participant
    raise ParticipantNotFoundError(f"participant {participant_id} not found")


def check_participant_removal(reservation: Reservation, participant_id: str, requested_by: str) -> Participant:
    """
    Authorization for roster removal. Only the organizer may remove, never
    the organizer role and never themselves. Returns the target participant.
    """
    if reservation.organizer_id != requested_by:
        raise NotOrganizerError("only the organizer can remove participants")
    target = find_participant(reservation, participant_id)
    if target.role == ParticipantRole.ORGANIZER:
        raise CannotRemoveOrganizerError("the organizer cannot be removed")
    if target.user_id == requested_by:
        raise CannotRemoveOrganizerError("participants cannot remove themselves")
    return target


def is_valid_invitation_token(token: str) -> bool:
    return bool(_UUID4.match(token))


def invitation_url(token: str, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/join/{token}"


def validate_invitation(
    reservation: Reservation,
    *,
    user_id: str,
    invitation_created_at: datetime,
    now: datetime,
    ttl_days: int,
) -> None:
    """Raise InvitationRejectedError when `user_id` may not join via this invitation."""
    if reservation.type != ReservationType.GROUP:
        raise InvitationRejectedError("INVALID", "This reservation does not accept participants")
    if now > ensure_aware(invitation_created_at) + timedelta(days=ttl_days):
        raise InvitationRejectedError("EXPIRED", f"This invitation has expired ({ttl_days} days old)")
    if reservation.status == ReservationStatus.CANCELLED:
        raise InvitationRejectedError("CANCELLED", "This reservation has been cancelled")
    if reservation.status == ReservationStatus.PENDING:
        raise InvitationRejectedError("NOT_CONFIRMED", "This reservation has not been confirmed yet")
    if reservation.status not in JOINABLE_STATUSES or now >= ensure_aware(reservation.end_time):
        raise InvitationRejectedError("STARTED", "This reservation is no longer accepting participants")
    if any(p.user_id == user_id for p in reservation.participants):
        raise InvitationRejectedError("ALREADY_JOINED", "You are already in this reservation")
    maximum = reservation.max_capacity
    if maximum is not None and not can_join(current_participant_count(reservation), maximum):
        raise InvitationRejectedError("FULL", "This reservation has reached maximum capacity")


@dataclass(frozen=True)
class TimeWindow:
    start_time: datetime
    end_time: datetime


def has_time_overlap(first: TimeWindow | Reservation, second: TimeWindow | Reservation) -> bool:
    return first.start_time < second.end_time and first.end_time > second.start_time


def find_conflicts(proposed: TimeWindow, existing: Sequence[Reservation]) -> list[Reservation]:
    return [
        reservation
        for reservation in existing
        if reservation.status != ReservationStatus.CANCELLED and has_time_overlap(proposed, reservation)
    ]


def affected_user_ids(reservation: Reservation, *, actor_id: str) -> list[str]:
    """Users to notify when `actor_id` cancels `reservation`."""
    if reservation.is_group:
        return [p.user_id for p in ordered_participants(reservation.participants) if p.user_id != actor_id]
    owner: Optional[str] = reservation.owner_id
    if owner is not None and owner != actor_id:
        return [owner]
    return []
