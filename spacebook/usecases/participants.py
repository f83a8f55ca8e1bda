import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from ..domain.repositories import ReservationRepository
from ..domain.services import check_participant_removal, ordered_participants
from ..models import Participant, Reservation
from ..store import ReservationStore
from ..utils.audit_log import emit_audit_log
from .reservations import get_reservation

logger = logging.getLogger(__name__)

ConfirmRemoval = Callable[[Participant], Union[bool, Awaitable[bool]]]


async def roster(
    res_repo: ReservationRepository,
    store: ReservationStore,
    *,
    reservation_id: str,
) -> list[Participant]:
    reservation = await get_reservation(res_repo, store, reservation_id=reservation_id)
    return ordered_participants(reservation.participants)


async def remove_participant(
    res_repo: ReservationRepository,
    store: ReservationStore,
    *,
    reservation_id: str,
    participant_id: str,
    requested_by: str,
    confirm: ConfirmRemoval,
) -> Optional[Reservation]:
    """
    Remove a member from a group roster.

    Authorization is checked against the locally known roster before anything
    is sent; `confirm` must then approve the removal. Returns the refetched
    reservation, or None when the removal was not confirmed.
    """
    reservation = await get_reservation(res_repo, store, reservation_id=reservation_id)
    target = check_participant_removal(reservation, participant_id, requested_by)

    decision = confirm(target)
    if inspect.isawaitable(decision):
        decision = await decision
    if not decision:
        logger.info("participant removal not confirmed", extra={"reservation_id": reservation_id})
        return None

    await res_repo.remove_participant(reservation_id, participant_id)
    store.invalidate_reservation(reservation_id)
    emit_audit_log(
        action="participant.removed",
        initiator="user",
        reservation_id=reservation_id,
        space_id=reservation.space_id,
        user_id=requested_by,
        participant_id=participant_id,
    )

    refreshed = await get_reservation(res_repo, store, reservation_id=reservation_id, refresh=True)
    if store.get(reservation_id) is not None:
        store.add(refreshed)
    return refreshed
