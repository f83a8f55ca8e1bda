import logging
from datetime import datetime, timezone
from typing import Optional

from ..domain.errors import AuthorizationError, BookingConflictError, BookingValidationError
from ..domain.repositories import CancellationNotifier, ReservationRepository
from ..domain.services import affected_user_ids, assert_cancellable
from ..models import CancellationReason, Reservation, ReservationRequest, ReservationStatus
from ..store import RESERVATIONS_VIEW, ReservationStore, reservation_view
from ..utils.audit_log import emit_audit_log
from ..utils.auth import Principal
from ..utils.ics import CalendarEvent

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 500


async def create_reservation(
    res_repo: ReservationRepository,
    store: ReservationStore,
    *,
    request: ReservationRequest,
    user_id: str,
) -> Reservation:
    """
    Send one creation request. The backend's conflict check is authoritative:
    a 409 surfaces as BookingConflictError and is never retried here.
    """
    try:
        reservation = await res_repo.create(request)
    except BookingConflictError as exc:
        logger.info(
            "reservation conflict",
            extra={"space_id": request.space_id, "code": exc.code, "user_id": user_id},
        )
        raise

    # the creation response only echoes the core fields
    reservation.type = request.type
    if reservation.group_size is None:
        reservation.group_size = request.group_size
    if reservation.privacy_option is None:
        reservation.privacy_option = request.privacy_option
    if reservation.is_group and reservation.organizer_id is None:
        reservation.organizer_id = user_id

    store.add(reservation)
    store.invalidate(RESERVATIONS_VIEW)
    emit_audit_log(
        action="reservation.created",
        initiator="user",
        reservation_id=reservation.id,
        space_id=reservation.space_id,
        user_id=user_id,
        status_to=reservation.status,
    )
    return reservation


async def get_reservation(
    res_repo: ReservationRepository,
    store: ReservationStore,
    *,
    reservation_id: str,
    refresh: bool = False,
) -> Reservation:
    key = reservation_view(reservation_id)
    cached = None if refresh else store.cached_view(key)
    if cached is not None:
        return cached
    reservation = await res_repo.get(reservation_id)
    store.cache_view(key, reservation)
    return reservation


async def list_reservations(res_repo: ReservationRepository, store: ReservationStore) -> list[Reservation]:
    cached = store.cached_view(RESERVATIONS_VIEW)
    if cached is not None:
        return cached
    reservations = await res_repo.list_mine()
    store.replace_all(reservations)
    store.cache_view(RESERVATIONS_VIEW, reservations)
    return reservations


async def cancel_reservation(
    res_repo: ReservationRepository,
    store: ReservationStore,
    notifier: CancellationNotifier,
    *,
    reservation_id: str,
    principal: Principal,
    reason: CancellationReason | str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Reservation:
    try:
        reason = CancellationReason(reason)
    except ValueError as exc:
        raise BookingValidationError(f"unknown cancellation reason: {reason}") from exc
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        raise BookingValidationError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")

    current = await res_repo.get(reservation_id)
    if current.owner_id is None:
        # ownership unknown here; the backend decides who may cancel
        logger.warning("reservation has no owner", extra={"reservation_id": reservation_id})
        administrative = principal.is_admin
    else:
        administrative = current.owner_id != principal.user_id
    if administrative and not principal.is_admin:
        raise AuthorizationError("only administrators can cancel another user's reservation")
    assert_cancellable(current)

    updated = await res_repo.cancel(reservation_id, reason=reason, notes=notes)

    target = store.get(reservation_id) or current
    status_from = current.status
    target.status = ReservationStatus.CANCELLED
    target.updated_at = updated.updated_at or now or datetime.now(timezone.utc)
    store.add(target)
    store.invalidate_reservation(reservation_id)

    recipients = affected_user_ids(current, actor_id=principal.user_id)
    await notifier.notify(target, recipients=recipients, reason=reason, administrative=administrative)
    emit_audit_log(
        action="reservation.cancelled",
        initiator="admin" if administrative else "user",
        reservation_id=reservation_id,
        space_id=target.space_id,
        user_id=principal.user_id,
        status_from=status_from,
        status_to=target.status,
        reason=reason,
        extra={"notified": len(recipients)} if recipients else None,
    )
    return target


def calendar_event(reservation: Reservation) -> CalendarEvent:
    space_name = reservation.space_name or reservation.space_id
    return CalendarEvent(
        title=f"Reservation: {space_name}",
        location=space_name,
        description=reservation.notes or "",
        start_time=reservation.start_time,
        end_time=reservation.end_time,
    )
