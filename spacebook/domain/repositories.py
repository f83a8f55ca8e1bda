from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ..models import (
    CancellationReason,
    InvitationDetails,
    Reservation,
    ReservationRequest,
    SlotAvailability,
    Space,
)


class SpaceRepository(Protocol):
    async def get(self, space_id: str) -> Space: ...

    async def availability(self, space_id: str, day: date) -> list[SlotAvailability]: ...


class ReservationRepository(Protocol):
    async def create(self, request: ReservationRequest) -> Reservation: ...

    async def get(self, reservation_id: str) -> Reservation: ...

    async def list_mine(self) -> list[Reservation]: ...

    async def cancel(
        self,
        reservation_id: str,
        *,
        reason: CancellationReason,
        notes: Optional[str],
    ) -> Reservation: ...

    async def remove_participant(self, reservation_id: str, participant_id: str) -> None: ...


class InvitationRepository(Protocol):
    async def create(self, reservation_id: str) -> str: ...

    async def get(self, token: str) -> InvitationDetails: ...

    async def join(self, token: str) -> Reservation: ...


class CancellationNotifier(Protocol):
    async def notify(
        self,
        reservation: Reservation,
        *,
        recipients: list[str],
        reason: CancellationReason,
        administrative: bool,
    ) -> None: ...
