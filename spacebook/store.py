from __future__ import annotations

from typing import Any, Hashable, Optional

from .models import Reservation

RESERVATIONS_VIEW = ("reservations",)


def reservation_view(reservation_id: str) -> tuple[str, str]:
    return ("reservation", reservation_id)


class ReservationStore:
    """
    Client-side projection of one user's reservations plus cached views.

    Constructed per booking session; nothing here is module-level. The cache
    is advisory only: the backend decides availability and roster contents.
    """

    def __init__(self) -> None:
        self._reservations: dict[str, Reservation] = {}
        self._views: dict[Hashable, Any] = {}

    def add(self, reservation: Reservation) -> None:
        self._reservations[reservation.id] = reservation

    def replace_all(self, reservations: list[Reservation]) -> None:
        self._reservations = {r.id: r for r in reservations}

    def get(self, reservation_id: str) -> Optional[Reservation]:
        return self._reservations.get(reservation_id)

    def all(self) -> list[Reservation]:
        return list(self._reservations.values())

    def cache_view(self, key: Hashable, value: Any) -> None:
        self._views[key] = value

    def cached_view(self, key: Hashable) -> Any:
        return self._views.get(key)

    def invalidate(self, *keys: Hashable) -> None:
        for key in keys:
            self._views.pop(key, None)

    def invalidate_reservation(self, reservation_id: str) -> None:
        self.invalidate(reservation_view(reservation_id), RESERVATIONS_VIEW)
