from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .store import ReservationStore
from .usecases.wizard import BookingWizard


@dataclass
class BookingSession:
    """State owned by one user's booking flow: their projection and at most one draft."""

    user_id: str
    store: ReservationStore = field(default_factory=ReservationStore)
    wizard: Optional[BookingWizard] = None


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, BookingSession] = {}

    def get(self, user_id: str) -> BookingSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = BookingSession(user_id=user_id)
            self._sessions[user_id] = session
        return session

    def __len__(self) -> int:
        return len(self._sessions)
