from __future__ import annotations

from typing import Optional

BOOKING_CONFLICT = "BOOKING_CONFLICT"
BOOKING_CONFLICT_MESSAGE = "This time slot is already booked. Please select a different time."
GENERIC_CREATE_FAILURE = "Unable to create reservation"


class DomainError(Exception):
    """Base class for failures raised by the booking lifecycle."""


class BookingValidationError(DomainError):
    """Input rejected locally; never sent to the backend."""


class CapacityError(BookingValidationError):
    pass


class WizardStateError(DomainError):
    pass


class BookingConflictError(DomainError):
    """The backend refused a reservation with 409."""

    def __init__(self, code: Optional[str] = None, message: Optional[str] = None) -> None:
        self.code = code
        self.message = message
        super().__init__(self.user_message)

    @property
    def user_message(self) -> str:
        if self.code == BOOKING_CONFLICT:
            return BOOKING_CONFLICT_MESSAGE
        return self.message or GENERIC_CREATE_FAILURE


class TransportError(DomainError):
    """The backend could not be reached."""


class BackendError(DomainError):
    def __init__(self, status_code: int, message: str, code: Optional[str] = None) -> None:
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class NotFoundError(DomainError):
    pass


class ReservationNotFoundError(NotFoundError):
    pass


class ParticipantNotFoundError(NotFoundError):
    pass


class AuthorizationError(DomainError):
    pass


class NotOrganizerError(AuthorizationError):
    pass


class CannotRemoveOrganizerError(AuthorizationError):
    pass


class CancelNotAllowedError(DomainError):
    pass


class InvitationRejectedError(DomainError):
    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(message)
