import logging
from typing import Any

from fastapi import HTTPException, status

from ..domain.errors import (
    AuthorizationError,
    BackendError,
    BookingConflictError,
    BookingValidationError,
    CancelNotAllowedError,
    DomainError,
    InvitationRejectedError,
    NotFoundError,
    TransportError,
    WizardStateError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[DomainError], int]] = [
    (BookingValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (WizardStateError, status.HTTP_409_CONFLICT),
    (BookingConflictError, status.HTTP_409_CONFLICT),
    (CancelNotAllowedError, status.HTTP_409_CONFLICT),
    (InvitationRejectedError, status.HTTP_409_CONFLICT),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (TransportError, status.HTTP_502_BAD_GATEWAY),
    (BackendError, status.HTTP_502_BAD_GATEWAY),
]


def to_http_exception(exc: DomainError) -> HTTPException:
    """Translate a domain failure, keeping the backend's code where there is one."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, mapped in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = mapped
            break

    detail: Any = str(exc)
    if isinstance(exc, BookingConflictError):
        detail = {"code": exc.code, "message": exc.user_message}
    elif isinstance(exc, InvitationRejectedError):
        detail = {"code": exc.code, "message": str(exc)}

    if status_code >= 500:
        logger.error("request failed: %s", exc, exc_info=exc)
    return HTTPException(status_code=status_code, detail=detail)
