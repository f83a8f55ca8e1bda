from datetime import datetime, timezone
from typing import AsyncIterator, Callable

import httpx
from fastapi import Depends, Header, HTTPException, Request, status

from .backend_client import create_backend_client
from .config import Settings, get_settings
from .domain.repositories import CancellationNotifier
from .infrastructure.notifications import LoggingCancellationNotifier
from .infrastructure.repositories import (
    HttpInvitationRepository,
    HttpReservationRepository,
    HttpSpaceRepository,
)
from .sessions import BookingSession, SessionRegistry
from .utils.auth import Principal, decode_access_token


async def get_http_client(request: Request) -> AsyncIterator[httpx.AsyncClient]:
    client = getattr(request.app.state, "http_client", None)
    if client is not None:
        yield client
        return
    async with create_backend_client() as client:
        yield client


def get_registry(request: Request) -> SessionRegistry:
    registry = getattr(request.app.state, "sessions", None)
    if registry is None:
        registry = SessionRegistry()
        request.app.state.sessions = registry
    return registry


async def get_current_principal(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> Principal:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Bearer token required",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if authorization is None:
        raise unauthorized
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise unauthorized
    try:
        return decode_access_token(token, secret=settings.auth_secret, algorithms=[settings.auth_algorithm])
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def get_booking_session(
    principal: Principal = Depends(get_current_principal),
    registry: SessionRegistry = Depends(get_registry),
) -> BookingSession:
    return registry.get(principal.user_id)


async def get_space_repo(
    client: httpx.AsyncClient = Depends(get_http_client),
    principal: Principal = Depends(get_current_principal),
) -> HttpSpaceRepository:
    return HttpSpaceRepository(client, token=principal.token)


async def get_reservation_repo(
    client: httpx.AsyncClient = Depends(get_http_client),
    principal: Principal = Depends(get_current_principal),
) -> HttpReservationRepository:
    return HttpReservationRepository(client, token=principal.token)


async def get_invitation_repo(
    client: httpx.AsyncClient = Depends(get_http_client),
    principal: Principal = Depends(get_current_principal),
) -> HttpInvitationRepository:
    return HttpInvitationRepository(client, token=principal.token)


def get_notifier() -> CancellationNotifier:
    return LoggingCancellationNotifier()


def get_clock() -> Callable[[], datetime]:
    return lambda: datetime.now(timezone.utc)
