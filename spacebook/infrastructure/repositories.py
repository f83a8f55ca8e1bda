from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..domain.errors import (
    AuthorizationError,
    BackendError,
    BookingConflictError,
    NotFoundError,
    ReservationNotFoundError,
    TransportError,
)
from ..domain.repositories import InvitationRepository, ReservationRepository, SpaceRepository
from ..models import (
    CancellationReason,
    InvitationDetails,
    Reservation,
    ReservationRequest,
    SlotAvailability,
    Space,
)
from ..schemas import (
    AvailabilityPayload,
    ErrorBody,
    InvitationPayload,
    ReservationPayload,
    SpacePayload,
    reservation_request_body,
)
from ..utils.request_id import outgoing_headers

logger = logging.getLogger(__name__)


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload and "id" not in payload:
        return payload["data"]
    return payload


def _error_body(response: httpx.Response) -> ErrorBody:
    try:
        payload = response.json()
    except ValueError:
        return ErrorBody(message=response.text or None)
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            return ErrorBody(code=error.get("code"), message=error.get("message"))
        if isinstance(error, str):
            return ErrorBody(message=error)
        detail = payload.get("detail") or payload.get("message")
        if isinstance(detail, str):
            return ErrorBody(message=detail)
    return ErrorBody()


class _HttpRepository:
    def __init__(self, client: httpx.AsyncClient, *, token: Optional[str] = None) -> None:
        self.client = client
        self.token = token

    def _headers(self) -> dict[str, str]:
        headers = outgoing_headers()
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        not_found: type[NotFoundError] = NotFoundError,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self.client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TransportError as exc:
            logger.error("backend unreachable", extra={"method": method, "url": url, "error": str(exc)})
            raise TransportError("Unable to reach the reservation service") from exc

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            return _unwrap(response.json())

        error = _error_body(response)
        logger.warning(
            "backend request failed",
            extra={"method": method, "url": url, "status": response.status_code, "code": error.code},
        )
        if response.status_code == 409:
            raise BookingConflictError(code=error.code, message=error.message)
        if response.status_code == 404:
            raise not_found(error.message or "resource not found")
        if response.status_code in (401, 403):
            raise AuthorizationError(error.message or "not allowed")
        raise BackendError(response.status_code, error.message or "backend request failed", code=error.code)

    @staticmethod
    def _parse(model: type[Any], payload: Any) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.error("unexpected backend payload", extra={"model": model.__name__, "error": str(exc)})
            raise BackendError(502, "unexpected response from reservation service") from exc


class HttpSpaceRepository(_HttpRepository, SpaceRepository):
    async def get(self, space_id: str) -> Space:
        payload = await self._request("GET", f"/spaces/{space_id}")
        return self._parse(SpacePayload, payload).to_domain()

    async def availability(self, space_id: str, day: date) -> list[SlotAvailability]:
        payload = await self._request(
            "GET",
            f"/spaces/{space_id}/availability",
            params={"date": day.isoformat()},
        )
        return self._parse(AvailabilityPayload, payload).to_domain()


class HttpReservationRepository(_HttpRepository, ReservationRepository):
    async def create(self, request: ReservationRequest) -> Reservation:
        payload = await self._request("POST", "/reservations", json=reservation_request_body(request))
        return self._parse(ReservationPayload, payload).to_domain()

    async def get(self, reservation_id: str) -> Reservation:
        payload = await self._request(
            "GET",
            f"/reservations/{reservation_id}",
            not_found=ReservationNotFoundError,
        )
        return self._parse(ReservationPayload, payload).to_domain()

    async def list_mine(self) -> list[Reservation]:
        payload = await self._request("GET", "/reservations")
        return [self._parse(ReservationPayload, item).to_domain() for item in payload or []]

    async def cancel(
        self,
        reservation_id: str,
        *,
        reason: CancellationReason,
        notes: Optional[str],
    ) -> Reservation:
        payload = await self._request(
            "DELETE",
            f"/reservations/{reservation_id}",
            json={"reason": reason.value, "notes": notes or ""},
            not_found=ReservationNotFoundError,
        )
        return self._parse(ReservationPayload, payload).to_domain()

    async def remove_participant(self, reservation_id: str, participant_id: str) -> None:
        await self._request(
            "DELETE",
            f"/reservations/{reservation_id}/participants/{participant_id}",
            not_found=ReservationNotFoundError,
        )


class HttpInvitationRepository(_HttpRepository, InvitationRepository):
    async def create(self, reservation_id: str) -> str:
        payload = await self._request(
            "POST",
            f"/reservations/{reservation_id}/invitation",
            not_found=ReservationNotFoundError,
        )
        if isinstance(payload, dict) and payload.get("token"):
            return str(payload["token"])
        raise BackendError(502, "invitation response did not include a token")

    async def get(self, token: str) -> InvitationDetails:
        payload = await self._request("GET", f"/invitations/{token}")
        return self._parse(InvitationPayload, payload).to_domain()

    async def join(self, token: str) -> Reservation:
        payload = await self._request("POST", f"/invitations/{token}/join")
        if isinstance(payload, dict) and "reservation" in payload:
            payload = payload["reservation"]
        return self._parse(ReservationPayload, payload).to_domain()
