from datetime import date, datetime
from typing import Callable

from fastapi import APIRouter, Depends, Query

from ..config import Settings, get_settings
from ..deps import get_clock, get_current_principal, get_space_repo
from ..domain.errors import DomainError
from ..infrastructure.repositories import HttpSpaceRepository
from ..schemas import AvailabilityRead, SlotRead
from ..usecases import availability as availability_usecase
from ..utils.time import get_zone
from .errors import to_http_exception

router = APIRouter(prefix="/spaces", tags=["spaces"], dependencies=[Depends(get_current_principal)])


@router.get("/{space_id}/availability", response_model=AvailabilityRead)
async def get_availability(
    space_id: str,
    day: date = Query(..., alias="date", description="Local day (YYYY-MM-DD)"),
    space_repo: HttpSpaceRepository = Depends(get_space_repo),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AvailabilityRead:
    tz = get_zone(settings.timezone)
    try:
        slots = await availability_usecase.list_availability(
            space_repo,
            space_id=space_id,
            day=day,
            now=clock().astimezone(tz),
            tz=tz,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return AvailabilityRead(
        space_id=space_id,
        date=day,
        slots=[SlotRead(time=slot.time, status=slot.status) for slot in slots],
    )
