from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from ..domain.errors import DomainError
from ..domain.repositories import ReservationRepository
from ..models import Reservation

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0

OnUpdate = Callable[[Reservation], Union[None, Awaitable[None]]]


class ReservationSubscription:
    """
    Periodically refetch one reservation while a consumer is watching it.

    The consumer owns the lifecycle: `start()` when the view opens, `stop()`
    when it closes (or use `async with`). Fetch and callback failures are
    logged and the next tick tries again.
    """

    def __init__(
        self,
        res_repo: ReservationRepository,
        reservation_id: str,
        on_update: OnUpdate,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.res_repo = res_repo
        self.reservation_id = reservation_id
        self.on_update = on_update
        self.interval = interval
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.active:
            return
        self._task = asyncio.create_task(self._run(), name=f"poll-reservation-{self.reservation_id}")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def poll_once(self) -> Optional[Reservation]:
        try:
            reservation = await self.res_repo.get(self.reservation_id)
        except DomainError as exc:
            logger.warning(
                "reservation poll failed",
                extra={"reservation_id": self.reservation_id, "error": str(exc)},
            )
            return None
        result = self.on_update(reservation)
        if inspect.isawaitable(result):
            await result
        return reservation

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.exception("reservation poll tick failed", extra={"reservation_id": self.reservation_id})
            await asyncio.sleep(self.interval)

    async def __aenter__(self) -> "ReservationSubscription":
        self.start()
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.stop()
