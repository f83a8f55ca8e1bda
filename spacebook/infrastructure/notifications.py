from __future__ import annotations

import logging

from ..domain.repositories import CancellationNotifier
from ..models import CancellationReason, Reservation

logger = logging.getLogger(__name__)


class LoggingCancellationNotifier(CancellationNotifier):
    """Records who must hear about a cancellation; delivery belongs to the backend."""

    async def notify(
        self,
        reservation: Reservation,
        *,
        recipients: list[str],
        reason: CancellationReason,
        administrative: bool,
    ) -> None:
        if not recipients:
            return
        logger.info(
            "cancellation affects %d user(s)",
            len(recipients),
            extra={
                "reservation_id": reservation.id,
                "recipients": recipients,
                "reason": reason.value,
                "administrative": administrative,
            },
        )
