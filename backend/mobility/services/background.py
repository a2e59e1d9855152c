"""Timer-driven jobs: expiry redistribution and the occupancy monitor.

Each tick opens its own session and transaction so a tick never shares
state with a request.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.entities import DashboardMetrics
from ..domain.ledger import RedistributionLedger
from ..infrastructure.repositories import SqlAlchemyReservationRepository, SqlAlchemyScheduleRepository
from ..usecases import dashboard as dashboard_usecase
from ..usecases import redistribution as redistribution_usecase
from ..utils.time import civil_now

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]


async def redistribution_tick(
    session_factory: SessionFactory,
    ledger: RedistributionLedger,
) -> redistribution_usecase.RedistributionRun:
    async with ledger.lock:
        now = civil_now()
        async with session_factory() as session:
            async with session.begin():
                run = await redistribution_usecase.run_expiry_redistribution(
                    SqlAlchemyScheduleRepository(session),
                    SqlAlchemyReservationRepository(session),
                    now=now,
                    processed=ledger.processed_for(now.date()),
                )
        redistribution_usecase.record_redistribution(ledger, run, initiator="system")
    if run.events or run.failures:
        logger.info(
            "redistribution tick: %d transfers, %d failures, %d deferred",
            len(run.events),
            len(run.failures),
            len(run.deferred),
        )
    return run


class OccupancyMonitor:
    """Keeps the most recent dashboard snapshot and warns about overbooked slots."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory
        self.latest: Optional[DashboardMetrics] = None

    async def refresh(self) -> DashboardMetrics:
        async with self._session_factory() as session:
            metrics = await dashboard_usecase.compute_dashboard_metrics(
                SqlAlchemyScheduleRepository(session),
                SqlAlchemyReservationRepository(session),
                now=civil_now(),
            )
        for slot in metrics.slots:
            if slot.is_overbooked:
                logger.warning(
                    "slot %s overbooked: %d reservations for %d places",
                    slot.slot_id,
                    slot.availability.total_occupied,
                    slot.total_capacity,
                )
        self.latest = metrics
        return metrics
