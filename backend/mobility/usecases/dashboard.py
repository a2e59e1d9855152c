from datetime import datetime

from ..domain.entities import DashboardMetrics
from ..domain.metrics import summarize_occupancy
from ..domain.repositories import ReservationRepository, ScheduleRepository
from .schedule import load_schedule


async def compute_dashboard_metrics(
    schedule_repo: ScheduleRepository,
    res_repo: ReservationRepository,
    *,
    now: datetime,
) -> DashboardMetrics:
    slots = await load_schedule(schedule_repo)
    counts = await res_repo.occupancy_counts()
    return summarize_occupancy(slots, counts, now=now)
