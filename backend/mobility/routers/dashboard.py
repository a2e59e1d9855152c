from fastapi import APIRouter, Depends

from ..deps import get_current_user, get_occupancy_monitor
from ..domain.errors import DomainError
from ..schemas import DashboardMetricsRead
from ..services.background import OccupancyMonitor
from .errors import http_error

router = APIRouter(prefix="/dashboard", tags=["dashboard"], dependencies=[Depends(get_current_user)])


@router.get("/metrics", response_model=DashboardMetricsRead)
async def get_metrics(monitor: OccupancyMonitor = Depends(get_occupancy_monitor)) -> DashboardMetricsRead:
    metrics = monitor.latest
    if metrics is None:
        try:
            metrics = await monitor.refresh()
        except DomainError as exc:
            raise http_error(exc) from exc
    return DashboardMetricsRead.from_domain(metrics)
