import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response

from .config import get_settings
from .database import async_session, create_schema
from .domain.ledger import RedistributionLedger
from .routers import dashboard, redistribution, reservations, schedule, slots
from .services.background import OccupancyMonitor, redistribution_tick
from .services.periodic import PeriodicTask
from .utils.log_config import configure_logging
from .utils.request_id import REQUEST_ID_HEADER, normalize_request_id, set_request_id

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level)
    if settings.create_schema_on_startup:
        await create_schema()
        logger.info("database schema ensured")

    ledger = RedistributionLedger()
    monitor = OccupancyMonitor(async_session)
    app.state.ledger = ledger
    app.state.occupancy_monitor = monitor

    tasks: list[PeriodicTask] = []
    if settings.background_tasks_enabled:
        tasks = [
            PeriodicTask(
                "expiry-redistribution",
                settings.redistribution_poll_seconds,
                lambda: redistribution_tick(async_session, ledger),
            ),
            PeriodicTask("occupancy-monitor", settings.occupancy_poll_seconds, monitor.refresh),
        ]
        for task in tasks:
            task.start()
    try:
        yield
    finally:
        for task in tasks:
            await task.stop()


app = FastAPI(title="Shuttle Seat Allocation API", lifespan=lifespan)


async def request_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = normalize_request_id(request.headers.get(REQUEST_ID_HEADER))
    set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        set_request_id(None)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


app.middleware("http")(request_id_middleware)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(schedule.router)
app.include_router(schedule.admin_router)
app.include_router(slots.router)
app.include_router(reservations.router)
app.include_router(dashboard.router)
app.include_router(redistribution.router)
