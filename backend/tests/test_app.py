from typing import Iterator

import pytest
from mobility import main
from mobility.config import get_settings
from mobility.domain.ledger import RedistributionLedger
from mobility.services.background import OccupancyMonitor
from httpx import ASGITransport, AsyncClient


class FakePeriodicTask:
    created: list["FakePeriodicTask"] = []

    def __init__(self, name: str, interval: float, func: object) -> None:
        self.name = name
        self.interval = interval
        self.started = False
        self.stopped = False
        FakePeriodicTask.created.append(self)

    def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True


@pytest.fixture(autouse=True)
def _settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    FakePeriodicTask.created = []
    monkeypatch.setattr(main, "PeriodicTask", FakePeriodicTask)
    monkeypatch.setenv("REDISTRIBUTION_POLL_SECONDS", "60")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_lifespan_starts_and_stops_timers() -> None:
    async with main.lifespan(main.app):
        assert isinstance(main.app.state.ledger, RedistributionLedger)
        assert isinstance(main.app.state.occupancy_monitor, OccupancyMonitor)
        assert [t.name for t in FakePeriodicTask.created] == ["expiry-redistribution", "occupancy-monitor"]
        assert all(t.started for t in FakePeriodicTask.created)
        assert FakePeriodicTask.created[0].interval == 60

    assert all(t.stopped for t in FakePeriodicTask.created)


@pytest.mark.asyncio
async def test_lifespan_without_background_tasks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BACKGROUND_TASKS_ENABLED", "0")
    get_settings.cache_clear()

    async with main.lifespan(main.app):
        assert isinstance(main.app.state.ledger, RedistributionLedger)

    assert FakePeriodicTask.created == []


@pytest.mark.asyncio
async def test_health_carries_request_id() -> None:
    transport = ASGITransport(app=main.app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers.get("X-Request-ID")


@pytest.mark.asyncio
async def test_protected_route_rejects_anonymous_caller() -> None:
    transport = ASGITransport(app=main.app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/slots/availability")
    assert resp.status_code == 401


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BASELINE_SEATS", "12")
    monkeypatch.setenv("CIVIL_TIMEZONE", "America/Bogota")
    get_settings.cache_clear()
    settings = get_settings()
    assert settings.baseline_seats == 12
    assert settings.civil_timezone == "America/Bogota"
    assert settings.fleet_seat_total == 45
