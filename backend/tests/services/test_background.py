from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import pytest
from mobility.domain.entities import Availability, DashboardMetrics, OccupancyStatus, RedistributionEvent, SlotMetrics
from mobility.domain.ledger import RedistributionLedger
from mobility.services import background
from mobility.usecases import redistribution as redistribution_usecase
from mobility.usecases.redistribution import RedistributionRun

NOW = datetime(2026, 3, 2, 4, 40, tzinfo=ZoneInfo("America/Lima"))


class DummySession:
    def __init__(self) -> None:
        self.committed = False

    async def __aenter__(self) -> "DummySession":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        if exc_type is None:
            self.committed = True
        return False

    def begin(self) -> "DummySession":
        return self


@pytest.fixture(autouse=True)
def _wiring(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(background, "SqlAlchemyScheduleRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(background, "SqlAlchemyReservationRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(background, "civil_now", lambda: NOW)
    monkeypatch.setattr(redistribution_usecase, "emit_audit_log", lambda **kwargs: None)


@pytest.mark.asyncio
async def test_tick_records_only_after_commit(monkeypatch: pytest.MonkeyPatch) -> None:
    session = DummySession()
    ledger = RedistributionLedger()

    async def fake_run(*args: object, **kwargs: Any) -> RedistributionRun:
        assert ledger.lock.locked()
        return RedistributionRun(
            checked_at=NOW,
            events=[RedistributionEvent("slot-0420", "slot-0435", 5, NOW, "expired")],
        )

    monkeypatch.setattr(background.redistribution_usecase, "run_expiry_redistribution", fake_run)

    run = await background.redistribution_tick(lambda: session, ledger)  # type: ignore[arg-type,return-value]

    assert session.committed
    assert len(run.events) == 1
    assert ledger.processed_for(NOW.date()) == frozenset({"slot-0420"})


@pytest.mark.asyncio
async def test_tick_failure_leaves_ledger_untouched(monkeypatch: pytest.MonkeyPatch) -> None:
    ledger = RedistributionLedger()

    async def fake_run(*args: object, **kwargs: Any) -> RedistributionRun:
        raise RuntimeError("connection lost")

    monkeypatch.setattr(background.redistribution_usecase, "run_expiry_redistribution", fake_run)

    with pytest.raises(RuntimeError):
        await background.redistribution_tick(lambda: DummySession(), ledger)  # type: ignore[arg-type,return-value]
    assert ledger.last_check_time is None
    assert not ledger.lock.locked()


@pytest.mark.asyncio
async def test_monitor_keeps_latest_snapshot(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    overbooked = SlotMetrics(
        slot_id="slot-0435",
        label="4:35",
        start_time="04:35",
        end_time="04:50",
        total_capacity=15,
        availability=Availability(0, 0, 0, 16, 0, 16),
        occupancy_percentage=100.0,
        is_overbooked=True,
        status=OccupancyStatus.OVERBOOKED,
    )
    metrics = DashboardMetrics(
        total_capacity=15,
        total_reservations=16,
        total_seated=16,
        total_standing=0,
        total_available=0,
        overall_occupancy=100.0,
        is_system_overbooked=True,
        slots=[overbooked],
        last_updated=NOW,
    )

    async def fake_compute(*args: object, **kwargs: object) -> DashboardMetrics:
        return metrics

    monkeypatch.setattr(background.dashboard_usecase, "compute_dashboard_metrics", fake_compute)

    monitor = background.OccupancyMonitor(lambda: DummySession())  # type: ignore[arg-type,return-value]
    assert monitor.latest is None
    with caplog.at_level("WARNING", logger="mobility.services.background"):
        result = await monitor.refresh()

    assert result is metrics
    assert monitor.latest is metrics
    assert "slot-0435 overbooked" in caplog.text
