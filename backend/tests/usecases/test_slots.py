from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from mobility.domain.allocation import DEFAULT_SLOTS
from mobility.domain.entities import OccupancyCount, TimeSlot
from mobility.usecases import slots as uc


class FakeScheduleRepo:
    async def list_slots(self) -> list[TimeSlot]:
        return list(DEFAULT_SLOTS)


class FakeResRepo:
    async def occupancy_counts(self) -> list[OccupancyCount]:
        # slot-0435 has no row at all: treated as empty
        return [OccupancyCount("slot-0420", 20, 20, 0), OccupancyCount("slot-0505", 3, 0, 3)]


@pytest.mark.asyncio
async def test_list_availability_covers_every_slot() -> None:
    now = datetime(2026, 3, 2, 4, 40, tzinfo=ZoneInfo("America/Lima"))
    rows = await uc.list_availability(FakeScheduleRepo(), FakeResRepo(), now=now)

    by_id = {row["slot"].id: row for row in rows}
    assert list(by_id) == [s.id for s in DEFAULT_SLOTS]
    assert by_id["slot-0420"]["availability"].available_seats == 0
    assert by_id["slot-0420"]["expired"] is True
    assert by_id["slot-0435"]["availability"].available_seats == 15
    assert by_id["slot-0435"]["expired"] is False
    assert by_id["slot-0505"]["availability"].available_standing == 42
