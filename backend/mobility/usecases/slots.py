from datetime import datetime
from typing import Any, Dict, List

from ..domain.allocation import calculate_availability, index_counts, is_expired
from ..domain.repositories import ReservationRepository, ScheduleRepository
from .schedule import load_schedule


async def list_availability(
    schedule_repo: ScheduleRepository,
    res_repo: ReservationRepository,
    *,
    now: datetime,
) -> List[Dict[str, Any]]:
    slots = await load_schedule(schedule_repo)
    counts = index_counts(await res_repo.occupancy_counts())
    items: List[Dict[str, Any]] = []
    for slot in slots:
        items.append(
            {
                "slot": slot,
                "availability": calculate_availability(slot, counts.get(slot.id)),
                "expired": is_expired(slot, now),
            }
        )
    return items
