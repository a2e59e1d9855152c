from datetime import datetime
from typing import Iterable, Optional, Sequence

from .allocation import calculate_availability, index_counts
from .entities import DashboardMetrics, OccupancyCount, OccupancyStatus, SlotMetrics, TimeSlot

HIGH_OCCUPANCY = 80.0
MEDIUM_OCCUPANCY = 50.0


def _percentage(part: int, whole: int) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def classify(occupancy: float, *, total_available: int, is_overbooked: bool) -> OccupancyStatus:
    if is_overbooked:
        return OccupancyStatus.OVERBOOKED
    if total_available == 0:
        return OccupancyStatus.FULL
    if occupancy >= HIGH_OCCUPANCY:
        return OccupancyStatus.HIGH
    if occupancy >= MEDIUM_OCCUPANCY:
        return OccupancyStatus.MEDIUM
    return OccupancyStatus.LOW


def summarize_occupancy(
    slots: Sequence[TimeSlot],
    counts: Iterable[OccupancyCount],
    *,
    now: Optional[datetime] = None,
) -> DashboardMetrics:
    by_slot = index_counts(counts)
    per_slot: list[SlotMetrics] = []
    for slot in slots:
        availability = calculate_availability(slot, by_slot.get(slot.id))
        capacity = slot.total_capacity
        occupancy = _percentage(availability.total_occupied, capacity)
        overbooked = availability.total_occupied > capacity
        per_slot.append(
            SlotMetrics(
                slot_id=slot.id,
                label=slot.label,
                start_time=slot.start_time,
                end_time=slot.end_time,
                total_capacity=capacity,
                availability=availability,
                occupancy_percentage=round(occupancy, 2),
                is_overbooked=overbooked,
                status=classify(occupancy, total_available=availability.total_available, is_overbooked=overbooked),
            )
        )

    total_capacity = sum(m.total_capacity for m in per_slot)
    total_reservations = sum(m.availability.total_occupied for m in per_slot)
    return DashboardMetrics(
        total_capacity=total_capacity,
        total_reservations=total_reservations,
        total_seated=sum(m.availability.occupied_seats for m in per_slot),
        total_standing=sum(m.availability.occupied_standing for m in per_slot),
        total_available=max(0, total_capacity - total_reservations),
        overall_occupancy=round(_percentage(total_reservations, total_capacity), 2),
        is_system_overbooked=total_reservations > total_capacity,
        slots=per_slot,
        last_updated=now,
    )
