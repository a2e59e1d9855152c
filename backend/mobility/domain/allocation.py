"""Seat allocation engine for time-slotted bus departures.

Everything here is a pure function over explicit snapshots: a list of
``TimeSlot`` in configured order, the ``OccupancyCount`` rows read from the
reservation store and, where time matters, ``now`` in civil time. Functions
that would change capacity return write-intents (``CapacityWrite``) instead
of touching the store; the usecases execute them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import AbstractSet, Iterable, Mapping, Optional, Sequence

from ..utils.time import hhmm_to_minutes, minutes_of_day
from .entities import (
    Availability,
    CapacityWrite,
    OccupancyCount,
    ReallocationAction,
    RedistributionResult,
    SeatTransfer,
    TimeSlot,
)
from .errors import SlotNotFoundError, ValidationError, VersionConflictError

DEFAULT_SLOTS: tuple[TimeSlot, ...] = (
    TimeSlot("slot-0420", "4:20 - 4:35 AM", "04:20", "04:35", 15, 0, False),
    TimeSlot("slot-0435", "4:35 - 4:50 AM", "04:35", "04:50", 15, 0, False),
    TimeSlot("slot-0450", "4:50 - 5:05 AM", "04:50", "05:05", 15, 0, False),
    TimeSlot("slot-0505", "5:05 - 5:30 AM", "05:05", "05:30", 0, 45, True),
)


@dataclass(frozen=True)
class CapacityChoice:
    """An admin-confirmed capacity for one slot, tied to the version it was computed from."""

    slot_id: str
    capacity: int
    version: int


def index_counts(counts: Iterable[OccupancyCount]) -> dict[str, OccupancyCount]:
    return {c.slot_id: c for c in counts}


def calculate_availability(slot: TimeSlot, count: Optional[OccupancyCount] = None) -> Availability:
    """Derive availability for one slot; a missing count means nothing is booked.

    Never negative, even when the slot is overbooked or the count rows are
    internally inconsistent.
    """
    if count is None:
        count = OccupancyCount(slot_id=slot.id)
    occupied_seats = max(0, count.occupied_seats)
    occupied_standing = max(0, count.occupied_standing)
    total = max(0, count.total_reservations)
    return Availability(
        available_seats=max(0, slot.max_seats - occupied_seats),
        available_standing=max(0, slot.max_standing - occupied_standing),
        total_available=max(0, slot.total_capacity - total),
        occupied_seats=occupied_seats,
        occupied_standing=occupied_standing,
        total_occupied=total,
    )


def is_expired(slot: TimeSlot, now: datetime) -> bool:
    """True once the civil time of day is past the slot's end (minute resolution)."""
    return minutes_of_day(now) > hhmm_to_minutes(slot.end_time)


def seated_sequence(slots: Sequence[TimeSlot]) -> list[TimeSlot]:
    return [s for s in slots if s.is_seated]


def plan_expiry_redistribution(
    slots: Sequence[TimeSlot],
    counts: Iterable[OccupancyCount],
    *,
    now: datetime,
    processed: AbstractSet[str] = frozenset(),
) -> list[SeatTransfer]:
    """Plan moving unused seats of expired seated slots to the next seated slot.

    Slots listed in ``processed`` already donated and are skipped. Capacity a
    slot receives during the pass counts toward what it donates if it has
    expired too, so leftovers flow forward to the first slot still running.
    The source's ``max_seats`` is left untouched.
    """
    by_slot = index_counts(counts)
    seated = seated_sequence(slots)
    working = {s.id: s.max_seats for s in seated}
    transfers: list[SeatTransfer] = []

    for i, slot in enumerate(seated[:-1]):
        if slot.id in processed or not is_expired(slot, now):
            continue
        available = calculate_availability(slot.with_seats(working[slot.id]), by_slot.get(slot.id)).available_seats
        if available <= 0:
            continue
        target = seated[i + 1]
        working[target.id] += available
        transfers.append(
            SeatTransfer(
                from_slot_id=slot.id,
                to_slot_id=target.id,
                seats=available,
                write=CapacityWrite(
                    slot_id=target.id,
                    expected_version=target.version,
                    max_seats=working[target.id],
                ),
                reason=f"slot {slot.label} expired with {available} unused seats",
            )
        )
    return transfers


def plan_capacity_reset(slots: Sequence[TimeSlot], *, baseline: int) -> list[CapacityWrite]:
    """Write-intents restoring every seated slot to ``baseline`` seats.

    Standing-only slots are not touched; slots already at the baseline need
    no write, so a second reset is a no-op.
    """
    return [
        CapacityWrite(slot_id=s.id, expected_version=s.version, max_seats=baseline)
        for s in slots
        if not s.allow_standing_only and s.max_seats != baseline
    ]


def occupancy_rate(reservations: int, capacity: int) -> float:
    """Reservations as a percentage of capacity, capped at 100."""
    if capacity <= 0:
        return 100.0 if reservations > 0 else 0.0
    return min(100.0, reservations / capacity * 100)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def recommend_capacities(
    slots: Sequence[TimeSlot],
    counts: Iterable[OccupancyCount],
    *,
    total_capacity: int,
    floor: int,
    ceiling: int,
) -> list[RedistributionResult]:
    """Split ``total_capacity`` across slots in proportion to reservations.

    Each slot gets between ``floor`` and ``ceiling`` and the results never sum
    past ``total_capacity``. Bounds that cannot hold together (floor above
    ceiling, or a floor for every slot already exceeding the total) raise
    ``ValidationError``.
    """
    if floor > ceiling:
        raise ValidationError(f"floor {floor} is above ceiling {ceiling}", rule="reallocation_bounds")
    if len(slots) * floor > total_capacity:
        raise ValidationError(
            f"{len(slots)} slots at a floor of {floor} exceed the total capacity of {total_capacity}",
            rule="reallocation_bounds",
        )

    by_slot = index_counts(counts)
    demand = [max(0, by_slot[s.id].total_reservations) if s.id in by_slot else 0 for s in slots]
    total_demand = max(1, sum(demand))

    recommended = [
        max(floor, min(ceiling, _round_half_up(total_capacity * d / total_demand))) for d in demand
    ]

    # Rounding and the floor can push the sum past the fleet; trim one unit at a
    # time from the largest allocation (lowest demand first among ties) so a
    # busier slot never ends up below a quieter one.
    overflow = sum(recommended) - total_capacity
    while overflow > 0:
        candidates = [i for i, cap in enumerate(recommended) if cap > floor]
        if not candidates:
            break
        i = max(candidates, key=lambda k: (recommended[k], -demand[k]))
        recommended[i] -= 1
        overflow -= 1

    results: list[RedistributionResult] = []
    for slot, d, cap in zip(slots, demand, recommended):
        current = slot.total_capacity
        improvement = occupancy_rate(d, cap) - occupancy_rate(d, current)
        if cap > current:
            action = ReallocationAction.INCREASE
        elif cap < current:
            action = ReallocationAction.DECREASE
        else:
            action = ReallocationAction.MAINTAIN
        results.append(
            RedistributionResult(
                slot_id=slot.id,
                current_capacity=current,
                recommended_capacity=cap,
                improvement_percent=round(improvement, 2),
                action=action,
                version=slot.version,
            )
        )
    return results


def plan_reallocation_writes(
    slots: Sequence[TimeSlot],
    choices: Sequence[CapacityChoice],
) -> list[CapacityWrite]:
    """Turn confirmed capacities into writes.

    A standing-only slot's capacity is its standing room, any other slot's is
    its seats. Stale versions are rejected before anything is written.
    """
    by_id: Mapping[str, TimeSlot] = {s.id: s for s in slots}
    writes: list[CapacityWrite] = []
    for choice in choices:
        slot = by_id.get(choice.slot_id)
        if slot is None:
            raise SlotNotFoundError(f"slot {choice.slot_id} not found")
        if choice.capacity < 0:
            raise ValidationError(
                f"capacity for {choice.slot_id} must not be negative",
                slot_id=choice.slot_id,
                rule="capacity_non_negative",
            )
        if choice.version != slot.version:
            raise VersionConflictError(f"slot {choice.slot_id} changed since recommendations were computed")
        if slot.allow_standing_only:
            writes.append(CapacityWrite(slot.id, slot.version, max_standing=choice.capacity))
        else:
            writes.append(CapacityWrite(slot.id, slot.version, max_seats=choice.capacity))
    return writes
