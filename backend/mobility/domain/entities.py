from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from typing import Optional


@dataclass(frozen=True)
class TimeSlot:
    id: str
    label: str
    start_time: str
    end_time: str
    max_seats: int
    max_standing: int
    allow_standing_only: bool
    version: int = 1

    @property
    def is_seated(self) -> bool:
        return not self.allow_standing_only and self.max_seats > 0

    @property
    def total_capacity(self) -> int:
        return self.max_seats + self.max_standing

    def with_seats(self, max_seats: int) -> "TimeSlot":
        return replace(self, max_seats=max_seats)


@dataclass(frozen=True)
class OccupancyCount:
    slot_id: str
    total_reservations: int = 0
    occupied_seats: int = 0
    occupied_standing: int = 0


@dataclass(frozen=True)
class Availability:
    available_seats: int
    available_standing: int
    total_available: int
    occupied_seats: int = 0
    occupied_standing: int = 0
    total_occupied: int = 0


@dataclass(frozen=True)
class CapacityWrite:
    """Write-intent: set a slot's capacity, guarded by the version it was read at."""

    slot_id: str
    expected_version: int
    max_seats: Optional[int] = None
    max_standing: Optional[int] = None


@dataclass(frozen=True)
class SeatTransfer:
    from_slot_id: str
    to_slot_id: str
    seats: int
    write: CapacityWrite
    reason: str


@dataclass(frozen=True)
class RedistributionEvent:
    from_slot_id: str
    to_slot_id: str
    seats_transferred: int
    timestamp: datetime
    reason: str


class ReallocationAction(StrEnum):
    INCREASE = "increase"
    DECREASE = "decrease"
    MAINTAIN = "maintain"


@dataclass(frozen=True)
class RedistributionResult:
    slot_id: str
    current_capacity: int
    recommended_capacity: int
    improvement_percent: float
    action: ReallocationAction
    version: int = 1


class OccupancyStatus(StrEnum):
    OVERBOOKED = "overbooked"
    FULL = "full"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class SlotMetrics:
    slot_id: str
    label: str
    start_time: str
    end_time: str
    total_capacity: int
    availability: Availability
    occupancy_percentage: float
    is_overbooked: bool
    status: OccupancyStatus


@dataclass(frozen=True)
class DashboardMetrics:
    total_capacity: int
    total_reservations: int
    total_seated: int
    total_standing: int
    total_available: int
    overall_occupancy: float
    is_system_overbooked: bool
    slots: list[SlotMetrics] = field(default_factory=list)
    last_updated: Optional[datetime] = None
