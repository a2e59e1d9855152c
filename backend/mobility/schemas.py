from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .domain.entities import (
    Availability,
    DashboardMetrics,
    OccupancyStatus,
    ReallocationAction,
    RedistributionEvent,
    RedistributionResult,
    SlotMetrics,
    TimeSlot,
)
from .domain.ledger import RedistributionSummary
from .models import PassType, Reservation, ReservationStatus


class TimeSlotRead(BaseModel):
    slot_id: str
    label: str
    start_time: str
    end_time: str
    max_seats: int
    max_standing: int
    allow_standing_only: bool
    version: int

    @classmethod
    def from_domain(cls, slot: TimeSlot) -> "TimeSlotRead":
        return cls(
            slot_id=slot.id,
            label=slot.label,
            start_time=slot.start_time,
            end_time=slot.end_time,
            max_seats=slot.max_seats,
            max_standing=slot.max_standing,
            allow_standing_only=slot.allow_standing_only,
            version=slot.version,
        )


class TimeSlotWrite(BaseModel):
    # Times stay plain strings: format errors are reported per slot by schedule validation.
    slot_id: str = Field(min_length=1, max_length=64)
    label: str = Field(min_length=1, max_length=255)
    start_time: str
    end_time: str
    max_seats: int
    max_standing: int
    allow_standing_only: bool = False
    version: int = Field(default=1, ge=1)

    def to_domain(self) -> TimeSlot:
        return TimeSlot(
            id=self.slot_id,
            label=self.label,
            start_time=self.start_time,
            end_time=self.end_time,
            max_seats=self.max_seats,
            max_standing=self.max_standing,
            allow_standing_only=self.allow_standing_only,
            version=self.version,
        )


class ScheduleUpdate(BaseModel):
    slots: List[TimeSlotWrite]


class CapacityUpdate(BaseModel):
    max_seats: Optional[int] = None
    max_standing: Optional[int] = None
    version: int = Field(ge=1)


class AvailabilityRead(BaseModel):
    available_seats: int
    available_standing: int
    total_available: int
    occupied_seats: int
    occupied_standing: int
    total_occupied: int

    @classmethod
    def from_domain(cls, availability: Availability) -> "AvailabilityRead":
        return cls(
            available_seats=availability.available_seats,
            available_standing=availability.available_standing,
            total_available=availability.total_available,
            occupied_seats=availability.occupied_seats,
            occupied_standing=availability.occupied_standing,
            total_occupied=availability.total_occupied,
        )


class SlotAvailability(BaseModel):
    slot: TimeSlotRead
    availability: AvailabilityRead
    is_expired: bool


class ReservationCreate(BaseModel):
    slot_id: str = Field(min_length=1, max_length=64)
    pass_type: PassType


class ReservationRead(BaseModel):
    reservation_id: int
    user_id: str
    slot_id: str
    pass_type: PassType
    status: ReservationStatus
    created_at: datetime

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "ReservationRead":
        return cls(
            reservation_id=reservation.id,
            user_id=reservation.user_id,
            slot_id=reservation.slot_id,
            pass_type=reservation.pass_type,
            status=reservation.status,
            created_at=reservation.created_at,
        )


class RedistributionEventRead(BaseModel):
    from_slot_id: str
    to_slot_id: str
    seats_transferred: int
    timestamp: datetime
    reason: str

    @classmethod
    def from_domain(cls, event: RedistributionEvent) -> "RedistributionEventRead":
        return cls(
            from_slot_id=event.from_slot_id,
            to_slot_id=event.to_slot_id,
            seats_transferred=event.seats_transferred,
            timestamp=event.timestamp,
            reason=event.reason,
        )


class TransferFailureRead(BaseModel):
    from_slot_id: str
    to_slot_id: str
    seats: int
    error: str


class RedistributionRunRead(BaseModel):
    checked_at: datetime
    events: List[RedistributionEventRead]
    failures: List[TransferFailureRead]
    deferred: List[str]


class RedistributionLogRead(BaseModel):
    total_transfers: int
    total_seats_transferred: int
    last_transfer: Optional[RedistributionEventRead]
    last_check_time: Optional[datetime]
    events: List[RedistributionEventRead]

    @classmethod
    def from_domain(
        cls, *, summary: RedistributionSummary, events: List[RedistributionEvent]
    ) -> "RedistributionLogRead":
        return cls(
            total_transfers=summary.total_transfers,
            total_seats_transferred=summary.total_seats_transferred,
            last_transfer=(
                RedistributionEventRead.from_domain(summary.last_transfer) if summary.last_transfer else None
            ),
            last_check_time=summary.last_check_time,
            events=[RedistributionEventRead.from_domain(e) for e in events],
        )


class RecommendationRead(BaseModel):
    slot_id: str
    current_capacity: int
    recommended_capacity: int
    improvement_percent: float
    action: ReallocationAction
    version: int

    @classmethod
    def from_domain(cls, result: RedistributionResult) -> "RecommendationRead":
        return cls(
            slot_id=result.slot_id,
            current_capacity=result.current_capacity,
            recommended_capacity=result.recommended_capacity,
            improvement_percent=result.improvement_percent,
            action=result.action,
            version=result.version,
        )


class CapacityChoiceWrite(BaseModel):
    slot_id: str
    capacity: int = Field(ge=0)
    version: int = Field(ge=1)


class ApplyRecommendations(BaseModel):
    confirm: bool = False
    items: List[CapacityChoiceWrite]


class SlotMetricsRead(BaseModel):
    slot_id: str
    label: str
    start_time: str
    end_time: str
    total_capacity: int
    availability: AvailabilityRead
    occupancy_percentage: float
    is_overbooked: bool
    status: OccupancyStatus

    @classmethod
    def from_domain(cls, metrics: SlotMetrics) -> "SlotMetricsRead":
        return cls(
            slot_id=metrics.slot_id,
            label=metrics.label,
            start_time=metrics.start_time,
            end_time=metrics.end_time,
            total_capacity=metrics.total_capacity,
            availability=AvailabilityRead.from_domain(metrics.availability),
            occupancy_percentage=metrics.occupancy_percentage,
            is_overbooked=metrics.is_overbooked,
            status=metrics.status,
        )


class DashboardMetricsRead(BaseModel):
    total_capacity: int
    total_reservations: int
    total_seated: int
    total_standing: int
    total_available: int
    overall_occupancy: float
    is_system_overbooked: bool
    last_updated: Optional[datetime]
    slots: List[SlotMetricsRead]

    @classmethod
    def from_domain(cls, metrics: DashboardMetrics) -> "DashboardMetricsRead":
        return cls(
            total_capacity=metrics.total_capacity,
            total_reservations=metrics.total_reservations,
            total_seated=metrics.total_seated,
            total_standing=metrics.total_standing,
            total_available=metrics.total_available,
            overall_occupancy=metrics.overall_occupancy,
            is_system_overbooked=metrics.is_system_overbooked,
            last_updated=metrics.last_updated,
            slots=[SlotMetricsRead.from_domain(m) for m in metrics.slots],
        )
