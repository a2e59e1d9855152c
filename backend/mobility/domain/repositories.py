from __future__ import annotations

from typing import Protocol, Sequence

from ..models import PassType, Reservation, ReservationStatus
from .entities import CapacityWrite, OccupancyCount, TimeSlot


class ScheduleRepository(Protocol):
    async def list_slots(self) -> list[TimeSlot]: ...

    async def get_for_update(self, slot_id: str) -> TimeSlot | None: ...

    async def replace_all(self, slots: Sequence[TimeSlot]) -> list[TimeSlot]: ...

    async def update_capacity(self, write: CapacityWrite) -> TimeSlot: ...


class ReservationRepository(Protocol):
    async def occupancy_counts(self) -> list[OccupancyCount]: ...

    async def occupancy_for_slot(self, slot_id: str) -> OccupancyCount: ...

    async def user_has_reservation(self, slot_id: str, user_id: str) -> bool: ...

    async def create(
        self,
        *,
        slot_id: str,
        user_id: str,
        pass_type: PassType,
        status: ReservationStatus,
    ) -> Reservation: ...

    async def list_by_user(self, user_id: str) -> list[Reservation]: ...
