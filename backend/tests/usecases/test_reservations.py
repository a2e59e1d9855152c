import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List

import pytest
from mobility.domain.entities import OccupancyCount, TimeSlot
from mobility.domain.errors import CapacityExceededError, DuplicateReservationError, SlotNotFoundError
from mobility.models import PassType, Reservation, ReservationStatus
from mobility.usecases import reservations as uc


class FakeStore:
    """Shared reservation table with a per-slot row lock held until the transaction ends."""

    def __init__(self, slot: TimeSlot) -> None:
        self.slot = slot
        self.reservations: List[Reservation] = []
        self.row_lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
        finally:
            if self.row_lock.locked():
                self.row_lock.release()


class FakeScheduleRepo:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get_for_update(self, slot_id: str) -> TimeSlot | None:
        if slot_id != self.store.slot.id:
            return None
        await self.store.row_lock.acquire()
        return self.store.slot


class FakeResRepo:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def occupancy_for_slot(self, slot_id: str) -> OccupancyCount:
        await asyncio.sleep(0)  # let a competing request run
        rows = [r for r in self.store.reservations if r.slot_id == slot_id]
        seats = sum(1 for r in rows if r.pass_type == PassType.SEAT)
        return OccupancyCount(slot_id, len(rows), seats, len(rows) - seats)

    async def user_has_reservation(self, slot_id: str, user_id: str) -> bool:
        return any(r.slot_id == slot_id and r.user_id == user_id for r in self.store.reservations)

    async def create(
        self,
        *,
        slot_id: str,
        user_id: str,
        pass_type: PassType,
        status: ReservationStatus,
    ) -> Reservation:
        await asyncio.sleep(0)
        reservation = Reservation(
            id=len(self.store.reservations) + 1,
            slot_id=slot_id,
            user_id=user_id,
            pass_type=pass_type,
            status=status,
            created_at=datetime.now(timezone.utc).replace(tzinfo=None),
        )
        self.store.reservations.append(reservation)
        return reservation

    async def list_by_user(self, user_id: str) -> List[Reservation]:
        return [r for r in self.store.reservations if r.user_id == user_id]


async def _book(store: FakeStore, user_id: str, pass_type: PassType = PassType.SEAT) -> Reservation:
    async with store.transaction():
        return await uc.create_reservation(
            FakeScheduleRepo(store),
            FakeResRepo(store),
            slot_id=store.slot.id,
            user_id=user_id,
            pass_type=pass_type,
        )


def _slot(seats: int = 15, standing: int = 0, standing_only: bool = False) -> TimeSlot:
    return TimeSlot("slot-0420", "4:20", "04:20", "04:35", seats, standing, standing_only)


@pytest.mark.asyncio
async def test_create_reservation_is_validated() -> None:
    store = FakeStore(_slot())
    reservation = await _book(store, "user-1")
    assert reservation.status == ReservationStatus.VALIDATED
    assert reservation.pass_type == PassType.SEAT
    assert store.reservations == [reservation]


@pytest.mark.asyncio
async def test_create_reservation_rejects_unknown_slot() -> None:
    store = FakeStore(_slot())
    with pytest.raises(SlotNotFoundError):
        await uc.create_reservation(
            FakeScheduleRepo(store),
            FakeResRepo(store),
            slot_id="nope",
            user_id="user-1",
            pass_type=PassType.SEAT,
        )


@pytest.mark.asyncio
async def test_create_reservation_rejects_duplicate() -> None:
    store = FakeStore(_slot())
    await _book(store, "user-1")
    with pytest.raises(DuplicateReservationError):
        await _book(store, "user-1")


@pytest.mark.asyncio
async def test_standing_pass_uses_standing_room() -> None:
    store = FakeStore(_slot(seats=0, standing=1, standing_only=True))
    await _book(store, "user-1", PassType.STANDING)
    with pytest.raises(CapacityExceededError):
        await _book(store, "user-2", PassType.STANDING)
    with pytest.raises(CapacityExceededError):
        await _book(store, "user-3", PassType.SEAT)


@pytest.mark.asyncio
async def test_concurrent_requests_for_last_seat_admit_only_one() -> None:
    store = FakeStore(_slot(seats=1))

    results = await asyncio.gather(
        _book(store, "user-1"),
        _book(store, "user-2"),
        return_exceptions=True,
    )

    admitted = [r for r in results if isinstance(r, Reservation)]
    rejected = [r for r in results if isinstance(r, CapacityExceededError)]
    assert len(admitted) == 1
    assert len(rejected) == 1
    assert len(store.reservations) == 1


@pytest.mark.asyncio
async def test_list_user_reservations_filters_by_user() -> None:
    store = FakeStore(_slot())
    await _book(store, "user-1")
    await _book(store, "user-2")
    rows = await uc.list_user_reservations(FakeResRepo(store), user_id="user-2")
    assert [r.user_id for r in rows] == ["user-2"]
