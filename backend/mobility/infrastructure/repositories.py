from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from sqlalchemy import Select, case, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.entities import CapacityWrite, OccupancyCount, TimeSlot
from ..domain.errors import DuplicateReservationError, PersistenceError, SlotNotFoundError, VersionConflictError
from ..domain.repositories import ReservationRepository, ScheduleRepository
from ..models import PassType, Reservation, ReservationStatus, ScheduleSlot
from ..utils.time import utc_now_naive


def to_time_slot(row: ScheduleSlot) -> TimeSlot:
    return TimeSlot(
        id=row.slot_id,
        label=row.label,
        start_time=row.start_time,
        end_time=row.end_time,
        max_seats=row.max_seats,
        max_standing=row.max_standing,
        allow_standing_only=row.allow_standing_only,
        version=row.version,
    )


class SqlAlchemyScheduleRepository(ScheduleRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_slots(self) -> list[TimeSlot]:
        try:
            rows = await self.session.scalars(
                select(ScheduleSlot).order_by(ScheduleSlot.position, ScheduleSlot.slot_id)
            )
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to read schedule configuration") from exc
        return [to_time_slot(row) for row in rows]

    async def get_for_update(self, slot_id: str) -> TimeSlot | None:
        result = await self.session.scalar(
            select(ScheduleSlot).where(ScheduleSlot.slot_id == slot_id).with_for_update()
        )
        return to_time_slot(result) if isinstance(result, ScheduleSlot) else None

    async def replace_all(self, slots: Sequence[TimeSlot]) -> list[TimeSlot]:
        """Overwrite the whole schedule. Existing rows must still be at the version the edit started from."""
        now = utc_now_naive()
        try:
            existing = {
                row.slot_id: row
                for row in await self.session.scalars(select(ScheduleSlot).with_for_update())
            }
            for position, slot in enumerate(slots):
                row = existing.pop(slot.id, None)
                if row is None:
                    self.session.add(
                        ScheduleSlot(
                            slot_id=slot.id,
                            position=position,
                            label=slot.label,
                            start_time=slot.start_time,
                            end_time=slot.end_time,
                            max_seats=slot.max_seats,
                            max_standing=slot.max_standing,
                            allow_standing_only=slot.allow_standing_only,
                            version=1,
                            updated_at=now,
                        )
                    )
                    continue
                if row.version != slot.version:
                    raise VersionConflictError(f"slot {slot.id} was modified concurrently")
                row.position = position
                row.label = slot.label
                row.start_time = slot.start_time
                row.end_time = slot.end_time
                row.max_seats = slot.max_seats
                row.max_standing = slot.max_standing
                row.allow_standing_only = slot.allow_standing_only
                row.version += 1
                row.updated_at = now
            if existing:
                await self.session.execute(
                    delete(ScheduleSlot).where(ScheduleSlot.slot_id.in_(list(existing)))
                )
            await self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to write schedule configuration") from exc
        return await self.list_slots()

    async def update_capacity(self, write: CapacityWrite) -> TimeSlot:
        """Conditional single-slot write; a savepoint keeps a failure from poisoning the transaction."""
        values: dict[str, Any] = {"version": ScheduleSlot.version + 1, "updated_at": utc_now_naive()}
        if write.max_seats is not None:
            values["max_seats"] = write.max_seats
        if write.max_standing is not None:
            values["max_standing"] = write.max_standing
        stmt = (
            update(ScheduleSlot)
            .where(ScheduleSlot.slot_id == write.slot_id, ScheduleSlot.version == write.expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self.session.begin_nested():
                result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to update capacity of {write.slot_id}") from exc

        if result.rowcount == 0:
            current = await self.session.scalar(
                select(ScheduleSlot.version).where(ScheduleSlot.slot_id == write.slot_id)
            )
            if current is None:
                raise SlotNotFoundError(f"slot {write.slot_id} not found")
            raise VersionConflictError(
                f"slot {write.slot_id} is at version {current}, expected {write.expected_version}"
            )

        row = await self.session.scalar(
            select(ScheduleSlot)
            .where(ScheduleSlot.slot_id == write.slot_id)
            .execution_options(populate_existing=True)
        )
        if row is None:  # pragma: no cover - deleted between statements
            raise SlotNotFoundError(f"slot {write.slot_id} not found")
        return to_time_slot(row)


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _counts_stmt(self) -> Select[Tuple[str, Any, Any, Any]]:
        return select(
            Reservation.slot_id,
            func.count(Reservation.id).label("total"),
            func.coalesce(func.sum(case((Reservation.pass_type == PassType.SEAT, 1), else_=0)), 0).label("seats"),
            func.coalesce(func.sum(case((Reservation.pass_type == PassType.STANDING, 1), else_=0)), 0).label(
                "standing"
            ),
        ).group_by(Reservation.slot_id)

    async def occupancy_counts(self) -> List[OccupancyCount]:
        try:
            rows = await self.session.execute(self._counts_stmt())
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to read reservation counts") from exc
        return [
            OccupancyCount(
                slot_id=slot_id,
                total_reservations=int(total),
                occupied_seats=int(seats),
                occupied_standing=int(standing),
            )
            for slot_id, total, seats, standing in rows.all()
        ]

    async def occupancy_for_slot(self, slot_id: str) -> OccupancyCount:
        row = (await self.session.execute(self._counts_stmt().where(Reservation.slot_id == slot_id))).first()
        if row is None:
            return OccupancyCount(slot_id=slot_id)
        _, total, seats, standing = row
        return OccupancyCount(
            slot_id=slot_id,
            total_reservations=int(total),
            occupied_seats=int(seats),
            occupied_standing=int(standing),
        )

    async def user_has_reservation(self, slot_id: str, user_id: str) -> bool:
        stmt = select(Reservation.id).where(
            Reservation.slot_id == slot_id,
            Reservation.user_id == user_id,
        )
        return await self.session.scalar(stmt) is not None

    async def create(
        self,
        *,
        slot_id: str,
        user_id: str,
        pass_type: PassType,
        status: ReservationStatus,
    ) -> Reservation:
        reservation = Reservation(
            slot_id=slot_id,
            user_id=user_id,
            pass_type=pass_type,
            status=status,
            created_at=utc_now_naive(),
        )
        self.session.add(reservation)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise DuplicateReservationError(f"user {user_id} already holds a reservation for {slot_id}") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to store reservation") from exc
        return reservation

    async def list_by_user(self, user_id: str) -> List[Reservation]:
        stmt = (
            select(Reservation)
            .where(Reservation.user_id == user_id)
            .order_by(Reservation.created_at.desc())
        )
        rows = await self.session.scalars(stmt)
        return list(rows)
