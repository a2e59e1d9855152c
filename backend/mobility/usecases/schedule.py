import logging
from typing import Sequence

from ..domain.allocation import DEFAULT_SLOTS
from ..domain.entities import CapacityWrite, TimeSlot
from ..domain.errors import SlotNotFoundError, ValidationError
from ..domain.repositories import ScheduleRepository
from ..domain.validation import validate_schedule

logger = logging.getLogger(__name__)


async def load_schedule(schedule_repo: ScheduleRepository, *, fallback: bool = True) -> list[TimeSlot]:
    """Current slot definitions; the default catalog stands in for an unconfigured store."""
    slots = await schedule_repo.list_slots()
    if not slots and fallback:
        logger.warning("schedule configuration is empty, serving default slots")
        return list(DEFAULT_SLOTS)
    return slots


async def update_schedule(
    schedule_repo: ScheduleRepository,
    *,
    slots: Sequence[TimeSlot],
    seat_total: int,
    standing_total: int,
) -> list[TimeSlot]:
    validate_schedule(slots, seat_total=seat_total, standing_total=standing_total)
    return await schedule_repo.replace_all(slots)


async def seed_default_schedule(schedule_repo: ScheduleRepository) -> list[TimeSlot]:
    existing = await schedule_repo.list_slots()
    if existing:
        return existing
    return await schedule_repo.replace_all(DEFAULT_SLOTS)


async def update_slot_capacity(
    schedule_repo: ScheduleRepository,
    *,
    slot_id: str,
    max_seats: int | None,
    max_standing: int | None,
    expected_version: int,
) -> TimeSlot:
    if max_seats is None and max_standing is None:
        raise ValidationError("nothing to update", slot_id=slot_id, rule="capacity_required")
    if (max_seats is not None and max_seats < 0) or (max_standing is not None and max_standing < 0):
        raise ValidationError("capacity must not be negative", slot_id=slot_id, rule="non_negative")

    slot = await schedule_repo.get_for_update(slot_id)
    if slot is None:
        raise SlotNotFoundError(f"slot {slot_id} not found")
    if slot.allow_standing_only and max_seats:
        raise ValidationError(
            f"the standing-only slot cannot offer seats ({slot.label})",
            slot_id=slot_id,
            rule="standing_no_seats",
        )
    if not slot.allow_standing_only and max_standing:
        raise ValidationError(
            f"seated slots cannot offer standing room ({slot.label})",
            slot_id=slot_id,
            rule="seated_no_standing",
        )
    return await schedule_repo.update_capacity(
        CapacityWrite(
            slot_id=slot_id,
            expected_version=expected_version,
            max_seats=max_seats,
            max_standing=max_standing,
        )
    )
