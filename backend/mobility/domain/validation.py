from __future__ import annotations

from typing import Sequence

from ..utils.time import hhmm_to_minutes, is_hhmm
from .entities import TimeSlot
from .errors import ValidationError


def validate_schedule(
    slots: Sequence[TimeSlot],
    *,
    seat_total: int,
    standing_total: int,
) -> None:
    """
    Validate an edited schedule as a whole before it is persisted.

    The last slot is the standing-only one; every other slot is seated. Seats
    across seated slots and standing room of the standing-only slot must each
    add up to the fleet totals. Raises ValidationError on the first violation.
    """
    if not slots:
        raise ValidationError("schedule must contain at least one slot", rule="non_empty")

    seen: set[str] = set()
    for slot in slots:
        if not slot.id:
            raise ValidationError("slot id must not be empty", rule="slot_id")
        if slot.id in seen:
            raise ValidationError(f"duplicate slot id {slot.id}", slot_id=slot.id, rule="unique_id")
        seen.add(slot.id)
        _validate_times(slot)
        if slot.max_seats < 0 or slot.max_standing < 0:
            raise ValidationError(
                f"capacities must not be negative ({slot.label})",
                slot_id=slot.id,
                rule="non_negative",
            )

    *seated, standing = slots
    total_seats = 0
    for slot in seated:
        if slot.allow_standing_only:
            raise ValidationError(
                f"only the last slot may be standing-only ({slot.label})",
                slot_id=slot.id,
                rule="standing_only_position",
            )
        if slot.max_standing > 0:
            raise ValidationError(
                f"seated slots cannot offer standing room ({slot.label})",
                slot_id=slot.id,
                rule="seated_no_standing",
            )
        if slot.max_seats <= 0:
            raise ValidationError(
                f"seated slots must offer seats ({slot.label})",
                slot_id=slot.id,
                rule="seated_has_seats",
            )
        total_seats += slot.max_seats

    if not standing.allow_standing_only:
        raise ValidationError(
            f"the last slot must be standing-only ({standing.label})",
            slot_id=standing.id,
            rule="standing_only_last",
        )
    if standing.max_seats > 0:
        raise ValidationError(
            f"the standing-only slot cannot offer seats ({standing.label})",
            slot_id=standing.id,
            rule="standing_no_seats",
        )
    if standing.max_standing <= 0:
        raise ValidationError(
            f"the standing-only slot must offer standing room ({standing.label})",
            slot_id=standing.id,
            rule="standing_has_room",
        )

    if total_seats != seat_total:
        raise ValidationError(
            f"seats across seated slots must total {seat_total}, got {total_seats}",
            rule="seat_total",
        )
    if standing.max_standing != standing_total:
        raise ValidationError(
            f"standing room must total {standing_total}, got {standing.max_standing}",
            slot_id=standing.id,
            rule="standing_total",
        )


def _validate_times(slot: TimeSlot) -> None:
    for field_name, value in (("start", slot.start_time), ("end", slot.end_time)):
        if not is_hhmm(value):
            raise ValidationError(
                f"invalid {field_name} time {value!r} in {slot.label}",
                slot_id=slot.id,
                rule="time_format",
            )
    if hhmm_to_minutes(slot.start_time) >= hhmm_to_minutes(slot.end_time):
        raise ValidationError(
            f"start time must be before end time in {slot.label}",
            slot_id=slot.id,
            rule="time_order",
        )
