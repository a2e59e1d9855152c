from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import AbstractSet, Sequence

from ..domain.allocation import (
    CapacityChoice,
    plan_capacity_reset,
    plan_expiry_redistribution,
    plan_reallocation_writes,
)
from ..domain.allocation import recommend_capacities as compute_recommendations
from ..domain.entities import RedistributionEvent, RedistributionResult, TimeSlot
from ..domain.errors import PersistenceError, SlotNotFoundError
from ..domain.ledger import RedistributionLedger
from ..domain.repositories import ReservationRepository, ScheduleRepository
from ..utils.audit_log import AuditInitiator, emit_audit_log
from .schedule import load_schedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferFailure:
    from_slot_id: str
    to_slot_id: str
    seats: int
    error: str


@dataclass
class RedistributionRun:
    checked_at: datetime
    events: list[RedistributionEvent] = field(default_factory=list)
    failures: list[TransferFailure] = field(default_factory=list)
    deferred: list[str] = field(default_factory=list)


async def run_expiry_redistribution(
    schedule_repo: ScheduleRepository,
    res_repo: ReservationRepository,
    *,
    now: datetime,
    processed: AbstractSet[str] = frozenset(),
) -> RedistributionRun:
    """
    One expiry redistribution pass over the stored schedule.

    Each transfer is written on its own; a failed write is logged and the pass
    moves on. A transfer whose source was due to receive seats from a failed
    one is deferred to the next pass instead of donating seats that never
    arrived. Nothing is recorded in the ledger here: call
    ``record_redistribution`` once the writes are committed.
    """
    slots = await schedule_repo.list_slots()
    counts = await res_repo.occupancy_counts()
    plan = plan_expiry_redistribution(slots, counts, now=now, processed=processed)

    run = RedistributionRun(checked_at=now)
    blocked: set[str] = set()
    for transfer in plan:
        if transfer.from_slot_id in blocked:
            logger.info(
                "deferring transfer %s -> %s until its inflow succeeds",
                transfer.from_slot_id,
                transfer.to_slot_id,
            )
            blocked.add(transfer.to_slot_id)
            run.deferred.append(transfer.from_slot_id)
            continue
        try:
            await schedule_repo.update_capacity(transfer.write)
        except (PersistenceError, SlotNotFoundError) as exc:
            logger.warning(
                "transfer of %d seats %s -> %s failed: %s",
                transfer.seats,
                transfer.from_slot_id,
                transfer.to_slot_id,
                exc,
            )
            blocked.add(transfer.to_slot_id)
            run.failures.append(
                TransferFailure(
                    from_slot_id=transfer.from_slot_id,
                    to_slot_id=transfer.to_slot_id,
                    seats=transfer.seats,
                    error=str(exc),
                )
            )
            continue
        run.events.append(
            RedistributionEvent(
                from_slot_id=transfer.from_slot_id,
                to_slot_id=transfer.to_slot_id,
                seats_transferred=transfer.seats,
                timestamp=now,
                reason=transfer.reason,
            )
        )
        logger.info(
            "redistributed %d seats %s -> %s",
            transfer.seats,
            transfer.from_slot_id,
            transfer.to_slot_id,
        )
    return run


def record_redistribution(
    ledger: RedistributionLedger,
    run: RedistributionRun,
    *,
    initiator: AuditInitiator,
) -> None:
    service_date = run.checked_at.date()
    for event in run.events:
        ledger.record(event)
        ledger.mark_processed(service_date, event.from_slot_id)
        emit_audit_log(
            action="capacity.redistributed",
            initiator=initiator,
            slot_id=event.to_slot_id,
            message=event.reason,
            extra={"slot_id_from": event.from_slot_id, "seats_transferred": event.seats_transferred},
        )
    ledger.touch(run.checked_at)


async def reset_capacities(
    schedule_repo: ScheduleRepository,
    *,
    baseline: int,
) -> list[TimeSlot]:
    """Put every seated slot back to the baseline; standing-only slots are untouched."""
    slots = await schedule_repo.list_slots()
    for write in plan_capacity_reset(slots, baseline=baseline):
        await schedule_repo.update_capacity(write)
    return await schedule_repo.list_slots()


def record_reset(ledger: RedistributionLedger, *, baseline: int, initiator: AuditInitiator) -> None:
    ledger.clear()
    emit_audit_log(action="capacity.reset", initiator=initiator, capacity_to=baseline)


async def recommend_capacities(
    schedule_repo: ScheduleRepository,
    res_repo: ReservationRepository,
    *,
    total_capacity: int,
    floor: int,
    ceiling: int,
) -> list[RedistributionResult]:
    slots = await load_schedule(schedule_repo)
    counts = await res_repo.occupancy_counts()
    return compute_recommendations(
        slots,
        counts,
        total_capacity=total_capacity,
        floor=floor,
        ceiling=ceiling,
    )


async def apply_capacities(
    schedule_repo: ScheduleRepository,
    *,
    choices: Sequence[CapacityChoice],
    initiator: AuditInitiator,
) -> list[TimeSlot]:
    """Overwrite slot capacities with admin-confirmed recommendations."""
    slots = await schedule_repo.list_slots()
    writes = plan_reallocation_writes(slots, choices)
    previous = {s.id: s for s in slots}
    for write in writes:
        updated = await schedule_repo.update_capacity(write)
        emit_audit_log(
            action="capacity.reallocated",
            initiator=initiator,
            slot_id=updated.id,
            capacity_from=previous[updated.id].total_capacity,
            capacity_to=updated.total_capacity,
            version=updated.version,
        )
    return await schedule_repo.list_slots()
