from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..deps import get_current_user, get_session, require_admin
from ..domain.errors import DomainError
from ..infrastructure.repositories import SqlAlchemyScheduleRepository
from ..schemas import CapacityUpdate, ScheduleUpdate, TimeSlotRead
from ..usecases import schedule as schedule_usecase
from ..utils.audit_log import emit_audit_log
from ..utils.auth import TokenClaims
from .errors import http_error

router = APIRouter(prefix="/schedule", tags=["schedule"], dependencies=[Depends(get_current_user)])
admin_router = APIRouter(prefix="/admin/schedule", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[TimeSlotRead])
async def get_schedule(session: AsyncSession = Depends(get_session)) -> list[TimeSlotRead]:
    schedule_repo = SqlAlchemyScheduleRepository(session)
    try:
        slots = await schedule_usecase.load_schedule(schedule_repo)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TimeSlotRead.from_domain(slot) for slot in slots]


@admin_router.put("", response_model=List[TimeSlotRead])
async def update_schedule(
    payload: ScheduleUpdate,
    session: AsyncSession = Depends(get_session),
    admin: TokenClaims = Depends(require_admin),
) -> list[TimeSlotRead]:
    settings = get_settings()
    schedule_repo = SqlAlchemyScheduleRepository(session)
    try:
        async with session.begin():
            slots = await schedule_usecase.update_schedule(
                schedule_repo,
                slots=[slot.to_domain() for slot in payload.slots],
                seat_total=settings.fleet_seat_total,
                standing_total=settings.fleet_standing_total,
            )
    except DomainError as exc:
        raise http_error(exc) from exc

    try:
        emit_audit_log(
            action="schedule.updated",
            initiator="admin",
            user_id=admin.user_id,
            extra={"slot_ids": [slot.id for slot in slots]},
        )
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc
    return [TimeSlotRead.from_domain(slot) for slot in slots]


@admin_router.post("/seed", response_model=List[TimeSlotRead])
async def seed_schedule(session: AsyncSession = Depends(get_session)) -> list[TimeSlotRead]:
    schedule_repo = SqlAlchemyScheduleRepository(session)
    try:
        async with session.begin():
            slots = await schedule_usecase.seed_default_schedule(schedule_repo)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TimeSlotRead.from_domain(slot) for slot in slots]


@admin_router.patch("/{slot_id}/capacity", response_model=TimeSlotRead)
async def update_slot_capacity(
    payload: CapacityUpdate,
    slot_id: str = Path(..., min_length=1, max_length=64),
    session: AsyncSession = Depends(get_session),
    admin: TokenClaims = Depends(require_admin),
) -> TimeSlotRead:
    schedule_repo = SqlAlchemyScheduleRepository(session)
    try:
        async with session.begin():
            slot = await schedule_usecase.update_slot_capacity(
                schedule_repo,
                slot_id=slot_id,
                max_seats=payload.max_seats,
                max_standing=payload.max_standing,
                expected_version=payload.version,
            )
    except DomainError as exc:
        raise http_error(exc) from exc

    try:
        emit_audit_log(
            action="capacity.updated",
            initiator="admin",
            slot_id=slot.id,
            user_id=admin.user_id,
            capacity_to=slot.total_capacity,
            version=slot.version,
        )
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc
    return TimeSlotRead.from_domain(slot)
