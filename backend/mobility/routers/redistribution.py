from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..deps import get_ledger, get_session, require_admin
from ..domain.allocation import CapacityChoice
from ..domain.errors import DomainError
from ..domain.ledger import RedistributionLedger
from ..infrastructure.repositories import SqlAlchemyReservationRepository, SqlAlchemyScheduleRepository
from ..schemas import (
    ApplyRecommendations,
    RecommendationRead,
    RedistributionEventRead,
    RedistributionLogRead,
    RedistributionRunRead,
    TimeSlotRead,
    TransferFailureRead,
)
from ..usecases import redistribution as redistribution_usecase
from ..utils.time import civil_now
from .errors import http_error

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/redistribution/run", response_model=RedistributionRunRead)
async def run_redistribution(
    session: AsyncSession = Depends(get_session),
    ledger: RedistributionLedger = Depends(get_ledger),
) -> RedistributionRunRead:
    schedule_repo = SqlAlchemyScheduleRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    async with ledger.lock:
        now = civil_now()
        try:
            async with session.begin():
                run = await redistribution_usecase.run_expiry_redistribution(
                    schedule_repo,
                    res_repo,
                    now=now,
                    processed=ledger.processed_for(now.date()),
                )
        except DomainError as exc:
            raise http_error(exc) from exc
        redistribution_usecase.record_redistribution(ledger, run, initiator="admin")

    return RedistributionRunRead(
        checked_at=run.checked_at,
        events=[RedistributionEventRead.from_domain(e) for e in run.events],
        failures=[
            TransferFailureRead(
                from_slot_id=f.from_slot_id,
                to_slot_id=f.to_slot_id,
                seats=f.seats,
                error=f.error,
            )
            for f in run.failures
        ],
        deferred=run.deferred,
    )


@router.get("/redistribution/events", response_model=RedistributionLogRead)
async def list_redistribution_events(
    ledger: RedistributionLedger = Depends(get_ledger),
) -> RedistributionLogRead:
    return RedistributionLogRead.from_domain(summary=ledger.summary(), events=ledger.events)


@router.post("/redistribution/reset", response_model=List[TimeSlotRead])
async def reset_redistribution(
    session: AsyncSession = Depends(get_session),
    ledger: RedistributionLedger = Depends(get_ledger),
) -> list[TimeSlotRead]:
    baseline = get_settings().baseline_seats
    schedule_repo = SqlAlchemyScheduleRepository(session)
    async with ledger.lock:
        try:
            async with session.begin():
                slots = await redistribution_usecase.reset_capacities(schedule_repo, baseline=baseline)
        except DomainError as exc:
            raise http_error(exc) from exc
        redistribution_usecase.record_reset(ledger, baseline=baseline, initiator="admin")
    return [TimeSlotRead.from_domain(slot) for slot in slots]


@router.get("/capacity/recommendations", response_model=List[RecommendationRead])
async def get_recommendations(session: AsyncSession = Depends(get_session)) -> list[RecommendationRead]:
    settings = get_settings()
    try:
        results = await redistribution_usecase.recommend_capacities(
            SqlAlchemyScheduleRepository(session),
            SqlAlchemyReservationRepository(session),
            total_capacity=settings.reallocation_total_capacity,
            floor=settings.reallocation_floor,
            ceiling=settings.reallocation_ceiling,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return [RecommendationRead.from_domain(r) for r in results]


@router.post("/capacity/recommendations/apply", response_model=List[TimeSlotRead])
async def apply_recommendations(
    payload: ApplyRecommendations,
    session: AsyncSession = Depends(get_session),
) -> list[TimeSlotRead]:
    if not payload.confirm:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="confirmation required")
    schedule_repo = SqlAlchemyScheduleRepository(session)
    try:
        async with session.begin():
            slots = await redistribution_usecase.apply_capacities(
                schedule_repo,
                choices=[
                    CapacityChoice(slot_id=item.slot_id, capacity=item.capacity, version=item.version)
                    for item in payload.items
                ],
                initiator="admin",
            )
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TimeSlotRead.from_domain(slot) for slot in slots]
