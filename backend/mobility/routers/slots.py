from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_user, get_session
from ..domain.errors import DomainError
from ..infrastructure.repositories import SqlAlchemyReservationRepository, SqlAlchemyScheduleRepository
from ..schemas import AvailabilityRead, SlotAvailability, TimeSlotRead
from ..usecases import slots as slot_usecase
from ..utils.time import civil_now
from .errors import http_error

router = APIRouter(prefix="/slots", tags=["slots"], dependencies=[Depends(get_current_user)])


@router.get("/availability", response_model=List[SlotAvailability])
async def list_availability(session: AsyncSession = Depends(get_session)) -> list[SlotAvailability]:
    schedule_repo = SqlAlchemyScheduleRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        rows = await slot_usecase.list_availability(schedule_repo, res_repo, now=civil_now())
    except DomainError as exc:
        raise http_error(exc) from exc
    return [
        SlotAvailability(
            slot=TimeSlotRead.from_domain(entry["slot"]),
            availability=AvailabilityRead.from_domain(entry["availability"]),
            is_expired=entry["expired"],
        )
        for entry in rows
    ]
