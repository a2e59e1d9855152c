from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_user, get_session
from ..domain.errors import DomainError
from ..infrastructure.repositories import SqlAlchemyReservationRepository, SqlAlchemyScheduleRepository
from ..schemas import ReservationCreate, ReservationRead
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import emit_audit_log
from ..utils.auth import TokenClaims
from .errors import http_error

router = APIRouter(prefix="", tags=["reservations"], dependencies=[Depends(get_current_user)])


@router.post("/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_session),
    user: TokenClaims = Depends(get_current_user),
) -> ReservationRead:
    schedule_repo = SqlAlchemyScheduleRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        async with session.begin():
            reservation = await reservation_usecase.create_reservation(
                schedule_repo,
                res_repo,
                slot_id=payload.slot_id,
                user_id=user.user_id,
                pass_type=payload.pass_type,
            )
    except DomainError as exc:
        raise http_error(exc) from exc

    try:
        emit_audit_log(
            action="reservation.created",
            initiator="user",
            slot_id=reservation.slot_id,
            user_id=reservation.user_id,
            pass_type=reservation.pass_type,
            extra={"reservation_id": reservation.id},
        )
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc
    return ReservationRead.from_db(reservation=reservation)


@router.get("/me/reservations", response_model=List[ReservationRead])
async def list_my_reservations(
    session: AsyncSession = Depends(get_session),
    user: TokenClaims = Depends(get_current_user),
) -> list[ReservationRead]:
    res_repo = SqlAlchemyReservationRepository(session)
    rows = await reservation_usecase.list_user_reservations(res_repo, user_id=user.user_id)
    return [ReservationRead.from_db(reservation=res) for res in rows]
