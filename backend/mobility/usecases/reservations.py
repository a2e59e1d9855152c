from ..domain.errors import SlotNotFoundError
from ..domain.repositories import ReservationRepository, ScheduleRepository
from ..domain.services import AdmissionSnapshot, check_admission
from ..models import PassType, Reservation, ReservationStatus


async def create_reservation(
    schedule_repo: ScheduleRepository,
    res_repo: ReservationRepository,
    *,
    slot_id: str,
    user_id: str,
    pass_type: PassType,
) -> Reservation:
    # The slot row lock serializes concurrent admissions for the same slot, so
    # the count read below cannot go stale before the insert.
    slot = await schedule_repo.get_for_update(slot_id)
    if slot is None:
        raise SlotNotFoundError("slot not found")

    snapshot = AdmissionSnapshot(
        slot=slot,
        count=await res_repo.occupancy_for_slot(slot_id),
        user_has_reservation=await res_repo.user_has_reservation(slot_id, user_id),
    )
    check_admission(snapshot, pass_type=pass_type)

    return await res_repo.create(
        slot_id=slot.id,
        user_id=user_id,
        pass_type=pass_type,
        status=ReservationStatus.VALIDATED,
    )


async def list_user_reservations(
    res_repo: ReservationRepository,
    *,
    user_id: str,
) -> list[Reservation]:
    return await res_repo.list_by_user(user_id)
