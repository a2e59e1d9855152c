from dataclasses import dataclass
from typing import Optional

from ..models import PassType
from .allocation import calculate_availability
from .entities import Availability, OccupancyCount, TimeSlot
from .errors import CapacityExceededError, DuplicateReservationError


@dataclass(frozen=True)
class AdmissionSnapshot:
    slot: TimeSlot
    count: Optional[OccupancyCount]
    user_has_reservation: bool


def check_admission(snapshot: AdmissionSnapshot, *, pass_type: PassType) -> Availability:
    """
    Pure admission gate: the user must not already hold a reservation on the slot
    and the requested pass type must have room left.
    Returns the availability the decision was based on. Raises domain errors otherwise.
    """
    if snapshot.user_has_reservation:
        raise DuplicateReservationError("user already has a reservation for this slot")

    availability = calculate_availability(snapshot.slot, snapshot.count)
    if pass_type == PassType.SEAT and availability.available_seats <= 0:
        raise CapacityExceededError("no seats available in this slot")
    if pass_type == PassType.STANDING and availability.available_standing <= 0:
        raise CapacityExceededError("no standing room available in this slot")
    return availability
