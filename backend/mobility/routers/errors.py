import logging

from fastapi import HTTPException, status

from ..domain.errors import (
    CapacityExceededError,
    DomainError,
    DuplicateReservationError,
    PersistenceError,
    SlotNotFoundError,
    ValidationError,
    VersionConflictError,
)

logger = logging.getLogger(__name__)


def http_error(exc: DomainError) -> HTTPException:
    """Translate a domain error into the HTTP error reported to the caller."""
    if isinstance(exc, ValidationError):
        detail: dict[str, object] = {"message": str(exc)}
        if exc.slot_id is not None:
            detail["slot_id"] = exc.slot_id
        if exc.rule is not None:
            detail["rule"] = exc.rule
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)
    if isinstance(exc, SlotNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc) or "slot not found")
    if isinstance(exc, (CapacityExceededError, DuplicateReservationError, VersionConflictError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, PersistenceError):
        logger.error("store unavailable: %s", exc)
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="store temporarily unavailable")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
