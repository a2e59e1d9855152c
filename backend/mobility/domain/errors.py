from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base class for recoverable errors raised by the allocation core."""


class ValidationError(DomainError):
    """An edited slot configuration breaks a schedule rule; the edit is rejected."""

    def __init__(self, message: str, *, slot_id: Optional[str] = None, rule: Optional[str] = None) -> None:
        super().__init__(message)
        self.slot_id = slot_id
        self.rule = rule


class CapacityExceededError(DomainError):
    """A reservation was attempted against an exhausted slot."""


class DuplicateReservationError(DomainError):
    pass


class SlotNotFoundError(DomainError):
    pass


class PersistenceError(DomainError):
    """A write to the configuration or reservation store failed."""


class VersionConflictError(PersistenceError):
    """The stored capacity changed since the caller read it."""
