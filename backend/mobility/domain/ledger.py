from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from .entities import RedistributionEvent


@dataclass(frozen=True)
class RedistributionSummary:
    total_transfers: int
    total_seats_transferred: int
    last_transfer: Optional[RedistributionEvent]
    last_check_time: Optional[datetime]


class RedistributionLedger:
    """In-memory record of expiry redistribution.

    Holds the operator-facing event log and the "already donated" markers,
    keyed by service date so each expired slot donates at most once a day.
    Not durable: a restart forgets both.
    """

    def __init__(self) -> None:
        self._events: list[RedistributionEvent] = []
        self._processed: set[tuple[date, str]] = set()
        self.last_check_time: Optional[datetime] = None
        self.lock = asyncio.Lock()

    @property
    def events(self) -> list[RedistributionEvent]:
        return list(self._events)

    def processed_for(self, service_date: date) -> frozenset[str]:
        return frozenset(slot_id for d, slot_id in self._processed if d == service_date)

    def mark_processed(self, service_date: date, slot_id: str) -> None:
        # markers from earlier service days can no longer match
        self._processed = {(d, s) for d, s in self._processed if d >= service_date}
        self._processed.add((service_date, slot_id))

    def record(self, event: RedistributionEvent) -> None:
        self._events.append(event)

    def touch(self, when: datetime) -> None:
        self.last_check_time = when

    def clear(self) -> None:
        self._events.clear()
        self._processed.clear()

    def summary(self) -> RedistributionSummary:
        return RedistributionSummary(
            total_transfers=len(self._events),
            total_seats_transferred=sum(e.seats_transferred for e in self._events),
            last_transfer=self._events[-1] if self._events else None,
            last_check_time=self.last_check_time,
        )
