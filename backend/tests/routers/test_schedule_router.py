from typing import Any, cast

import pytest
from mobility.domain.allocation import DEFAULT_SLOTS
from mobility.domain.entities import TimeSlot
from mobility.domain.errors import ValidationError
from mobility.routers import schedule as router
from mobility.schemas import ScheduleUpdate, TimeSlotRead, TimeSlotWrite
from mobility.utils.auth import TokenClaims
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

ADMIN = TokenClaims(user_id="ops-1", role="admin")


class DummySession:
    async def __aenter__(self) -> "DummySession":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        return False

    def begin(self) -> "DummySession":
        return self


def _payload() -> ScheduleUpdate:
    return ScheduleUpdate(slots=[TimeSlotWrite(**TimeSlotRead.from_domain(s).model_dump()) for s in DEFAULT_SLOTS])


@pytest.mark.asyncio
async def test_update_schedule_emits_audit(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, Any] = {}

    async def fake_update(*args: object, **kwargs: Any) -> list[TimeSlot]:
        seen.update(kwargs)
        return list(kwargs["slots"])

    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(router, "SqlAlchemyScheduleRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(router.schedule_usecase, "update_schedule", fake_update)
    monkeypatch.setattr(router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    result = await router.update_schedule(payload=_payload(), session=cast(AsyncSession, DummySession()), admin=ADMIN)

    assert [s.slot_id for s in result] == [s.id for s in DEFAULT_SLOTS]
    assert seen["seat_total"] == 45
    assert seen["standing_total"] == 45
    assert calls[0]["action"] == "schedule.updated"
    assert calls[0]["user_id"] == "ops-1"


@pytest.mark.asyncio
async def test_invalid_schedule_reports_slot_and_rule(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_update(*args: object, **kwargs: object) -> list[TimeSlot]:
        raise ValidationError("seated slots must total 45, got 44", rule="seat_total")

    monkeypatch.setattr(router, "SqlAlchemyScheduleRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(router.schedule_usecase, "update_schedule", fake_update)

    with pytest.raises(HTTPException) as excinfo:
        await router.update_schedule(payload=_payload(), session=cast(AsyncSession, DummySession()), admin=ADMIN)
    assert excinfo.value.status_code == 422
    assert excinfo.value.detail == {"message": "seated slots must total 45, got 44", "rule": "seat_total"}


@pytest.mark.asyncio
async def test_get_schedule_returns_slots(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_load(*args: object, **kwargs: object) -> list[TimeSlot]:
        return list(DEFAULT_SLOTS)

    monkeypatch.setattr(router, "SqlAlchemyScheduleRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(router.schedule_usecase, "load_schedule", fake_load)

    result = await router.get_schedule(session=cast(AsyncSession, DummySession()))
    assert result[-1].allow_standing_only is True
    assert result[-1].max_standing == 45
