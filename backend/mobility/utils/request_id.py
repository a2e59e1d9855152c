from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Optional

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_LENGTH = 128

_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return uuid.uuid4().hex


def normalize_request_id(raw: str | None) -> str:
    """Accept a caller-supplied id if it is usable, otherwise mint a new one."""
    value = (raw or "").strip()
    if not value or len(value) > _MAX_LENGTH:
        return generate_request_id()
    return value


def set_request_id(request_id: str | None) -> None:
    """Store request id in context (None to clear)."""
    _request_id_ctx.set(request_id)


def get_request_id() -> Optional[str]:
    return _request_id_ctx.get()
