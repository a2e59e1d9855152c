from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from .request_id import get_request_id

AuditAction = Literal[
    "capacity.redistributed",
    "capacity.reset",
    "capacity.reallocated",
    "capacity.updated",
    "schedule.updated",
    "reservation.created",
]
AuditInitiator = Literal["user", "admin", "system"]

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def _enum_to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    slot_id: Optional[str] = None,
    user_id: Optional[str] = None,
    capacity_from: Optional[int] = None,
    capacity_to: Optional[int] = None,
    version: Optional[int] = None,
    pass_type: Optional[Any] = None,
    message: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Emit a structured JSON audit record. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "initiator": initiator,
        "request_id": get_request_id(),
        "slot_id": slot_id,
        "user_id": user_id,
        "capacity_from": capacity_from,
        "capacity_to": capacity_to,
        "version": version,
        "pass_type": _enum_to_str(pass_type),
    }
    if message is not None:
        payload["message"] = message
    if extra:
        payload.update(extra)

    # Drop None values to keep the log compact.
    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.info(json.dumps(compact_payload, ensure_ascii=True, default=str))
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("failed to emit audit log") from exc
