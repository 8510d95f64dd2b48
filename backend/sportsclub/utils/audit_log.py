from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from .request_id import get_request_id

AuditAction = Literal[
    "event.created",
    "event.updated",
    "event.deleted",
    "reservation.created",
    "reservation.released",
    "registration.created",
    "registration.cancelled",
    "attendance.recorded",
    "position.updated",
    "saga.inconsistency",
]
AuditInitiator = Literal["user", "system", "admin"]

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return str(value)
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    entity_id: uuid.UUID | None,
    event_kind: Any = None,
    user_id: uuid.UUID | None = None,
    court_id: uuid.UUID | None = None,
    reservation_id: uuid.UUID | None = None,
    message: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
    level: int = logging.INFO,
) -> None:
    """Emit structured JSON audit log. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": logging.getLevelName(level).lower(),
        "action": action,
        "initiator": initiator,
        "request_id": get_request_id(),
        "entity_id": _to_str(entity_id),
        "event_kind": _to_str(event_kind),
        "user_id": _to_str(user_id),
        "court_id": _to_str(court_id),
        "reservation_id": _to_str(reservation_id),
    }
    if message is not None:
        payload["message"] = message
    if extra:
        payload.update({k: _to_str(v) if isinstance(v, uuid.UUID) else v for k, v in extra.items()})

    # Drop None values to keep the log compact.
    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.log(level, json.dumps(compact_payload, ensure_ascii=True, default=str))
    except Exception as exc:  # pragma: no cover - defensive
        raise RuntimeError("failed to emit audit log") from exc
