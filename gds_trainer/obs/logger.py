"""Structured JSON logging to stdout.

One JSON object per line; contact phone numbers never reach the log in full.
"""

from typing import Any, Dict
from datetime import datetime, timezone
import json

from gds_trainer.obs.context import request_id_var, session_id_var, command_family_var


_PHONE_FIELDS = ("phone", "contact_phone")


def _redact_phone(value: Any) -> Any:
    s = str(value) if value is not None else ""
    if not s:
        return s
    digits = [c for c in s if c.isdigit()]
    if len(digits) < 4:
        return "***"
    tail = "".join(digits[-4:])
    return f"***{tail}"


def log_event(event: str, **fields: Any) -> None:
    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": fields.pop("level", "INFO"),
        "event": event,
        "request_id": request_id_var.get(),
        "session_id": fields.pop("session_id", None) or session_id_var.get(),
    }
    family = command_family_var.get()
    if family and "family" not in fields:
        payload["family"] = family

    for k, v in fields.items():
        payload[k] = _redact_phone(v) if k in _PHONE_FIELDS else v

    try:
        print(json.dumps(payload, separators=(",", ":"), default=str))
    except (TypeError, ValueError):
        # Unserialisable field: keep the event, drop the extras
        print(json.dumps({"ts": payload["ts"], "level": payload["level"], "event": event}))
