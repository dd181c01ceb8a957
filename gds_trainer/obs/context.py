"""Request context helpers using ContextVars.

Every log line emitted while a terminal command is processed carries the
HTTP request id, the trainee session id and the command family.
"""

from contextvars import ContextVar
from typing import Optional


# Public ContextVars (names are stable API)
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)
command_family_var: ContextVar[Optional[str]] = ContextVar("command_family", default=None)


def clear_context() -> None:
    """Reset context variables to defaults."""
    request_id_var.set(None)
    session_id_var.set(None)
    command_family_var.set(None)
