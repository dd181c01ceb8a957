"""In-memory TTL registry of live terminal sessions.

Session state (the search cursor and the active PNR) lives on objects with
their own locks, so unlike PNRs it is never serialised. An idle session is
dropped after ``ttl_seconds``; stale entries are swept whenever a new
session is built.
"""

from typing import Any, Callable, Dict, Optional
import time
import threading

from gds_trainer.config import settings


class SessionStore:
    """Session objects by id with idle-TTL semantics."""

    def __init__(self, factory: Callable[[str], Any], ttl_seconds: Optional[int] = None):
        self.factory = factory
        self.ttl_seconds = settings.SESSION_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._lock = threading.Lock()
        self._data: Dict[str, Dict[str, Any]] = {}

    def _expired(self, rec: Dict[str, Any]) -> bool:
        return (time.time() - rec.get("updated_at", 0)) > self.ttl_seconds

    def get(self, session_id: str) -> Optional[Any]:
        """Return the live session if not expired, else None."""
        with self._lock:
            rec = self._data.get(session_id)
            if not rec:
                return None
            if self._expired(rec):
                self._data.pop(session_id, None)
                return None
            return rec["session"]

    def get_or_create(self, session_id: str) -> Any:
        """Return the live session, building a fresh one when missing or expired."""
        now = time.time()
        with self._lock:
            rec = self._data.get(session_id)
            if rec and not self._expired(rec):
                rec["updated_at"] = now
                return rec["session"]
            self._purge_locked()
            session = self.factory(session_id)
            self._data[session_id] = {"session": session, "updated_at": now, "started_at": now}
            return session

    def clear(self, session_id: str) -> bool:
        with self._lock:
            return self._data.pop(session_id, None) is not None

    def touch(self, session_id: str) -> None:
        """Update last-seen timestamp to avoid expiration."""
        with self._lock:
            if session_id in self._data:
                self._data[session_id]["updated_at"] = time.time()

    def _purge_locked(self) -> int:
        stale = [sid for sid, rec in self._data.items() if self._expired(rec)]
        for sid in stale:
            self._data.pop(sid, None)
        return len(stale)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
