# Server-side HTTP session storage for in-flight authorization attempts.
# Created: 2026-10-19
#
# A browser holds only an opaque session id (cookie). Each id owns a small
# key/value scratch area that expires after a period of inactivity.

from __future__ import annotations

import secrets
import threading
import time
from typing import Any, Protocol

__all__ = ["SessionStore", "MemorySessionStore", "new_session_id"]


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(Protocol):
    """Keyed, expiring per-browser storage."""

    def put(self, session_id: str, key: str, value: Any) -> None: ...

    def get(self, session_id: str, key: str) -> Any | None: ...

    def pop(self, session_id: str, key: str) -> Any | None: ...

    def delete(self, session_id: str, key: str) -> None: ...


class _Entry:
    __slots__ = ("values", "touched")

    def __init__(self, now: float):
        self.values: dict[str, Any] = {}
        self.touched = now


class MemorySessionStore:
    """In-process SessionStore with sliding expiry.

    Expired sessions are swept from ``put`` at most once per TTL, so ids that
    are never presented again do not accumulate.

    Parameters
    ----------
    ttl_seconds : float
        Idle time after which a whole session is discarded.
    """

    def __init__(self, ttl_seconds: float = 1800.0):
        self.ttl_seconds = ttl_seconds
        self._sessions: dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._last_sweep = time.monotonic()

    def __len__(self) -> int:
        return len(self._sessions)

    def _live(self, session_id: str, now: float) -> _Entry | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        if now - entry.touched > self.ttl_seconds:
            del self._sessions[session_id]
            return None
        entry.touched = now
        return entry

    def _drop_expired(self, now: float) -> int:
        stale = [k for k, e in self._sessions.items() if now - e.touched > self.ttl_seconds]
        for k in stale:
            del self._sessions[k]
        self._last_sweep = now
        return len(stale)

    def put(self, session_id: str, key: str, value: Any) -> None:
        now = time.monotonic()
        with self._lock:
            if now - self._last_sweep > self.ttl_seconds:
                self._drop_expired(now)
            entry = self._live(session_id, now)
            if entry is None:
                entry = self._sessions[session_id] = _Entry(now)
            entry.values[key] = value

    def get(self, session_id: str, key: str) -> Any | None:
        with self._lock:
            entry = self._live(session_id, time.monotonic())
            return entry.values.get(key) if entry else None

    def pop(self, session_id: str, key: str) -> Any | None:
        with self._lock:
            entry = self._live(session_id, time.monotonic())
            return entry.values.pop(key, None) if entry else None

    def delete(self, session_id: str, key: str) -> None:
        self.pop(session_id, key)

    def cleanup(self) -> int:
        """Drop expired sessions. Returns the number removed."""
        with self._lock:
            return self._drop_expired(time.monotonic())
