from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from threading import Lock
from typing import Any


@dataclass
class SessionEntry:
    session_id: str
    orchestrator: Any
    token: str = ""
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    active: bool = True


class SessionRegistry:
    """In-process index of running interview sessions, pruned by TTL once inactive."""

    def __init__(self):
        self._lock = Lock()
        self._sessions: dict[str, SessionEntry] = {}

    def register(self, session_id: str, orchestrator, token: str = "") -> None:
        with self._lock:
            self._sessions[session_id] = SessionEntry(session_id=session_id, orchestrator=orchestrator, token=token)

    def touch(self, session_id: str) -> None:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is not None:
                entry.updated_at = time.time()

    def mark_inactive(self, session_id: str) -> None:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is not None:
                entry.active = False
                entry.updated_at = time.time()

    def get(self, session_id: str) -> SessionEntry | None:
        with self._lock:
            entry = self._sessions.get(session_id)
            return replace(entry) if entry else None

    def active_for_token(self, token: str) -> list[str]:
        with self._lock:
            return [e.session_id for e in self._sessions.values() if e.active and e.token == token]

    def active_count(self) -> int:
        with self._lock:
            return sum(1 for e in self._sessions.values() if e.active)

    def cleanup_inactive(self, ttl_sec: float) -> int:
        cutoff = time.time() - max(30.0, float(ttl_sec or 900.0))
        with self._lock:
            stale = [sid for sid, e in self._sessions.items() if not e.active and e.updated_at <= cutoff]
            for session_id in stale:
                self._sessions.pop(session_id, None)
        return len(stale)


session_registry = SessionRegistry()
