"""In-memory server-side session store.

Sessions are keyed by an opaque random token carried in a cookie. The
stored value is the authenticated principal: ``{id, type, name}`` plus
``registration_id`` for organisations.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from typing import Optional

_LOGGER = logging.getLogger("scholarhub.sessions")


class SessionStore:
    def __init__(self, ttl_seconds: int = 24 * 3600, max_entries: int = 10000):
        self._sessions: dict[str, dict] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries

    def create(self, principal: dict) -> str:
        """Store `principal` under a fresh token and return the token."""
        self._cleanup()
        token = secrets.token_urlsafe(32)
        entry = {
            "principal": dict(principal),
            "expires_at": time.monotonic() + self._ttl_seconds,
        }
        with self._lock:
            self._sessions[token] = entry
            overflow = len(self._sessions) - self._max_entries
            if overflow > 0:
                # dicts keep insertion order, so the first keys are the oldest
                for old in list(self._sessions)[:overflow]:
                    self._sessions.pop(old, None)
                _LOGGER.warning("session store full; evicted %d oldest sessions", overflow)
        _LOGGER.debug("session created for %s %s", principal.get("type"), principal.get("id"))
        return token

    def get(self, token: Optional[str]) -> Optional[dict]:
        """Return a copy of the principal for `token`, or None if unknown or expired."""
        if not token:
            return None
        with self._lock:
            entry = self._sessions.get(token)
            if entry is None:
                return None
            if entry["expires_at"] <= time.monotonic():
                self._sessions.pop(token, None)
                return None
            return dict(entry["principal"])

    def destroy(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _cleanup(self) -> None:
        now = time.monotonic()
        with self._lock:
            expired = [t for t, e in self._sessions.items() if e["expires_at"] <= now]
            for token in expired:
                self._sessions.pop(token, None)
