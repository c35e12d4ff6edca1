"""Session store abstractions."""

import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from typing import Protocol

from listen_together.domain.sessions import ListenSession


class SessionStore(Protocol):
    """Persistence interface for session records keyed by session code."""

    def get(self, session_id: str) -> ListenSession | None:
        """Return a session by code, if present."""

    def set(self, session_id: str, session: ListenSession) -> None:
        """Insert or replace a session."""

    def delete(self, session_id: str) -> None:
        """Delete a session; missing codes are ignored."""

    def list_all(self) -> list[ListenSession]:
        """Return every stored session."""

    def lock(self, session_id: str) -> AbstractContextManager[None]:
        """Return a critical section for read-modify-write on one code."""


class KeyedLock:
    """Per-key mutual exclusion within a single process."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._holders[key] = self._holders.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[key] -= 1
                if self._holders[key] == 0:
                    del self._holders[key]
                    del self._locks[key]


@dataclass
class InMemorySessionStore(SessionStore):
    """Process-local store used when no durable backend is configured."""

    _sessions: dict[str, ListenSession]
    _locks: KeyedLock

    def __init__(self) -> None:
        self._sessions = {}
        self._locks = KeyedLock()

    def get(self, session_id: str) -> ListenSession | None:
        """Return a session by code, if present."""
        return self._sessions.get(session_id)

    def set(self, session_id: str, session: ListenSession) -> None:
        """Insert or replace a session."""
        self._sessions[session_id] = session

    def delete(self, session_id: str) -> None:
        """Delete a session if present."""
        self._sessions.pop(session_id, None)

    def list_all(self) -> list[ListenSession]:
        """Return a copy of every stored session."""
        return list(self._sessions.values())

    def lock(self, session_id: str) -> AbstractContextManager[None]:
        """Return the per-code critical section."""
        return self._locks.hold(session_id)
