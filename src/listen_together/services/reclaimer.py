"""Opportunistic deletion of idle sessions."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from listen_together.services.clock import now_ms
from listen_together.services.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class StalenessReclaimer:
    """Deletes sessions whose last mutation is older than the idle window."""

    store: SessionStore
    idle_seconds: int = 2 * 60 * 60
    sweep_interval_seconds: int = 30
    clock: Callable[[], int] = now_ms
    _last_sweep_ms: int | None = field(default=None, init=False)

    def cleanup(self) -> list[str]:
        """Delete every stale session and return the deleted codes."""
        now = self.clock()
        self._last_sweep_ms = now
        cutoff = now - self.idle_seconds * 1000
        deleted: list[str] = []
        for session in self.store.list_all():
            if session.updated_at >= cutoff:
                continue
            with self.store.lock(session.id):
                current = self.store.get(session.id)
                if current is None or current.updated_at >= cutoff:
                    continue
                self.store.delete(session.id)
            deleted.append(session.id)
        if deleted:
            logger.info("Reclaimed %d idle session(s): %s", len(deleted), deleted)
        return deleted

    def maybe_cleanup(self) -> list[str]:
        """Run cleanup unless a sweep already ran within the sweep interval."""
        now = self.clock()
        if (
            self._last_sweep_ms is not None
            and now - self._last_sweep_ms < self.sweep_interval_seconds * 1000
        ):
            return []
        return self.cleanup()
