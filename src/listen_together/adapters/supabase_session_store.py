"""Supabase-backed session store."""

from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import UTC, datetime

from supabase import Client

from listen_together.domain.sessions import (
    ListenSession,
    session_from_dict,
    session_to_dict,
)
from listen_together.services.store import KeyedLock, SessionStore


@dataclass
class SupabaseSessionStore(SessionStore):
    """Supabase implementation that stores each session as a JSON payload."""

    client: Client
    table: str = "listen_sessions"
    locks: KeyedLock = field(default_factory=KeyedLock)

    def get(self, session_id: str) -> ListenSession | None:
        """Return a session by code, if present."""
        response = (
            self.client.table(self.table)
            .select("id, payload")
            .eq("id", session_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return session_from_dict(response.data[0]["payload"])

    def set(self, session_id: str, session: ListenSession) -> None:
        """Upsert a session row."""
        self.client.table(self.table).upsert(
            {
                "id": session_id,
                "payload": session_to_dict(session),
                "updated_at": datetime.fromtimestamp(
                    session.updated_at / 1000, tz=UTC
                ).isoformat(),
            }
        ).execute()

    def delete(self, session_id: str) -> None:
        """Delete a session row."""
        self.client.table(self.table).delete().eq("id", session_id).execute()

    def list_all(self) -> list[ListenSession]:
        """Return every stored session."""
        response = self.client.table(self.table).select("id, payload").execute()
        return [
            session_from_dict(row["payload"])
            for row in response.data or []
            if isinstance(row.get("payload"), dict)
        ]

    def lock(self, session_id: str) -> AbstractContextManager[None]:
        """Return the per-code critical section for this process."""
        return self.locks.hold(session_id)
