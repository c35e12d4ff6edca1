"""Session lifecycle: create, join, leave, end and host migration."""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, replace

from listen_together.domain.actions import SessionAction
from listen_together.domain.errors import (
    InvalidPayloadError,
    SessionCodeExhaustedError,
    SessionNotFoundError,
    UnauthorizedActionError,
)
from listen_together.domain.sessions import (
    LeaveResult,
    ListenSession,
    Participant,
    SessionCommand,
)
from listen_together.services.clock import now_ms
from listen_together.services.reclaimer import StalenessReclaimer
from listen_together.services.store import SessionStore

logger = logging.getLogger(__name__)

SESSION_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_session_code(length: int = 6) -> str:
    """Return a random upper-case session code."""
    return "".join(secrets.choice(SESSION_CODE_ALPHABET) for _ in range(length))


def normalize_session_code(session_id: str) -> str:
    """Normalize user-entered codes to their stored form."""
    return session_id.strip().upper()


@dataclass
class SessionManager:
    """Owns the session state machine and its persistence."""

    store: SessionStore
    reclaimer: StalenessReclaimer
    code_length: int = 6
    max_code_attempts: int = 5
    clock: Callable[[], int] = now_ms
    code_factory: Callable[[int], str] = generate_session_code

    def handle(self, command: SessionCommand) -> ListenSession | LeaveResult:
        """Dispatch a lifecycle command to its operation."""
        action = SessionAction.parse(command.action)
        if action is SessionAction.CREATE:
            return self.create_session(
                command.user_id, _require_name(command), command.avatar
            )
        session_id = _require_session_id(command)
        if action is SessionAction.JOIN:
            return self.join_session(
                session_id, command.user_id, _require_name(command), command.avatar
            )
        if action is SessionAction.LEAVE:
            return self.leave_session(session_id, command.user_id)
        return self.end_session(session_id, command.user_id)

    def create_session(
        self, user_id: str, user_name: str, avatar: str | None = None
    ) -> ListenSession:
        """Create a session with the caller as sole participant and host."""
        self.reclaimer.maybe_cleanup()
        now = self.clock()
        code = self._free_code()
        session = ListenSession(
            id=code,
            host_id=user_id,
            host_name=user_name,
            participants=(
                Participant(
                    id=user_id,
                    name=user_name,
                    avatar=avatar,
                    joined_at=now,
                    is_host=True,
                ),
            ),
            created_at=now,
            updated_at=now,
        )
        with self.store.lock(code):
            self.store.set(code, session)
        logger.info("Session %s created by %s", code, user_id)
        return session

    def get_session(self, session_id: str) -> ListenSession:
        """Return a session or raise SessionNotFoundError."""
        self.reclaimer.maybe_cleanup()
        code = normalize_session_code(session_id)
        session = self.store.get(code)
        if session is None:
            raise SessionNotFoundError(code)
        return session

    def list_sessions_for_user(self, user_id: str) -> list[ListenSession]:
        """Return sessions where the user is host or participant."""
        self.reclaimer.maybe_cleanup()
        return [s for s in self.store.list_all() if s.is_member(user_id)]

    def join_session(
        self,
        session_id: str,
        user_id: str,
        user_name: str,
        avatar: str | None = None,
    ) -> ListenSession:
        """Add a participant; joining twice returns the session unchanged."""
        self.reclaimer.maybe_cleanup()
        code = normalize_session_code(session_id)
        with self.store.lock(code):
            session = self._load(code)
            if session.has_participant(user_id):
                return session
            now = self.clock()
            participant = Participant(
                id=user_id,
                name=user_name,
                avatar=avatar,
                joined_at=now,
                is_host=False,
            )
            updated = replace(
                session,
                participants=(*session.participants, participant),
                updated_at=now,
            )
            self.store.set(code, updated)
        logger.info("User %s joined session %s", user_id, code)
        return updated

    def leave_session(self, session_id: str, user_id: str) -> LeaveResult:
        """Remove a participant, migrating host or ending the session."""
        self.reclaimer.maybe_cleanup()
        code = normalize_session_code(session_id)
        with self.store.lock(code):
            session = self._load(code)
            remaining = tuple(p for p in session.participants if p.id != user_id)
            was_host = session.host_id == user_id
            if was_host and not remaining:
                self.store.delete(code)
                logger.info("Session %s ended: last participant left", code)
                return LeaveResult(session=None, ended=True)
            updated = replace(
                session, participants=remaining, updated_at=self.clock()
            )
            if was_host:
                updated = _promote(updated, remaining[0])
                logger.info(
                    "Host of session %s moved from %s to %s",
                    code,
                    user_id,
                    remaining[0].id,
                )
            self.store.set(code, updated)
        logger.info("User %s left session %s", user_id, code)
        return LeaveResult(session=updated)

    def end_session(self, session_id: str, user_id: str) -> LeaveResult:
        """End a session for everyone; only the host may do this."""
        self.reclaimer.maybe_cleanup()
        code = normalize_session_code(session_id)
        with self.store.lock(code):
            session = self._load(code)
            if session.host_id != user_id:
                raise UnauthorizedActionError("Only host can end the session")
            self.store.delete(code)
        logger.info("Session %s ended by host %s", code, user_id)
        return LeaveResult(session=None, ended=True)

    def _load(self, code: str) -> ListenSession:
        session = self.store.get(code)
        if session is None:
            raise SessionNotFoundError(code)
        return session

    def _free_code(self) -> str:
        for _ in range(self.max_code_attempts):
            code = self.code_factory(self.code_length)
            if self.store.get(code) is None:
                return code
            logger.warning("Session code collision on %s, regenerating", code)
        raise SessionCodeExhaustedError(
            f"No free session code after {self.max_code_attempts} attempts"
        )


def _promote(session: ListenSession, successor: Participant) -> ListenSession:
    """Make ``successor`` the host in a single record replacement."""
    participants = tuple(
        replace(p, is_host=p.id == successor.id) for p in session.participants
    )
    return replace(
        session,
        host_id=successor.id,
        host_name=successor.name,
        participants=participants,
    )


def _require_session_id(command: SessionCommand) -> str:
    if not command.session_id:
        raise InvalidPayloadError("sessionId is required")
    return command.session_id


def _require_name(command: SessionCommand) -> str:
    if not command.user_name:
        raise InvalidPayloadError("userName is required")
    return command.user_name
