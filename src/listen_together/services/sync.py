"""Host pushes and participant snapshots for shared playback state."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from listen_together.domain.actions import SyncAction
from listen_together.domain.errors import (
    InvalidPayloadError,
    SessionNotFoundError,
    UnauthorizedPushError,
)
from listen_together.domain.sessions import (
    ListenSession,
    SyncSnapshot,
    track_from_dict,
)
from listen_together.services.clock import now_ms
from listen_together.services.reclaimer import StalenessReclaimer
from listen_together.services.sessions import normalize_session_code
from listen_together.services.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class SyncEngine:
    """Applies host playback pushes and serves snapshots to pullers."""

    store: SessionStore
    reclaimer: StalenessReclaimer
    clock: Callable[[], int] = now_ms

    def snapshot(self, session_id: str) -> SyncSnapshot:
        """Return the current playback state and roster."""
        self.reclaimer.maybe_cleanup()
        code = normalize_session_code(session_id)
        session = self.store.get(code)
        if session is None:
            raise SessionNotFoundError(code)
        return SyncSnapshot.from_session(session)

    def push(
        self,
        session_id: str,
        user_id: str,
        action: str,
        payload: dict[str, object] | None = None,
    ) -> ListenSession:
        """Apply a host playback mutation and return the stored session."""
        self.reclaimer.maybe_cleanup()
        sync_action = SyncAction.parse(action)
        code = normalize_session_code(session_id)
        with self.store.lock(code):
            session = self.store.get(code)
            if session is None:
                raise SessionNotFoundError(code)
            if session.host_id != user_id:
                logger.warning(
                    "Rejected %s push on session %s from non-host %s",
                    sync_action,
                    code,
                    user_id,
                )
                raise UnauthorizedPushError(code, user_id)
            updated = replace(
                _apply(session, sync_action, payload or {}),
                updated_at=self.clock(),
            )
            self.store.set(code, updated)
        return updated


def _apply(  # noqa: PLR0911
    session: ListenSession, action: SyncAction, payload: dict[str, object]
) -> ListenSession:
    """Return the session with playback fields changed by ``action``."""
    if action is SyncAction.CHANGE_TRACK:
        track = track_from_dict(payload.get("track"))
        if track is None:
            raise InvalidPayloadError("change_track requires a track with an id")
        return replace(
            session, current_track=track, current_time=0.0, is_playing=True
        )
    if action is SyncAction.UPDATE_TIME:
        return replace(session, current_time=_require_time(payload))
    if action is SyncAction.SEEK:
        return replace(session, current_time=_require_time(payload))
    if action is SyncAction.PLAY_PAUSE:
        is_playing = payload.get("isPlaying")
        if not isinstance(is_playing, bool):
            raise InvalidPayloadError("play_pause requires a boolean isPlaying")
        return _with_optional_time(replace(session, is_playing=is_playing), payload)
    if action is SyncAction.PLAY:
        return _with_optional_time(replace(session, is_playing=True), payload)
    return _with_optional_time(replace(session, is_playing=False), payload)


def _require_time(payload: dict[str, object]) -> float:
    value = payload.get("time")
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise InvalidPayloadError("time must be a number of seconds")
    if value < 0:
        raise InvalidPayloadError("time must not be negative")
    return float(value)


def _with_optional_time(
    session: ListenSession, payload: dict[str, object]
) -> ListenSession:
    if payload.get("time") is None:
        return session
    return replace(session, current_time=_require_time(payload))
