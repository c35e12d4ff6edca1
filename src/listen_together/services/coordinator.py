"""Client-side session membership, polling and host pushes."""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum

import httpx

from listen_together.adapters.listen_together_client import ListenTogetherApi
from listen_together.domain.actions import SyncAction
from listen_together.domain.errors import SessionNotFoundError
from listen_together.domain.sessions import (
    LeaveResult,
    ListenSession,
    SyncSnapshot,
    Track,
    track_to_dict,
)
from listen_together.services.reconciler import LocalReconciler, PlaybackEngine
from listen_together.services.sessions import normalize_session_code

logger = logging.getLogger(__name__)


class SessionEndReason(StrEnum):
    """Why the local session reference was cleared."""

    ENDED = "Session ended"
    REMOVED = "You were removed from the session"


@dataclass
class SyncCoordinator:
    """Keeps one client's session state in step with the service.

    Every member polls the snapshot on a fixed interval. Listeners reconcile
    their playback engine against it; the host only refreshes its roster and
    pushes its own playback changes.
    """

    api: ListenTogetherApi
    engine: PlaybackEngine
    user_id: str
    user_name: str
    avatar: str | None = None
    sync_interval: float = 1.0
    drift_threshold: float = 2.0
    time_push_interval: float = 0.5
    max_missed_pulls: int = 3
    monotonic: Callable[[], float] = time.monotonic
    on_session_end: Callable[[SessionEndReason], None] | None = None
    session: ListenSession | None = field(default=None, init=False)
    error: str | None = field(default=None, init=False)
    connection_warning: bool = field(default=False, init=False)
    reconciler: LocalReconciler = field(init=False)
    _missed_pulls: int = field(default=0, init=False)
    _poll_task: asyncio.Task | None = field(default=None, init=False)
    _last_pushed_track_id: str | None = field(default=None, init=False)
    _last_time_push: float | None = field(default=None, init=False)
    _last_play_state: bool | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.reconciler = LocalReconciler(self.engine, self.drift_threshold)

    @property
    def is_host(self) -> bool:
        """Return True when this client currently drives playback."""
        return self.session is not None and self.session.host_id == self.user_id

    @property
    def in_session(self) -> bool:
        """Return True while a session reference is held."""
        return self.session is not None

    @property
    def is_polling(self) -> bool:
        """Return True while the pull loop is scheduled."""
        return self._poll_task is not None and not self._poll_task.done()

    async def create_session(self) -> ListenSession:
        """Create and host a new session."""
        session = await self.api.create_session(
            self.user_id, self.user_name, self.avatar
        )
        self._enter(session)
        return session

    async def join_session(self, session_id: str) -> ListenSession:
        """Join a session and catch up with its current playback."""
        session = await self.api.join_session(
            normalize_session_code(session_id),
            self.user_id,
            self.user_name,
            self.avatar,
        )
        self._enter(session)
        if not self.is_host and session.current_track is not None:
            self.reconciler.reconcile(SyncSnapshot.from_session(session))
        return session

    async def leave_session(
        self, end_for_everyone: bool = False
    ) -> LeaveResult | None:
        """Leave the current session, stopping all polling first.

        When ``end_for_everyone`` is set and this client is host, the session
        is deleted for all members instead of migrating host to the next
        participant.
        """
        session = self.session
        if session is None:
            return None
        end = end_for_everyone and self.is_host
        self._stop_polling()
        self.session = None
        self.error = None
        self.connection_warning = False
        if end:
            return await self.api.end_session(session.id, self.user_id)
        return await self.api.leave_session(session.id, self.user_id)

    async def pull_once(self) -> SyncSnapshot | None:
        """Fetch one snapshot and apply it to local state."""
        session = self.session
        if session is None:
            return None
        try:
            snapshot = await self.api.get_snapshot(session.id)
        except SessionNotFoundError:
            if self.session is session:
                if self.is_host:
                    logger.error("Hosted session %s no longer exists", session.id)
                self._end(SessionEndReason.ENDED)
            return None
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            if not isinstance(exc, httpx.HTTPError):
                logger.warning(
                    "Discarding malformed snapshot for %s: %r", session.id, exc
                )
            if self.session is session:
                self._record_missed_pull(exc)
            return None

        if self.session is not session:
            return None
        self._record_successful_pull()

        if not snapshot.has_participant(self.user_id) and not self.is_host:
            self._end(SessionEndReason.REMOVED)
            return None

        was_host = self.is_host
        self.session = _with_roster(session, snapshot)
        if not was_host:
            self._mirror_pushed_state(snapshot)
        if not self.is_host:
            self.reconciler.reconcile(snapshot)
        return snapshot

    async def on_track_changed(self, track: Track) -> bool:
        """Push a track change if the host switched to a new track id."""
        session = self._pushable_session()
        if session is None or track.id == self._last_pushed_track_id:
            return False
        logger.info("Host pushing track change to %s", track.id)
        await self.api.push(
            session.id,
            self.user_id,
            SyncAction.CHANGE_TRACK,
            {"track": track_to_dict(track)},
        )
        # The service restarts playback on every track change.
        self._last_pushed_track_id = track.id
        self._last_play_state = True
        return True

    async def on_progress(self, position: float) -> bool:
        """Push the playhead position, throttled to the push interval."""
        session = self._pushable_session()
        if session is None or self.engine.track_id() is None:
            return False
        now = self.monotonic()
        if (
            self._last_time_push is not None
            and now - self._last_time_push < self.time_push_interval
        ):
            return False
        self._last_time_push = now
        await self.api.push(
            session.id, self.user_id, SyncAction.UPDATE_TIME, {"time": position}
        )
        return True

    async def on_play_state_changed(self, is_playing: bool) -> bool:
        """Push a play/pause transition."""
        session = self._pushable_session()
        if session is None or is_playing == self._last_play_state:
            return False
        await self.api.push(
            session.id,
            self.user_id,
            SyncAction.PLAY_PAUSE,
            {"isPlaying": is_playing, "time": self.engine.current_time()},
        )
        self._last_play_state = is_playing
        return True

    def start(self) -> None:
        """Schedule the pull loop for the current session if it is not running."""
        if self.session is None or self.is_polling:
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop())

    def stop(self) -> None:
        """Stop polling without leaving the session."""
        self._stop_polling()

    async def aclose(self) -> None:
        """Stop polling and release the API client."""
        self._stop_polling()
        await self.api.close()

    async def _poll_loop(self) -> None:
        while self.session is not None:
            await asyncio.sleep(self.sync_interval)
            try:
                await self.pull_once()
            except Exception:
                logger.exception("Sync tick failed; retrying on the next interval")

    def _enter(self, session: ListenSession) -> None:
        self._stop_polling()
        self.session = session
        self.error = None
        self.connection_warning = False
        self._missed_pulls = 0
        self._last_pushed_track_id = (
            session.current_track.id if session.current_track else None
        )
        self._last_time_push = None
        self._last_play_state = session.is_playing
        self.start()

    def _end(self, reason: SessionEndReason) -> None:
        logger.info("Leaving session locally: %s", reason.value)
        self._stop_polling()
        self.session = None
        self.error = reason.value
        self.connection_warning = False
        if self.on_session_end is not None:
            self.on_session_end(reason)

    def _stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def _pushable_session(self) -> ListenSession | None:
        if not self.is_host:
            return None
        return self.session

    def _mirror_pushed_state(self, snapshot: SyncSnapshot) -> None:
        track = snapshot.current_track
        self._last_pushed_track_id = track.id if track else None
        self._last_play_state = snapshot.is_playing

    def _record_missed_pull(self, exc: Exception) -> None:
        self._missed_pulls += 1
        logger.debug("Sync pull failed (%d in a row): %s", self._missed_pulls, exc)
        if self._missed_pulls == self.max_missed_pulls:
            self.connection_warning = True
            logger.warning(
                "Lost contact with session %s after %d failed pulls",
                self.session.id if self.session else "?",
                self._missed_pulls,
            )

    def _record_successful_pull(self) -> None:
        if self.connection_warning:
            logger.info(
                "Reconnected to session after %d failed pulls", self._missed_pulls
            )
        self._missed_pulls = 0
        self.connection_warning = False


def _with_roster(session: ListenSession, snapshot: SyncSnapshot) -> ListenSession:
    """Return the cached session with roster and host taken from a snapshot."""
    host_id = snapshot.host_id or session.host_id
    host = next((p for p in snapshot.participants if p.id == host_id), None)
    return replace(
        session,
        participants=snapshot.participants,
        host_id=host_id,
        host_name=host.name if host else session.host_name,
        current_track=snapshot.current_track,
        is_playing=snapshot.is_playing,
        current_time=snapshot.current_time,
        updated_at=snapshot.updated_at,
    )
