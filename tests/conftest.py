"""Shared test fixtures."""

from dataclasses import dataclass, field

import httpx
import pytest

from listen_together.adapters.listen_together_client import ListenTogetherApi
from listen_together.config import Settings
from listen_together.containers import AppContainer
from listen_together.domain.sessions import (
    LeaveResult,
    ListenSession,
    SyncSnapshot,
    Track,
)
from listen_together.services.reclaimer import StalenessReclaimer
from listen_together.services.reconciler import PlaybackEngine
from listen_together.services.sessions import SessionManager
from listen_together.services.store import InMemorySessionStore
from listen_together.services.sync import SyncEngine

START_MS = 1_700_000_000_000


@dataclass
class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    now: int = START_MS

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@dataclass
class FakeMonotonic:
    """Manually advanced monotonic clock in seconds."""

    now: float = 0.0

    def __call__(self) -> float:
        return self.now


@dataclass
class CodeSequence:
    """Session code factory returning a fixed sequence of codes."""

    codes: list[str] = field(
        default_factory=lambda: ["AB12CD", "XY34ZW", "MN56PQ", "GH78JK", "RS92TU"]
    )
    calls: int = 0

    def __call__(self, length: int) -> str:
        code = self.codes[self.calls % len(self.codes)]
        self.calls += 1
        return code


@dataclass
class FakePlaybackEngine(PlaybackEngine):
    """Playback engine that records every call."""

    track: Track | None = None
    playing: bool = False
    position: float = 0.0
    calls: list[tuple[str, object]] = field(default_factory=list)

    def play(self, track: Track | None = None) -> None:
        if track is not None:
            self.track = track
            self.position = 0.0
        self.playing = True
        self.calls.append(("play", track.id if track else None))

    def pause(self) -> None:
        self.playing = False
        self.calls.append(("pause", None))

    def seek(self, position: float) -> None:
        self.position = position
        self.calls.append(("seek", position))

    def current_time(self) -> float:
        return self.position

    def track_id(self) -> str | None:
        return self.track.id if self.track else None

    def is_playing(self) -> bool:
        return self.playing


@dataclass
class InProcessListenTogetherApi(ListenTogetherApi):
    """API client that calls the services directly instead of over HTTP."""

    session_manager: SessionManager
    sync_engine: SyncEngine
    failing_pulls: int = 0
    pull_error: Exception = field(default_factory=lambda: httpx.ConnectError("offline"))
    failing_pushes: int = 0
    snapshot_calls: int = 0
    closed: bool = False
    pushes: list[tuple[str, dict[str, object] | None]] = field(default_factory=list)
    leaves: list[tuple[str, str]] = field(default_factory=list)

    async def create_session(
        self, user_id: str, user_name: str, avatar: str | None = None
    ) -> ListenSession:
        return self.session_manager.create_session(user_id, user_name, avatar)

    async def join_session(
        self,
        session_id: str,
        user_id: str,
        user_name: str,
        avatar: str | None = None,
    ) -> ListenSession:
        return self.session_manager.join_session(
            session_id, user_id, user_name, avatar
        )

    async def leave_session(self, session_id: str, user_id: str) -> LeaveResult:
        self.leaves.append(("leave", user_id))
        return self.session_manager.leave_session(session_id, user_id)

    async def end_session(self, session_id: str, user_id: str) -> LeaveResult:
        self.leaves.append(("end", user_id))
        return self.session_manager.end_session(session_id, user_id)

    async def get_snapshot(self, session_id: str) -> SyncSnapshot:
        self.snapshot_calls += 1
        if self.failing_pulls:
            self.failing_pulls -= 1
            raise self.pull_error
        return self.sync_engine.snapshot(session_id)

    async def push(
        self,
        session_id: str,
        user_id: str,
        action: str,
        payload: dict[str, object] | None = None,
    ) -> None:
        if self.failing_pushes:
            self.failing_pushes -= 1
            raise httpx.ConnectError("offline")
        self.pushes.append((str(action), payload))
        self.sync_engine.push(session_id, user_id, action, payload)

    async def close(self) -> None:
        self.closed = True


def make_track(track_id: str = "T1", duration: float = 200.0) -> Track:
    """Build a track with predictable metadata."""
    return Track(
        id=track_id,
        title=f"Title {track_id}",
        artist="Artist",
        image_url=f"https://cdn.example.com/{track_id}.jpg",
        audio_url=f"https://cdn.example.com/{track_id}.mp3",
        duration=duration,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(admin_token="admin-token")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def reclaimer(store: InMemorySessionStore, clock: FakeClock) -> StalenessReclaimer:
    return StalenessReclaimer(
        store=store, idle_seconds=7200, sweep_interval_seconds=30, clock=clock
    )


@pytest.fixture
def session_manager(
    store: InMemorySessionStore, reclaimer: StalenessReclaimer, clock: FakeClock
) -> SessionManager:
    return SessionManager(
        store=store, reclaimer=reclaimer, clock=clock, code_factory=CodeSequence()
    )


@pytest.fixture
def sync_engine(
    store: InMemorySessionStore, reclaimer: StalenessReclaimer, clock: FakeClock
) -> SyncEngine:
    return SyncEngine(store=store, reclaimer=reclaimer, clock=clock)


@pytest.fixture
def api(
    session_manager: SessionManager, sync_engine: SyncEngine
) -> InProcessListenTogetherApi:
    return InProcessListenTogetherApi(session_manager, sync_engine)


@pytest.fixture
def container(
    settings: Settings,
    store: InMemorySessionStore,
    reclaimer: StalenessReclaimer,
    session_manager: SessionManager,
    sync_engine: SyncEngine,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_store=store,
        reclaimer=reclaimer,
        session_manager=session_manager,
        sync_engine=sync_engine,
        close_resources=close_resources,
    )
