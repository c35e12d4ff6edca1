"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from listen_together.adapters.listen_together_client import (
    HttpxListenTogetherApi,
    ListenTogetherApi,
)
from listen_together.adapters.supabase_session_store import SupabaseSessionStore
from listen_together.config import Settings
from listen_together.services.coordinator import SyncCoordinator
from listen_together.services.reclaimer import StalenessReclaimer
from listen_together.services.reconciler import PlaybackEngine
from listen_together.services.sessions import SessionManager
from listen_together.services.store import InMemorySessionStore, SessionStore
from listen_together.services.sync import SyncEngine

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_store: SessionStore
    reclaimer: StalenessReclaimer
    session_manager: SessionManager
    sync_engine: SyncEngine
    close_resources: Callable[[], Awaitable[None]]


def build_session_store(settings: Settings) -> SessionStore:
    """Select the durable store when configured, else the in-memory one."""
    if settings.uses_durable_store:
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseSessionStore(client=client, table=settings.supabase_table)
    logger.warning(
        "Supabase is not configured; sessions are kept in process memory only"
    )
    return InMemorySessionStore()


def build_container(
    settings: Settings | None = None, session_store: SessionStore | None = None
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    store = session_store or build_session_store(resolved_settings)
    reclaimer = StalenessReclaimer(
        store=store,
        idle_seconds=resolved_settings.session_idle_seconds,
        sweep_interval_seconds=resolved_settings.cleanup_interval_seconds,
    )
    session_manager = SessionManager(
        store=store,
        reclaimer=reclaimer,
        code_length=resolved_settings.session_code_length,
        max_code_attempts=resolved_settings.session_code_max_attempts,
    )
    sync_engine = SyncEngine(store=store, reclaimer=reclaimer)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=resolved_settings,
        session_store=store,
        reclaimer=reclaimer,
        session_manager=session_manager,
        sync_engine=sync_engine,
        close_resources=close_resources,
    )


def build_coordinator(
    engine: PlaybackEngine,
    user_id: str,
    user_name: str,
    avatar: str | None = None,
    settings: Settings | None = None,
    api: ListenTogetherApi | None = None,
) -> SyncCoordinator:
    """Create a client-side coordinator talking to the configured API."""
    resolved_settings = settings or Settings()
    return SyncCoordinator(
        api=api or HttpxListenTogetherApi.create(resolved_settings.api_base_url),
        engine=engine,
        user_id=user_id,
        user_name=user_name,
        avatar=avatar,
        sync_interval=resolved_settings.sync_interval_seconds,
        drift_threshold=resolved_settings.drift_threshold_seconds,
        time_push_interval=resolved_settings.time_push_interval_seconds,
        max_missed_pulls=resolved_settings.max_missed_pulls,
    )
