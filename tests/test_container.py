"""Tests for container wiring."""

import asyncio

from listen_together.adapters.listen_together_client import HttpxListenTogetherApi
from listen_together.config import Settings
from listen_together.containers import build_container, build_coordinator
from listen_together.services.store import InMemorySessionStore
from tests.conftest import FakePlaybackEngine


def test_build_container_without_supabase_uses_memory_store() -> None:
    container = build_container(Settings())
    assert isinstance(container.session_store, InMemorySessionStore)
    assert container.session_manager.store is container.session_store
    assert container.sync_engine.reclaimer is container.reclaimer
    asyncio.run(container.close_resources())


def test_build_container_applies_settings() -> None:
    settings = Settings(
        session_code_length=8, session_idle_seconds=60, cleanup_interval_seconds=5
    )
    container = build_container(settings)
    assert container.session_manager.code_length == 8
    assert container.reclaimer.idle_seconds == 60
    assert container.reclaimer.sweep_interval_seconds == 5


def test_build_coordinator_uses_client_settings() -> None:
    settings = Settings(
        api_base_url="http://music.local/",
        sync_interval_seconds=2.5,
        drift_threshold_seconds=3.0,
        max_missed_pulls=5,
    )
    coordinator = build_coordinator(
        FakePlaybackEngine(), user_id="u1", user_name="Ana", settings=settings
    )
    assert isinstance(coordinator.api, HttpxListenTogetherApi)
    assert coordinator.api.base_url == "http://music.local"
    assert coordinator.sync_interval == 2.5
    assert coordinator.reconciler.drift_threshold == 3.0
    assert coordinator.max_missed_pulls == 5
    asyncio.run(coordinator.aclose())
    assert coordinator.api.http_client.is_closed is True
