"""Shared fixtures for Port Pal tests."""

from fakeredis import FakeAsyncRedis, FakeServer
import pytest

from port_pal.backends import (
    InMemoryBroadcastHub,
    InMemoryChangeNotifier,
    InMemoryRegistryBackend,
    RedisChangeNotifier,
    RedisRegistryBackend,
)
from port_pal.config import Settings, get_settings
from port_pal.registry import RegistryStore

REGISTRY_KEY = "port_authority_registry_v1"
SYNC_CHANNEL = "port_authority_sync_channel"


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate tests from the developer's environment and cached settings."""
    for var in ("PORT_PAL_STORAGE_BACKEND", "PORT_PAL_LOG_LEVEL", "PORT_PAL_LOG_FORMAT"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """Settings with the simulated delays and cosmetic contention switched off."""
    return Settings(
        _env_file=None,
        contention_probability=0.0,
        lock_retry_delay_seconds=0.0,
        processing_delay_seconds=0.0,
    )


@pytest.fixture
def hub():
    return InMemoryBroadcastHub()


@pytest.fixture
def memory_backend():
    return InMemoryRegistryBackend()


@pytest.fixture
def memory_store(memory_backend, hub):
    return RegistryStore(
        memory_backend,
        InMemoryChangeNotifier(hub, SYNC_CHANNEL, observer_id="observer-a"),
    )


@pytest.fixture
def other_memory_store(memory_backend, hub):
    """Second observer sharing the same backend and hub."""
    return RegistryStore(
        memory_backend,
        InMemoryChangeNotifier(hub, SYNC_CHANNEL, observer_id="observer-b"),
    )


@pytest.fixture
def redis_server():
    return FakeServer()


@pytest.fixture
def fake_redis(redis_server):
    return FakeAsyncRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def redis_store_factory(redis_server):
    """Build observers that share one fake Redis server."""

    def make(observer_id: str) -> RegistryStore:
        client = FakeAsyncRedis(server=redis_server, decode_responses=True)
        return RegistryStore(
            RedisRegistryBackend(client, REGISTRY_KEY),
            RedisChangeNotifier(client, SYNC_CHANNEL, observer_id=observer_id, poll_timeout=0.05),
        )

    return make


@pytest.fixture
def redis_store(redis_store_factory):
    return redis_store_factory("observer-a")


@pytest.fixture
def no_sleep():
    async def sleep(_seconds: float) -> None:
        return None

    return sleep
