"""Test fixtures for litestar-smartlinks."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime

import pytest

from litestar_smartlinks import (
    ClickContext,
    LinkConfig,
    MemoryStorageBackend,
    ResolutionEngine,
    SmartlinkClient,
    SmartlinksConfig,
    SmartlinksPlugin,
    Target,
    TargetConditions,
    UTMConditions,
    UTMParams,
)

# -----------------------------------------------------------------------------
# pytest-asyncio Configuration
# -----------------------------------------------------------------------------
pytest_plugins = ["pytest_asyncio"]


# -----------------------------------------------------------------------------
# Randomness
# -----------------------------------------------------------------------------
class ScriptedRandom:
    """Random source returning a fixed sequence of variates, cycling."""

    def __init__(self, *values: float) -> None:
        self._values = list(values) or [0.0]
        self._index = 0
        self.calls = 0

    def random(self) -> float:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        self.calls += 1
        return value


@pytest.fixture
def scripted_random() -> type[ScriptedRandom]:
    """Expose the scripted random source class."""
    return ScriptedRandom


# -----------------------------------------------------------------------------
# Time
# -----------------------------------------------------------------------------
@pytest.fixture
def now() -> datetime:
    """A fixed evaluation time."""
    return datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


# -----------------------------------------------------------------------------
# Engine Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def engine() -> ResolutionEngine:
    """Create a resolution engine."""
    return ResolutionEngine()


@pytest.fixture
def campaign_link() -> LinkConfig:
    """The reference campaign configuration.

    A: DE + mobile + tiktok (priority 10)
    B: email + spring_2026 (priority 20)
    C: DE (priority 30)
    D: catch-all default (priority 100)
    """
    return LinkConfig(
        link_id="spring-promo",
        default_target_id="D",
        targets=[
            Target(
                target_id="A",
                url="https://example.com/a",
                label="German TikTok mobile",
                conditions=TargetConditions(country="DE", device="mobile", utm=UTMConditions(source="tiktok")),
                priority=10,
            ),
            Target(
                target_id="B",
                url="https://example.com/b",
                conditions=TargetConditions(utm=UTMConditions(source="email", campaign="spring_2026")),
                priority=20,
            ),
            Target(
                target_id="C",
                url="https://example.com/c",
                conditions=TargetConditions(country="DE"),
                priority=30,
            ),
            Target(target_id="D", url="https://example.com/d", priority=100),
        ],
    )


@pytest.fixture
def german_desktop(now: datetime) -> ClickContext:
    """A desktop click from Germany."""
    return ClickContext(country="DE", device="desktop", timestamp=now)


@pytest.fixture
def tiktok_mobile(now: datetime) -> ClickContext:
    """A mobile click from Germany tagged with utm_source=tiktok."""
    return ClickContext(country="DE", device="mobile", utm=UTMParams(source="tiktok"), timestamp=now)


# -----------------------------------------------------------------------------
# Storage Backend Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def storage() -> MemoryStorageBackend:
    """Create a memory storage backend."""
    return MemoryStorageBackend()


@pytest.fixture
async def client(storage: MemoryStorageBackend) -> AsyncGenerator[SmartlinkClient, None]:
    """Create a smartlink client."""
    smartlink_client = SmartlinkClient(storage=storage)
    yield smartlink_client
    await smartlink_client.flush()


# -----------------------------------------------------------------------------
# Fakeredis Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def fake_redis():
    """Create a fake Redis client for testing.

    Requires fakeredis package.
    """
    try:
        import fakeredis.aioredis
    except ImportError:
        pytest.skip("fakeredis not installed")

    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
async def redis_storage(fake_redis) -> AsyncGenerator:
    """Create a Redis storage backend using fakeredis."""
    try:
        from litestar_smartlinks.storage.redis import RedisStorageBackend
    except ImportError:
        pytest.skip("redis extra not installed")

    backend = RedisStorageBackend(redis=fake_redis, prefix="test:")
    yield backend
    await fake_redis.flushall()


# -----------------------------------------------------------------------------
# Litestar Application Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def smartlinks_config() -> SmartlinksConfig:
    """Create a default smartlinks configuration for testing."""
    return SmartlinksConfig(backend="memory")


@pytest.fixture
def smartlinks_plugin(smartlinks_config: SmartlinksConfig) -> SmartlinksPlugin:
    """Create a smartlinks plugin for testing."""
    return SmartlinksPlugin(config=smartlinks_config)


@pytest.fixture
def test_client(smartlinks_plugin: SmartlinksPlugin) -> Iterator:
    """Create a Litestar test client with the smartlinks plugin installed."""
    from litestar import Litestar
    from litestar.testing import TestClient

    app = Litestar(route_handlers=[], plugins=[smartlinks_plugin])
    with TestClient(app) as client:
        yield client
