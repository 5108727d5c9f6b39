"""Benchmark fixtures for litestar-smartlinks performance testing.

This module provides fixtures for benchmarking link resolution and
storage access at various scales.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Iterator

import pytest

from litestar_smartlinks import (
    ClickContext,
    LinkConfig,
    MemoryStorageBackend,
    ResolutionEngine,
    SmartlinkClient,
    Target,
    TargetConditions,
    UTMConditions,
    UTMParams,
)

COUNTRIES = ["US", "CA", "GB", "DE", "FR"]
DEVICES = ["mobile", "desktop", "tablet"]
SOURCES = ["tiktok", "email", "newsletter", None]


# -----------------------------------------------------------------------------
# Event Loop
# -----------------------------------------------------------------------------


@pytest.fixture
def loop() -> Iterator[asyncio.AbstractEventLoop]:
    """Create a dedicated event loop for driving async calls inside benchmarks."""
    event_loop = asyncio.new_event_loop()
    yield event_loop
    event_loop.close()


# -----------------------------------------------------------------------------
# Engine and Client Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def engine() -> ResolutionEngine:
    """Create a resolution engine with a seeded random source."""
    return ResolutionEngine(random_source=random.Random(1234))


@pytest.fixture
def storage() -> MemoryStorageBackend:
    """Create a memory storage backend for benchmarking."""
    return MemoryStorageBackend()


@pytest.fixture
def client(storage: MemoryStorageBackend) -> SmartlinkClient:
    """Create a client that does not record episodes."""
    return SmartlinkClient(storage=storage, record_episodes=False)


# -----------------------------------------------------------------------------
# Link Complexity Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def single_target_link() -> LinkConfig:
    """Create a link with one catch-all target.

    This is the minimum complexity link for baseline benchmarks.
    """
    return LinkConfig(
        link_id="single",
        default_target_id="home",
        targets=[Target(target_id="home", url="https://example.com/")],
    )


@pytest.fixture
def campaign_link() -> LinkConfig:
    """Create the four-target campaign link."""
    return LinkConfig(
        link_id="spring-promo",
        default_target_id="D",
        targets=[
            Target(
                target_id="A",
                url="https://example.com/a",
                priority=10,
                conditions=TargetConditions(country="DE", device="mobile", utm=UTMConditions(source="tiktok")),
            ),
            Target(
                target_id="B",
                url="https://example.com/b",
                priority=20,
                conditions=TargetConditions(utm=UTMConditions(source="email", campaign="spring_2026")),
            ),
            Target(target_id="C", url="https://example.com/c", priority=30, conditions=TargetConditions(country="DE")),
            Target(target_id="D", url="https://example.com/d", priority=100),
        ],
    )


@pytest.fixture
def weighted_link() -> LinkConfig:
    """Create a link splitting traffic over four weighted variants."""
    return LinkConfig(
        link_id="split",
        default_target_id="control",
        targets=[
            Target(target_id=name, url=f"https://example.com/{name}", priority=1, weight=weight)
            for name, weight in [("control", 40), ("a", 20), ("b", 20), ("c", 20)]
        ],
    )


def create_wide_link(size: int) -> LinkConfig:
    """Create a link with ``size`` country targets plus a catch-all.

    Args:
        size: Number of conditional targets.

    Returns:
        A LinkConfig instance.

    """
    targets = [
        Target(
            target_id=f"t{index:04d}",
            url=f"https://example.com/{index}",
            priority=index,
            conditions=TargetConditions(country=COUNTRIES[index % len(COUNTRIES)], device=DEVICES[index % 3]),
        )
        for index in range(size)
    ]
    targets.append(Target(target_id="default", url="https://example.com/"))
    return LinkConfig(link_id=f"wide-{size}", default_target_id="default", targets=targets)


@pytest.fixture
def wide_link_100() -> LinkConfig:
    """Create a link with 100 conditional targets."""
    return create_wide_link(100)


@pytest.fixture
def wide_link_1000() -> LinkConfig:
    """Create a link with 1000 conditional targets."""
    return create_wide_link(1000)


# -----------------------------------------------------------------------------
# Context Generation
# -----------------------------------------------------------------------------


def create_context(index: int) -> ClickContext:
    """Create a click context for the given index.

    Args:
        index: Unique index for the context.

    Returns:
        A ClickContext instance.

    """
    source = SOURCES[index % len(SOURCES)]
    return ClickContext(
        country=COUNTRIES[index % len(COUNTRIES)],
        device=DEVICES[index % len(DEVICES)],
        language="de" if index % 2 else "en",
        utm=UTMParams(source=source, campaign="spring_2026") if source else UTMParams(),
    )


@pytest.fixture
def german_mobile() -> ClickContext:
    """Create a context matching the most specific campaign target."""
    return ClickContext(country="DE", device="mobile", utm=UTMParams(source="tiktok"))


@pytest.fixture
def contexts_1000() -> list[ClickContext]:
    """Create 1000 varied contexts for batch resolution."""
    return [create_context(i) for i in range(1000)]
