"""Benchmarks for link resolution performance.

These benchmarks measure:
- Engine resolution of simple, campaign and weighted links
- Resolution of links with many conditional targets
- Resolution through the client, including storage lookup
- Batch resolution of many click contexts
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from litestar_smartlinks.types import ResolutionOutcome

if TYPE_CHECKING:
    from litestar_smartlinks import (
        ClickContext,
        LinkConfig,
        MemoryStorageBackend,
        ResolutionEngine,
        SmartlinkClient,
    )


# -----------------------------------------------------------------------------
# Engine Resolution
# -----------------------------------------------------------------------------


class TestEngineResolution:
    """Benchmarks for the pure resolution engine."""

    @pytest.mark.benchmark(group="engine")
    def test_single_target(
        self,
        benchmark,
        engine: ResolutionEngine,
        single_target_link: LinkConfig,
        german_mobile: ClickContext,
    ) -> None:
        """Benchmark the baseline one-target link."""
        decision = benchmark(engine.resolve, single_target_link, german_mobile)

        assert decision.target_id == "home"

    @pytest.mark.benchmark(group="engine")
    def test_campaign_link(
        self,
        benchmark,
        engine: ResolutionEngine,
        campaign_link: LinkConfig,
        german_mobile: ClickContext,
    ) -> None:
        """Benchmark the four-target campaign link."""
        decision = benchmark(engine.resolve, campaign_link, german_mobile)

        assert decision.outcome == ResolutionOutcome.OK
        assert decision.target_id == "A"

    @pytest.mark.benchmark(group="engine")
    def test_weighted_link(
        self,
        benchmark,
        engine: ResolutionEngine,
        weighted_link: LinkConfig,
        german_mobile: ClickContext,
    ) -> None:
        """Benchmark a weighted draw across four variants."""
        decision = benchmark(engine.resolve, weighted_link, german_mobile)

        assert decision.target_id in {"control", "a", "b", "c"}


class TestWideLinks:
    """Benchmarks for links with many conditional targets."""

    @pytest.mark.benchmark(group="engine-wide")
    def test_100_targets(
        self,
        benchmark,
        engine: ResolutionEngine,
        wide_link_100: LinkConfig,
        german_mobile: ClickContext,
    ) -> None:
        """Benchmark a link with 100 targets."""
        decision = benchmark(engine.resolve, wide_link_100, german_mobile)

        assert decision.outcome == ResolutionOutcome.OK

    @pytest.mark.benchmark(group="engine-wide")
    def test_1000_targets(
        self,
        benchmark,
        engine: ResolutionEngine,
        wide_link_1000: LinkConfig,
        german_mobile: ClickContext,
    ) -> None:
        """Benchmark a link with 1000 targets."""
        decision = benchmark(engine.resolve, wide_link_1000, german_mobile)

        assert decision.outcome == ResolutionOutcome.OK


class TestBatchResolution:
    """Benchmarks for resolving many contexts against one link."""

    @pytest.mark.benchmark(group="engine-batch")
    def test_1000_contexts(
        self,
        benchmark,
        engine: ResolutionEngine,
        campaign_link: LinkConfig,
        contexts_1000: list[ClickContext],
    ) -> None:
        """Benchmark 1000 resolutions of the campaign link."""

        def resolve_all():
            return [engine.resolve(campaign_link, context) for context in contexts_1000]

        decisions = benchmark(resolve_all)

        assert len(decisions) == 1000
        assert {d.target_id for d in decisions} <= {"A", "B", "C", "D"}


# -----------------------------------------------------------------------------
# Client Resolution
# -----------------------------------------------------------------------------


class TestClientResolution:
    """Benchmarks for resolution through SmartlinkClient."""

    @pytest.mark.benchmark(group="client")
    def test_resolve_stored_link(
        self,
        benchmark,
        loop: asyncio.AbstractEventLoop,
        client: SmartlinkClient,
        campaign_link: LinkConfig,
        german_mobile: ClickContext,
    ) -> None:
        """Benchmark lookup plus resolution of a stored link."""
        loop.run_until_complete(client.save_link(campaign_link))

        decision = benchmark(lambda: loop.run_until_complete(client.resolve("spring-promo", german_mobile)))

        assert decision.target_id == "A"

    @pytest.mark.benchmark(group="client")
    def test_resolve_with_episode_recording(
        self,
        benchmark,
        loop: asyncio.AbstractEventLoop,
        storage: MemoryStorageBackend,
        campaign_link: LinkConfig,
        german_mobile: ClickContext,
    ) -> None:
        """Benchmark resolution with episode recording enabled."""
        from litestar_smartlinks import SmartlinkClient

        recording_client = SmartlinkClient(storage=storage)
        loop.run_until_complete(recording_client.save_link(campaign_link))

        async def resolve_and_flush():
            decision = await recording_client.resolve("spring-promo", german_mobile)
            await recording_client.flush()
            return decision

        decision = benchmark(lambda: loop.run_until_complete(resolve_and_flush()))

        assert decision.target_id == "A"
        assert len(loop.run_until_complete(storage.list_episodes("spring-promo", limit=1))) == 1
