"""Tests for SmartlinkClient."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from litestar_smartlinks import (
    ClickContext,
    LinkConfig,
    LinkNotFoundError,
    MemoryStorageBackend,
    RateLimitConfig,
    SmartlinkClient,
    TokenBucketRateLimiter,
)
from litestar_smartlinks.analytics import StatsQuery
from litestar_smartlinks.results import Decision
from litestar_smartlinks.types import EpisodeOutcome, ResolutionOutcome, StatsDimension


class RecordingHook:
    """Hook that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    async def before_resolution(self, link_id: str, context: ClickContext) -> None:
        self.calls.append(("before", link_id))

    async def after_resolution(self, link_id: str, context: ClickContext, decision: Decision) -> None:
        self.calls.append(("after", decision.outcome))

    async def on_error(self, link_id: str, context: ClickContext, error: Exception) -> None:
        self.calls.append(("error", type(error).__name__))


class FailingHook:
    """Hook that raises from every callback."""

    async def before_resolution(self, link_id: str, context: ClickContext) -> None:
        raise RuntimeError("before")

    async def after_resolution(self, link_id: str, context: ClickContext, decision: Decision) -> None:
        raise RuntimeError("after")

    async def on_error(self, link_id: str, context: ClickContext, error: Exception) -> None:
        raise RuntimeError("error")


class FailingEpisodeStorage(MemoryStorageBackend):
    """Memory backend whose episode writes always fail."""

    async def save_episode(self, episode, ttl_seconds=None) -> None:
        raise ConnectionError("episode store unavailable")


class FailingLinkStorage(MemoryStorageBackend):
    """Memory backend whose link reads always fail."""

    async def get_link(self, link_id: str):
        raise ConnectionError("link store unavailable")


class TestResolve:
    """Tests for resolving stored links."""

    async def test_resolve_stored_link(
        self, client: SmartlinkClient, campaign_link: LinkConfig, german_desktop: ClickContext
    ) -> None:
        """Test resolving a link loaded from storage."""
        await client.save_link(campaign_link)

        decision = await client.resolve("spring-promo", german_desktop)

        assert decision.outcome == ResolutionOutcome.OK
        assert decision.target_id == "C"
        assert decision.executor_id == "litestar-smartlinks"
        assert decision.executor_version == "0.1.0"

    async def test_unknown_link_raises(self, client: SmartlinkClient) -> None:
        """Test that a missing configuration raises LinkNotFoundError."""
        with pytest.raises(LinkNotFoundError) as exc_info:
            await client.resolve("missing", ClickContext())

        assert exc_info.value.link_id == "missing"

    async def test_resolve_without_context(self, client: SmartlinkClient, campaign_link: LinkConfig) -> None:
        """Test that an absent context resolves like an empty click."""
        await client.save_link(campaign_link)

        decision = await client.resolve("spring-promo")

        assert decision.outcome == ResolutionOutcome.DEFAULT_USED
        assert decision.target_id == "D"

    async def test_default_context_is_merged(self, storage: MemoryStorageBackend, campaign_link: LinkConfig) -> None:
        """Test that the client's default context fills unset attributes."""
        client = SmartlinkClient(storage=storage, default_context=ClickContext(country="DE"))
        await client.save_link(campaign_link)

        assert (await client.resolve("spring-promo", ClickContext(device="desktop"))).target_id == "C"
        assert (await client.resolve("spring-promo", ClickContext(country="FR"))).target_id == "D"
        await client.flush()

    async def test_now_override(self, client: SmartlinkClient, campaign_link: LinkConfig, now: datetime) -> None:
        """Test that the evaluation time can be overridden."""
        campaign_link.targets[2].valid_until = now
        await client.save_link(campaign_link)
        context = ClickContext(country="DE")

        assert (await client.resolve("spring-promo", context, now=now)).target_id == "C"
        assert (await client.resolve("spring-promo", context, now=now + timedelta(seconds=1))).target_id == "D"

    async def test_resolve_config_inline(self, client: SmartlinkClient, campaign_link: LinkConfig) -> None:
        """Test resolving an unsaved configuration without recording episodes."""
        decision = await client.resolve_config(campaign_link, ClickContext(country="DE"))
        await client.flush()

        assert decision.target_id == "C"
        assert await client.get_episodes() == []


class TestEpisodes:
    """Tests for episode recording."""

    async def test_episode_recorded(
        self, client: SmartlinkClient, campaign_link: LinkConfig, german_desktop: ClickContext
    ) -> None:
        """Test that a resolution produces one episode."""
        saved = await client.save_link(campaign_link)

        decision = await client.resolve("spring-promo", german_desktop)
        await client.flush()

        episodes = await client.get_episodes("spring-promo")
        assert len(episodes) == 1
        episode = episodes[0]
        assert episode.decision == decision
        assert episode.context.link_id == "spring-promo"
        assert episode.config.version == saved.meta.version
        assert episode.outcome == EpisodeOutcome.SUCCESS
        assert episode.executor.executor_id == "litestar-smartlinks"

    async def test_context_timestamp_is_stamped(self, client: SmartlinkClient, campaign_link: LinkConfig) -> None:
        """Test that clicks without a timestamp get one before recording."""
        await client.save_link(campaign_link)

        await client.resolve("spring-promo", ClickContext(country="DE"))
        await client.flush()

        (episode,) = await client.get_episodes()
        assert episode.context.timestamp is not None

    async def test_recording_can_be_disabled(self, storage: MemoryStorageBackend, campaign_link: LinkConfig) -> None:
        """Test record_episodes=False."""
        client = SmartlinkClient(storage=storage, record_episodes=False)
        await client.save_link(campaign_link)

        await client.resolve("spring-promo", ClickContext())
        await client.flush()

        assert await client.get_episodes() == []

    async def test_failed_episode_write_does_not_change_decision(
        self, campaign_link: LinkConfig, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that a failing episode store is logged and otherwise ignored."""
        client = SmartlinkClient(storage=FailingEpisodeStorage())
        await client.save_link(campaign_link)

        with caplog.at_level(logging.ERROR, logger="litestar_smartlinks.client"):
            decision = await client.resolve("spring-promo", ClickContext(country="DE"))
            await client.flush()

        assert decision.outcome == ResolutionOutcome.OK
        assert decision.target_id == "C"
        assert "Failed to record episode" in caplog.text

    async def test_get_stats(self, client: SmartlinkClient, campaign_link: LinkConfig) -> None:
        """Test statistics built from recorded episodes."""
        await client.save_link(campaign_link)
        for country in ("DE", "DE", "FR"):
            await client.resolve("spring-promo", ClickContext(country=country, device="desktop"))
        await client.flush()

        report = await client.get_stats(StatsQuery(link_id="spring-promo", group_by=[StatsDimension.TARGET_ID]))

        assert report.summary.total_clicks == 3
        assert {row.dimensions["target_id"]: row.clicks for row in report.rows} == {"C": 2, "D": 1}


class TestHooks:
    """Tests for resolution hooks."""

    async def test_hooks_called_in_order(self, storage: MemoryStorageBackend, campaign_link: LinkConfig) -> None:
        """Test that before and after hooks observe every resolution."""
        hook = RecordingHook()
        client = SmartlinkClient(storage=storage, hooks=[hook])
        await client.save_link(campaign_link)

        await client.resolve("spring-promo", ClickContext(country="DE"))
        await client.flush()

        assert hook.calls == [("before", "spring-promo"), ("after", ResolutionOutcome.OK)]

    async def test_failing_hooks_are_ignored(self, storage: MemoryStorageBackend, campaign_link: LinkConfig) -> None:
        """Test that hook exceptions never affect the decision."""
        client = SmartlinkClient(storage=storage, hooks=[FailingHook()])
        await client.save_link(campaign_link)

        decision = await client.resolve("spring-promo", ClickContext(country="DE"))
        await client.flush()

        assert decision.target_id == "C"

    async def test_error_hook_on_storage_failure(self) -> None:
        """Test that storage failures reach the error hook and propagate."""
        hook = RecordingHook()
        client = SmartlinkClient(storage=FailingLinkStorage(), hooks=[hook])

        with pytest.raises(ConnectionError):
            await client.resolve("spring-promo", ClickContext())

        assert hook.calls == [("before", "spring-promo"), ("error", "ConnectionError")]


class TestRateLimiting:
    """Tests for rate limited resolution."""

    async def test_rate_limited_link(self, storage: MemoryStorageBackend, campaign_link: LinkConfig) -> None:
        """Test that an exhausted bucket produces RATE_LIMIT decisions."""
        limiter = TokenBucketRateLimiter(RateLimitConfig(per_link_limits={"spring-promo": 1.0}, burst_multiplier=1.0))
        client = SmartlinkClient(storage=storage, rate_limiter=limiter)
        await client.save_link(campaign_link)

        first = await client.resolve("spring-promo", ClickContext(country="DE"))
        second = await client.resolve("spring-promo", ClickContext(country="DE"))
        await client.flush()

        assert first.outcome == ResolutionOutcome.OK
        assert second.outcome == ResolutionOutcome.RATE_LIMIT
        assert second.reason == "Rate limit exceeded for link spring-promo"
        assert second.resolved_url is None
        episodes = await client.get_episodes()
        assert {e.outcome for e in episodes} == {EpisodeOutcome.SUCCESS, EpisodeOutcome.FAILURE}


class TestLinkManagement:
    """Tests for link CRUD and lifecycle."""

    async def test_crud(self, client: SmartlinkClient, campaign_link: LinkConfig) -> None:
        """Test saving, listing and deleting links through the client."""
        saved = await client.save_link(campaign_link)

        assert saved.meta.version == 1
        assert (await client.get_link("spring-promo")).link_id == "spring-promo"
        assert [c.link_id for c in await client.list_links()] == ["spring-promo"]
        assert await client.delete_link("spring-promo") is True
        assert await client.delete_link("spring-promo") is False

    async def test_health_and_close(self, storage: MemoryStorageBackend) -> None:
        """Test that a closed client reports unhealthy."""
        async with SmartlinkClient(storage=storage) as client:
            assert await client.health_check() is True

        assert await client.health_check() is False
        assert await storage.health_check() is False

    async def test_flush_waits_for_pending_episodes(self, campaign_link: LinkConfig) -> None:
        """Test that flush completes queued episode writes."""
        storage = MemoryStorageBackend()
        client = SmartlinkClient(storage=storage)
        await client.save_link(campaign_link)
        await client.resolve("spring-promo", ClickContext(timestamp=datetime(2026, 3, 15, tzinfo=UTC)))

        await client.flush()

        assert len(await storage.list_episodes()) == 1
        await client.close()
