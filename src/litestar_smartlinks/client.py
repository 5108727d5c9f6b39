"""Smartlink client: storage lookups, resolution and episode recording."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from litestar_smartlinks.analytics import StatsAggregator, StatsQuery, StatsReport
from litestar_smartlinks.context import ClickContext
from litestar_smartlinks.engine import ResolutionEngine
from litestar_smartlinks.exceptions import LinkNotFoundError
from litestar_smartlinks.models.episode import ExecutorInfo, ResolutionEpisode
from litestar_smartlinks.results import Decision
from litestar_smartlinks.types import ResolutionOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from litestar_smartlinks.hooks import ResolutionHook
    from litestar_smartlinks.models.link import LinkConfig
    from litestar_smartlinks.rate_limit import TokenBucketRateLimiter
    from litestar_smartlinks.storage.base import StorageBackend

__all__ = ["SmartlinkClient"]

logger = logging.getLogger(__name__)

DEFAULT_EXECUTOR_ID = "litestar-smartlinks"
DEFAULT_EXECUTOR_VERSION = "0.1.0"
STATS_EPISODE_LIMIT = 100_000


class SmartlinkClient:
    """Main entry point for resolving smartlinks.

    The client loads link configurations from storage, runs the resolution
    engine and records each decision as an episode. Episode persistence is
    fire-and-forget: the decision is returned before the write completes and
    a failed write is only logged.

    Example:
        >>> client = SmartlinkClient(storage=MemoryStorageBackend())
        >>> decision = await client.resolve("spring-promo", ClickContext(country="DE"))
        >>> decision.resolved_url
        'https://example.com/de'

    """

    def __init__(
        self,
        storage: StorageBackend,
        engine: ResolutionEngine | None = None,
        default_context: ClickContext | None = None,
        rate_limiter: TokenBucketRateLimiter | None = None,
        hooks: Sequence[ResolutionHook] | None = None,
        record_episodes: bool = True,
        episode_ttl_seconds: int | None = None,
        executor_id: str = DEFAULT_EXECUTOR_ID,
        executor_version: str | None = DEFAULT_EXECUTOR_VERSION,
    ) -> None:
        """Initialize the client.

        Args:
            storage: Storage backend for links and episodes.
            engine: Resolution engine. A default engine is created if omitted.
            default_context: Context merged under every click context.
            rate_limiter: Optional throttle producing ``RATE_LIMIT`` decisions.
            hooks: Observers notified around each resolution.
            record_episodes: Persist an episode for every stored-link resolution.
            episode_ttl_seconds: Retention passed to the storage backend.
            executor_id: Identifier stamped on decisions and episodes.
            executor_version: Version stamped on decisions and episodes.

        """
        self._storage = storage
        self._engine = engine or ResolutionEngine()
        self._default_context = default_context or ClickContext()
        self._rate_limiter = rate_limiter
        self._hooks = list(hooks or [])
        self._record_episodes = record_episodes
        self._episode_ttl_seconds = episode_ttl_seconds
        self._executor = ExecutorInfo(executor_id=executor_id, version=executor_version)
        self._aggregator = StatsAggregator()
        self._pending: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def storage(self) -> StorageBackend:
        """The storage backend."""
        return self._storage

    @property
    def engine(self) -> ResolutionEngine:
        """The resolution engine."""
        return self._engine

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    async def resolve(
        self,
        link_id: str,
        context: ClickContext | None = None,
        now: datetime | None = None,
    ) -> Decision:
        """Resolve a stored link.

        Args:
            link_id: The link to resolve.
            context: The click context.
            now: Evaluation time override.

        Returns:
            The decision.

        Raises:
            LinkNotFoundError: If no configuration is stored for ``link_id``.

        """
        click = self._prepare_context(link_id, context)
        await self._run_before_hooks(link_id, click)

        try:
            config = await self._storage.get_link(link_id)
        except Exception as exc:
            await self._run_error_hooks(link_id, click, exc)
            raise
        if config is None:
            raise LinkNotFoundError(link_id)

        decision = await self._decide(config, click, now)
        if self._record_episodes:
            self._schedule_episode(decision, click, config.meta.version)
        await self._run_after_hooks(link_id, click, decision)
        return decision

    async def resolve_config(
        self,
        config: LinkConfig,
        context: ClickContext | None = None,
        now: datetime | None = None,
    ) -> Decision:
        """Resolve an inline configuration without touching stored links.

        Inline resolutions are not recorded as episodes.

        Args:
            config: The link configuration.
            context: The click context.
            now: Evaluation time override.

        Returns:
            The decision.

        """
        click = self._prepare_context(config.link_id, context)
        await self._run_before_hooks(config.link_id, click)
        decision = await self._decide(config, click, now)
        await self._run_after_hooks(config.link_id, click, decision)
        return decision

    def _prepare_context(self, link_id: str, context: ClickContext | None) -> ClickContext:
        click = self._default_context.merge(context) if context is not None else self._default_context
        if click.link_id != link_id:
            click = click.with_link_id(link_id)
        if click.timestamp is None:
            click = click.with_timestamp(datetime.now(UTC))
        return click

    async def _decide(self, config: LinkConfig, context: ClickContext, now: datetime | None) -> Decision:
        if self._rate_limiter is not None and not await self._rate_limiter.try_acquire(config.link_id):
            logger.info("Rate limit exceeded for link %s", config.link_id)
            decision = Decision(
                link_id=config.link_id,
                outcome=ResolutionOutcome.RATE_LIMIT,
                reason=f"Rate limit exceeded for link {config.link_id}",
            )
        else:
            decision = self._engine.resolve(config, context, now=now)
        return decision.with_executor(self._executor.executor_id, self._executor.version)

    # -------------------------------------------------------------------------
    # Episodes
    # -------------------------------------------------------------------------

    def _schedule_episode(self, decision: Decision, context: ClickContext, config_version: int) -> None:
        episode = ResolutionEpisode.from_decision(
            decision,
            context,
            self._executor,
            config_version=config_version,
        )
        task = asyncio.create_task(self._save_episode(episode))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save_episode(self, episode: ResolutionEpisode) -> None:
        try:
            await self._storage.save_episode(episode, ttl_seconds=self._episode_ttl_seconds)
        except Exception:
            logger.exception("Failed to record episode %s for link %s", episode.episode_id, episode.link_id)

    async def flush(self) -> None:
        """Wait for pending episode writes to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def get_episodes(self, link_id: str | None = None, limit: int = 100) -> list[ResolutionEpisode]:
        """List recorded episodes, newest first."""
        return await self._storage.list_episodes(link_id=link_id, limit=limit)

    async def get_stats(self, query: StatsQuery) -> StatsReport:
        """Build a statistics report from recorded episodes.

        Args:
            query: The statistics query.

        Returns:
            The report.

        """
        episodes = await self._storage.list_episodes(link_id=query.link_id, limit=STATS_EPISODE_LIMIT)
        return self._aggregator.build_report(episodes, query)

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    async def _run_before_hooks(self, link_id: str, context: ClickContext) -> None:
        for hook in self._hooks:
            try:
                await hook.before_resolution(link_id, context)
            except Exception:
                logger.exception("Resolution hook %r failed in before_resolution", hook)

    async def _run_after_hooks(self, link_id: str, context: ClickContext, decision: Decision) -> None:
        for hook in self._hooks:
            try:
                await hook.after_resolution(link_id, context, decision)
            except Exception:
                logger.exception("Resolution hook %r failed in after_resolution", hook)

    async def _run_error_hooks(self, link_id: str, context: ClickContext, error: Exception) -> None:
        for hook in self._hooks:
            try:
                await hook.on_error(link_id, context, error)
            except Exception:
                logger.exception("Resolution hook %r failed in on_error", hook)

    # -------------------------------------------------------------------------
    # Link management
    # -------------------------------------------------------------------------

    async def get_link(self, link_id: str) -> LinkConfig | None:
        """Retrieve a stored link configuration."""
        return await self._storage.get_link(link_id)

    async def list_links(self) -> list[LinkConfig]:
        """Retrieve every stored link configuration."""
        return await self._storage.list_links()

    async def save_link(self, config: LinkConfig) -> LinkConfig:
        """Create or replace a link configuration."""
        saved = await self._storage.save_link(config)
        logger.info("Saved link %s (version %d)", saved.link_id, saved.meta.version)
        return saved

    async def delete_link(self, link_id: str) -> bool:
        """Delete a link configuration.

        Returns:
            True if the link existed.

        """
        deleted = await self._storage.delete_link(link_id)
        if deleted:
            logger.info("Deleted link %s", link_id)
        return deleted

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def health_check(self) -> bool:
        """Check whether the client and its storage are usable."""
        if self._closed:
            return False
        return await self._storage.health_check()

    async def close(self) -> None:
        """Flush pending episodes and close the storage backend."""
        if self._closed:
            return
        await self.flush()
        await self._storage.close()
        self._closed = True

    async def __aenter__(self) -> SmartlinkClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
