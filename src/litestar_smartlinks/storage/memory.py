"""In-memory storage backend."""

from __future__ import annotations

import asyncio
import copy
from collections import deque
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from litestar_smartlinks.eligibility import ensure_utc

if TYPE_CHECKING:
    from collections.abc import Sequence

    from litestar_smartlinks.models.episode import ResolutionEpisode
    from litestar_smartlinks.models.link import LinkConfig

__all__ = ["MemoryStorageBackend"]


class MemoryStorageBackend:
    """In-memory storage backend.

    Suitable for development, testing and single-process deployments.
    Configurations are copied on the way in and out so callers never share
    mutable state with the store. Episodes are kept in a bounded buffer; the
    oldest are dropped once ``max_episodes`` is reached. Episode TTLs are
    ignored.

    Example:
        >>> storage = MemoryStorageBackend()
        >>> await storage.save_link(LinkConfig(link_id="promo", default_target_id="home"))

    """

    def __init__(self, max_episodes: int = 10_000) -> None:
        self._links: dict[str, LinkConfig] = {}
        self._episodes: deque[ResolutionEpisode] = deque(maxlen=max_episodes)
        self._lock = asyncio.Lock()
        self._closed = False

    def __len__(self) -> int:
        return len(self._links)

    async def get_link(self, link_id: str) -> LinkConfig | None:
        config = self._links.get(link_id)
        return copy.deepcopy(config) if config is not None else None

    async def get_links(self, link_ids: Sequence[str]) -> dict[str, LinkConfig]:
        return {link_id: copy.deepcopy(self._links[link_id]) for link_id in link_ids if link_id in self._links}

    async def list_links(self) -> list[LinkConfig]:
        return [copy.deepcopy(config) for config in self._links.values()]

    async def save_link(self, config: LinkConfig) -> LinkConfig:
        async with self._lock:
            now = datetime.now(UTC)
            existing = self._links.get(config.link_id)
            meta = replace(
                config.meta,
                version=(existing.meta.version if existing else 0) + 1,
                created_at=existing.meta.created_at if existing else now,
                updated_at=now,
            )
            stored = copy.deepcopy(config)
            stored.meta = meta
            self._links[config.link_id] = stored
            return copy.deepcopy(stored)

    async def delete_link(self, link_id: str) -> bool:
        async with self._lock:
            return self._links.pop(link_id, None) is not None

    async def save_episode(self, episode: ResolutionEpisode, ttl_seconds: int | None = None) -> None:
        async with self._lock:
            self._episodes.append(episode)

    async def get_episode(self, episode_id: str) -> ResolutionEpisode | None:
        for episode in self._episodes:
            if episode.episode_id == episode_id:
                return episode
        return None

    async def list_episodes(self, link_id: str | None = None, limit: int = 100) -> list[ResolutionEpisode]:
        episodes = [e for e in self._episodes if link_id is None or e.link_id == link_id]
        episodes.sort(key=lambda e: ensure_utc(e.timestamp_start), reverse=True)
        return episodes[:limit]

    async def health_check(self) -> bool:
        return not self._closed

    async def close(self) -> None:
        self._links.clear()
        self._episodes.clear()
        self._closed = True
