"""Redis storage backend.

Key layout (with the default ``smartlinks:`` prefix):

- ``smartlinks:link:{link_id}`` - JSON link configuration
- ``smartlinks:links`` - set of stored link ids
- ``smartlinks:episode:{episode_id}`` - JSON episode, expiring after its TTL
- ``smartlinks:episodes`` - sorted set of episode ids scored by start time
- ``smartlinks:episodes:{link_id}`` - the same index restricted to one link

Requires the ``redis`` extra.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import msgspec
from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from litestar_smartlinks.eligibility import ensure_utc
from litestar_smartlinks.exceptions import ConfigValidationError, StorageError
from litestar_smartlinks.models.link import LinkMeta
from litestar_smartlinks.serialization import (
    episode_from_dict,
    episode_to_dict,
    link_config_from_dict,
    link_config_to_dict,
)
from litestar_smartlinks.types import DEFAULT_EPISODE_TTL_SECONDS

if TYPE_CHECKING:
    from collections.abc import Sequence

    from litestar_smartlinks.models.episode import ResolutionEpisode
    from litestar_smartlinks.models.link import LinkConfig

__all__ = ["DEFAULT_EPISODE_TTL_SECONDS", "RedisStorageBackend"]

logger = logging.getLogger(__name__)

EPISODE_BATCH_SIZE = 500
SAVE_LINK_ATTEMPTS = 10


class RedisStorageBackend:
    """Redis-backed storage for link configurations and episodes.

    Configurations are stored as JSON documents and saved under ``WATCH`` so
    concurrent saves always produce distinct versions. Episodes expire after
    their TTL; ids of expired episodes are pruned from the index lazily when
    listed, reading episode documents in ``MGET`` batches.

    Example:
        >>> storage = await RedisStorageBackend.create("redis://localhost:6379/0")
        >>> await storage.save_link(config)

    """

    def __init__(
        self,
        redis: Redis,
        prefix: str = "smartlinks:",
        episode_ttl_seconds: int = DEFAULT_EPISODE_TTL_SECONDS,
    ) -> None:
        """Initialize the backend.

        Args:
            redis: A ``redis.asyncio`` client.
            prefix: Prefix applied to every key.
            episode_ttl_seconds: Default retention for episodes.

        """
        self._redis = redis
        self._prefix = prefix
        self._episode_ttl = episode_ttl_seconds

    @classmethod
    async def create(
        cls,
        url: str,
        prefix: str = "smartlinks:",
        episode_ttl_seconds: int = DEFAULT_EPISODE_TTL_SECONDS,
    ) -> RedisStorageBackend:
        """Create a backend from a Redis URL."""
        redis = Redis.from_url(url, decode_responses=True)
        return cls(redis=redis, prefix=prefix, episode_ttl_seconds=episode_ttl_seconds)

    def _link_key(self, link_id: str) -> str:
        return f"{self._prefix}link:{link_id}"

    def _links_index_key(self) -> str:
        return f"{self._prefix}links"

    def _episode_key(self, episode_id: str) -> str:
        return f"{self._prefix}episode:{episode_id}"

    def _episodes_index_key(self, link_id: str | None = None) -> str:
        if link_id is None:
            return f"{self._prefix}episodes"
        return f"{self._prefix}episodes:{link_id}"

    @staticmethod
    def _encode(data: dict[str, Any]) -> str:
        return msgspec.json.encode(data).decode("utf-8")

    @staticmethod
    def _decode_link(raw: str | bytes) -> LinkConfig:
        data = msgspec.json.decode(raw)
        try:
            return link_config_from_dict(data)
        except ConfigValidationError as exc:
            raise StorageError(f"Stored link configuration is invalid: {exc}") from exc

    async def get_link(self, link_id: str) -> LinkConfig | None:
        try:
            raw = await self._redis.get(self._link_key(link_id))
        except RedisError as exc:
            raise StorageError(f"Failed to read link {link_id}") from exc
        return self._decode_link(raw) if raw is not None else None

    async def get_links(self, link_ids: Sequence[str]) -> dict[str, LinkConfig]:
        if not link_ids:
            return {}
        try:
            values = await self._redis.mget([self._link_key(link_id) for link_id in link_ids])
        except RedisError as exc:
            raise StorageError("Failed to read links") from exc
        return {link_id: self._decode_link(raw) for link_id, raw in zip(link_ids, values, strict=True) if raw}

    async def list_links(self) -> list[LinkConfig]:
        try:
            link_ids = sorted(await self._redis.smembers(self._links_index_key()))
        except RedisError as exc:
            raise StorageError("Failed to list links") from exc
        links = await self.get_links(link_ids)
        return [links[link_id] for link_id in link_ids if link_id in links]

    async def save_link(self, config: LinkConfig) -> LinkConfig:
        key = self._link_key(config.link_id)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                for _ in range(SAVE_LINK_ATTEMPTS):
                    try:
                        await pipe.watch(key)
                        raw = await pipe.get(key)
                        saved = self._with_meta(config, self._decode_link(raw) if raw is not None else None)
                        pipe.multi()
                        pipe.set(key, self._encode(link_config_to_dict(saved)))
                        pipe.sadd(self._links_index_key(), config.link_id)
                        await pipe.execute()
                    except WatchError:
                        logger.debug("Link %s changed during save, retrying", config.link_id)
                        continue
                    return saved
        except RedisError as exc:
            raise StorageError(f"Failed to save link {config.link_id}") from exc
        raise StorageError(f"Failed to save link {config.link_id}: too many concurrent writes")

    @staticmethod
    def _with_meta(config: LinkConfig, existing: LinkConfig | None) -> LinkConfig:
        now = datetime.now(UTC)
        return replace(
            config,
            meta=LinkMeta(
                version=(existing.meta.version if existing else 0) + 1,
                created_at=existing.meta.created_at if existing else now,
                updated_at=now,
                created_by=config.meta.created_by or (existing.meta.created_by if existing else None),
                updated_by=config.meta.updated_by,
            ),
        )

    async def delete_link(self, link_id: str) -> bool:
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.delete(self._link_key(link_id))
                pipe.srem(self._links_index_key(), link_id)
                deleted, _ = await pipe.execute()
        except RedisError as exc:
            raise StorageError(f"Failed to delete link {link_id}") from exc
        return bool(deleted)

    async def save_episode(self, episode: ResolutionEpisode, ttl_seconds: int | None = None) -> None:
        ttl = ttl_seconds or self._episode_ttl
        score = ensure_utc(episode.timestamp_start).timestamp()
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(self._episode_key(episode.episode_id), self._encode(episode_to_dict(episode)), ex=ttl)
                pipe.zadd(self._episodes_index_key(), {episode.episode_id: score})
                pipe.zadd(self._episodes_index_key(episode.link_id), {episode.episode_id: score})
                await pipe.execute()
        except RedisError as exc:
            raise StorageError(f"Failed to save episode {episode.episode_id}") from exc

    async def get_episode(self, episode_id: str) -> ResolutionEpisode | None:
        try:
            raw = await self._redis.get(self._episode_key(episode_id))
        except RedisError as exc:
            raise StorageError(f"Failed to read episode {episode_id}") from exc
        if raw is None:
            return None
        return episode_from_dict(msgspec.json.decode(raw))

    async def list_episodes(self, link_id: str | None = None, limit: int = 100) -> list[ResolutionEpisode]:
        index_key = self._episodes_index_key(link_id)
        episodes: list[ResolutionEpisode] = []
        expired: list[str] = []
        start = 0
        try:
            while len(episodes) < limit:
                episode_ids = await self._redis.zrevrange(index_key, start, start + EPISODE_BATCH_SIZE - 1)
                if not episode_ids:
                    break
                start += len(episode_ids)
                values = await self._redis.mget([self._episode_key(episode_id) for episode_id in episode_ids])
                for episode_id, raw in zip(episode_ids, values, strict=True):
                    if raw is None:
                        expired.append(episode_id)
                        continue
                    episodes.append(episode_from_dict(msgspec.json.decode(raw)))
                    if len(episodes) >= limit:
                        break

            if expired:
                logger.debug("Pruning %d expired episode ids from %s", len(expired), index_key)
                await self._redis.zrem(index_key, *expired)
        except RedisError as exc:
            raise StorageError("Failed to list episodes") from exc
        return episodes

    async def health_check(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except Exception:  # noqa: BLE001
            logger.warning("Redis health check failed", exc_info=True)
            return False

    async def close(self) -> None:
        await self._redis.aclose()
