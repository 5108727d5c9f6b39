"""Storage backends for litestar-smartlinks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from litestar_smartlinks.storage.base import StorageBackend
from litestar_smartlinks.storage.memory import MemoryStorageBackend

if TYPE_CHECKING:
    from litestar_smartlinks.config import SmartlinksConfig

__all__ = ["MemoryStorageBackend", "StorageBackend", "create_storage_backend"]


async def create_storage_backend(config: SmartlinksConfig) -> StorageBackend:
    """Create the storage backend selected by a plugin configuration.

    The redis backend is imported lazily so the ``redis`` extra stays optional.
    """
    if config.backend == "redis":
        from litestar_smartlinks.storage.redis import RedisStorageBackend

        return await RedisStorageBackend.create(
            config.redis_url or "",
            prefix=config.redis_prefix,
            episode_ttl_seconds=config.episode_ttl_seconds,
        )
    return MemoryStorageBackend(max_episodes=config.max_episodes)
