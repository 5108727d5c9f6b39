"""Storage backend protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from litestar_smartlinks.models.episode import ResolutionEpisode
    from litestar_smartlinks.models.link import LinkConfig

__all__ = ["StorageBackend"]


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for smartlink storage backends.

    Backends store link configurations by link id and resolution episodes by
    episode id. Saving a link is a full replace ("last write wins"); the
    backend owns ``meta.version`` and the ``meta`` timestamps.

    Implementations:
        - MemoryStorageBackend: In-memory storage for development/testing
        - RedisStorageBackend: Redis-based storage for shared deployments

    """

    async def get_link(self, link_id: str) -> LinkConfig | None:
        """Retrieve a link configuration.

        Args:
            link_id: The link id.

        Returns:
            The configuration, or None if not found.

        """
        ...

    async def get_links(self, link_ids: Sequence[str]) -> dict[str, LinkConfig]:
        """Retrieve several link configurations, keyed by id. Missing ids are omitted."""
        ...

    async def list_links(self) -> list[LinkConfig]:
        """Retrieve every stored link configuration."""
        ...

    async def save_link(self, config: LinkConfig) -> LinkConfig:
        """Create or replace a link configuration.

        Args:
            config: The configuration to store.

        Returns:
            The stored configuration with updated ``meta``.

        """
        ...

    async def delete_link(self, link_id: str) -> bool:
        """Delete a link configuration.

        Returns:
            True if the link existed.

        """
        ...

    async def save_episode(self, episode: ResolutionEpisode, ttl_seconds: int | None = None) -> None:
        """Persist a resolution episode.

        Args:
            episode: The episode to store.
            ttl_seconds: Retention time, where the backend supports expiry.

        """
        ...

    async def get_episode(self, episode_id: str) -> ResolutionEpisode | None:
        """Retrieve an episode by id."""
        ...

    async def list_episodes(self, link_id: str | None = None, limit: int = 100) -> list[ResolutionEpisode]:
        """List episodes, newest first.

        Args:
            link_id: Restrict to episodes of this link.
            limit: Maximum number of episodes to return.

        """
        ...

    async def health_check(self) -> bool:
        """Check whether the backend is usable."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...
