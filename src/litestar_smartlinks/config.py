"""Configuration for the smartlinks plugin."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from litestar_smartlinks.types import DEFAULT_EPISODE_TTL_SECONDS

if TYPE_CHECKING:
    from litestar_smartlinks.context import ClickContext
    from litestar_smartlinks.hooks import ResolutionHook
    from litestar_smartlinks.rate_limit import RateLimitConfig

__all__ = ["SmartlinksConfig"]


@dataclass
class SmartlinksConfig:
    """Configuration for :class:`~litestar_smartlinks.plugin.SmartlinksPlugin`.

    Attributes:
        backend: Storage backend, ``"memory"`` or ``"redis"``.
        redis_url: Redis connection URL, required for the redis backend.
        redis_prefix: Prefix for every Redis key.
        max_episodes: Episode buffer size of the memory backend.
        episode_ttl_seconds: Episode retention.
        record_episodes: Persist an episode for every resolution.
        client_dependency_key: Dependency name under which the client is injected.
        enable_middleware: Install the click context middleware.
        register_routes: Mount the redirect, envelope and admin controllers.
        redirect_path: Mount path of the public redirect endpoint.
        envelope_path: Mount path of the resolve/stats envelope endpoints.
        api_path: Mount path of the admin endpoints.
        admin_guards: Litestar guards applied to the admin endpoints.
        default_context: Context merged under every click.
        rate_limit: Optional per-link throttling.
        hooks: Resolution hooks passed to the client.
        executor_id: Identifier stamped on decisions and episodes.
        executor_version: Version stamped on decisions and episodes.

    Example:
        >>> config = SmartlinksConfig(backend="redis", redis_url="redis://localhost:6379/0")

    """

    backend: Literal["memory", "redis"] = "memory"
    redis_url: str | None = None
    redis_prefix: str = "smartlinks:"
    max_episodes: int = 10_000
    episode_ttl_seconds: int = DEFAULT_EPISODE_TTL_SECONDS
    record_episodes: bool = True
    client_dependency_key: str = "smartlinks"
    enable_middleware: bool = True
    register_routes: bool = True
    redirect_path: str = "/s"
    envelope_path: str = "/smartlink"
    api_path: str = "/api/smartlinks"
    admin_guards: list[Any] = field(default_factory=list)
    default_context: ClickContext | None = None
    rate_limit: RateLimitConfig | None = None
    hooks: list[ResolutionHook] = field(default_factory=list)
    executor_id: str = "litestar-smartlinks"
    executor_version: str | None = "0.1.0"

    def __post_init__(self) -> None:
        if self.backend not in ("memory", "redis"):
            raise ValueError(f"Unknown storage backend: {self.backend!r}")
        if self.backend == "redis" and not self.redis_url:
            raise ValueError("redis_url is required when using the redis backend")
        if self.max_episodes < 1:
            raise ValueError("max_episodes must be at least 1")
        if self.episode_ttl_seconds < 1:
            raise ValueError("episode_ttl_seconds must be at least 1")
