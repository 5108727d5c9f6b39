"""Litestar plugin for smartlinks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from litestar import Router
from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from litestar_smartlinks.client import SmartlinkClient
from litestar_smartlinks.config import SmartlinksConfig
from litestar_smartlinks.controllers import AdminController, EnvelopeController, RedirectController, exception_handlers
from litestar_smartlinks.middleware import create_context_middleware
from litestar_smartlinks.rate_limit import TokenBucketRateLimiter
from litestar_smartlinks.storage import create_storage_backend

if TYPE_CHECKING:
    from litestar import Litestar
    from litestar.config.app import AppConfig

    from litestar_smartlinks.storage.base import StorageBackend

__all__ = ["SmartlinksPlugin"]

logger = logging.getLogger(__name__)


class SmartlinksPlugin(InitPluginProtocol):
    """Litestar plugin wiring storage, client, middleware and routes.

    On startup the storage backend and client are created and stored on
    ``app.state.smartlinks_storage`` and ``app.state.smartlinks``. The client
    is injectable under ``config.client_dependency_key``. On shutdown the
    client is flushed and closed.

    Example:
        >>> from litestar import Litestar
        >>> from litestar_smartlinks import SmartlinksConfig, SmartlinksPlugin
        >>> app = Litestar(plugins=[SmartlinksPlugin(SmartlinksConfig(redirect_path="/go"))])

    """

    def __init__(self, config: SmartlinksConfig | None = None) -> None:
        self._config = config or SmartlinksConfig()
        self._client: SmartlinkClient | None = None
        self._storage: StorageBackend | None = None

    @property
    def config(self) -> SmartlinksConfig:
        """The plugin configuration."""
        return self._config

    @property
    def client(self) -> SmartlinkClient | None:
        """The client, available between startup and shutdown."""
        return self._client

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Register lifecycle hooks, the client dependency, middleware and routes."""
        app_config.on_startup.insert(0, self._on_startup)
        app_config.on_shutdown.append(self._on_shutdown)

        app_config.dependencies[self._config.client_dependency_key] = Provide(
            self._provide_client,
            sync_to_thread=False,
        )
        for exc_type, handler in exception_handlers.items():
            app_config.exception_handlers.setdefault(exc_type, handler)

        if self._config.enable_middleware:
            app_config.middleware.append(create_context_middleware())

        if self._config.register_routes:
            app_config.route_handlers.extend(
                [
                    Router(path=self._config.redirect_path, route_handlers=[RedirectController]),
                    Router(path=self._config.envelope_path, route_handlers=[EnvelopeController]),
                    Router(
                        path=self._config.api_path,
                        route_handlers=[AdminController],
                        guards=list(self._config.admin_guards),
                    ),
                ]
            )
        return app_config

    async def _on_startup(self, app: Litestar) -> None:
        self._storage = await create_storage_backend(self._config)
        rate_limiter = TokenBucketRateLimiter(self._config.rate_limit) if self._config.rate_limit else None
        self._client = SmartlinkClient(
            storage=self._storage,
            default_context=self._config.default_context,
            rate_limiter=rate_limiter,
            hooks=self._config.hooks,
            record_episodes=self._config.record_episodes,
            episode_ttl_seconds=self._config.episode_ttl_seconds,
            executor_id=self._config.executor_id,
            executor_version=self._config.executor_version,
        )
        app.state.smartlinks = self._client
        app.state.smartlinks_storage = self._storage
        logger.info("Smartlinks started with %s backend", self._config.backend)

    async def _on_shutdown(self, app: Litestar) -> None:
        if self._client is not None:
            await self._client.close()
        self._client = None
        self._storage = None

    def _provide_client(self) -> SmartlinkClient:
        if self._client is None:
            raise RuntimeError("Smartlinks client is not initialized. Is the application started?")
        return self._client

    def __repr__(self) -> str:
        options: dict[str, Any] = {"backend": self._config.backend, "redirect_path": self._config.redirect_path}
        return f"SmartlinksPlugin({', '.join(f'{k}={v!r}' for k, v in options.items())})"
