"""Structured logging hook for smartlink resolutions.

Uses ``structlog`` when it is installed and the supplied logger is not a
stdlib ``logging.Logger``; otherwise logs through the standard library with
the structured fields passed as ``extra``.

Example:
    >>> from litestar_smartlinks import SmartlinkClient, MemoryStorageBackend
    >>> from litestar_smartlinks.contrib.logging import LoggingHook
    >>> client = SmartlinkClient(storage=MemoryStorageBackend(), hooks=[LoggingHook()])

"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from litestar_smartlinks.types import ResolutionOutcome

try:
    import structlog

    STRUCTLOG_AVAILABLE = True
except ImportError:
    structlog = None  # type: ignore[assignment]
    STRUCTLOG_AVAILABLE = False

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar_smartlinks.context import ClickContext
    from litestar_smartlinks.results import Decision

__all__ = ["STRUCTLOG_AVAILABLE", "LoggingHook"]


def _get_default_logger() -> Any:
    if STRUCTLOG_AVAILABLE and structlog is not None:
        return structlog.get_logger("litestar_smartlinks")
    return logging.getLogger("litestar_smartlinks")


class LoggingHook:
    """Log every resolution performed by the client.

    Args:
        logger: A stdlib or structlog logger. Defaults to the package logger.
        resolution_level: Level for regular decisions.
        error_level: Level for ``ERROR`` decisions and exceptions.
        log_urls: Include resolved URLs in log records. Off by default since
            destination URLs can carry campaign or personal data.
        include_context: Include click attributes in log records.

    """

    def __init__(
        self,
        logger: Any | None = None,
        resolution_level: str = "DEBUG",
        error_level: str = "ERROR",
        log_urls: bool = False,
        include_context: bool = True,
    ) -> None:
        self._logger = logger if logger is not None else _get_default_logger()
        self._resolution_level = resolution_level.upper()
        self._error_level = error_level.upper()
        self._log_urls = log_urls
        self._include_context = include_context
        self._use_structlog = STRUCTLOG_AVAILABLE and not isinstance(self._logger, logging.Logger)

    @property
    def logger(self) -> Any:
        """The underlying logger."""
        return self._logger

    def _get_log_method(self, level: str) -> Callable[..., None]:
        return {
            "DEBUG": self._logger.debug,
            "INFO": self._logger.info,
            "WARNING": self._logger.warning,
            "ERROR": self._logger.error,
            "CRITICAL": self._logger.critical,
        }.get(level.upper(), self._logger.debug)

    def _context_data(self, context: ClickContext | None) -> dict[str, Any]:
        if context is None or not self._include_context:
            return {}
        data = {
            "country": context.country,
            "language": context.language,
            "device": context.device,
            "utm_source": context.utm.source,
            "utm_campaign": context.utm.campaign,
        }
        return {key: value for key, value in data.items() if value is not None}

    def _build_log_data(
        self,
        link_id: str,
        decision: Decision,
        context: ClickContext | None = None,
    ) -> dict[str, Any]:
        data: dict[str, Any] = {
            "link_id": link_id,
            "outcome": decision.outcome.value,
            "reason": decision.reason,
            "latency_ms": decision.latency_ms,
        }
        if decision.target_id is not None:
            data["target_id"] = decision.target_id
        if self._log_urls and decision.resolved_url is not None:
            data["resolved_url"] = decision.resolved_url
        if decision.matched_conditions is not None:
            data["matched_conditions"] = decision.matched_conditions.to_dict()
        data.update(self._context_data(context))
        return data

    def _log_with_data(self, level: str, message: str, data: dict[str, Any], **kwargs: Any) -> None:
        method = self._get_log_method(level)
        if self._use_structlog:
            method(message, **data, **kwargs)
        else:
            method(message, extra=data, **kwargs)

    def log_resolution_sync(self, link_id: str, decision: Decision, context: ClickContext | None = None) -> None:
        """Log a decision synchronously."""
        data = self._build_log_data(link_id, decision, context)
        if decision.outcome == ResolutionOutcome.ERROR:
            self._log_with_data(self._error_level, f"Smartlink resolution error: {link_id}", data)
        else:
            self._log_with_data(self._resolution_level, f"Smartlink resolved: {link_id}", data)

    async def log_resolution(self, link_id: str, decision: Decision, context: ClickContext | None = None) -> None:
        """Log a decision."""
        self.log_resolution_sync(link_id, decision, context)

    async def before_resolution(self, link_id: str, context: ClickContext | None = None) -> None:
        data = {"link_id": link_id, **self._context_data(context)}
        self._log_with_data(self._resolution_level, f"Starting smartlink resolution: {link_id}", data)

    async def after_resolution(self, link_id: str, context: ClickContext | None, decision: Decision) -> None:
        await self.log_resolution(link_id, decision, context)

    async def on_error(self, link_id: str, context: ClickContext | None, error: Exception) -> None:
        data = {
            "link_id": link_id,
            "error_type": type(error).__name__,
            "error_message": str(error),
            **self._context_data(context),
        }
        self._log_with_data(self._error_level, f"Smartlink resolution exception: {link_id}", data, exc_info=error)

    def bind(self, **kwargs: Any) -> LoggingHook:
        """Return a new hook whose logger carries extra bound fields.

        With structlog the fields are bound to the logger. Stdlib loggers
        cannot bind, so the new hook shares the same logger.
        """
        logger = self._logger
        if self._use_structlog and structlog is not None:
            logger = self._logger.bind(**kwargs)
        hook = LoggingHook(
            logger=logger,
            resolution_level=self._resolution_level,
            error_level=self._error_level,
            log_urls=self._log_urls,
            include_context=self._include_context,
        )
        hook._use_structlog = self._use_structlog
        return hook
