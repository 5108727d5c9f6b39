"""HTTP endpoints for smartlinks.

- ``RedirectController``: public redirect endpoint
- ``EnvelopeController``: envelope-style resolve and stats endpoints
- ``AdminController``: link configuration CRUD

The plugin mounts each controller under its configured path. Handlers reach
the client through ``request.app.state.smartlinks``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from litestar import Controller, Request, Response, delete, get, post, put
from litestar.exceptions import NotFoundException, ValidationException
from litestar.response import Redirect

from litestar_smartlinks.exceptions import ConfigValidationError, LinkNotFoundError
from litestar_smartlinks.middleware import extract_click_context, get_request_context
from litestar_smartlinks.serialization import (
    click_context_from_dict,
    link_config_from_dict,
    link_config_to_dict,
    stats_query_from_dict,
)
from litestar_smartlinks.types import OUTCOME_HTTP_STATUS

if TYPE_CHECKING:
    from litestar_smartlinks.client import SmartlinkClient
    from litestar_smartlinks.context import ClickContext
    from litestar_smartlinks.models.link import LinkConfig

__all__ = [
    "RESOLVE_ENVELOPE_ID",
    "STATS_ENVELOPE_ID",
    "AdminController",
    "EnvelopeController",
    "RedirectController",
    "exception_handlers",
]

logger = logging.getLogger(__name__)

RESOLVE_ENVELOPE_ID = "env.smartlink_resolve_v1"
STATS_ENVELOPE_ID = "env.smartlink_stats_get_v1"


def _get_client(request: Request[Any, Any, Any]) -> SmartlinkClient:
    return request.app.state.smartlinks


def _error_body(error: str, message: str, status: int, **extra: Any) -> dict[str, Any]:
    return {"error": error, "message": message, "status": status, **extra}


def _safe_location(url: str) -> str:
    return url.replace("\r", "").replace("\n", "")


def _click_context(request: Request[Any, Any, Any], link_id: str) -> ClickContext:
    context = get_request_context(request) or extract_click_context(request)
    return context.with_link_id(link_id)


# -----------------------------------------------------------------------------
# Exception handlers
# -----------------------------------------------------------------------------


def _link_not_found_handler(request: Request[Any, Any, Any], exc: LinkNotFoundError) -> Response[dict[str, Any]]:
    return Response(content=_error_body("NOT_FOUND", str(exc), 404, link_id=exc.link_id), status_code=404)


def _config_validation_handler(
    request: Request[Any, Any, Any], exc: ConfigValidationError
) -> Response[dict[str, Any]]:
    return Response(content=_error_body("VALIDATION_ERROR", str(exc), 400, issues=exc.to_dict()), status_code=400)


exception_handlers = {
    LinkNotFoundError: _link_not_found_handler,
    ConfigValidationError: _config_validation_handler,
}
"""Exception handlers registered by the plugin."""


# -----------------------------------------------------------------------------
# Public redirect
# -----------------------------------------------------------------------------


class RedirectController(Controller):
    """Public redirect endpoint."""

    path = "/"
    tags = ["Smartlinks"]

    @get("/{link_id:str}", summary="Follow a smartlink")
    async def follow(self, request: Request[Any, Any, Any], link_id: str, debug: str | None = None) -> Response[Any]:
        """Resolve a link and redirect to its destination.

        With ``?debug=1`` the decision is returned as JSON instead.
        """
        client = _get_client(request)
        context = _click_context(request, link_id)
        decision = await client.resolve(link_id, context)

        if debug == "1":
            return Response(
                content={
                    "link_id": link_id,
                    "context": context.to_dict(),
                    "decision": decision.to_dict(),
                    "final_url": decision.resolved_url,
                    "timestamp": datetime.now(UTC).isoformat(),
                },
                status_code=200,
            )

        status = OUTCOME_HTTP_STATUS[decision.outcome]
        if decision.is_redirect and decision.resolved_url:
            return Redirect(path=_safe_location(decision.resolved_url), status_code=status)

        return Response(
            content=_error_body(decision.outcome.value, decision.reason, status, outcome=decision.outcome.value),
            status_code=status,
        )


# -----------------------------------------------------------------------------
# Envelope endpoints
# -----------------------------------------------------------------------------


def _check_envelope(data: Any, envelope_id: str, verb: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationException(detail="Envelope must be a JSON object")
    if data.get("envelope_id") != envelope_id:
        raise ValidationException(detail=f"Invalid envelope_id, expected {envelope_id}")
    if data.get("verb") != verb:
        raise ValidationException(detail=f"Invalid verb, expected {verb}")
    payload = data.get("payload")
    if not isinstance(payload, dict):
        raise ValidationException(detail="Missing payload")
    return payload


class EnvelopeController(Controller):
    """Envelope-style resolve and stats endpoints."""

    path = "/"
    tags = ["Smartlinks"]

    @post("/resolve", status_code=200, summary="Resolve a click envelope")
    async def resolve(self, request: Request[Any, Any, Any], data: dict[str, Any]) -> dict[str, Any]:
        """Resolve the click in ``payload.input``.

        ``payload.config`` may carry an inline configuration, a
        ``{"config_ref": link_id}`` reference, or be omitted to resolve the
        stored link named by the input.
        """
        payload = _check_envelope(data, RESOLVE_ENVELOPE_ID, "route")
        if "input" not in payload:
            raise ValidationException(detail="Missing payload.input")

        client = _get_client(request)
        context = click_context_from_dict(payload["input"])
        raw_config = payload.get("config")

        if isinstance(raw_config, dict) and "config_ref" in raw_config:
            decision = await client.resolve(str(raw_config["config_ref"]), context)
        elif isinstance(raw_config, dict):
            config = link_config_from_dict(raw_config)
            decision = await client.resolve_config(config, context)
        elif raw_config is None and context.link_id:
            decision = await client.resolve(context.link_id, context)
        else:
            raise ValidationException(detail="payload.config or payload.input.link_id is required")

        return {
            **data,
            "payload": {**payload, "output": decision.to_dict()},
            "meta": {**(data.get("meta") or {}), "timestamp": datetime.now(UTC).isoformat()},
        }

    @post("/stats", status_code=200, summary="Query resolution statistics")
    async def stats(self, request: Request[Any, Any, Any], data: dict[str, Any]) -> dict[str, Any]:
        """Build a statistics report for the query in ``payload.input``."""
        payload = _check_envelope(data, STATS_ENVELOPE_ID, "get")
        query = stats_query_from_dict(payload.get("input") or {})
        report = await _get_client(request).get_stats(query)

        return {
            **data,
            "payload": {**payload, "output": report.to_dict()},
            "meta": {
                **(data.get("meta") or {}),
                "timestamp": datetime.now(UTC).isoformat(),
                "query_latency_ms": report.query_latency_ms,
            },
        }


# -----------------------------------------------------------------------------
# Admin endpoints
# -----------------------------------------------------------------------------


class AdminController(Controller):
    """CRUD endpoints for link configurations."""

    path = "/"
    tags = ["Smartlinks Admin"]

    @staticmethod
    async def _require(client: SmartlinkClient, link_id: str) -> LinkConfig:
        config = await client.get_link(link_id)
        if config is None:
            raise NotFoundException(detail=f"Smartlink '{link_id}' not found")
        return config

    @get("/", summary="List links")
    async def list_links(self, request: Request[Any, Any, Any]) -> list[dict[str, Any]]:
        """List every stored link configuration."""
        links = await _get_client(request).list_links()
        return [link_config_to_dict(config) for config in links]

    @get("/{link_id:str}", summary="Get a link")
    async def get_link(self, request: Request[Any, Any, Any], link_id: str) -> dict[str, Any]:
        """Get one link configuration."""
        return link_config_to_dict(await self._require(_get_client(request), link_id))

    @put("/{link_id:str}", summary="Create or replace a link")
    async def put_link(self, request: Request[Any, Any, Any], link_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create or fully replace a link configuration.

        The storage backend bumps the version on every save.
        """
        body_id = data.get("link_id", data.get("smartlink_id"))
        if body_id is not None and body_id != link_id:
            raise ValidationException(detail=f"Body link_id {body_id!r} does not match path {link_id!r}")
        config = link_config_from_dict({**data, "link_id": link_id})
        saved = await _get_client(request).save_link(config)
        return link_config_to_dict(saved)

    @delete("/{link_id:str}", summary="Delete a link")
    async def delete_link(self, request: Request[Any, Any, Any], link_id: str) -> None:
        """Delete a link configuration."""
        if not await _get_client(request).delete_link(link_id):
            raise NotFoundException(detail=f"Smartlink '{link_id}' not found")
