"""Request normalization middleware.

Builds a :class:`~litestar_smartlinks.context.ClickContext` from request
headers and the query string and stores it in the request scope.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from litestar import Request
from litestar.enums import ScopeType
from litestar.middleware import AbstractMiddleware, DefineMiddleware

from litestar_smartlinks.context import ClickContext, UTMParams
from litestar_smartlinks.types import DeviceType

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from litestar.types import ASGIApp, Receive, Scope, Send

__all__ = [
    "ClickContextMiddleware",
    "create_context_middleware",
    "extract_click_context",
    "get_request_context",
    "parse_device",
    "parse_language",
    "parse_utm",
]

logger = logging.getLogger(__name__)

CONTEXT_SCOPE_KEY = "smartlink_click_context"

COUNTRY_HEADERS = ("cf-ipcountry", "x-country-code", "x-vercel-ip-country")
"""Country headers set by common edge networks, in order of precedence."""

_LANGUAGE_RE = re.compile(r"^([a-z]{2})", re.IGNORECASE)
_BOT_MARKERS = ("bot", "crawler", "spider")
_TABLET_MARKERS = ("ipad", "tablet")
_MOBILE_MARKERS = ("mobile", "android", "iphone", "ipod")
_UTM_NAMES = ("source", "medium", "campaign", "term", "content")


def parse_language(accept_language: str | None) -> str | None:
    """Return the primary two-letter language of an ``Accept-Language`` header.

    Example:
        >>> parse_language("en-US,en;q=0.9,de;q=0.8")
        'en'

    """
    if not accept_language:
        return None
    match = _LANGUAGE_RE.match(accept_language.strip())
    return match.group(1).lower() if match else None


def parse_device(user_agent: str | None) -> str:
    """Classify a ``User-Agent`` header.

    Crawlers are reported as ``bot``. Requests without a user agent count as
    ``desktop``.
    """
    if not user_agent:
        return DeviceType.DESKTOP.value
    ua = user_agent.lower()
    if any(marker in ua for marker in _BOT_MARKERS):
        return DeviceType.BOT.value
    if any(marker in ua for marker in _TABLET_MARKERS):
        return DeviceType.TABLET.value
    if any(marker in ua for marker in _MOBILE_MARKERS):
        return DeviceType.MOBILE.value
    return DeviceType.DESKTOP.value


def parse_utm(query: Mapping[str, Any]) -> UTMParams:
    """Extract ``utm_*`` campaign tags from query parameters."""
    return UTMParams(**{name: query.get(f"utm_{name}") or None for name in _UTM_NAMES})


def _first_header(headers: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = headers.get(name)
        if value:
            return value.strip()
    return None


def extract_click_context(request: Request[Any, Any, Any]) -> ClickContext:
    """Build a click context from a request.

    Args:
        request: The incoming request.

    Returns:
        The normalized click context, stamped with the current time.

    """
    headers = request.headers

    ip_address = None
    if forwarded := headers.get("x-forwarded-for"):
        ip_address = forwarded.split(",")[0].strip() or None
    if ip_address is None:
        ip_address = headers.get("x-real-ip")
    if ip_address is None and request.client is not None:
        ip_address = request.client.host

    country = _first_header(headers, COUNTRY_HEADERS)
    query = {key: value for key, value in request.query_params.items()}
    user_agent = headers.get("user-agent")

    return ClickContext(
        link_id=request.path_params.get("link_id") if "path_params" in request.scope else None,
        timestamp=datetime.now(UTC),
        country=country.upper() if country else None,
        language=parse_language(headers.get("accept-language")),
        device=parse_device(user_agent),
        ip_address=ip_address,
        user_agent=user_agent,
        referrer=headers.get("referer"),
        utm=parse_utm(query),
        query_params={key: value for key, value in query.items() if not key.startswith("utm_")},
    )


class ClickContextMiddleware(AbstractMiddleware):
    """Store a normalized click context in the scope of every HTTP request.

    Example:
        >>> app = Litestar(route_handlers=[...], middleware=[create_context_middleware()])

    """

    scopes = {ScopeType.HTTP}

    def __init__(
        self,
        app: ASGIApp,
        context_extractor: Callable[[Request[Any, Any, Any]], ClickContext] | None = None,
    ) -> None:
        super().__init__(app)
        self._context_extractor = context_extractor or extract_click_context

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request: Request[Any, Any, Any] = Request(scope)
        context = self._context_extractor(request)
        scope.setdefault("state", {})[CONTEXT_SCOPE_KEY] = context  # type: ignore[typeddict-item]
        logger.debug("Click context for %s: %s", request.url.path, context.to_dict())
        await self.app(scope, receive, send)


def create_context_middleware(
    context_extractor: Callable[[Request[Any, Any, Any]], ClickContext] | None = None,
) -> DefineMiddleware:
    """Create the click context middleware definition.

    Args:
        context_extractor: Custom extractor replacing :func:`extract_click_context`.

    Returns:
        A middleware definition for ``Litestar(middleware=[...])``.

    """
    return DefineMiddleware(ClickContextMiddleware, context_extractor=context_extractor)


def get_request_context(request: Request[Any, Any, Any]) -> ClickContext | None:
    """Return the click context stored by the middleware, if any."""
    return request.scope.get("state", {}).get(CONTEXT_SCOPE_KEY)
