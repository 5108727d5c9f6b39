"""Click context for smartlink resolution."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any

__all__ = ["ClickContext", "UTMParams"]

_UTM_FIELDS = ("source", "medium", "campaign", "term", "content")


@dataclass(frozen=True, slots=True)
class UTMParams:
    """Campaign tags carried on a click.

    Attributes:
        source: Value of ``utm_source``.
        medium: Value of ``utm_medium``.
        campaign: Value of ``utm_campaign``.
        term: Value of ``utm_term``.
        content: Value of ``utm_content``.

    """

    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    term: str | None = None
    content: str | None = None

    def get(self, name: str) -> str | None:
        """Get a tag by its short name (``source``, ``campaign``, ...)."""
        if name not in _UTM_FIELDS:
            return None
        return getattr(self, name)

    def merge(self, other: UTMParams) -> UTMParams:
        """Merge with another set of tags, non-empty values of ``other`` win."""
        return UTMParams(**{name: other.get(name) or self.get(name) for name in _UTM_FIELDS})

    def is_empty(self) -> bool:
        """Return True if no tag carries a value."""
        return not any(self.get(name) for name in _UTM_FIELDS)

    def to_dict(self) -> dict[str, str]:
        """Convert to a dictionary, omitting absent tags."""
        return {name: value for name in _UTM_FIELDS if (value := self.get(name))}


@dataclass(frozen=True, slots=True)
class ClickContext:
    """Normalized attributes of one resolution request.

    The context is immutable and built fresh for every request. Every field is
    optional; an absent or empty attribute can never satisfy a target
    condition that requires it.

    Attributes:
        link_id: Identifier of the link being resolved.
        timestamp: Authoritative evaluation time of the click.
        country: ISO 3166-1 alpha-2 country code.
        language: Two-letter language code.
        device: Device class (``mobile``, ``tablet``, ``desktop``).
        ip_address: Client IP address.
        user_agent: Raw ``User-Agent`` header.
        referrer: Raw ``Referer`` header.
        edge_location: Identifier of the edge node that served the click.
        utm: Campaign tags.
        query_params: Remaining query-string parameters.

    Example:
        >>> context = ClickContext(country="DE", device="mobile", utm=UTMParams(source="tiktok"))
        >>> context.get("utm.source")
        'tiktok'

    """

    link_id: str | None = None
    timestamp: datetime | None = None
    country: str | None = None
    language: str | None = None
    device: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    referrer: str | None = None
    edge_location: str | None = None
    utm: UTMParams = field(default_factory=UTMParams)
    query_params: dict[str, str] = field(default_factory=dict)

    def get(self, attribute: str, default: Any = None) -> Any:
        """Get an attribute value by name.

        Supports ``lang`` as an alias for ``language`` and dotted names such
        as ``utm.source`` for campaign tags.

        Args:
            attribute: The attribute name to retrieve.
            default: Value returned when the attribute is absent.

        Returns:
            The attribute value or the default.

        """
        if attribute == "lang":
            attribute = "language"

        if attribute.startswith("utm.") or attribute.startswith("utm_"):
            value = self.utm.get(attribute[4:])
            return default if value is None else value

        if attribute in _CONTEXT_FIELDS and attribute not in ("utm", "query_params"):
            value = getattr(self, attribute)
            return default if value is None else value

        return self.query_params.get(attribute, default)

    def merge(self, other: ClickContext) -> ClickContext:
        """Merge with another context.

        Values from ``other`` take precedence where they are set. Campaign
        tags and query parameters are merged field by field.

        Args:
            other: Context to merge in.

        Returns:
            A new merged ClickContext.

        """
        return ClickContext(
            link_id=other.link_id or self.link_id,
            timestamp=other.timestamp or self.timestamp,
            country=other.country or self.country,
            language=other.language or self.language,
            device=other.device or self.device,
            ip_address=other.ip_address or self.ip_address,
            user_agent=other.user_agent or self.user_agent,
            referrer=other.referrer or self.referrer,
            edge_location=other.edge_location or self.edge_location,
            utm=self.utm.merge(other.utm),
            query_params={**self.query_params, **other.query_params},
        )

    def with_link_id(self, link_id: str) -> ClickContext:
        """Create a new context bound to a link id."""
        return replace(self, link_id=link_id)

    def with_timestamp(self, timestamp: datetime) -> ClickContext:
        """Create a new context with a different evaluation time."""
        return replace(self, timestamp=timestamp)

    def with_utm(self, **values: str | None) -> ClickContext:
        """Create a new context with updated campaign tags."""
        return replace(self, utm=replace(self.utm, **values))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary, omitting absent values."""
        data: dict[str, Any] = {}
        for name in _CONTEXT_FIELDS:
            value = getattr(self, name)
            if name == "utm":
                if not value.is_empty():
                    data["utm"] = value.to_dict()
            elif name == "query_params":
                if value:
                    data["query_params"] = dict(value)
            elif isinstance(value, datetime):
                data[name] = value.isoformat()
            elif value is not None:
                data[name] = value
        return data


_CONTEXT_FIELDS = tuple(f.name for f in fields(ClickContext))
