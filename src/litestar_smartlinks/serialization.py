"""Conversion between wire documents and smartlink models.

Inbound documents are converted with ``msgspec`` and then checked for the
integrity rules that a structural conversion cannot express. Every failure is
reported as a :class:`~litestar_smartlinks.exceptions.ConfigValidationError`.
"""

from __future__ import annotations

import dataclasses
import re
from collections import Counter
from datetime import datetime
from typing import Any
from urllib.parse import urlsplit

import msgspec

from litestar_smartlinks.analytics import StatsFilters, StatsQuery, TimeRange
from litestar_smartlinks.context import ClickContext, UTMParams
from litestar_smartlinks.exceptions import ConfigValidationError, ValidationIssue
from litestar_smartlinks.models.episode import ExecutorInfo, Reference, ResolutionEpisode
from litestar_smartlinks.models.link import LinkConfig, LinkLimits
from litestar_smartlinks.models.target import Target, TargetConditions, UTMConditions
from litestar_smartlinks.results import Decision, MatchedConditions
from litestar_smartlinks.types import EpisodeOutcome, ResolutionOutcome, StatsDimension

__all__ = [
    "LINK_ID_PATTERN",
    "click_context_from_dict",
    "decision_from_dict",
    "episode_from_dict",
    "episode_to_dict",
    "link_config_from_dict",
    "link_config_to_dict",
    "stats_query_from_dict",
]

LINK_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_\-:.]+$")
VALID_DEVICES = frozenset({"mobile", "tablet", "desktop"})


def _issue_from_msgspec(exc: msgspec.ValidationError) -> ValidationIssue:
    message, _, path = str(exc).partition(" - at `")
    return ValidationIssue(path=path.rstrip("`"), message=message)


def _convert(data: Any, type_: type) -> Any:
    try:
        return msgspec.convert(data, type=type_)
    except msgspec.ValidationError as exc:
        raise ConfigValidationError([_issue_from_msgspec(exc)]) from exc


def _as_list(value: str | list[str] | None) -> list[str]:
    if value is None:
        return []
    return [value] if isinstance(value, str) else list(value)


# -----------------------------------------------------------------------------
# Link configurations
# -----------------------------------------------------------------------------


# ``meta`` is free-form bookkeeping and is not checked for unknown keys.
_NESTED_DOCUMENTS: dict[type, dict[str, type]] = {
    LinkConfig: {"targets": Target, "limits": LinkLimits},
    Target: {"conditions": TargetConditions},
    TargetConditions: {"utm": UTMConditions},
}


def _unknown_fields(data: Any, type_: type, path: str = "$") -> list[ValidationIssue]:
    if not isinstance(data, dict):
        return []
    known = {f.name for f in dataclasses.fields(type_)}
    issues = [ValidationIssue(f"{path}.{key}", "unknown field") for key in data if key not in known]
    for name, nested in _NESTED_DOCUMENTS.get(type_, {}).items():
        value = data.get(name)
        if isinstance(value, list):
            for index, item in enumerate(value):
                issues.extend(_unknown_fields(item, nested, f"{path}.{name}[{index}]"))
        else:
            issues.extend(_unknown_fields(value, nested, f"{path}.{name}"))
    return issues


def _check_link(config: LinkConfig) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    if not LINK_ID_PATTERN.match(config.link_id):
        issues.append(ValidationIssue("$.link_id", f"invalid link id {config.link_id!r}"))

    duplicates = [tid for tid, count in Counter(t.target_id for t in config.targets).items() if count > 1]
    if duplicates:
        issues.append(ValidationIssue("$.targets", f"duplicate target ids: {', '.join(sorted(duplicates))}"))

    for index, target in enumerate(config.targets):
        path = f"$.targets[{index}]"
        parts = urlsplit(target.url)
        if not parts.scheme or not (parts.netloc or parts.path):
            issues.append(ValidationIssue(f"{path}.url", f"not an absolute URL: {target.url!r}"))
        if target.priority is not None and target.priority < 0:
            issues.append(ValidationIssue(f"{path}.priority", "must be >= 0"))
        if target.weight is not None and target.weight < 0:
            issues.append(ValidationIssue(f"{path}.weight", "must be >= 0"))

        conditions = target.conditions
        if conditions is None:
            continue
        fields: dict[str, Any] = {
            "country": conditions.country,
            "language": conditions.language,
            "device": conditions.device,
        }
        if conditions.utm is not None:
            fields.update({f"utm.{name}": value for name, value in conditions.utm.declared().items()})
        for name, constraint in fields.items():
            if isinstance(constraint, list) and not constraint:
                issues.append(ValidationIssue(f"{path}.conditions.{name}", "must not be an empty list"))
        bad_devices = [d for d in _as_list(conditions.device) if d.lower() not in VALID_DEVICES]
        if bad_devices:
            issues.append(
                ValidationIssue(f"{path}.conditions.device", f"unsupported device values: {', '.join(bad_devices)}")
            )

    limits = config.limits
    if limits is not None and limits.max_clicks is not None and limits.max_clicks < 1:
        issues.append(ValidationIssue("$.limits.max_clicks", "must be >= 1"))

    return issues


def link_config_from_dict(data: dict[str, Any]) -> LinkConfig:
    """Validate and convert a link configuration document.

    ``smartlink_id`` is accepted as an alias of ``link_id``. Unknown keys
    are rejected everywhere except under ``meta``. A
    ``default_target_id`` that references no target is accepted here and
    surfaces as an ``ERROR`` decision at resolution time.

    Args:
        data: The configuration document.

    Returns:
        The link configuration.

    Raises:
        ConfigValidationError: If the document is malformed.

    """
    if not isinstance(data, dict):
        raise ConfigValidationError("configuration must be an object")
    if "link_id" not in data and "smartlink_id" in data:
        data = {**data, "link_id": data["smartlink_id"]}
    data = {key: value for key, value in data.items() if key != "smartlink_id"}

    unknown = _unknown_fields(data, LinkConfig)
    if unknown:
        raise ConfigValidationError(unknown)

    config: LinkConfig = _convert(data, LinkConfig)
    issues = _check_link(config)
    if issues:
        raise ConfigValidationError(issues)
    return config


def link_config_to_dict(config: LinkConfig) -> dict[str, Any]:
    """Convert a link configuration to a JSON-friendly document."""
    return msgspec.to_builtins(config)


# -----------------------------------------------------------------------------
# Click contexts
# -----------------------------------------------------------------------------


class _UTMDocument(msgspec.Struct):
    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    term: str | None = None
    content: str | None = None


class _ClickContextDocument(msgspec.Struct):
    link_id: str | None = None
    smartlink_id: str | None = None
    timestamp: datetime | None = None
    country: str | None = None
    language: str | None = None
    lang: str | None = None
    device: str | None = None
    ip_address: str | None = None
    ip: str | None = None
    user_agent: str | None = None
    referrer: str | None = None
    edge_location: str | None = None
    utm: _UTMDocument | None = None
    query_params: dict[str, str] = msgspec.field(default_factory=dict)


def click_context_from_dict(data: dict[str, Any]) -> ClickContext:
    """Validate and convert a click context document.

    Accepts ``lang`` for ``language``, ``ip`` for ``ip_address`` and
    ``smartlink_id`` for ``link_id``.

    Raises:
        ConfigValidationError: If the document is malformed.

    """
    if not isinstance(data, dict):
        raise ConfigValidationError("click context must be an object")
    doc: _ClickContextDocument = _convert(data, _ClickContextDocument)
    utm = doc.utm or _UTMDocument()
    return ClickContext(
        link_id=doc.link_id or doc.smartlink_id,
        timestamp=doc.timestamp,
        country=doc.country,
        language=doc.language or doc.lang,
        device=doc.device,
        ip_address=doc.ip_address or doc.ip,
        user_agent=doc.user_agent,
        referrer=doc.referrer,
        edge_location=doc.edge_location,
        utm=UTMParams(
            source=utm.source,
            medium=utm.medium,
            campaign=utm.campaign,
            term=utm.term,
            content=utm.content,
        ),
        query_params=doc.query_params,
    )


# -----------------------------------------------------------------------------
# Decisions and episodes
# -----------------------------------------------------------------------------


def decision_from_dict(data: dict[str, Any]) -> Decision:
    """Rebuild a decision from :meth:`Decision.to_dict` output."""
    matched = data.get("matched_conditions")
    return Decision(
        link_id=data["link_id"],
        outcome=ResolutionOutcome(data["outcome"]),
        reason=data.get("reason", ""),
        target_id=data.get("resolved_target_id"),
        resolved_url=data.get("resolved_url"),
        matched_conditions=MatchedConditions(**matched) if matched is not None else None,
        latency_ms=data.get("latency_ms", 0.0),
        executor_id=data.get("executor_id"),
        executor_version=data.get("executor_version"),
    )


def _reference_to_dict(reference: Reference) -> dict[str, Any]:
    data: dict[str, Any] = {"ref": reference.ref}
    if reference.version is not None:
        data["version"] = reference.version
    return data


def _is_reference(data: Any) -> bool:
    return isinstance(data, dict) and "ref" in data


def _reference_from_dict(data: dict[str, Any]) -> Reference:
    return Reference(ref=data["ref"], version=data.get("version"))


def episode_to_dict(episode: ResolutionEpisode) -> dict[str, Any]:
    """Convert an episode to a JSON-friendly document.

    Fields stored by reference are written as ``{"ref": ..., "version": ...}``.
    """
    input_ = episode.input
    output = episode.output
    return {
        "episode_id": episode.episode_id,
        "link_id": episode.link_id,
        "timestamp_start": episode.timestamp_start.isoformat(),
        "timestamp_end": episode.timestamp_end.isoformat(),
        "input": _reference_to_dict(input_) if isinstance(input_, Reference) else input_.to_dict(),
        "config": _reference_to_dict(episode.config) if episode.config is not None else None,
        "output": _reference_to_dict(output) if isinstance(output, Reference) else output.to_dict(),
        "executor": msgspec.to_builtins(episode.executor),
        "latency_ms": episode.latency_ms,
        "outcome": episode.outcome.value,
        "outcome_details": dict(episode.outcome_details),
        "notes": episode.notes,
    }


def episode_from_dict(data: dict[str, Any]) -> ResolutionEpisode:
    """Rebuild an episode from :func:`episode_to_dict` output.

    Raises:
        ConfigValidationError: If the document is malformed.

    """
    try:
        raw_input = data["input"]
        raw_output = data["output"]
        raw_config = data.get("config")
        return ResolutionEpisode(
            episode_id=data["episode_id"],
            link_id=data["link_id"],
            timestamp_start=datetime.fromisoformat(data["timestamp_start"]),
            timestamp_end=datetime.fromisoformat(data["timestamp_end"]),
            input=_reference_from_dict(raw_input) if _is_reference(raw_input) else click_context_from_dict(raw_input),
            output=_reference_from_dict(raw_output) if _is_reference(raw_output) else decision_from_dict(raw_output),
            config=_reference_from_dict(raw_config) if raw_config is not None else None,
            executor=ExecutorInfo(**data["executor"]),
            latency_ms=data.get("latency_ms", 0.0),
            outcome=EpisodeOutcome(data["outcome"]),
            outcome_details=data.get("outcome_details") or {},
            notes=data.get("notes"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigValidationError(f"malformed episode document: {exc}") from exc


# -----------------------------------------------------------------------------
# Statistics queries
# -----------------------------------------------------------------------------


class _TimeRangeDocument(msgspec.Struct):
    start: datetime = msgspec.field(name="from")
    end: datetime = msgspec.field(name="to")


class _FiltersDocument(msgspec.Struct):
    target_id: str | list[str] | None = None
    country: str | list[str] | None = None
    device: str | list[str] | None = None
    outcome: str | list[str] | None = None


class _StatsQueryDocument(msgspec.Struct):
    link_id: str | None = None
    smartlink_id: str | None = None
    time_range: _TimeRangeDocument | None = None
    group_by: list[StatsDimension] = msgspec.field(default_factory=list)
    filters: _FiltersDocument | None = None
    limit: int | None = None
    offset: int = 0


def stats_query_from_dict(data: dict[str, Any]) -> StatsQuery:
    """Validate and convert a statistics query document.

    The time range is written as ``{"from": ..., "to": ...}`` and filter
    values may be a single string or a list.

    Raises:
        ConfigValidationError: If the document is malformed.

    """
    if not isinstance(data, dict):
        raise ConfigValidationError("stats query must be an object")
    doc: _StatsQueryDocument = _convert(data, _StatsQueryDocument)

    issues = []
    if doc.limit is not None and doc.limit < 1:
        issues.append(ValidationIssue("$.limit", "must be >= 1"))
    if doc.offset < 0:
        issues.append(ValidationIssue("$.offset", "must be >= 0"))
    if issues:
        raise ConfigValidationError(issues)

    filters = None
    if doc.filters is not None:
        filters = StatsFilters(
            target_id=_as_list(doc.filters.target_id) or None,
            country=_as_list(doc.filters.country) or None,
            device=_as_list(doc.filters.device) or None,
            outcome=_as_list(doc.filters.outcome) or None,
        )
    return StatsQuery(
        link_id=doc.link_id or doc.smartlink_id,
        time_range=TimeRange(doc.time_range.start, doc.time_range.end) if doc.time_range else None,
        group_by=doc.group_by,
        filters=filters,
        limit=doc.limit,
        offset=doc.offset,
    )
