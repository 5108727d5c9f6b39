"""Statistics over resolution episodes.

The aggregator is a read-side utility: it groups and filters stored episodes
into reports and has no influence on resolution.

Example:
    >>> aggregator = StatsAggregator()
    >>> report = aggregator.build_report(
    ...     episodes,
    ...     StatsQuery(link_id="spring-promo", group_by=[StatsDimension.COUNTRY]),
    ... )
    >>> report.rows[0].dimensions
    {'country': 'DE'}

"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from litestar_smartlinks.eligibility import ensure_utc, is_within_window
from litestar_smartlinks.types import ResolutionOutcome, StatsDimension

if TYPE_CHECKING:
    from collections.abc import Iterable

    from litestar_smartlinks.models.episode import ResolutionEpisode

__all__ = [
    "StatsAggregator",
    "StatsFilters",
    "StatsQuery",
    "StatsReport",
    "StatsRow",
    "StatsSummary",
    "TimeRange",
]

UNKNOWN = "unknown"

_SUCCESS_OUTCOMES = frozenset({ResolutionOutcome.OK.value, ResolutionOutcome.DEFAULT_USED.value})


@dataclass(slots=True)
class TimeRange:
    """Inclusive time range."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        """Return True if ``moment`` lies within the range."""
        return is_within_window(moment, self.start, self.end)


@dataclass(slots=True)
class StatsFilters:
    """Value filters applied before grouping. Each list is an OR of accepted values."""

    target_id: list[str] | None = None
    country: list[str] | None = None
    device: list[str] | None = None
    outcome: list[str] | None = None


@dataclass(slots=True)
class StatsQuery:
    """A statistics query."""

    link_id: str | None = None
    time_range: TimeRange | None = None
    group_by: list[StatsDimension] = field(default_factory=list)
    filters: StatsFilters | None = None
    limit: int | None = None
    offset: int = 0


@dataclass(slots=True)
class StatsSummary:
    """Totals over all matching episodes."""

    total_clicks: int = 0
    successful_redirects: int = 0
    errors: int = 0
    unique_countries: int = 0
    unique_targets: int = 0
    avg_latency_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary."""
        return {
            "total_clicks": self.total_clicks,
            "successful_redirects": self.successful_redirects,
            "errors": self.errors,
            "unique_countries": self.unique_countries,
            "unique_targets": self.unique_targets,
            "avg_latency_ms": self.avg_latency_ms,
        }


@dataclass(slots=True)
class StatsRow:
    """One group of a report."""

    dimensions: dict[str, str]
    clicks: int
    successful_redirects: int = 0
    errors: int = 0
    avg_latency_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary."""
        return {
            "dimensions": dict(self.dimensions),
            "metrics": {
                "clicks": self.clicks,
                "successful_redirects": self.successful_redirects,
                "errors": self.errors,
                "avg_latency_ms": self.avg_latency_ms,
            },
        }


@dataclass(slots=True)
class StatsReport:
    """Result of a statistics query."""

    query: StatsQuery
    summary: StatsSummary
    rows: list[StatsRow]
    total_rows: int
    generated_at: datetime
    query_latency_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "summary": self.summary.to_dict(),
            "rows": [row.to_dict() for row in self.rows],
            "meta": {
                "generated_at": self.generated_at.isoformat(),
                "query_latency_ms": self.query_latency_ms,
                "total_rows": self.total_rows,
            },
        }


@dataclass(slots=True)
class _Fact:
    """Flattened view of one episode used for filtering and grouping."""

    timestamp: datetime
    link_id: str
    outcome: str
    latency_ms: float
    target_id: str | None
    country: str | None
    device: str | None
    utm_source: str | None
    utm_campaign: str | None

    @classmethod
    def from_episode(cls, episode: ResolutionEpisode) -> _Fact:
        context = episode.context
        decision = episode.decision
        outcome = episode.outcome_details.get("resolution_outcome")
        if decision is not None:
            outcome = decision.outcome.value
        return cls(
            timestamp=ensure_utc(episode.timestamp_start),
            link_id=episode.link_id,
            outcome=outcome or UNKNOWN,
            latency_ms=episode.latency_ms,
            target_id=decision.target_id if decision else None,
            country=context.country if context else None,
            device=context.device if context else None,
            utm_source=context.utm.source if context else None,
            utm_campaign=context.utm.campaign if context else None,
        )

    def dimension(self, dimension: StatsDimension) -> str:
        if dimension == StatsDimension.HOUR:
            return self.timestamp.astimezone(UTC).strftime("%Y-%m-%dT%H:00:00Z")
        if dimension == StatsDimension.DAY:
            return self.timestamp.astimezone(UTC).strftime("%Y-%m-%d")
        return getattr(self, dimension.value) or UNKNOWN


def _accepts(accepted: list[str] | None, value: str | None) -> bool:
    if not accepted:
        return True
    return value is not None and value in accepted


class StatsAggregator:
    """Group and filter resolution episodes into reports."""

    def _select(self, episodes: Iterable[ResolutionEpisode], query: StatsQuery) -> list[_Fact]:
        facts = []
        filters = query.filters or StatsFilters()
        for episode in episodes:
            if query.link_id and episode.link_id != query.link_id:
                continue
            fact = _Fact.from_episode(episode)
            if query.time_range is not None and not query.time_range.contains(fact.timestamp):
                continue
            if not (
                _accepts(filters.target_id, fact.target_id)
                and _accepts(filters.country, fact.country)
                and _accepts(filters.device, fact.device)
                and _accepts(filters.outcome, fact.outcome)
            ):
                continue
            facts.append(fact)
        return facts

    @staticmethod
    def _summarize_facts(facts: list[_Fact]) -> StatsSummary:
        total = len(facts)
        return StatsSummary(
            total_clicks=total,
            successful_redirects=sum(1 for f in facts if f.outcome in _SUCCESS_OUTCOMES),
            errors=sum(1 for f in facts if f.outcome == ResolutionOutcome.ERROR.value),
            unique_countries=len({f.country for f in facts if f.country}),
            unique_targets=len({f.target_id for f in facts if f.target_id}),
            avg_latency_ms=sum(f.latency_ms for f in facts) / total if total else 0.0,
        )

    def summarize(self, episodes: Iterable[ResolutionEpisode], link_id: str | None = None) -> StatsSummary:
        """Compute totals over episodes, optionally for one link.

        Args:
            episodes: Episodes to summarize.
            link_id: Restrict to episodes of this link.

        Returns:
            The summary.

        """
        return self._summarize_facts(self._select(episodes, StatsQuery(link_id=link_id)))

    def build_report(self, episodes: Iterable[ResolutionEpisode], query: StatsQuery) -> StatsReport:
        """Build a grouped report.

        Episodes are filtered by link, inclusive time range and value filters,
        then grouped by the requested dimensions. Missing dimension values are
        reported as ``"unknown"``. Rows are ordered by clicks, descending,
        before ``offset`` and ``limit`` are applied.

        Args:
            episodes: Episodes to aggregate.
            query: The statistics query.

        Returns:
            The statistics report.

        """
        started = time.perf_counter()
        facts = self._select(episodes, query)

        groups: dict[tuple[str, ...], list[_Fact]] = defaultdict(list)
        for fact in facts:
            groups[tuple(fact.dimension(d) for d in query.group_by)].append(fact)

        rows = []
        for key, members in groups.items():
            summary = self._summarize_facts(members)
            rows.append(
                StatsRow(
                    dimensions={d.value: value for d, value in zip(query.group_by, key, strict=True)},
                    clicks=summary.total_clicks,
                    successful_redirects=summary.successful_redirects,
                    errors=summary.errors,
                    avg_latency_ms=summary.avg_latency_ms,
                )
            )
        rows.sort(key=lambda row: row.clicks, reverse=True)

        total_rows = len(rows)
        end = None if query.limit is None else query.offset + query.limit
        return StatsReport(
            query=query,
            summary=self._summarize_facts(facts),
            rows=rows[query.offset : end],
            total_rows=total_rows,
            generated_at=datetime.now(UTC),
            query_latency_ms=(time.perf_counter() - started) * 1000,
        )
