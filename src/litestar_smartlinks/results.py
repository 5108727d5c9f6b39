"""Resolution results."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from litestar_smartlinks.types import ResolutionOutcome

__all__ = ["Decision", "MatchedConditions"]


@dataclass(frozen=True, slots=True)
class MatchedConditions:
    """Which condition categories were declared and satisfied on the winning target."""

    country: bool = False
    language: bool = False
    device: bool = False
    utm: bool = False

    def to_dict(self) -> dict[str, bool]:
        """Convert to a dictionary containing only satisfied categories."""
        return {
            name: True
            for name, value in (
                ("country", self.country),
                ("language", self.language),
                ("device", self.device),
                ("utm", self.utm),
            )
            if value
        }


@dataclass(frozen=True, slots=True)
class Decision:
    """Immutable outcome of one resolution.

    This is the only artifact consumed downstream: the HTTP layer maps it to a
    redirect or an error response, and the client persists it as part of a
    resolution episode.

    Attributes:
        link_id: The resolved link.
        outcome: Outcome classification.
        reason: Human readable explanation.
        target_id: Chosen target id, or None when nothing was chosen.
        resolved_url: Destination URL, or None when nothing was chosen.
        matched_conditions: Condition categories satisfied by the chosen target.
        latency_ms: Wall-clock evaluation time in milliseconds.
        executor_id: Identifier of the component that produced the decision.
        executor_version: Version of that component.

    """

    link_id: str
    outcome: ResolutionOutcome
    reason: str
    target_id: str | None = None
    resolved_url: str | None = None
    matched_conditions: MatchedConditions | None = None
    latency_ms: float = 0.0
    executor_id: str | None = None
    executor_version: str | None = None

    @property
    def is_redirect(self) -> bool:
        """Return True if the decision carries a destination."""
        return self.outcome in (ResolutionOutcome.OK, ResolutionOutcome.DEFAULT_USED) and bool(self.resolved_url)

    @property
    def is_default(self) -> bool:
        """Return True if the default target was used."""
        return self.outcome == ResolutionOutcome.DEFAULT_USED

    @property
    def is_error(self) -> bool:
        """Return True if the configuration is inconsistent."""
        return self.outcome == ResolutionOutcome.ERROR

    def with_executor(self, executor_id: str, executor_version: str | None = None) -> Decision:
        """Return a copy stamped with executor information."""
        return replace(self, executor_id=executor_id, executor_version=executor_version)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data: dict[str, Any] = {
            "link_id": self.link_id,
            "outcome": self.outcome.value,
            "reason": self.reason,
            "latency_ms": self.latency_ms,
        }
        if self.target_id is not None:
            data["resolved_target_id"] = self.target_id
        if self.resolved_url is not None:
            data["resolved_url"] = self.resolved_url
        if self.matched_conditions is not None:
            data["matched_conditions"] = self.matched_conditions.to_dict()
        if self.executor_id is not None:
            data["executor_id"] = self.executor_id
        if self.executor_version is not None:
            data["executor_version"] = self.executor_version
        return data
