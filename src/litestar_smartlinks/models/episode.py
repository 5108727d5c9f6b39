"""Resolution episode model.

An episode is the durable record of one resolution: the click context, the
configuration it ran against, the decision and timing. Large fields may be
stored by reference instead of inline; consumers treat an unresolved
``Reference`` as unknown data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from litestar_smartlinks.context import ClickContext
from litestar_smartlinks.results import Decision
from litestar_smartlinks.types import OUTCOME_HTTP_STATUS, EpisodeOutcome

__all__ = ["ExecutorInfo", "Reference", "ResolutionEpisode"]


@dataclass(frozen=True, slots=True)
class Reference:
    """Pointer to data stored elsewhere."""

    ref: str
    version: int | None = None


@dataclass(frozen=True, slots=True)
class ExecutorInfo:
    """Identity of the component that produced an episode."""

    executor_id: str
    version: str | None = None
    environment: str | None = None


@dataclass(slots=True)
class ResolutionEpisode:
    """Durable record of one resolution."""

    episode_id: str
    link_id: str
    timestamp_start: datetime
    timestamp_end: datetime
    input: ClickContext | Reference
    output: Decision | Reference
    executor: ExecutorInfo
    outcome: EpisodeOutcome
    config: Reference | None = None
    latency_ms: float = 0.0
    outcome_details: dict[str, Any] = field(default_factory=dict)
    notes: str | None = None

    @property
    def context(self) -> ClickContext | None:
        """The inline click context, or None if stored by reference."""
        return self.input if isinstance(self.input, ClickContext) else None

    @property
    def decision(self) -> Decision | None:
        """The inline decision, or None if stored by reference."""
        return self.output if isinstance(self.output, Decision) else None

    @classmethod
    def from_decision(
        cls,
        decision: Decision,
        context: ClickContext,
        executor: ExecutorInfo,
        config_version: int | None = None,
        started_at: datetime | None = None,
    ) -> ResolutionEpisode:
        """Build an episode for a freshly produced decision.

        Args:
            decision: The engine decision.
            context: The click context that was resolved.
            executor: Identity of the resolving component.
            config_version: Stored version of the link configuration.
            started_at: Start of the resolution, defaults to the click time.

        Returns:
            A new episode with a generated id.

        """
        start = started_at or context.timestamp or datetime.now(UTC)
        end = start + timedelta(milliseconds=decision.latency_ms)
        return cls(
            episode_id=f"ep_{uuid4().hex}",
            link_id=decision.link_id,
            timestamp_start=start,
            timestamp_end=end,
            input=context,
            output=decision,
            config=Reference(ref=decision.link_id, version=config_version),
            executor=executor,
            latency_ms=decision.latency_ms,
            outcome=EpisodeOutcome.from_resolution(decision.outcome),
            outcome_details={
                "resolution_outcome": decision.outcome.value,
                "http_status": OUTCOME_HTTP_STATUS[decision.outcome],
            },
        )
