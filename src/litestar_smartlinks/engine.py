"""Resolution engine for smartlinks."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from litestar_smartlinks.eligibility import eligible_targets, ensure_utc, is_within_window
from litestar_smartlinks.results import Decision
from litestar_smartlinks.selection import TargetSelector
from litestar_smartlinks.types import ResolutionOutcome

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar_smartlinks.context import ClickContext
    from litestar_smartlinks.models.link import LinkConfig
    from litestar_smartlinks.results import MatchedConditions
    from litestar_smartlinks.selection import RandomSource

__all__ = ["ResolutionEngine"]

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ResolutionEngine:
    """Resolve a click against a link configuration.

    The engine is pure: it performs no I/O, keeps no state between calls and
    never raises for a structurally valid configuration. Every problem is
    reported through ``Decision.outcome``.

    Resolution order:
        1. Link status and link validity window (``EXPIRED``)
        2. Target eligibility (``NO_MATCH`` if nothing is eligible)
        3. Condition matching and weighted selection (``OK``/``DEFAULT_USED``)
        4. Default target lookup among all targets (``DEFAULT_USED``/``ERROR``)

    """

    def __init__(
        self,
        selector: TargetSelector | None = None,
        random_source: RandomSource | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            selector: Target selector to use. Built from ``random_source`` if omitted.
            random_source: Randomness for weighted selection.
            clock: Time source used when neither ``now`` nor the context
                timestamp is available.

        """
        self._selector = selector or TargetSelector(random_source=random_source)
        self._clock = clock or _utcnow

    def resolve(self, config: LinkConfig, context: ClickContext, now: datetime | None = None) -> Decision:
        """Resolve a click to a destination.

        Args:
            config: The link configuration.
            context: The normalized click context.
            now: Evaluation time override. Falls back to the context timestamp,
                then to the engine clock.

        Returns:
            The resolution decision.

        """
        started = time.perf_counter()
        evaluated_at = ensure_utc(now or context.timestamp or self._clock())

        def decide(
            outcome: ResolutionOutcome,
            reason: str,
            target_id: str | None = None,
            url: str | None = None,
            matched: MatchedConditions | None = None,
        ) -> Decision:
            decision = Decision(
                link_id=config.link_id,
                outcome=outcome,
                reason=reason,
                target_id=target_id,
                resolved_url=url,
                matched_conditions=matched,
                latency_ms=(time.perf_counter() - started) * 1000,
            )
            logger.debug(
                "Resolved link %s: %s (%s)",
                config.link_id,
                outcome.value,
                target_id,
            )
            return decision

        if not config.is_active:
            return decide(ResolutionOutcome.EXPIRED, f"SmartLink status is {config.status.value}")
        if not is_within_window(evaluated_at, config.valid_from, config.valid_until):
            return decide(ResolutionOutcome.EXPIRED, "SmartLink is outside its validity window")

        candidates = eligible_targets(config.targets, evaluated_at)
        if not candidates:
            return decide(ResolutionOutcome.NO_MATCH, "No active targets available")

        selection = self._selector.select(candidates, context)
        if selection is not None:
            target = selection.candidate.target
            if target.target_id == config.default_target_id:
                return decide(
                    ResolutionOutcome.DEFAULT_USED,
                    "No conditions matched, using default target",
                    target.target_id,
                    target.url,
                    selection.matched,
                )
            return decide(
                ResolutionOutcome.OK,
                f"Matched target: {target.display_name}",
                target.target_id,
                target.url,
                selection.matched,
            )

        default = config.get_target(config.default_target_id)
        if default is None:
            logger.warning(
                "Link %s references missing default target %s",
                config.link_id,
                config.default_target_id,
            )
            return decide(
                ResolutionOutcome.ERROR,
                f"Default target {config.default_target_id} not found in configuration",
            )
        return decide(
            ResolutionOutcome.DEFAULT_USED,
            "No conditions matched, using default target",
            default.target_id,
            default.url,
        )
