"""Target selection among eligible candidates."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, NamedTuple, Protocol, runtime_checkable

from litestar_smartlinks.conditions import match_target

if TYPE_CHECKING:
    from collections.abc import Sequence

    from litestar_smartlinks.context import ClickContext
    from litestar_smartlinks.eligibility import Candidate
    from litestar_smartlinks.results import MatchedConditions

__all__ = ["RandomSource", "Selection", "TargetSelector"]


@runtime_checkable
class RandomSource(Protocol):
    """Source of uniform variates in ``[0, 1)``.

    ``random.Random`` satisfies this protocol. Tests can supply a seeded or
    scripted source to make weighted selection deterministic.
    """

    def random(self) -> float:
        """Return the next variate in ``[0, 1)``."""
        ...


class Selection(NamedTuple):
    """The chosen candidate and the conditions it satisfied."""

    candidate: Candidate
    matched: MatchedConditions


class TargetSelector:
    """Pick exactly one matching target.

    All matches at the lowest matching priority form the selection pool. A
    single match wins outright. Several matches without any declared weight
    resolve to the first in declaration order. Otherwise a weighted draw
    splits traffic between them.

    Example:
        >>> selector = TargetSelector(random_source=random.Random(42))
        >>> selection = selector.select(eligible_targets(link.targets, now), context)

    """

    def __init__(self, random_source: RandomSource | None = None) -> None:
        """Initialize the selector.

        Args:
            random_source: Source of variates for weighted draws. Defaults to
                a fresh ``random.Random`` instance.

        """
        self._random = random_source if random_source is not None else random.Random()

    def select(self, candidates: Sequence[Candidate], context: ClickContext) -> Selection | None:
        """Select a target for a click.

        Args:
            candidates: Eligible candidates ordered by priority.
            context: The click context.

        Returns:
            The selection, or None if no candidate matches.

        """
        pool: list[Selection] = []
        pool_priority: int | None = None

        for candidate in candidates:
            priority = candidate.target.effective_priority
            if pool_priority is not None and priority != pool_priority:
                break
            matched = match_target(candidate.target, context)
            if matched is not None:
                pool.append(Selection(candidate, matched))
                pool_priority = priority

        if not pool:
            return None
        if len(pool) == 1:
            return pool[0]

        pool.sort(key=lambda s: s.candidate.index)
        if all(s.candidate.target.weight is None for s in pool):
            return pool[0]
        return self._weighted_choice(pool)

    def _weighted_choice(self, pool: list[Selection]) -> Selection:
        weighted = [
            (selection, weight)
            for selection in pool
            if (weight := 1.0 if selection.candidate.target.weight is None else selection.candidate.target.weight) > 0
        ]
        if not weighted:
            return pool[0]

        total = sum(weight for _, weight in weighted)
        draw = self._random.random() * total
        cumulative = 0.0
        for selection, weight in weighted:
            cumulative += weight
            if draw < cumulative:
                return selection
        return weighted[-1][0]
