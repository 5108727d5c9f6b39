"""Candidate filtering: which targets may be considered at a given time."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from collections.abc import Sequence

    from litestar_smartlinks.models.target import Target

__all__ = ["Candidate", "eligible_targets", "ensure_utc", "is_within_window"]


class Candidate(NamedTuple):
    """An eligible target together with its declaration index."""

    target: Target
    index: int


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def is_within_window(now: datetime, valid_from: datetime | None, valid_until: datetime | None) -> bool:
    """Check ``now`` against an optional inclusive window.

    Args:
        now: The evaluation time.
        valid_from: Inclusive lower bound, unbounded if None.
        valid_until: Inclusive upper bound, unbounded if None.

    Returns:
        True if ``now`` lies within the window.

    """
    now = ensure_utc(now)
    if valid_from is not None and now < ensure_utc(valid_from):
        return False
    if valid_until is not None and now > ensure_utc(valid_until):
        return False
    return True


def is_eligible(target: Target, now: datetime) -> bool:
    """Return True if a target is enabled and inside its validity window."""
    return target.enabled and is_within_window(now, target.valid_from, target.valid_until)


def eligible_targets(targets: Sequence[Target], now: datetime) -> list[Candidate]:
    """Filter and order targets for evaluation.

    Disabled targets and targets whose window excludes ``now`` are dropped.
    The rest are sorted by effective priority; equal priorities keep their
    declaration order.

    Args:
        targets: Targets in declaration order.
        now: The evaluation time.

    Returns:
        Eligible candidates ordered by priority tier.

    """
    candidates = [Candidate(target, index) for index, target in enumerate(targets) if is_eligible(target, now)]
    return sorted(candidates, key=lambda c: (c.target.effective_priority, c.index))
