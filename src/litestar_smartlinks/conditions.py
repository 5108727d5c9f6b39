"""Condition matching for targets."""

from __future__ import annotations

from typing import TYPE_CHECKING

from litestar_smartlinks.results import MatchedConditions

if TYPE_CHECKING:
    from litestar_smartlinks.context import ClickContext
    from litestar_smartlinks.models.target import Constraint, Target

__all__ = ["match_target", "matches"]


def _normalize(value: str) -> str:
    return value.casefold()


def matches(observed: str | None, constraint: Constraint) -> bool:
    """Check an observed attribute against one declared constraint.

    Comparison is case-insensitive exact equality. A list constraint matches
    if any member matches. An absent or empty observed value never matches.

    Args:
        observed: The attribute value from the click context.
        constraint: One accepted value or a list of accepted values.

    Returns:
        True if the observed value satisfies the constraint.

    """
    if not observed:
        return False

    value = _normalize(observed)
    if isinstance(constraint, str):
        return value == _normalize(constraint)
    return any(value == _normalize(candidate) for candidate in constraint)


def match_target(target: Target, context: ClickContext) -> MatchedConditions | None:
    """Evaluate all declared conditions of a target against a click.

    Every declared field must match. A target without conditions, or with an
    empty conditions object, matches unconditionally.

    Args:
        target: The target to evaluate.
        context: The click context.

    Returns:
        The satisfied condition categories, or None if the target does not match.

    """
    conditions = target.conditions
    if conditions is None or conditions.is_empty():
        return MatchedConditions()

    country = conditions.country is not None
    if country and not matches(context.country, conditions.country):
        return None

    language = conditions.language is not None
    if language and not matches(context.language, conditions.language):
        return None

    device = conditions.device is not None
    if device and not matches(context.device, conditions.device):
        return None

    utm = False
    if conditions.utm is not None:
        declared = conditions.utm.declared()
        for name, constraint in declared.items():
            if not matches(context.utm.get(name), constraint):
                return None
        utm = bool(declared)

    return MatchedConditions(country=country, language=language, device=device, utm=utm)
