"""Target model for smartlinks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from litestar_smartlinks.types import DEFAULT_PRIORITY

__all__ = ["Constraint", "Target", "TargetConditions", "UTMConditions"]

Constraint = str | list[str]
"""One accepted value, or a list of accepted values (OR within the field)."""


@dataclass(slots=True)
class UTMConditions:
    """Campaign tag constraints of a target."""

    source: Constraint | None = None
    medium: Constraint | None = None
    campaign: Constraint | None = None
    term: Constraint | None = None
    content: Constraint | None = None

    def declared(self) -> dict[str, Constraint]:
        """Return the declared sub-constraints keyed by tag name."""
        candidates = {
            "source": self.source,
            "medium": self.medium,
            "campaign": self.campaign,
            "term": self.term,
            "content": self.content,
        }
        return {name: value for name, value in candidates.items() if value is not None}


@dataclass(slots=True)
class TargetConditions:
    """Attribute constraints of a target, combined with implicit AND.

    Undeclared fields are unconstrained. A conditions object with no declared
    field matches any click.
    """

    country: Constraint | None = None
    language: Constraint | None = None
    device: Constraint | None = None
    utm: UTMConditions | None = None

    def is_empty(self) -> bool:
        """Return True if no field is declared."""
        return self.country is None and self.language is None and self.device is None and self.utm is None


@dataclass(slots=True)
class Target:
    """One candidate destination of a smartlink.

    Attributes:
        target_id: Identifier, unique within the link.
        url: Destination URL.
        label: Display name, never used for matching.
        conditions: Attribute constraints. ``None`` matches any click.
        priority: Lower values are considered first. ``None`` means
            ``DEFAULT_PRIORITY``.
        enabled: Disabled targets are ignored as if deleted.
        valid_from: Start of the inclusive validity window.
        valid_until: End of the inclusive validity window.
        weight: Relative weight for A/B selection among tied matches.

    """

    target_id: str
    url: str
    label: str | None = None
    conditions: TargetConditions | None = None
    priority: int | None = None
    enabled: bool = True
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    weight: float | None = None

    @property
    def effective_priority(self) -> int:
        """Priority used for ordering."""
        return DEFAULT_PRIORITY if self.priority is None else self.priority

    @property
    def display_name(self) -> str:
        """Label if set, otherwise the target id."""
        return self.label or self.target_id
