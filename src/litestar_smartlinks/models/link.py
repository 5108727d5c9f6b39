"""Link configuration model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from litestar_smartlinks.models.target import Target
from litestar_smartlinks.types import LinkStatus

__all__ = ["LinkConfig", "LinkLimits", "LinkMeta"]


@dataclass(slots=True)
class LinkLimits:
    """Link-level limits.

    Attributes:
        valid_from: Start of the inclusive link validity window.
        valid_until: End of the inclusive link validity window.
        max_clicks: Informational click budget. Not enforced by the engine.

    """

    valid_from: datetime | None = None
    valid_until: datetime | None = None
    max_clicks: int | None = None


@dataclass(slots=True)
class LinkMeta:
    """Bookkeeping owned by the storage backend."""

    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None


@dataclass(slots=True)
class LinkConfig:
    """A named routing configuration.

    The configuration is replaced as a whole on every save and is never
    mutated by the resolution path.

    Attributes:
        link_id: Stable lookup key.
        status: Lifecycle status. Only ``ACTIVE`` links resolve.
        targets: Ordered candidate destinations.
        default_target_id: Target used when no conditions match.
        name: Human readable name.
        description: Longer description.
        limits: Optional link-level validity window.
        tags: Free-form tags.
        notes: Free-form notes.
        meta: Version and timestamps maintained by storage.

    """

    link_id: str
    default_target_id: str
    targets: list[Target] = field(default_factory=list)
    status: LinkStatus = LinkStatus.ACTIVE
    name: str | None = None
    description: str | None = None
    limits: LinkLimits | None = None
    tags: list[str] = field(default_factory=list)
    notes: str | None = None
    meta: LinkMeta = field(default_factory=LinkMeta)

    @property
    def valid_from(self) -> datetime | None:
        """Start of the link validity window, if any."""
        return self.limits.valid_from if self.limits else None

    @property
    def valid_until(self) -> datetime | None:
        """End of the link validity window, if any."""
        return self.limits.valid_until if self.limits else None

    @property
    def is_active(self) -> bool:
        """Return True if the status permits resolution."""
        return self.status == LinkStatus.ACTIVE

    def get_target(self, target_id: str) -> Target | None:
        """Find a target by id among all configured targets.

        Args:
            target_id: The target id to look up.

        Returns:
            The target, or None if no target has that id.

        """
        for target in self.targets:
            if target.target_id == target_id:
                return target
        return None
