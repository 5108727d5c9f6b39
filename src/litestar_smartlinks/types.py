"""Enumerations and constants shared across litestar-smartlinks."""

from __future__ import annotations

from enum import Enum

__all__ = [
    "DEFAULT_EPISODE_TTL_SECONDS",
    "DEFAULT_PRIORITY",
    "OUTCOME_HTTP_STATUS",
    "DeviceType",
    "EpisodeOutcome",
    "LinkStatus",
    "ResolutionOutcome",
    "StatsDimension",
]

DEFAULT_PRIORITY = 1000
"""Priority assigned to targets that do not declare one."""

DEFAULT_EPISODE_TTL_SECONDS = 90 * 24 * 60 * 60
"""Default retention of resolution episodes (90 days)."""


class LinkStatus(str, Enum):
    """Lifecycle status of a smartlink.

    Only ``ACTIVE`` links resolve to a destination. Every other status is a
    terminal "not currently serving" state.
    """

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class DeviceType(str, Enum):
    """Normalized device classes derived from the user agent."""

    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"
    BOT = "bot"
    UNKNOWN = "unknown"


class ResolutionOutcome(str, Enum):
    """Classification of a resolution decision.

    ``RATE_LIMIT`` and ``DISABLED`` are reserved for collaborators around the
    engine (such as the client's rate limiter) and never produced by the
    engine itself.
    """

    OK = "OK"
    DEFAULT_USED = "DEFAULT_USED"
    NO_MATCH = "NO_MATCH"
    EXPIRED = "EXPIRED"
    ERROR = "ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    DISABLED = "DISABLED"


class EpisodeOutcome(str, Enum):
    """Coarse outcome recorded on a resolution episode."""

    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILURE = "failure"
    ERROR = "error"

    @classmethod
    def from_resolution(cls, outcome: ResolutionOutcome) -> EpisodeOutcome:
        """Map a resolution outcome onto the episode outcome scale."""
        if outcome in (ResolutionOutcome.OK, ResolutionOutcome.DEFAULT_USED):
            return cls.SUCCESS
        if outcome in (ResolutionOutcome.NO_MATCH, ResolutionOutcome.EXPIRED):
            return cls.PARTIAL_SUCCESS
        if outcome in (ResolutionOutcome.RATE_LIMIT, ResolutionOutcome.DISABLED):
            return cls.FAILURE
        return cls.ERROR


class StatsDimension(str, Enum):
    """Dimensions available for grouping statistics reports."""

    TARGET_ID = "target_id"
    COUNTRY = "country"
    DEVICE = "device"
    UTM_SOURCE = "utm_source"
    UTM_CAMPAIGN = "utm_campaign"
    OUTCOME = "outcome"
    HOUR = "hour"
    DAY = "day"


OUTCOME_HTTP_STATUS: dict[ResolutionOutcome, int] = {
    ResolutionOutcome.OK: 302,
    ResolutionOutcome.DEFAULT_USED: 302,
    ResolutionOutcome.EXPIRED: 410,
    ResolutionOutcome.NO_MATCH: 404,
    ResolutionOutcome.RATE_LIMIT: 429,
    ResolutionOutcome.DISABLED: 403,
    ResolutionOutcome.ERROR: 500,
}
"""HTTP status used by the redirect endpoint for each outcome."""
