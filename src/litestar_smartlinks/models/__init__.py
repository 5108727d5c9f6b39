"""Data models for litestar-smartlinks."""

from __future__ import annotations

from litestar_smartlinks.models.episode import ExecutorInfo, Reference, ResolutionEpisode
from litestar_smartlinks.models.link import LinkConfig, LinkLimits, LinkMeta
from litestar_smartlinks.models.target import Constraint, Target, TargetConditions, UTMConditions

__all__ = [
    "Constraint",
    "ExecutorInfo",
    "LinkConfig",
    "LinkLimits",
    "LinkMeta",
    "Reference",
    "ResolutionEpisode",
    "Target",
    "TargetConditions",
    "UTMConditions",
]
