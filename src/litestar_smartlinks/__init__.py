"""Smart redirect links for Litestar.

One public URL, many destinations: each click is resolved against a link's
targets by country, language, device and campaign tags, with priorities,
validity windows and weighted A/B splits.
"""

from __future__ import annotations

from litestar_smartlinks.analytics import StatsAggregator, StatsQuery, StatsReport
from litestar_smartlinks.client import SmartlinkClient
from litestar_smartlinks.config import SmartlinksConfig
from litestar_smartlinks.context import ClickContext, UTMParams
from litestar_smartlinks.engine import ResolutionEngine
from litestar_smartlinks.exceptions import (
    ConfigValidationError,
    LinkNotFoundError,
    SmartlinkError,
    StorageError,
)
from litestar_smartlinks.hooks import ResolutionHook
from litestar_smartlinks.middleware import create_context_middleware, get_request_context
from litestar_smartlinks.models import (
    LinkConfig,
    LinkLimits,
    ResolutionEpisode,
    Target,
    TargetConditions,
    UTMConditions,
)
from litestar_smartlinks.plugin import SmartlinksPlugin
from litestar_smartlinks.rate_limit import RateLimitConfig, TokenBucketRateLimiter
from litestar_smartlinks.results import Decision, MatchedConditions
from litestar_smartlinks.selection import RandomSource, TargetSelector
from litestar_smartlinks.storage import MemoryStorageBackend, StorageBackend
from litestar_smartlinks.types import LinkStatus, ResolutionOutcome

__version__ = "0.1.0"

__all__ = [
    "ClickContext",
    "ConfigValidationError",
    "Decision",
    "LinkConfig",
    "LinkLimits",
    "LinkNotFoundError",
    "LinkStatus",
    "MatchedConditions",
    "MemoryStorageBackend",
    "RandomSource",
    "RateLimitConfig",
    "ResolutionEngine",
    "ResolutionEpisode",
    "ResolutionHook",
    "ResolutionOutcome",
    "SmartlinkClient",
    "SmartlinkError",
    "SmartlinksConfig",
    "SmartlinksPlugin",
    "StatsAggregator",
    "StatsQuery",
    "StatsReport",
    "StorageBackend",
    "StorageError",
    "Target",
    "TargetConditions",
    "TokenBucketRateLimiter",
    "UTMConditions",
    "UTMParams",
    "__version__",
]
