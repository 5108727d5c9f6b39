"""Resolution hooks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from litestar_smartlinks.context import ClickContext
    from litestar_smartlinks.results import Decision

__all__ = ["ResolutionHook"]


@runtime_checkable
class ResolutionHook(Protocol):
    """Observer notified around every resolution performed by the client.

    Hooks cannot change a decision. Exceptions raised by a hook are logged
    and otherwise ignored.
    """

    async def before_resolution(self, link_id: str, context: ClickContext) -> None:
        """Called before a link is resolved."""
        ...

    async def after_resolution(self, link_id: str, context: ClickContext, decision: Decision) -> None:
        """Called with the decision of a resolution."""
        ...

    async def on_error(self, link_id: str, context: ClickContext, error: Exception) -> None:
        """Called when resolution raised, for example on a storage failure."""
        ...
