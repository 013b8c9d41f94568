"""
Domain Sources — the read side the aggregator fans out over.

A source fetches one domain's metrics for one user inside a time window.
It may return a validated snapshot or a raw mapping; the aggregator
validates either through the DomainMetrics tagged union.
"""

from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

from execsight.schemas.domains import Domain, TimeWindow


@runtime_checkable
class DomainSource(Protocol):
    domain: Domain

    async def fetch(self, user_id: str, window: TimeWindow) -> Any: ...


class CallableSource:
    """Adapts a plain async callable `(user_id, window) -> payload` to a DomainSource."""

    def __init__(self, domain: Domain, fetcher: Callable[[str, TimeWindow], Awaitable[Any]]):
        self.domain = Domain(domain)
        self._fetcher = fetcher

    async def fetch(self, user_id: str, window: TimeWindow) -> Any:
        return await self._fetcher(user_id, window)

    def __repr__(self) -> str:
        return f"CallableSource(domain={self.domain.value!r})"
