"""
Cross-Role Aggregator — concurrent per-domain fetch with failure isolation.

One task per domain source, joined with a settle-all gather: a failing
domain never cancels or hides its siblings. Transient failures are retried
(fixed delay), permanent ones are recorded on the first failure.

Every payload is validated through the DomainMetrics tagged union and must
report the requested user and domain; anything else is a scope violation.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Awaitable, Callable, Mapping, Optional, Sequence

import structlog

from execsight.aggregation.retry import (
    MAX_RETRIES,
    RETRY_DELAY_SECONDS,
    ErrorKind,
    RetryExhausted,
    classify_error,
    retry_transient,
)
from execsight.aggregation.sources import DomainSource
from execsight.errors import PermanentSourceError, ScopeViolationError
from execsight.schemas.domains import Domain, DomainMetrics, TimeWindow, parse_domain_metrics

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DomainError:
    kind: ErrorKind
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "DomainError":
        return cls(kind=classify_error(exc), error_type=type(exc).__name__, message=str(exc))


@dataclass(frozen=True)
class DomainResult:
    """Either data or an error for one domain, never both."""
    domain: Domain
    data: Optional[DomainMetrics] = None
    error: Optional[DomainError] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AggregatedView:
    user_id: str
    window: TimeWindow
    per_domain_result: Mapping[Domain, DomainResult]
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "per_domain_result", MappingProxyType(dict(self.per_domain_result)))

    @property
    def partial_failure(self) -> bool:
        return any(not r.ok for r in self.per_domain_result.values())

    @property
    def available_domains(self) -> list[Domain]:
        return [d for d, r in self.per_domain_result.items() if r.ok]

    @property
    def failed_domains(self) -> list[Domain]:
        return [d for d, r in self.per_domain_result.items() if not r.ok]

    def data(self, domain: Domain) -> Optional[DomainMetrics]:
        result = self.per_domain_result.get(Domain(domain))
        return result.data if result is not None else None


class CrossRoleAggregator:
    """Fans a user's read out across domain sources."""

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY_SECONDS,
        fetch_timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.fetch_timeout = fetch_timeout
        self._sleep = sleep

    async def aggregate(
        self,
        user_id: str,
        sources: Sequence[DomainSource],
        window: TimeWindow,
    ) -> AggregatedView:
        if not user_id:
            raise ValueError("user_id is required")

        domains = [Domain(s.domain) for s in sources]
        duplicates = sorted({d.value for d in domains if domains.count(d) > 1})
        if duplicates:
            raise ValueError(f"Duplicate domain sources: {', '.join(duplicates)}")

        outcomes = await asyncio.gather(
            *(self._fetch_domain(user_id, domain, source, window) for domain, source in zip(domains, sources)),
            return_exceptions=True,
        )

        results: dict[Domain, DomainResult] = {}
        for domain, outcome in zip(domains, outcomes):
            if isinstance(outcome, BaseException):
                # Only escapes _fetch_domain when the fetch task itself was cancelled
                outcome = DomainResult(domain=domain, error=DomainError.from_exception(outcome), attempts=1)
            results[domain] = outcome

        view = AggregatedView(user_id=user_id, window=window, per_domain_result=results)
        logger.info(
            "domains_aggregated",
            user_id=user_id,
            available=[d.value for d in view.available_domains],
            failed=[d.value for d in view.failed_domains],
            partial_failure=view.partial_failure,
        )
        return view

    async def _fetch_domain(
        self,
        user_id: str,
        domain: Domain,
        source: DomainSource,
        window: TimeWindow,
    ) -> DomainResult:
        async def attempt() -> DomainMetrics:
            call = source.fetch(user_id, window)
            if self.fetch_timeout is not None:
                payload = await asyncio.wait_for(call, timeout=self.fetch_timeout)
            else:
                payload = await call
            return self._validate(user_id, domain, payload)

        try:
            data, attempts = await retry_transient(
                attempt,
                max_retries=self.max_retries,
                delay=self.retry_delay,
                operation_name=f"fetch_{domain.value}",
                sleep=self._sleep,
            )
        except RetryExhausted as e:
            error = DomainError.from_exception(e.last_error)
            logger.warning(
                "domain_fetch_failed",
                user_id=user_id,
                domain=domain.value,
                kind=error.kind.value,
                error_type=error.error_type,
                attempts=e.attempts,
            )
            return DomainResult(domain=domain, error=error, attempts=e.attempts)

        return DomainResult(domain=domain, data=data, attempts=attempts)

    @staticmethod
    def _validate(user_id: str, domain: Domain, payload) -> DomainMetrics:
        if payload is None:
            raise PermanentSourceError(f"{domain.value} source returned no data", domain=domain.value)

        metrics = parse_domain_metrics(payload)
        if metrics.domain != domain.value:
            logger.warning("scope_violation", domain=domain.value, returned_domain=metrics.domain)
            raise ScopeViolationError(
                f"{domain.value} source returned {metrics.domain} data",
                domain=domain.value, expected=domain.value, actual=metrics.domain,
            )
        if metrics.user_id != user_id:
            logger.warning("scope_violation", domain=domain.value, user_id=user_id)
            raise ScopeViolationError(
                f"{domain.value} source returned data for another user",
                domain=domain.value, expected=user_id, actual=metrics.user_id,
            )
        return metrics
