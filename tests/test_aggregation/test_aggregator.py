"""
Cross-Role Aggregator Tests.

Sources are in-memory fakes with scripted failures; the retry sleep is
recorded instead of awaited so no test waits on real time.
"""

import asyncio

import pytest

from conftest import USER_ID, make_customer, make_finance, make_inventory, make_marketing, make_operations
from execsight.aggregation.aggregator import CrossRoleAggregator
from execsight.aggregation.retry import ErrorKind
from execsight.aggregation.sources import CallableSource, DomainSource
from execsight.errors import PermanentSourceError, TransientSourceError
from execsight.schemas.domains import Domain


BUILDERS = {
    Domain.INVENTORY: make_inventory,
    Domain.MARKETING: make_marketing,
    Domain.OPERATIONS: make_operations,
    Domain.FINANCE: make_finance,
    Domain.CUSTOMER: make_customer,
}


class FakeSource:
    """Raises the scripted errors in order, then returns its payload."""

    def __init__(self, domain, payload=None, failures=(), always=None):
        self.domain = Domain(domain)
        self.payload = payload if payload is not None else BUILDERS[self.domain]()
        self.failures = list(failures)
        self.always = always
        self.calls = 0

    async def fetch(self, user_id, window):
        self.calls += 1
        if self.always is not None:
            raise self.always
        if self.failures:
            raise self.failures.pop(0)
        return self.payload


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def healthy_sources():
    return [FakeSource(domain) for domain in BUILDERS]


class TestAggregate:
    def setup_method(self):
        self.sleep = RecordingSleep()
        self.aggregator = CrossRoleAggregator(sleep=self.sleep)

    @pytest.mark.asyncio
    async def test_all_domains_succeed(self, window):
        view = await self.aggregator.aggregate(USER_ID, healthy_sources(), window)
        assert not view.partial_failure
        assert set(view.available_domains) == set(BUILDERS)
        assert view.data(Domain.FINANCE).cash_balance == 5000

    @pytest.mark.asyncio
    async def test_one_permanent_failure_is_isolated(self, window):
        sources = [FakeSource(d) for d in BUILDERS if d != Domain.MARKETING]
        broken = FakeSource(Domain.MARKETING, always=PermanentSourceError("bad credentials"))
        sources.append(broken)

        view = await self.aggregator.aggregate(USER_ID, sources, window)

        assert view.partial_failure
        assert view.failed_domains == [Domain.MARKETING]
        assert len(view.available_domains) == 4
        result = view.per_domain_result[Domain.MARKETING]
        assert result.data is None
        assert result.error.kind == ErrorKind.PERMANENT
        assert result.error.error_type == "PermanentSourceError"
        assert result.attempts == 1
        assert broken.calls == 1
        assert self.sleep.delays == []

    @pytest.mark.asyncio
    async def test_transient_recovers_after_two_failures(self, window):
        source = FakeSource(Domain.FINANCE, failures=[TransientSourceError("blip")] * 2)
        view = await self.aggregator.aggregate(USER_ID, [source], window)

        result = view.per_domain_result[Domain.FINANCE]
        assert result.ok
        assert result.attempts == 3
        assert self.sleep.delays == [0.1, 0.1]

    @pytest.mark.asyncio
    async def test_transient_recovers_on_last_retry(self, window):
        source = FakeSource(Domain.FINANCE, failures=[TimeoutError("slow")] * 3)
        view = await self.aggregator.aggregate(USER_ID, [source], window)

        result = view.per_domain_result[Domain.FINANCE]
        assert result.ok
        assert result.attempts == 4

    @pytest.mark.asyncio
    async def test_transient_exhausted(self, window):
        source = FakeSource(Domain.OPERATIONS, always=ConnectionError("reset"))
        view = await self.aggregator.aggregate(USER_ID, [source], window)

        result = view.per_domain_result[Domain.OPERATIONS]
        assert not result.ok
        assert result.error.kind == ErrorKind.TRANSIENT
        assert result.attempts == 4
        assert source.calls == 4
        assert self.sleep.delays == [0.1, 0.1, 0.1]

    @pytest.mark.asyncio
    async def test_foreign_user_is_scope_violation(self, window):
        source = FakeSource(Domain.CUSTOMER, payload=make_customer(user_id="someone-else"))
        view = await self.aggregator.aggregate(USER_ID, [source], window)

        result = view.per_domain_result[Domain.CUSTOMER]
        assert result.data is None
        assert result.error.error_type == "ScopeViolationError"
        assert result.error.kind == ErrorKind.PERMANENT
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_wrong_domain_is_scope_violation(self, window):
        source = FakeSource(Domain.INVENTORY, payload=make_finance())
        view = await self.aggregator.aggregate(USER_ID, [source], window)
        assert view.per_domain_result[Domain.INVENTORY].error.error_type == "ScopeViolationError"

    @pytest.mark.asyncio
    async def test_invalid_payload_is_permanent(self, window):
        payload = {"domain": "inventory", "user_id": USER_ID, "products": "not-a-list"}
        source = FakeSource(Domain.INVENTORY, payload=payload)
        view = await self.aggregator.aggregate(USER_ID, [source], window)

        result = view.per_domain_result[Domain.INVENTORY]
        assert result.error.kind == ErrorKind.PERMANENT
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_raw_mapping_payload_validated(self, window):
        payload = make_finance().model_dump()
        view = await self.aggregator.aggregate(USER_ID, [FakeSource(Domain.FINANCE, payload=payload)], window)
        assert view.data(Domain.FINANCE).current_ratio == 0.8

    @pytest.mark.asyncio
    async def test_duplicate_domains_rejected(self, window):
        with pytest.raises(ValueError):
            await self.aggregator.aggregate(
                USER_ID, [FakeSource(Domain.FINANCE), FakeSource(Domain.FINANCE)], window,
            )

    @pytest.mark.asyncio
    async def test_empty_user_rejected(self, window):
        with pytest.raises(ValueError):
            await self.aggregator.aggregate("", healthy_sources(), window)

    @pytest.mark.asyncio
    async def test_view_is_read_only(self, window):
        view = await self.aggregator.aggregate(USER_ID, healthy_sources(), window)
        with pytest.raises(TypeError):
            view.per_domain_result[Domain.FINANCE] = None

    @pytest.mark.asyncio
    async def test_fetches_run_concurrently(self, window):
        """Every source waits until all have started; a serial fan-out would never finish."""
        started = 0
        everyone_started = asyncio.Event()

        def barrier_source(domain):
            async def fetch(user_id, window):
                nonlocal started
                started += 1
                if started == len(BUILDERS):
                    everyone_started.set()
                await everyone_started.wait()
                return BUILDERS[domain](user_id)
            return CallableSource(domain, fetch)

        sources = [barrier_source(d) for d in BUILDERS]
        view = await asyncio.wait_for(self.aggregator.aggregate(USER_ID, sources, window), timeout=2)
        assert not view.partial_failure

    @pytest.mark.asyncio
    async def test_fetch_timeout_counts_as_transient(self, window):
        async def hang(user_id, window):
            await asyncio.sleep(10)

        aggregator = CrossRoleAggregator(max_retries=1, fetch_timeout=0.01, sleep=self.sleep)
        view = await aggregator.aggregate(USER_ID, [CallableSource("finance", hang)], window)

        result = view.per_domain_result[Domain.FINANCE]
        assert result.error.kind == ErrorKind.TRANSIENT
        assert result.attempts == 2


class TestSources:
    def test_callable_source_satisfies_protocol(self):
        async def fetch(user_id, window):
            return None

        source = CallableSource("inventory", fetch)
        assert isinstance(source, DomainSource)
        assert source.domain == Domain.INVENTORY

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            CrossRoleAggregator(max_retries=-1)
        with pytest.raises(ValueError):
            CrossRoleAggregator(retry_delay=-0.5)
