from __future__ import annotations

import logging
import time

import pytest

from app.services.discovery.coordinator import FanOutCoordinator
from app.services.discovery.executor import RetryingExecutor
from app.services.discovery.registry import AdapterRegistry
from tests.outages.fake_providers import AdapterScenario, FakeAdapter, failing_adapter, ok_adapter
from tests.utils import make_record

pytestmark = pytest.mark.slow


def _coordinator(adapters, sleeper, **executor_options) -> FanOutCoordinator:
    options = {"timeout_seconds": 0.2, "max_attempts": 3, "sleep": sleeper}
    options.update(executor_options)
    return FanOutCoordinator(AdapterRegistry(adapters), executor=RetryingExecutor(**options))


@pytest.mark.asyncio
@pytest.mark.parametrize("mode", ["error", "rate_limit", "schema", "bad_return"])
async def test_single_broken_source_is_isolated(mode, sleeper, stub_metrics):
    names = ["Acme", "Zeta Labs", "Gridwise", "Medisync"]
    adapters = [ok_adapter(f"source{i}", name) for i, name in enumerate(names)]
    adapters.insert(2, failing_adapter("broken", mode=mode))

    records, summary = await _coordinator(adapters, sleeper).run("")

    assert len(records) == 4
    assert summary.failed_sources == 1
    assert summary.successful_sources == 4
    assert summary.sources["broken"].retry_attempts == 3
    assert list(summary.sources) == [adapter.name for adapter in adapters]


@pytest.mark.asyncio
async def test_hanging_source_is_bounded_by_timeout(sleeper, stub_metrics):
    hanging = FakeAdapter("hanging", AdapterScenario(mode="slow", delay_seconds=30))
    adapters = [hanging, ok_adapter("exa", "Acme")]

    start = time.perf_counter()
    records, summary = await _coordinator(adapters, sleeper, timeout_seconds=0.1, max_attempts=2).run("")
    elapsed = time.perf_counter() - start

    assert elapsed < 5
    assert [record.name for record in records] == ["Acme"]
    assert summary.sources["hanging"].error == "Timed out after 0.1s"
    assert len(hanging.calls) == 2


@pytest.mark.asyncio
async def test_adapters_run_concurrently(stub_metrics):
    adapters = [
        FakeAdapter(f"slow{i}", AdapterScenario(mode="slow", delay_seconds=0.3)) for i in range(5)
    ]
    executor = RetryingExecutor(timeout_seconds=2.0)

    start = time.perf_counter()
    _, summary = await FanOutCoordinator(AdapterRegistry(adapters), executor=executor).run("")
    elapsed = time.perf_counter() - start

    assert summary.successful_sources == 5
    assert elapsed < 1.2


@pytest.mark.asyncio
async def test_flaky_source_recovers_within_budget(sleeper, stub_metrics, caplog):
    caplog.set_level(logging.WARNING, logger="app.services.discovery.executor")
    flaky = FakeAdapter(
        "flaky",
        AdapterScenario(mode="rate_limit", failures_before_success=2, records=[]),
    )

    _, summary = await _coordinator([flaky], sleeper).run("")

    assert summary.sources["flaky"].success is True
    assert summary.sources["flaky"].retry_attempts == 3
    assert sleeper.delays == [1.0, 3.0]
    outcomes = [record.outcome for record in caplog.records if record.getMessage() == "discovery.attempt"]
    assert outcomes == ["rate_limited", "rate_limited"]


@pytest.mark.asyncio
async def test_outcome_order_follows_submission_not_completion(stub_metrics):
    slow = FakeAdapter(
        "slow",
        AdapterScenario(mode="slow", delay_seconds=0.2, records=[make_record("Acme", source="slow")]),
    )
    fast = ok_adapter("fast", "Acme Inc")

    records, summary = await FanOutCoordinator(
        AdapterRegistry([slow, fast]), executor=RetryingExecutor(timeout_seconds=2.0)
    ).run("")

    assert list(summary.sources) == ["slow", "fast"]
    assert records[0].name == "Acme"
    assert records[0].sources == ["slow", "fast"]
