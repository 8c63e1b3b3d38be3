from __future__ import annotations

import asyncio
import logging

import pytest

from app.clients.errors import ProviderError, ProviderSchemaError
from app.services.discovery.executor import RetryingExecutor, describe_error, is_rate_limited
from tests.outages.fake_providers import AdapterScenario, FakeAdapter
from tests.utils import make_record


def _executor(sleeper, **overrides) -> RetryingExecutor:
    options = {"timeout_seconds": 0.5, "max_attempts": 3, "backoff_base_seconds": 1.0, "sleep": sleeper}
    options.update(overrides)
    return RetryingExecutor(**options)


def _call(adapter: FakeAdapter):
    return lambda: adapter.search("ai", 7)


@pytest.mark.asyncio
async def test_success_on_first_attempt_returns_records(sleeper, stub_metrics):
    adapter = FakeAdapter("exa", AdapterScenario(records=[make_record("Acme")]))

    outcome = await _executor(sleeper).execute("exa", _call(adapter))

    assert outcome.succeeded is True
    assert outcome.attempts == 1
    assert outcome.error is None
    assert [record.name for record in outcome.records] == ["Acme"]
    assert sleeper.delays == []
    assert stub_metrics.timing_calls[0]["metric"] == "discovery.adapter.latency"


@pytest.mark.asyncio
async def test_succeeds_on_third_attempt_after_two_failures(sleeper, stub_metrics):
    adapter = FakeAdapter(
        "tavily",
        AdapterScenario(mode="error", failures_before_success=2, records=[make_record("Acme")]),
    )

    outcome = await _executor(sleeper).execute("tavily", _call(adapter))

    assert outcome.succeeded is True
    assert outcome.attempts == 3
    assert len(adapter.calls) == 3
    assert sleeper.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_exhausted_budget_returns_failed_outcome(sleeper, stub_metrics):
    adapter = FakeAdapter("brave", AdapterScenario(mode="error"))

    outcome = await _executor(sleeper).execute("brave", _call(adapter))

    assert outcome.succeeded is False
    assert outcome.attempts == 3
    assert outcome.records is None
    assert outcome.error == "brave simulated 5xx"
    # No sleep after the final attempt.
    assert sleeper.delays == [1.0, 2.0]
    assert stub_metrics.counted("discovery.adapter.failed")[0]["tags"] == {"adapter": "brave"}


@pytest.mark.asyncio
async def test_rate_limit_uses_steeper_backoff(sleeper, stub_metrics):
    adapter = FakeAdapter("exa", AdapterScenario(mode="rate_limit"))

    outcome = await _executor(sleeper).execute("exa", _call(adapter))

    assert outcome.succeeded is False
    assert "429" in outcome.error
    assert sleeper.delays == [1.0, 3.0]


@pytest.mark.asyncio
async def test_rate_limit_detected_from_plain_message(sleeper, stub_metrics):
    calls = 0

    async def adapter_call():
        nonlocal calls
        calls += 1
        raise RuntimeError("Too Many Requests")

    outcome = await _executor(sleeper, max_attempts=2).execute("hn", adapter_call)

    assert calls == 2
    assert outcome.attempts == 2
    assert sleeper.delays == [1.0]


@pytest.mark.asyncio
async def test_timeout_is_retried_and_reported(sleeper, stub_metrics):
    adapter = FakeAdapter("slow", AdapterScenario(mode="slow", delay_seconds=1.0))

    outcome = await _executor(sleeper, timeout_seconds=0.05, max_attempts=2).execute(
        "slow", _call(adapter)
    )

    assert outcome.succeeded is False
    assert outcome.attempts == 2
    assert outcome.error == "Timed out after 0.05s"
    assert sleeper.delays == [1.0]


@pytest.mark.asyncio
async def test_timeout_raised_by_adapter_keeps_its_own_message(sleeper, stub_metrics):
    async def call():
        raise TimeoutError("upstream read timed out")

    outcome = await _executor(sleeper, max_attempts=1).execute("exa", call)

    assert outcome.succeeded is False
    assert outcome.error == "upstream read timed out"


@pytest.mark.asyncio
async def test_non_list_return_counts_as_failure(sleeper, stub_metrics):
    adapter = FakeAdapter("odd", AdapterScenario(mode="bad_return"))

    outcome = await _executor(sleeper, max_attempts=1).execute("odd", _call(adapter))

    assert outcome.succeeded is False
    assert "expected a list" in outcome.error


@pytest.mark.asyncio
async def test_schema_errors_retried_by_default(sleeper, stub_metrics):
    adapter = FakeAdapter("exa", AdapterScenario(mode="schema"))

    outcome = await _executor(sleeper).execute("exa", _call(adapter))

    assert outcome.attempts == 3


@pytest.mark.asyncio
async def test_non_retryable_errors_short_circuit_when_enabled(sleeper, stub_metrics):
    adapter = FakeAdapter("exa", AdapterScenario(mode="schema"))

    outcome = await _executor(sleeper, retry_non_transient=False).execute("exa", _call(adapter))

    assert outcome.succeeded is False
    assert outcome.attempts == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_logs_one_line_per_attempt(sleeper, stub_metrics, caplog):
    caplog.set_level(logging.INFO, logger="app.services.discovery.executor")
    adapter = FakeAdapter(
        "tavily",
        AdapterScenario(mode="error", failures_before_success=1, records=[]),
    )

    await _executor(sleeper).execute("tavily", _call(adapter))

    attempts = [record for record in caplog.records if record.getMessage() == "discovery.attempt"]
    assert [(record.attempt, record.outcome) for record in attempts] == [(1, "error"), (2, "success")]
    assert all(record.adapter == "tavily" for record in attempts)


@pytest.mark.asyncio
async def test_cancellation_propagates(stub_metrics):
    started = asyncio.Event()

    async def adapter_call():
        started.set()
        await asyncio.sleep(10)
        return []

    executor = RetryingExecutor(timeout_seconds=30)
    task = asyncio.create_task(executor.execute("hang", adapter_call))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


def test_rejects_invalid_configuration():
    with pytest.raises(ValueError):
        RetryingExecutor(max_attempts=0)
    with pytest.raises(ValueError):
        RetryingExecutor(timeout_seconds=0)


def test_error_helpers():
    assert is_rate_limited(ProviderError("upstream said rate limit exceeded")) is True
    assert is_rate_limited(ProviderSchemaError("exa")) is False
    assert describe_error(ValueError()) == "ValueError"
