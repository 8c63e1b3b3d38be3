"""Runs one adapter call under a per-attempt timeout with bounded retries."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable
from typing import Any

from app.clients.errors import ProviderRateLimitError
from app.models.run_summary import AttemptOutcome
from app.models.startup import RawRecord
from app.observability.metrics import metrics
from scripts.backoff import DEFAULT_FACTOR, RATE_LIMIT_FACTOR, backoff_delay

logger = logging.getLogger("app.services.discovery.executor")

AdapterCall = Callable[[], Awaitable[list[RawRecord]]]
AsyncSleepFn = Callable[[float], Awaitable[Any]]

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE_SECONDS = 1.0
RATE_LIMIT_PATTERN = re.compile(r"\b429\b|rate[\s_-]?limit|too many requests", re.IGNORECASE)


def is_rate_limited(exc: BaseException) -> bool:
    """Return True when an error looks like upstream throttling."""
    if isinstance(exc, ProviderRateLimitError):
        return True
    return bool(RATE_LIMIT_PATTERN.search(str(exc)))


def describe_error(exc: BaseException) -> str:
    message = str(exc).strip()
    return message or type(exc).__name__


class RetryingExecutor:
    """Converts adapter successes, failures and timeouts into AttemptOutcome data."""

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS,
        retry_non_transient: bool = True,
        sleep: AsyncSleepFn | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base_seconds
        self._retry_non_transient = retry_non_transient
        self._sleep = sleep or asyncio.sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def execute(self, adapter_name: str, adapter_call: AdapterCall) -> AttemptOutcome:
        start = time.perf_counter()
        last_error = "no attempts made"

        for attempt in range(1, self._max_attempts + 1):
            attempt_start = time.perf_counter()
            deadline = asyncio.timeout(self._timeout)
            try:
                async with deadline:
                    records = await adapter_call()
                if not isinstance(records, list):
                    raise TypeError(
                        f"adapter returned {type(records).__name__}, expected a list of records"
                    )
            except TimeoutError as exc:
                if deadline.expired():
                    last_error = f"Timed out after {self._timeout:g}s"
                else:
                    last_error = describe_error(exc)
                failure: Exception = exc
            except Exception as exc:
                last_error = describe_error(exc)
                failure = exc
            else:
                elapsed_ms = _elapsed_ms(start)
                self._log_attempt(adapter_name, attempt, "success", attempt_start, count=len(records))
                metrics.timing("discovery.adapter.latency", elapsed_ms, tags={"adapter": adapter_name})
                return AttemptOutcome(
                    adapter_name=adapter_name,
                    succeeded=True,
                    records=records,
                    error=None,
                    attempts=attempt,
                    elapsed_ms=elapsed_ms,
                )

            rate_limited = is_rate_limited(failure)
            self._log_attempt(
                adapter_name,
                attempt,
                "rate_limited" if rate_limited else "error",
                attempt_start,
                error=last_error,
            )
            if not self._should_retry(failure) or attempt >= self._max_attempts:
                break
            factor = RATE_LIMIT_FACTOR if rate_limited else DEFAULT_FACTOR
            await self._sleep(backoff_delay(attempt, base_delay=self._backoff_base, factor=factor))

        elapsed_ms = _elapsed_ms(start)
        metrics.increment("discovery.adapter.failed", tags={"adapter": adapter_name})
        return AttemptOutcome(
            adapter_name=adapter_name,
            succeeded=False,
            records=None,
            error=last_error,
            attempts=attempt,
            elapsed_ms=elapsed_ms,
        )

    def _should_retry(self, exc: BaseException) -> bool:
        if self._retry_non_transient:
            return True
        return getattr(exc, "retryable", True)

    def _log_attempt(
        self,
        adapter_name: str,
        attempt: int,
        outcome: str,
        attempt_start: float,
        *,
        count: int | None = None,
        error: str | None = None,
    ) -> None:
        level = logging.INFO if outcome == "success" else logging.WARNING
        logger.log(
            level,
            "discovery.attempt",
            extra={
                "adapter": adapter_name,
                "attempt": attempt,
                "max_attempts": self._max_attempts,
                "outcome": outcome,
                "count": count,
                "error": error,
                "latency_ms": _elapsed_ms(attempt_start),
            },
        )
        metrics.increment("discovery.attempt", tags={"adapter": adapter_name, "outcome": outcome})


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))
