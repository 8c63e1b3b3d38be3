"""Exponential backoff helpers."""

from __future__ import annotations

from random import SystemRandom

DEFAULT_FACTOR = 2.0
RATE_LIMIT_FACTOR = 3.0

_rng = SystemRandom()


def backoff_delay(
    attempt: int,
    *,
    base_delay: float = 1.0,
    factor: float = DEFAULT_FACTOR,
    max_delay: float | None = None,
    jitter: float = 0.0,
) -> float:
    """Return the wait after failed ``attempt``: ``base_delay * factor ** (attempt - 1)``."""
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    if base_delay < 0:
        raise ValueError("base_delay must be >= 0")
    if factor < 1:
        raise ValueError("factor must be >= 1")
    if jitter < 0:
        raise ValueError("jitter must be >= 0")

    delay = base_delay * factor ** (attempt - 1)
    if jitter > 0:
        delay += _rng.uniform(0, delay * jitter)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay
