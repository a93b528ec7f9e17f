"""Backoff scheduling for retry-capable interceptors."""

from __future__ import annotations

DEFAULT_BASE_DELAY = 0.01
DEFAULT_MULTIPLIER = 2.0


def exponential_delay(
    attempt: int,
    *,
    base: float = DEFAULT_BASE_DELAY,
    multiplier: float = DEFAULT_MULTIPLIER,
    maximum: float | None = None,
) -> float:
    """Return the wait in seconds before retrying after *attempt*.

    ``delay(n) = base * multiplier ** (n - 1)``, so with the defaults the
    first retry waits 10ms, the second 20ms, and so on. ``maximum`` clamps
    the result when given. The orchestrator itself enforces no bound.
    """
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    if base < 0:
        raise ValueError("base must be non-negative")
    delay = base * (multiplier ** (attempt - 1))
    if maximum is not None:
        delay = min(delay, maximum)
    return delay
