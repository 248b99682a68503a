"""Poll delay functions.

A backoff function maps the zero-based poll cycle (or retry) number to a
delay in seconds.  The poller applies jitter on top of whatever the
function returns.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    BackoffFunc = Callable[[int], float]


def constant_backoff(interval: float) -> BackoffFunc:
    """Return a backoff function that always waits *interval* seconds."""
    if interval < 0:
        msg = f"interval must be >= 0, got {interval!r}"
        raise ValueError(msg)

    def _backoff(_: int) -> float:
        return interval

    return _backoff


def exponential_backoff(
    base: float,
    *,
    multiplier: float = 2.0,
    cap: float | None = None,
) -> BackoffFunc:
    """Return ``base * multiplier ** n``, optionally capped at *cap* seconds.

    Example: ``exponential_backoff(1.0, cap=8.0)`` yields 1, 2, 4, 8, 8, ...
    """
    if base < 0:
        msg = f"base must be >= 0, got {base!r}"
        raise ValueError(msg)
    if multiplier < 1:
        msg = f"multiplier must be >= 1, got {multiplier!r}"
        raise ValueError(msg)

    def _backoff(n: int) -> float:
        try:
            delay = base * multiplier ** max(n, 0)
        except OverflowError:
            delay = float("inf")
        if cap is not None:
            delay = min(delay, cap)
        return delay

    return _backoff
