"""Tests for the poller: cadence, backoff and bounded retries.

Covers:
- Constant and exponential backoff functions
- Jitter stays within the configured ratio
- Retryable source errors are retried with backoff
- Non-retryable errors and exhausted retries escalate as TransportFault
- Cancellation during a retry backoff returns ``None``
"""

from __future__ import annotations

import random
import threading
import time
import unittest

import pytest

from action_tracker.core.config import TrackerConfig
from action_tracker.core.context import WaitContext
from action_tracker.core.exceptions import TransportFault
from action_tracker.polling.backoff import constant_backoff, exponential_backoff
from action_tracker.polling.poller import Poller
from action_tracker.sources.base import StatusSourceError
from tests.fakes import ScriptedStatusSource, running, success


def _transient(message: str = "503") -> StatusSourceError:
    return StatusSourceError("scripted", message, retryable=True)


class TestBackoff(unittest.TestCase):
    def test_constant(self) -> None:
        backoff = constant_backoff(0.5)
        assert [backoff(n) for n in range(3)] == [0.5, 0.5, 0.5]

    def test_constant_rejects_negative(self) -> None:
        with pytest.raises(ValueError):
            constant_backoff(-1)

    def test_exponential_doubles_and_caps(self) -> None:
        backoff = exponential_backoff(1.0, cap=8.0)
        assert [backoff(n) for n in range(6)] == [1.0, 2.0, 4.0, 8.0, 8.0, 8.0]

    def test_exponential_overflow_is_capped(self) -> None:
        assert exponential_backoff(1.0, cap=30.0)(100_000) == 30.0

    def test_exponential_rejects_bad_arguments(self) -> None:
        with pytest.raises(ValueError):
            exponential_backoff(-1.0)
        with pytest.raises(ValueError):
            exponential_backoff(1.0, multiplier=0.5)


class TestPollerCadence:
    def test_rejects_bad_jitter(self) -> None:
        with pytest.raises(ValueError):
            Poller(ScriptedStatusSource({}), jitter_ratio=1.0)

    def test_rejects_negative_retries(self) -> None:
        with pytest.raises(ValueError):
            Poller(ScriptedStatusSource({}), max_retries=-1)

    def test_no_jitter(self) -> None:
        poller = Poller(ScriptedStatusSource({}), interval=0.5, jitter_ratio=0.0)
        assert poller.next_delay(0) == 0.5
        assert poller.next_delay(10) == 0.5

    def test_jitter_within_ratio(self) -> None:
        poller = Poller(
            ScriptedStatusSource({}),
            interval=1.0,
            jitter_ratio=0.1,
            rng=random.Random(42),
        )
        delays = [poller.next_delay(n) for n in range(200)]
        assert all(0.9 <= d <= 1.1 for d in delays)
        assert len(set(delays)) > 1

    def test_custom_backoff(self) -> None:
        poller = Poller(
            ScriptedStatusSource({}),
            backoff=exponential_backoff(0.1, cap=1.0),
            jitter_ratio=0.0,
        )
        assert poller.next_delay(0) == pytest.approx(0.1)
        assert poller.next_delay(1) == pytest.approx(0.2)

    def test_retry_delay_doubles(self) -> None:
        poller = Poller(ScriptedStatusSource({}), retry_base=1.0, retry_cap=30.0)
        assert [poller.retry_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]
        assert poller.retry_delay(10) == 30.0

    def test_from_config(self) -> None:
        source = ScriptedStatusSource({})
        poller = Poller.from_config(
            source, TrackerConfig(poll_interval_s=2.0, poll_jitter_ratio=0.0)
        )
        assert poller.source is source
        assert poller.next_delay(0) == 2.0


class TestPollerFetch:
    def _poller(self, source: ScriptedStatusSource, **kwargs: object) -> Poller:
        options: dict[str, object] = {
            "jitter_ratio": 0.0,
            "max_retries": 3,
            "retry_base": 0.001,
            "retry_cap": 0.005,
        }
        options.update(kwargs)
        return Poller(source, **options)  # type: ignore[arg-type]

    def test_empty_ids_skip_the_source(self) -> None:
        source = ScriptedStatusSource({})
        assert self._poller(source).fetch(WaitContext(), []) == []
        assert source.calls == []

    def test_returns_snapshots(self) -> None:
        source = ScriptedStatusSource({1: [running(1, 30)]})
        result = self._poller(source).fetch(WaitContext(), [1])
        assert result == [running(1, 30)]

    def test_passes_remaining_time_as_timeout(self) -> None:
        source = ScriptedStatusSource({1: [running(1)]})
        self._poller(source).fetch(WaitContext(timeout=10), [1])
        timeout = source.timeouts[0]
        assert timeout is not None
        assert 0 < timeout <= 10

    def test_unbounded_context_passes_no_timeout(self) -> None:
        source = ScriptedStatusSource({1: [running(1)]})
        self._poller(source).fetch(WaitContext(), [1])
        assert source.timeouts == [None]

    def test_transient_errors_retried(self) -> None:
        source = ScriptedStatusSource({1: [success(1)]}, failures=[_transient(), _transient()])
        result = self._poller(source).fetch(WaitContext(timeout=5), [1])
        assert result == [success(1)]
        assert len(source.calls) == 3

    def test_retries_exhausted(self) -> None:
        source = ScriptedStatusSource(
            {1: [success(1)]}, failures=[_transient() for _ in range(3)]
        )
        with pytest.raises(TransportFault) as exc_info:
            self._poller(source, max_retries=2).fetch(
                WaitContext(timeout=5), [1], correlation_id="cid"
            )
        err = exc_info.value
        assert err.attempts == 3
        assert err.retryable is True
        assert err.correlation_id == "cid"
        assert "2 retries" in err.message

    def test_zero_retries_fails_on_first_error(self) -> None:
        source = ScriptedStatusSource({1: [success(1)]}, failures=[_transient()])
        with pytest.raises(TransportFault):
            self._poller(source, max_retries=0).fetch(WaitContext(timeout=5), [1])
        assert len(source.calls) == 1

    def test_non_retryable_error_escalates_immediately(self) -> None:
        source = ScriptedStatusSource(
            {1: [success(1)]},
            failures=[StatusSourceError("scripted", "bad request", status_code=400)],
        )
        with pytest.raises(TransportFault) as exc_info:
            self._poller(source).fetch(WaitContext(timeout=5), [1, 2])
        assert exc_info.value.attempts == 1
        assert exc_info.value.retryable is False
        assert exc_info.value.pending_ids == (1, 2)

    def test_other_exceptions_propagate(self) -> None:
        source = ScriptedStatusSource({1: [success(1)]}, failures=[RuntimeError("bug")])
        with pytest.raises(RuntimeError):
            self._poller(source).fetch(WaitContext(timeout=5), [1])

    def test_done_context_returns_none(self) -> None:
        source = ScriptedStatusSource({1: [success(1)]})
        ctx = WaitContext()
        ctx.cancel()
        assert self._poller(source).fetch(ctx, [1]) is None
        assert source.calls == []

    def test_deadline_during_retry_backoff_returns_none(self) -> None:
        source = ScriptedStatusSource(
            {1: [success(1)]}, failures=[_transient() for _ in range(5)]
        )
        poller = self._poller(source, max_retries=5, retry_base=1.0, retry_cap=1.0)
        assert poller.fetch(WaitContext(timeout=0.05), [1]) is None
        assert len(source.calls) == 1

    def test_cancel_abandons_slow_source_call(self) -> None:
        source = ScriptedStatusSource({1: [success(1)]}, delay=1.0)
        ctx = WaitContext()
        timer = threading.Timer(0.05, ctx.cancel)

        timer.start()
        start = time.monotonic()
        result = self._poller(source).fetch(ctx, [1])
        elapsed = time.monotonic() - start
        timer.join()

        assert result is None
        assert elapsed < 0.3
        assert len(source.calls) == 1

    def test_deadline_abandons_slow_source_call(self) -> None:
        source = ScriptedStatusSource({1: [success(1)]}, delay=1.0)

        start = time.monotonic()
        result = self._poller(source).fetch(WaitContext(timeout=0.05), [1])

        assert result is None
        assert time.monotonic() - start < 0.3
