"""Poller: decides when to fetch and which action IDs to fetch.

The poller owns the poll cadence and the retry policy for failed status
fetches.  It never interprets action states; that is the tracker's job.

Cadence:
    Each cycle waits ``backoff(cycle)`` seconds (constant by default) with
    symmetric jitter so that many CLI invocations started together do not
    poll the API in lock-step.

Retry:
    A fetch failing with a *retryable* ``StatusSourceError`` is retried up
    to ``max_retries`` times, backing off ``retry_base * 2 ** (n - 1)``
    seconds (capped).  A non-retryable failure, or exhausted retries,
    escalates as ``TransportFault``.  An action reporting ``error`` is
    not a fetch failure and never reaches this code path.

Every sleep goes through ``WaitContext.sleep`` so cancellation and the
deadline interrupt both poll and retry waits.  Each source call runs on a
short-lived worker thread; when the context ends first the call is
abandoned and its late result dropped, so a slow request never holds up
a cancelled wait.
"""

from __future__ import annotations

import logging
import random
import threading
from concurrent.futures import Future
from typing import TYPE_CHECKING

from action_tracker.core.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_JITTER_RATIO,
    DEFAULT_RETRY_BASE_SECONDS,
    DEFAULT_RETRY_CAP_SECONDS,
)
from action_tracker.core.exceptions import TransportFault
from action_tracker.polling.backoff import constant_backoff, exponential_backoff
from action_tracker.sources.base import StatusSourceError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from action_tracker.core.config import TrackerConfig
    from action_tracker.core.context import WaitContext
    from action_tracker.models.action import Action, ActionId
    from action_tracker.polling.backoff import BackoffFunc
    from action_tracker.sources.base import StatusSource

logger = logging.getLogger(__name__)


class Poller:
    """Fetch cadence and bounded-retry policy for one status source.

    Stateless between calls: a single ``Poller`` may serve concurrent
    waits as long as its source is thread-safe.
    """

    def __init__(
        self,
        source: StatusSource,
        *,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        jitter_ratio: float = DEFAULT_POLL_JITTER_RATIO,
        backoff: BackoffFunc | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base: float = DEFAULT_RETRY_BASE_SECONDS,
        retry_cap: float = DEFAULT_RETRY_CAP_SECONDS,
        rng: random.Random | None = None,
    ) -> None:
        if not 0.0 <= jitter_ratio < 1.0:
            msg = f"jitter_ratio must be >= 0 and < 1, got {jitter_ratio!r}"
            raise ValueError(msg)
        if max_retries < 0:
            msg = f"max_retries must be >= 0, got {max_retries!r}"
            raise ValueError(msg)
        self._source = source
        self._backoff = backoff or constant_backoff(interval)
        self._jitter_ratio = jitter_ratio
        self._max_retries = max_retries
        self._retry_backoff = exponential_backoff(retry_base, cap=retry_cap)
        self._rng = rng or random.Random()

    @classmethod
    def from_config(cls, source: StatusSource, config: TrackerConfig) -> Poller:
        """Build a poller using the polling fields of *config*."""
        return cls(
            source,
            interval=config.poll_interval_s,
            jitter_ratio=config.poll_jitter_ratio,
            max_retries=config.max_retries,
            retry_base=config.retry_base_s,
            retry_cap=config.retry_cap_s,
        )

    @property
    def source(self) -> StatusSource:
        return self._source

    # ------------------------------------------------------------------
    # Cadence
    # ------------------------------------------------------------------

    def next_delay(self, cycle: int) -> float:
        """Return the jittered delay before poll cycle *cycle* (zero-based)."""
        delay = self._backoff(cycle)
        if self._jitter_ratio:
            delay *= 1.0 + self._rng.uniform(-self._jitter_ratio, self._jitter_ratio)
        return max(0.0, delay)

    def retry_delay(self, attempt: int) -> float:
        """Return the backoff after failed fetch *attempt* (one-based)."""
        return self._retry_backoff(attempt - 1)

    def wait(self, context: WaitContext, cycle: int) -> bool:
        """Sleep until poll cycle *cycle* is due.

        Returns:
            ``False`` if the context was cancelled or expired meanwhile.
        """
        return context.sleep(self.next_delay(cycle))

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def fetch(
        self,
        context: WaitContext,
        ids: Sequence[ActionId],
        *,
        correlation_id: str = "",
    ) -> list[Action] | None:
        """Fetch the status of exactly *ids*, retrying transient failures.

        Args:
            context: The wait context; bounds request timeouts and retry sleeps.
            ids: Pending action IDs, in input order.
            correlation_id: Wait identifier for logs and errors.

        Returns:
            The fetched snapshots, or ``None`` if the context ended before
            a fetch could succeed.

        Raises:
            TransportFault: If the source failed non-retryably or retries
                were exhausted.
        """
        if not ids:
            return []

        pending = list(ids)
        attempt = 0
        while not context.done:
            attempt += 1
            try:
                return self._call_source(context, pending)
            except StatusSourceError as exc:
                if not exc.retryable:
                    logger.error(
                        "Status fetch failed | correlation_id=%s | source=%s | "
                        "code=%s | error=%s",
                        correlation_id,
                        self._source.name,
                        exc.code,
                        exc,
                    )
                    msg = f"Action status fetch failed: {exc}"
                    raise TransportFault(
                        msg,
                        pending_ids=pending,
                        attempts=attempt,
                        retryable=False,
                        correlation_id=correlation_id,
                    ) from exc

                if attempt > self._max_retries:
                    logger.error(
                        "Status fetch retries exhausted | correlation_id=%s | "
                        "source=%s | retries=%d | error=%s",
                        correlation_id,
                        self._source.name,
                        self._max_retries,
                        exc,
                    )
                    msg = (
                        f"Action status fetch failed after {attempt} attempts "
                        f"({self._max_retries} retries): {exc}"
                    )
                    raise TransportFault(
                        msg,
                        pending_ids=pending,
                        attempts=attempt,
                        correlation_id=correlation_id,
                    ) from exc

                backoff = self.retry_delay(attempt)
                logger.warning(
                    "Status fetch error (retry %d/%d) | correlation_id=%s | "
                    "source=%s | backoff=%.2fs | error=%s",
                    attempt,
                    self._max_retries,
                    correlation_id,
                    self._source.name,
                    backoff,
                    exc,
                )
                if not context.sleep(backoff):
                    break
        return None

    def _call_source(
        self,
        context: WaitContext,
        ids: list[ActionId],
    ) -> list[Action] | None:
        """Run one ``source.fetch`` on a worker thread and wait for it or *context*.

        Returns ``None`` if the context ends first; the request is abandoned
        and its late result dropped.  Exceptions raised by the source are
        re-raised in the calling thread.
        """
        future: Future[list[Action]] = Future()
        timeout = context.remaining()

        def _run() -> None:
            try:
                future.set_result(self._source.fetch(ids, timeout=timeout))
            except BaseException as exc:  # noqa: BLE001 - re-raised by the caller
                future.set_exception(exc)

        finished = context.child()
        future.add_done_callback(lambda _: finished.cancel())
        threading.Thread(target=_run, name="action-status-fetch", daemon=True).start()
        finished.wait()

        if future.done():
            return future.result()
        logger.debug("Abandoned in-flight status fetch | reason=%s", context.reason)
        return None
