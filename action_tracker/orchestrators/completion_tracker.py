"""Completion tracker: block until a set of remote actions finishes.

Given the actions returned by mutating API calls (``enable_backup``,
``create_server`` ...), the tracker polls their status until every one
is terminal, streaming each snapshot to a progress sink, and folds the
result into a single outcome:

- all actions succeeded               → ``None`` / successful ``WaitOutcome``
- one or more actions ended in error  → ``AggregateActionFailure``
- context cancelled / deadline passed → ``WaitIncomplete``
- status polling itself failed        → ``TransportFault`` (raised at once)

Failures never short-circuit the wait: the tracker keeps polling the
remaining actions so a batch operation is reported completely in one go.

Each call owns its ``WatchSet``; ``ActionWaiter`` itself is stateless and
may be shared between threads.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from action_tracker.core.config import TrackerConfig
from action_tracker.core.context import WaitContext
from action_tracker.core.exceptions import (
    REASON_CANCELLED,
    REASON_INTERRUPTED,
    ActionFailed,
    ActionNotFound,
    AggregateActionFailure,
    WaitIncomplete,
)
from action_tracker.polling.poller import Poller
from action_tracker.progress.reporters import as_progress_sink, dispatch_update

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from action_tracker.models.action import Action, ActionId
    from action_tracker.progress.reporters import ProgressSink
    from action_tracker.sources.base import StatusSource

    ProgressLike = ProgressSink | Callable[[Action], object] | None

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Watch set
# ---------------------------------------------------------------------------


class WatchSet:
    """Latest known snapshot per action, for the lifetime of one wait.

    Keeps input order; duplicate IDs collapse onto the first descriptor.
    Once an action's snapshot is terminal it is frozen and its ID is no
    longer reported as pending.

    IDs are matched by their string form, so a source reporting ``789``
    updates an action the caller passed as ``"789"``.  Stored snapshots
    always carry the caller's ID.
    """

    def __init__(self, actions: Iterable[Action]) -> None:
        self._snapshots: dict[str, Action] = {}
        for action in actions:
            self._snapshots.setdefault(_id_key(action.id), action)

    def __len__(self) -> int:
        return len(self._snapshots)

    def __contains__(self, action_id: object) -> bool:
        return _id_key(action_id) in self._snapshots

    def get(self, action_id: ActionId) -> Action:
        return self._snapshots[_id_key(action_id)]

    def snapshots(self) -> tuple[Action, ...]:
        return tuple(self._snapshots.values())

    def pending_ids(self) -> list[ActionId]:
        """IDs still running, in input order."""
        return [a.id for a in self._snapshots.values() if not a.is_terminal]

    @property
    def all_terminal(self) -> bool:
        return all(a.is_terminal for a in self._snapshots.values())

    def apply(self, snapshot: Action) -> Action | None:
        """Replace the stored snapshot for ``snapshot.id``.

        Returns:
            The stored snapshot, or ``None`` if the ID is not watched or
            its snapshot is already terminal; the update is ignored in
            both cases.
        """
        key = _id_key(snapshot.id)
        current = self._snapshots.get(key)
        if current is None or current.is_terminal:
            return None
        if snapshot.id != current.id:
            snapshot = replace(snapshot, id=current.id)
        self._snapshots[key] = snapshot
        return snapshot

    def failures(self, *, correlation_id: str = "") -> list[ActionFailed]:
        """``ActionFailed`` entries for every failed action, in input order."""
        return [
            a.to_failure(correlation_id=correlation_id)
            for a in self._snapshots.values()
            if a.failed
        ]


def _id_key(action_id: object) -> str:
    return str(action_id)


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WaitOutcome:
    """Result of one wait, returned by ``ActionWaiter.track``.

    Attributes:
        correlation_id: Identifier of the wait, also present in log lines.
        actions: Final snapshot of every watched action, in input order.
        error: ``AggregateActionFailure``, ``WaitIncomplete`` or ``None``.
        poll_count: Number of successful status fetches.
        elapsed_seconds: Wall time spent waiting.
    """

    correlation_id: str
    actions: tuple[Action, ...]
    error: AggregateActionFailure | WaitIncomplete | None
    poll_count: int = 0
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def complete(self) -> bool:
        """Whether every action reached a terminal state."""
        return not isinstance(self.error, WaitIncomplete)

    @property
    def failures(self) -> tuple[ActionFailed, ...]:
        if self.error is None:
            return ()
        return self.error.failures

    @property
    def pending_ids(self) -> tuple[ActionId, ...]:
        if isinstance(self.error, WaitIncomplete):
            return self.error.pending_ids
        return ()

    def raise_for_error(self) -> None:
        """Raise ``error`` if the wait did not fully succeed."""
        if self.error is not None:
            raise self.error


# ---------------------------------------------------------------------------
# Waiter
# ---------------------------------------------------------------------------


class ActionWaiter:
    """Waits for remote actions using a status source.

    Example usage::

        waiter = ActionWaiter(HttpActionSource(config), config=config)
        action = client.enable_backup(server)
        waiter.wait_for_actions(WaitContext(timeout=600), TerminalProgressReporter(), action)
    """

    def __init__(
        self,
        source: StatusSource,
        *,
        config: TrackerConfig | None = None,
        poller: Poller | None = None,
    ) -> None:
        self._config = config or TrackerConfig()
        self._poller = poller or Poller.from_config(source, self._config)

    @property
    def poller(self) -> Poller:
        return self._poller

    @property
    def config(self) -> TrackerConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def wait_for_actions(
        self,
        context: WaitContext | None,
        progress: ProgressLike,
        *actions: Action,
    ) -> None:
        """Block until every action is terminal.

        Args:
            context: Cancellation/deadline context, or ``None`` for one
                built from ``TrackerConfig.wait_timeout_s``.
            progress: Progress sink, plain callable, or ``None``.
            *actions: Actions returned by a prior mutating API call.

        Raises:
            AggregateActionFailure: One or more actions ended in ``error``.
            WaitIncomplete: The context ended before all actions finished.
            TransportFault: Status polling failed after bounded retries.
        """
        self.track(context, progress, *actions).raise_for_error()

    def wait_for_action(
        self,
        context: WaitContext | None,
        progress: ProgressLike,
        action: Action,
    ) -> None:
        """Single-action form of ``wait_for_actions``."""
        self.wait_for_actions(context, progress, action)

    def track(
        self,
        context: WaitContext | None,
        progress: ProgressLike,
        *actions: Action,
    ) -> WaitOutcome:
        """Run the wait loop and return its outcome instead of raising.

        ``TransportFault`` is still raised: it means nothing could be
        observed, so there is no outcome to report.
        """
        ctx = self._resolve_context(context)
        sink = as_progress_sink(progress)
        correlation_id = uuid.uuid4().hex[:12]
        watch = WatchSet(actions)
        started = time.monotonic()

        logger.info(
            "Wait started | correlation_id=%s | actions=%d | pending=%d",
            correlation_id,
            len(watch),
            len(watch.pending_ids()),
        )

        # Already-finished inputs are never polled, but the caller still
        # sees their state once.
        for snapshot in watch.snapshots():
            if snapshot.is_terminal:
                dispatch_update(sink, snapshot)

        poll_count = 0
        interrupted = False
        try:
            while not watch.all_terminal:
                if not self._poller.wait(ctx, poll_count):
                    break
                pending = watch.pending_ids()
                updates = self._poller.fetch(ctx, pending, correlation_id=correlation_id)
                if updates is None:
                    break
                poll_count += 1
                self._apply_updates(watch, pending, updates, sink, correlation_id)
        except KeyboardInterrupt:
            ctx.cancel()
            interrupted = True

        outcome = WaitOutcome(
            correlation_id=correlation_id,
            actions=watch.snapshots(),
            error=self._build_error(watch, ctx, correlation_id, interrupted=interrupted),
            poll_count=poll_count,
            elapsed_seconds=time.monotonic() - started,
        )
        _log_outcome(outcome)
        return outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve_context(self, context: WaitContext | None) -> WaitContext:
        timeout = self._config.wait_timeout_s or None
        if context is None:
            return WaitContext(timeout)
        if timeout is None:
            return context
        return context.child(timeout)

    @staticmethod
    def _apply_updates(
        watch: WatchSet,
        requested: Sequence[ActionId],
        updates: Sequence[Action],
        sink: ProgressSink,
        correlation_id: str,
    ) -> None:
        returned = {_id_key(u.id) for u in updates}
        missing = [i for i in requested if _id_key(i) not in returned]
        if missing:
            logger.error(
                "Actions missing from status response | correlation_id=%s | missing=%s",
                correlation_id,
                missing,
            )
            raise ActionNotFound(missing, correlation_id=correlation_id)

        for update in updates:
            snapshot = watch.apply(update)
            if snapshot is None:
                logger.debug(
                    "Ignored status update | correlation_id=%s | action_id=%s",
                    correlation_id,
                    update.id,
                )
                continue
            if snapshot.is_terminal:
                logger.info(
                    "Action finished | correlation_id=%s | action_id=%s | status=%s",
                    correlation_id,
                    snapshot.id,
                    snapshot.status.value,
                )
            dispatch_update(sink, snapshot)

        logger.debug(
            "Poll cycle | correlation_id=%s | requested=%d | pending=%d",
            correlation_id,
            len(requested),
            len(watch.pending_ids()),
        )

    @staticmethod
    def _build_error(
        watch: WatchSet,
        ctx: WaitContext,
        correlation_id: str,
        *,
        interrupted: bool,
    ) -> AggregateActionFailure | WaitIncomplete | None:
        failures = watch.failures(correlation_id=correlation_id)
        if watch.all_terminal:
            if failures:
                return AggregateActionFailure(failures, correlation_id=correlation_id)
            return None
        reason = REASON_INTERRUPTED if interrupted else (ctx.reason or REASON_CANCELLED)
        return WaitIncomplete(
            watch.pending_ids(),
            reason=reason,
            failures=failures,
            correlation_id=correlation_id,
        )


def _log_outcome(outcome: WaitOutcome) -> None:
    if outcome.error is None:
        result = "success"
    elif isinstance(outcome.error, WaitIncomplete):
        result = outcome.error.reason
    else:
        result = "failed"
    logger.info(
        "Wait finished | correlation_id=%s | result=%s | failed=%d | pending=%d | "
        "polls=%d | elapsed=%.2fs",
        outcome.correlation_id,
        result,
        len(outcome.failures),
        len(outcome.pending_ids),
        outcome.poll_count,
        outcome.elapsed_seconds,
    )


# ---------------------------------------------------------------------------
# Convenience functions
# ---------------------------------------------------------------------------


def wait_for_actions(
    source: StatusSource,
    *actions: Action,
    context: WaitContext | None = None,
    progress: ProgressLike = None,
    config: TrackerConfig | None = None,
) -> None:
    """Wait for *actions* with a one-off ``ActionWaiter`` on *source*.

    Raises the same errors as ``ActionWaiter.wait_for_actions``.
    """
    ActionWaiter(source, config=config).wait_for_actions(context, progress, *actions)


def wait_for_action(
    source: StatusSource,
    action: Action,
    *,
    context: WaitContext | None = None,
    progress: ProgressLike = None,
    config: TrackerConfig | None = None,
) -> None:
    """Single-action form of ``wait_for_actions``."""
    wait_for_actions(source, action, context=context, progress=progress, config=config)
