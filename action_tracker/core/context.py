"""Cancellable wait context with an optional deadline.

A ``WaitContext`` is handed to every wait call.  The poll loop suspends
only through it: ``sleep()`` and ``wait()`` block on a ``threading.Event``
so that ``cancel()`` from another thread (signal handler, UI thread,
parent operation) wakes the loop immediately instead of after the next
poll interval or the end of an in-flight status request.

Timeouts are deadlines on the ``time.monotonic`` clock.  A child context
inherits the earlier of its own and its parent's deadline, and is
cancelled together with its parent.
"""

from __future__ import annotations

import threading
import time
import weakref

from action_tracker.core.exceptions import REASON_CANCELLED, REASON_DEADLINE_EXCEEDED


class WaitContext:
    """Cancellation signal plus optional monotonic deadline.

    Example usage::

        ctx = WaitContext(timeout=300)
        waiter.wait_for_actions(ctx, None, action)

    Thread-safe: ``cancel()`` may be called from any thread.
    """

    def __init__(self, timeout: float | None = None) -> None:
        if timeout is not None and timeout < 0:
            msg = f"timeout must be >= 0, got {timeout!r}"
            raise ValueError(msg)
        self._event = threading.Event()
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self._children: weakref.WeakSet[WaitContext] = weakref.WeakSet()
        self._lock = threading.Lock()

    @classmethod
    def with_deadline(cls, deadline: float) -> WaitContext:
        """Create a context expiring at *deadline* (a ``time.monotonic`` value)."""
        ctx = cls()
        ctx._deadline = deadline
        return ctx

    def child(self, timeout: float | None = None) -> WaitContext:
        """Derive a context that ends no later than this one.

        Cancelling the parent cancels the child; cancelling the child
        leaves the parent untouched.
        """
        ctx = WaitContext(timeout)
        if self._deadline is not None and (
            ctx._deadline is None or self._deadline < ctx._deadline
        ):
            ctx._deadline = self._deadline
        with self._lock:
            self._children.add(ctx)
        if self._event.is_set():
            ctx.cancel()
        return ctx

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def deadline(self) -> float | None:
        """Monotonic deadline, or ``None`` when the context never expires."""
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def done(self) -> bool:
        """Whether the wait must stop (cancelled or past the deadline)."""
        return self.cancelled or self.expired

    @property
    def reason(self) -> str | None:
        """Why the context is done, or ``None`` while it is still live.

        Explicit cancellation wins over an elapsed deadline.
        """
        if self.cancelled:
            return REASON_CANCELLED
        if self.expired:
            return REASON_DEADLINE_EXCEEDED
        return None

    def remaining(self) -> float | None:
        """Seconds until the deadline (never negative), or ``None`` if unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Signal cancellation to this context and all of its children."""
        self._event.set()
        with self._lock:
            children = list(self._children)
        for child in children:
            child.cancel()

    def wait(self) -> None:
        """Block until the context is cancelled or its deadline passes.

        Blocks indefinitely on an unbounded context that is never cancelled.
        """
        while not self.done:
            self._event.wait(self.remaining())

    def sleep(self, seconds: float) -> bool:
        """Block for up to *seconds*, waking early on cancel or deadline.

        Returns:
            ``True`` if the full delay elapsed and the context is still
            live, ``False`` if the wait must stop.
        """
        if self.done:
            return False
        delay = max(0.0, seconds)
        remaining = self.remaining()
        if remaining is not None:
            delay = min(delay, remaining)
        if self._event.wait(delay):
            return False
        return not self.done
