"""Progress reporters for action waits.

A progress sink receives every snapshot the tracker observes.  Sinks are
called synchronously from the poll loop, so they must be quick; anything
that may block (slow terminals, network log shippers) should be wrapped
in ``QueuedProgressSink``.  The tracker calls sinks through
``dispatch_update`` which logs and swallows renderer exceptions: a broken
progress display must never abort or delay a wait.

Reporters:
- ``NullProgressSink``: discards updates (JSON/YAML output, quiet mode).
- ``CallbackProgressSink``: adapts a plain ``callable(action)``.
- ``LoggingProgressReporter``: one log record per changed snapshot.
- ``TerminalProgressReporter``: human-readable progress lines on a stream.
- ``QueuedProgressSink``: bounded queue drained by a worker thread.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType
    from typing import TextIO

    from action_tracker.models.action import Action, ActionId

logger = logging.getLogger(__name__)


@runtime_checkable
class ProgressSink(Protocol):
    """Anything that accepts action snapshots."""

    def on_update(self, action: Action) -> None: ...


def dispatch_update(sink: ProgressSink, action: Action) -> bool:
    """Deliver *action* to *sink*, isolating the caller from sink failures.

    Returns:
        ``True`` if the sink accepted the update without raising.
    """
    try:
        sink.on_update(action)
    except Exception:
        logger.warning(
            "Progress sink failed | sink=%s | action_id=%s",
            type(sink).__name__,
            action.id,
            exc_info=True,
        )
        return False
    return True


def as_progress_sink(
    obj: ProgressSink | Callable[[Action], object] | None,
) -> ProgressSink:
    """Coerce ``None``, a callable, or a sink into a ``ProgressSink``."""
    if obj is None:
        return NullProgressSink()
    if isinstance(obj, ProgressSink):
        return obj
    if callable(obj):
        return CallbackProgressSink(obj)
    msg = f"expected a ProgressSink, a callable or None, got {type(obj).__name__}"
    raise TypeError(msg)


# ---------------------------------------------------------------------------
# Simple sinks
# ---------------------------------------------------------------------------


class NullProgressSink:
    """Discards every update."""

    def on_update(self, action: Action) -> None:
        pass


class CallbackProgressSink:
    """Forwards each update to ``callback(action)``."""

    def __init__(self, callback: Callable[[Action], object]) -> None:
        self._callback = callback

    def on_update(self, action: Action) -> None:
        self._callback(action)


class LoggingProgressReporter:
    """Emits one log record whenever an action's status or progress changes."""

    def __init__(
        self,
        log: logging.Logger | None = None,
        *,
        level: int = logging.INFO,
    ) -> None:
        self._log = log or logger
        self._level = level
        self._last: dict[ActionId, tuple[str, int]] = {}

    def on_update(self, action: Action) -> None:
        key = (action.status.value, action.progress)
        if self._last.get(action.id) == key:
            return
        self._last[action.id] = key
        if action.failed and action.error is not None:
            self._log.log(
                self._level,
                "Action failed | action_id=%s | command=%s | error=%s",
                action.id,
                action.command,
                action.error,
            )
            return
        self._log.log(
            self._level,
            "Action progress | action_id=%s | command=%s | status=%s | progress=%d%%",
            action.id,
            action.command,
            action.status.value,
            action.progress,
        )


# ---------------------------------------------------------------------------
# Terminal reporter
# ---------------------------------------------------------------------------


class TerminalProgressReporter:
    """Human-readable progress for an interactive CLI.

    Prints ``Waiting for enable_backup (server: 123) ... 50%`` while an
    action runs and ``... done`` / ``... failed: <message>`` once it
    finishes.  On a TTY, consecutive updates for the same action rewrite
    the current line; otherwise each change is printed on its own line.
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        *,
        interactive: bool | None = None,
    ) -> None:
        self._stream = stream or sys.stderr
        if interactive is None:
            isatty = getattr(self._stream, "isatty", None)
            interactive = bool(isatty and isatty())
        self._interactive = interactive
        self._last: dict[ActionId, tuple[str, int]] = {}
        self._open_line: ActionId | None = None
        self._lock = threading.Lock()

    def on_update(self, action: Action) -> None:
        key = (action.status.value, action.progress)
        with self._lock:
            if self._last.get(action.id) == key:
                return
            self._last[action.id] = key
            self._write(action, format_progress_line(action))

    def _write(self, action: Action, line: str) -> None:
        if not self._interactive:
            self._stream.write(line + "\n")
        elif self._open_line == action.id:
            self._stream.write("\r\x1b[K" + line)
        else:
            if self._open_line is not None:
                self._stream.write("\n")
            self._stream.write(line)
        if self._interactive:
            self._open_line = action.id
            if action.is_terminal:
                self._stream.write("\n")
                self._open_line = None
        self._stream.flush()


def format_progress_line(action: Action) -> str:
    """Render one progress line for *action*."""
    prefix = f"Waiting for {action.describe()} ..."
    if action.succeeded:
        return f"{prefix} done"
    if action.failed:
        message = action.error.message if action.error else "unknown error"
        return f"{prefix} failed: {message}"
    return f"{prefix} {action.progress}%"


# ---------------------------------------------------------------------------
# Decoupled sink
# ---------------------------------------------------------------------------

_STOP = object()


class QueuedProgressSink:
    """Hands updates to *inner* on a worker thread through a bounded queue.

    ``on_update`` never blocks: when the queue is full the update is
    dropped and counted in ``dropped``.  Each snapshot is offered once,
    so callers that must see every terminal update should size the queue
    to at least the number of actions.
    """

    def __init__(self, inner: ProgressSink, *, maxsize: int = 256) -> None:
        if maxsize <= 0:
            msg = f"maxsize must be > 0, got {maxsize!r}"
            raise ValueError(msg)
        self._inner = inner
        self._queue: queue.Queue[object] = queue.Queue(maxsize=maxsize)
        self._dropped = 0
        self._closed = False
        self._worker = threading.Thread(
            target=self._drain,
            name="action-progress",
            daemon=True,
        )
        self._worker.start()

    @property
    def dropped(self) -> int:
        """Number of updates discarded because the queue was full."""
        return self._dropped

    def on_update(self, action: Action) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(action)
        except queue.Full:
            self._dropped += 1
            logger.debug("Progress queue full | dropped=%d", self._dropped)

    def close(self, timeout: float | None = 5.0) -> None:
        """Stop accepting updates and wait for queued ones to be rendered."""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("Progress queue did not drain before close")
            return
        self._worker.join(timeout)

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            dispatch_update(self._inner, item)  # type: ignore[arg-type]

    def __enter__(self) -> QueuedProgressSink:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
