"""Progress reporting for action waits."""

from action_tracker.progress.reporters import (
    CallbackProgressSink,
    LoggingProgressReporter,
    NullProgressSink,
    ProgressSink,
    QueuedProgressSink,
    TerminalProgressReporter,
    as_progress_sink,
    dispatch_update,
    format_progress_line,
)

__all__ = [
    "CallbackProgressSink",
    "LoggingProgressReporter",
    "NullProgressSink",
    "ProgressSink",
    "QueuedProgressSink",
    "TerminalProgressReporter",
    "as_progress_sink",
    "dispatch_update",
    "format_progress_line",
]
