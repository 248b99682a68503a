"""Wait orchestration: the completion tracker and its outcome types."""

from action_tracker.orchestrators.completion_tracker import (
    ActionWaiter,
    WaitOutcome,
    WatchSet,
    wait_for_action,
    wait_for_actions,
)

__all__ = [
    "ActionWaiter",
    "WaitOutcome",
    "WatchSet",
    "wait_for_action",
    "wait_for_actions",
]
