"""Action completion tracker.

Blocks a CLI invocation until asynchronously started cloud API actions
(enable backup, enable rescue, create server ...) reach a terminal state,
streaming progress and folding partial failures into one reportable error.

Typical use::

    from action_tracker import ActionWaiter, HttpActionSource, TrackerConfig, WaitContext

    config = TrackerConfig.from_env()
    with HttpActionSource(config) as source:
        ActionWaiter(source, config=config).wait_for_actions(
            WaitContext(timeout=600), None, *actions
        )
"""

__version__ = "0.1.0"

from action_tracker.core.config import ConfigValidationError, TrackerConfig
from action_tracker.core.context import WaitContext
from action_tracker.core.exceptions import (
    ActionFailed,
    ActionNotFound,
    AggregateActionFailure,
    TrackerError,
    TransportFault,
    WaitIncomplete,
)
from action_tracker.models.action import (
    Action,
    ActionError,
    ActionResource,
    ActionStatus,
)
from action_tracker.orchestrators.completion_tracker import (
    ActionWaiter,
    WaitOutcome,
    wait_for_action,
    wait_for_actions,
)
from action_tracker.sources.base import StatusSource, StatusSourceError
from action_tracker.sources.http import HttpActionSource

__all__ = [
    "Action",
    "ActionError",
    "ActionFailed",
    "ActionNotFound",
    "ActionResource",
    "ActionStatus",
    "ActionWaiter",
    "AggregateActionFailure",
    "ConfigValidationError",
    "HttpActionSource",
    "StatusSource",
    "StatusSourceError",
    "TrackerConfig",
    "TrackerError",
    "TransportFault",
    "WaitContext",
    "WaitIncomplete",
    "WaitOutcome",
    "__version__",
    "wait_for_action",
    "wait_for_actions",
]
