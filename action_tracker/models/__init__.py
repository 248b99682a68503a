"""Data models and schemas.

Defines the data structures used throughout the tracker:
- Action: Immutable status snapshot of a remote action
- ActionStatus / ActionError / ActionResource: its parts
- api: Pydantic schemas for the actions API wire format
"""

from action_tracker.models.action import (
    Action,
    ActionError,
    ActionId,
    ActionResource,
    ActionStatus,
    ModelValidationError,
)

__all__ = [
    "Action",
    "ActionError",
    "ActionId",
    "ActionResource",
    "ActionStatus",
    "ModelValidationError",
]
