"""Pydantic schemas for the actions API wire format.

Validates ``GET /actions`` responses before they are turned into
``Action`` snapshots, so that payload drift surfaces as one clear
contract error instead of a ``KeyError`` deep in the poll loop.

Example response::

    {
      "actions": [
        {"id": 42, "command": "enable_backup", "status": "running",
         "progress": 50, "started": "2024-01-30T23:50:00+00:00",
         "finished": null, "resources": [{"id": 123, "type": "server"}],
         "error": null}
      ],
      "meta": {"pagination": {"page": 1, "per_page": 25, "next_page": null}}
    }
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from action_tracker.models.action import (
    Action,
    ActionError,
    ActionResource,
    ActionStatus,
)


class ActionErrorSchema(BaseModel):
    """``error`` object of a failed action."""

    code: str = ""
    message: str = ""


class ActionResourceSchema(BaseModel):
    """Entry of an action's ``resources`` list."""

    id: int | str
    type: str = ""


class ActionSchema(BaseModel):
    """A single action as returned by the API."""

    id: int | str
    command: str = ""
    status: Literal["running", "success", "error"]
    progress: int = Field(default=0, ge=0, le=100)
    started: datetime | None = None
    finished: datetime | None = None
    resources: list[ActionResourceSchema] = Field(default_factory=list)
    error: ActionErrorSchema | None = None

    def to_action(self) -> Action:
        """Convert to the immutable domain snapshot."""
        status = ActionStatus(self.status)
        error = None
        if self.error is not None:
            error = ActionError(code=self.error.code, message=self.error.message)
        elif status is ActionStatus.ERROR:
            error = ActionError(code="", message="action failed without error details")
        return Action(
            id=self.id,
            status=status,
            progress=100 if status is ActionStatus.SUCCESS else self.progress,
            error=error,
            command=self.command,
            resources=tuple(ActionResource(id=r.id, type=r.type) for r in self.resources),
            started=self.started,
            finished=self.finished,
        )


class PaginationSchema(BaseModel):
    page: int = 1
    per_page: int = 25
    previous_page: int | None = None
    next_page: int | None = None
    last_page: int | None = None
    total_entries: int | None = None


class MetaSchema(BaseModel):
    pagination: PaginationSchema | None = None


class ActionListResponse(BaseModel):
    """Body of ``GET /actions``."""

    actions: list[ActionSchema]
    meta: MetaSchema = Field(default_factory=MetaSchema)

    @property
    def next_page(self) -> int | None:
        if self.meta.pagination is None:
            return None
        return self.meta.pagination.next_page


class ApiErrorSchema(BaseModel):
    """``error`` object of a non-2xx API response."""

    code: str = ""
    message: str = ""


class ApiErrorResponse(BaseModel):
    error: ApiErrorSchema
