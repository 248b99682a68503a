"""Typed models for remote actions.

Defines the immutable snapshot types the tracker, the poller and the
status sources exchange:

- ``ActionStatus``: Lifecycle state of a remote action
- ``ActionError``: Remote-supplied failure details
- ``ActionResource``: A resource an action operates on
- ``Action``: One status snapshot of a remote action

Design notes:
- All models are frozen dataclasses; a newer snapshot replaces an older
  one as a whole, never field by field.
- No magic strings; status values are an ``ActionStatus`` enum.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from action_tracker.core.exceptions import ActionFailed, ValidationError

if TYPE_CHECKING:
    from datetime import datetime

#: Opaque action identifier (numeric on most APIs).
ActionId = int | str


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, ValidationError):
    """Raised when a model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        ValidationError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ActionStatus(enum.Enum):
    """Lifecycle state of a remote action.

    Values:
        RUNNING: The action is still in progress.
        SUCCESS: The action finished successfully.
        ERROR:   The action finished with an error.
    """

    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not ActionStatus.RUNNING


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ActionError:
    """Failure details reported by the remote system.

    Attributes:
        code: Machine-readable error code (e.g. ``"action_failed"``).
        message: Human-readable message, shown to the user verbatim.
    """

    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} ({self.code})" if self.code else self.message


@dataclass(frozen=True, slots=True)
class ActionResource:
    """A resource affected by an action, e.g. ``ActionResource(42, "server")``."""

    id: ActionId
    type: str

    def __str__(self) -> str:
        return f"{self.type}: {self.id}"


@dataclass(frozen=True, slots=True)
class Action:
    """One status snapshot of a remote action.

    Attributes:
        id: Action identifier.
        status: Current lifecycle state.
        progress: Completion percentage (0-100); advisory only.
        error: Failure details; set when ``status`` is ``ERROR``.
        command: Name of the operation (e.g. ``"enable_backup"``).
        resources: Resources the action operates on.
        started: When the action started, if known.
        finished: When the action reached a terminal state, if known.
    """

    id: ActionId
    status: ActionStatus = ActionStatus.RUNNING
    progress: int = 0
    error: ActionError | None = None
    command: str = ""
    resources: tuple[ActionResource, ...] = field(default_factory=tuple)
    started: datetime | None = None
    finished: datetime | None = None

    def __post_init__(self) -> None:
        _check_id("Action", "id", self.id)
        if not isinstance(self.status, ActionStatus):
            raise ModelValidationError(
                "Action", "status", self.status, "must be an ActionStatus member"
            )
        _check_range("Action", "progress", self.progress, 0, 100)

    @property
    def is_terminal(self) -> bool:
        """Whether the action can no longer change state."""
        return self.status.is_terminal

    @property
    def succeeded(self) -> bool:
        return self.status is ActionStatus.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status is ActionStatus.ERROR

    def describe(self) -> str:
        """Short human label, e.g. ``"enable_backup (server: 123)"``."""
        label = self.command or f"action {self.id}"
        if self.resources:
            label = f"{label} ({', '.join(str(r) for r in self.resources)})"
        return label

    def to_failure(self, *, correlation_id: str = "") -> ActionFailed:
        """Build the ``ActionFailed`` entry for a failed snapshot.

        Raises:
            ValueError: If the action did not fail.
        """
        if not self.failed:
            msg = f"action {self.id} has status {self.status.value!r}, not 'error'"
            raise ValueError(msg)
        error = self.error or ActionError(code="", message="action failed")
        return ActionFailed(
            self.id,
            error.message,
            error_code=error.code,
            command=self.command,
            correlation_id=correlation_id,
        )

    def with_status(self, status: ActionStatus, **changes: object) -> Action:
        """Return a copy of this snapshot with a new status (and other fields)."""
        return replace(self, status=status, **changes)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Validation helpers (module-private)
# ---------------------------------------------------------------------------


def _check_range(model: str, field_name: str, value: float, lo: float, hi: float) -> None:
    """Raise `ModelValidationError` if *value* falls outside [lo, hi]."""
    if value < lo or value > hi:
        raise ModelValidationError(model, field_name, value, f"must be between {lo} and {hi}")


def _check_id(model: str, field_name: str, value: object) -> None:
    """Raise `ModelValidationError` unless *value* is a positive int or non-empty str."""
    if isinstance(value, bool):
        raise ModelValidationError(model, field_name, value, "must be an int or str")
    if isinstance(value, int):
        if value <= 0:
            raise ModelValidationError(model, field_name, value, "must be > 0")
        return
    if isinstance(value, str):
        if not value.strip():
            raise ModelValidationError(model, field_name, value, "must not be empty")
        return
    raise ModelValidationError(model, field_name, value, "must be an int or str")
