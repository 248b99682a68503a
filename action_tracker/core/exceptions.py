"""Unified exception taxonomy for action tracking.

Provides a shared base exception hierarchy for the tracker, the poller,
and status sources. Every domain exception inherits from ``TrackerError``
and carries structured context fields that enable consistent retry
decisions and operator diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``   — input/contract violations, never retryable.
- ``TransientError``    — temporary conditions (network, deadline), retryable.
- ``PermanentError``    — unrecoverable remote outcomes, not retryable.
- ``ContractError``     — payload/schema drift from the remote API, never retryable.

Wait outcomes
-------------
- ``ActionFailed``            — one action reached terminal ``error``.
- ``AggregateActionFailure``  — every ``ActionFailed`` seen in one wait.
- ``WaitIncomplete``          — wait abandoned before all actions finished.
- ``TransportFault``          — status polling itself could not be completed.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and machine-readable CLI output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from action_tracker.models.action import ActionId


class TrackerError(Exception):
    """Base exception for all action-tracking errors.

    Attributes:
        message: Human-readable error description.
        stage: Component where the error occurred
            (e.g. ``"poller"``, ``"status_source"``).
        code: Machine-readable error code (e.g. ``"WAIT_INCOMPLETE"``).
        retryable: Whether the caller could sensibly retry the operation.
        correlation_id: Identifier of the wait call that raised the error.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(TrackerError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(TrackerError):
    """Temporary condition that may resolve on a later attempt."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(TrackerError):
    """Unrecoverable outcome. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(TrackerError):
    """Payload or schema drift between the API and this client. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Wait outcomes
# ---------------------------------------------------------------------------


class ActionFailed(PermanentError):
    """One action reached the terminal ``error`` state.

    This is an expected outcome, not a bug: the remote system rejected or
    aborted the operation and told us why.

    Attributes:
        action_id: The failed action.
        error_code: Remote-supplied error code (may be empty).
        error_message: Remote-supplied error message, surfaced verbatim.
        command: The action's command name, when known.
    """

    default_stage = "action"
    default_code = "ACTION_FAILED"

    def __init__(
        self,
        action_id: ActionId,
        error_message: str,
        *,
        error_code: str = "",
        command: str = "",
        correlation_id: str = "",
    ) -> None:
        self.action_id = action_id
        self.error_message = error_message
        self.error_code = error_code
        self.command = command
        super().__init__(
            error_message,
            code=error_code or self.default_code,
            correlation_id=correlation_id,
        )

    def __str__(self) -> str:
        if self.error_code:
            return f"{self.action_id}: {self.error_message} ({self.error_code})"
        return f"{self.action_id}: {self.error_message}"

    def to_error_dict(self) -> dict[str, object]:
        payload = super().to_error_dict()
        payload["action_id"] = self.action_id
        payload["command"] = self.command
        return payload


class AggregateActionFailure(PermanentError):
    """One or more actions of a single wait ended in ``error``.

    Attributes:
        failures: ``ActionFailed`` entries, in the order the actions were
            passed to the wait call.
    """

    default_stage = "tracker"
    default_code = "ACTION_FAILURES"

    def __init__(
        self,
        failures: Iterable[ActionFailed],
        *,
        correlation_id: str = "",
    ) -> None:
        self.failures = tuple(failures)
        if not self.failures:
            msg = "AggregateActionFailure requires at least one failure"
            raise ValueError(msg)
        count = len(self.failures)
        noun = "action" if count == 1 else "actions"
        super().__init__(f"{count} {noun} failed", correlation_id=correlation_id)

    @property
    def action_ids(self) -> tuple[ActionId, ...]:
        """IDs of the failed actions, in input order."""
        return tuple(f.action_id for f in self.failures)

    def __str__(self) -> str:
        return "\n".join(str(f) for f in self.failures)

    def to_error_dict(self) -> dict[str, object]:
        payload = super().to_error_dict()
        payload["failures"] = [f.to_error_dict() for f in self.failures]
        return payload


#: Reasons a wait may be abandoned.
REASON_CANCELLED = "cancelled"
REASON_DEADLINE_EXCEEDED = "deadline_exceeded"
REASON_INTERRUPTED = "interrupted"


class WaitIncomplete(TransientError):
    """The wait ended before every action reached a terminal state.

    Actions keep progressing server-side; the caller may check again later.

    Attributes:
        pending_ids: Actions still running when the wait was abandoned,
            in input order.
        reason: ``"cancelled"``, ``"deadline_exceeded"`` or ``"interrupted"``.
        failures: Failures already observed before the wait was abandoned.
    """

    default_stage = "tracker"
    default_code = "WAIT_INCOMPLETE"

    def __init__(
        self,
        pending_ids: Iterable[ActionId],
        *,
        reason: str = REASON_CANCELLED,
        failures: Iterable[ActionFailed] = (),
        correlation_id: str = "",
    ) -> None:
        self.pending_ids = tuple(pending_ids)
        self.reason = reason
        self.failures = tuple(failures)
        ids = ", ".join(str(i) for i in self.pending_ids)
        super().__init__(
            f"wait {reason.replace('_', ' ')} with actions still running: {ids}",
            correlation_id=correlation_id,
        )

    def to_error_dict(self) -> dict[str, object]:
        payload = super().to_error_dict()
        payload["pending_ids"] = list(self.pending_ids)
        payload["reason"] = self.reason
        payload["failures"] = [f.to_error_dict() for f in self.failures]
        return payload


class TransportFault(TransientError):
    """Polling for action status failed after bounded retries.

    Fatal to the wait call: no further progress can be observed.

    Attributes:
        pending_ids: Actions whose status was being fetched.
        attempts: Number of fetch attempts made before giving up.
    """

    default_stage = "poller"
    default_code = "TRANSPORT_FAULT"

    def __init__(
        self,
        message: str,
        *,
        pending_ids: Iterable[ActionId] = (),
        attempts: int = 0,
        retryable: bool = True,
        correlation_id: str = "",
    ) -> None:
        self.pending_ids = tuple(pending_ids)
        self.attempts = attempts
        super().__init__(message, retryable=retryable, correlation_id=correlation_id)

    def to_error_dict(self) -> dict[str, object]:
        payload = super().to_error_dict()
        payload["pending_ids"] = list(self.pending_ids)
        payload["attempts"] = self.attempts
        return payload


class ActionNotFound(TransportFault):
    """The status source did not return some of the requested actions."""

    default_code = "ACTION_NOT_FOUND"

    def __init__(
        self,
        missing_ids: Iterable[ActionId],
        *,
        correlation_id: str = "",
    ) -> None:
        self.missing_ids = tuple(missing_ids)
        ids = ", ".join(str(i) for i in self.missing_ids)
        super().__init__(
            f"actions not found: {ids}",
            pending_ids=self.missing_ids,
            attempts=1,
            retryable=False,
            correlation_id=correlation_id,
        )
