"""StatusSource abstract base class.

Defines the contract every action status source must implement.  The
tracker interacts exclusively with this interface and never knows (or
cares) whether the snapshots come from the HTTP API or from a scripted
sequence in a test.

Contract:
    ``fetch(ids)`` returns the current snapshot of each requested action,
    in any order.  Actions unknown to the remote system are simply
    absent from the result.  Transport-level problems raise
    ``StatusSourceError`` with ``retryable`` set when another attempt
    could succeed.

A source must be safe to share between concurrent wait calls; it holds
no per-wait state.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from action_tracker.core.exceptions import ContractError, TrackerError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from action_tracker.models.action import Action, ActionId


class StatusSource(abc.ABC):
    """Abstract base class for action status sources.

    Example usage::

        source = HttpActionSource(TrackerConfig.from_env())
        snapshots = source.fetch([789, 790])
    """

    #: Short name used in logs and error messages.
    name: str = "status_source"

    @abc.abstractmethod
    def fetch(
        self,
        ids: Sequence[ActionId],
        *,
        timeout: float | None = None,
    ) -> list[Action]:
        """Fetch the current status of the given actions.

        Args:
            ids: Action identifiers to query.  Never empty.
            timeout: Upper bound in seconds for the whole call, or
                ``None`` for the source's default.

        Returns:
            One ``Action`` snapshot per known ID.

        Raises:
            StatusSourceError: On transient or permanent transport errors.
        """

    def close(self) -> None:  # noqa: B027
        """Release resources held by the source (no-op by default)."""


# ---------------------------------------------------------------------------
# Status source exceptions
# ---------------------------------------------------------------------------


class StatusSourceError(TrackerError):
    """Base exception for status source errors.

    Attributes:
        source: Name of the source that raised the error.
        message: Human-readable error description.
        retryable: Whether the poller should retry the fetch.
        status_code: HTTP status code, when the error came from a response.
    """

    default_stage = "status_source"
    default_code = "STATUS_SOURCE_ERROR"

    def __init__(
        self,
        source: str,
        message: str,
        *,
        retryable: bool = False,
        status_code: int | None = None,
        code: str = "",
    ) -> None:
        self.source = source
        self.status_code = status_code
        super().__init__(
            message,
            retryable=retryable,
            code=code or self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.source}] {self.message}"


class StatusSourceAuthError(StatusSourceError):
    """Authentication or authorisation failure against the API."""

    default_code = "STATUS_SOURCE_AUTH_FAILED"

    def __init__(self, source: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(source, message, retryable=False, status_code=status_code)


class StatusSourceContractError(StatusSourceError, ContractError):
    """The API answered with a body that does not match the actions schema."""

    default_code = "STATUS_SOURCE_BAD_RESPONSE"

    def __init__(self, source: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(source, message, retryable=False, status_code=status_code)
