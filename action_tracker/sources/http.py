"""HTTP status source for the cloud actions API.

Concrete ``StatusSource`` that queries ``GET {endpoint}/actions`` with one
``id`` parameter per pending action, e.g.
``/actions?id=789&id=790&page=1&per_page=25``.

Pending IDs are sent in chunks of ``TrackerConfig.batch_size`` and each
chunk follows ``meta.pagination.next_page`` until exhausted, so request
cost scales with the number of *pending* actions only.

The ``httpx.Client`` may be injected (shared CLI-wide client, tests with
``httpx.MockTransport``); a client created here is closed by ``close()``.
Retries are not performed here; the poller owns retry policy.  This
module only classifies failures as retryable or not.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from action_tracker.core.config import TrackerConfig
from action_tracker.core.constants import ACTIONS_PATH, RETRYABLE_HTTP_STATUSES, USER_AGENT
from action_tracker.models.api import ActionListResponse, ApiErrorResponse
from action_tracker.sources.base import (
    StatusSource,
    StatusSourceAuthError,
    StatusSourceContractError,
    StatusSourceError,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from action_tracker.models.action import Action, ActionId

logger = logging.getLogger(__name__)

# Floor for per-request timeouts derived from a nearly expired deadline.
_MIN_REQUEST_TIMEOUT_S = 0.05


class HttpActionSource(StatusSource):
    """Status source backed by the actions REST endpoint.

    Uses ``httpx`` for transport and the pydantic schemas in
    ``action_tracker.models.api`` for response validation.
    """

    name = "http"

    def __init__(
        self,
        config: TrackerConfig | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config or TrackerConfig()
        self._url = self._config.api_endpoint.rstrip("/") + ACTIONS_PATH
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self._config.request_timeout_s)

    @property
    def config(self) -> TrackerConfig:
        """Return the source configuration (read-only)."""
        return self._config

    # ------------------------------------------------------------------
    # fetch
    # ------------------------------------------------------------------

    def fetch(
        self,
        ids: Sequence[ActionId],
        *,
        timeout: float | None = None,
    ) -> list[Action]:
        """Fetch the current status of *ids*, chunked and paginated.

        Raises:
            StatusSourceAuthError: On 401/403 responses.
            StatusSourceContractError: On a body that does not match the schema.
            StatusSourceError: On any other transport or HTTP error, or when
                *timeout* runs out between chunk or page requests.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        batch_size = self._config.batch_size
        snapshots: list[Action] = []

        for start in range(0, len(ids), batch_size):
            chunk = ids[start : start + batch_size]
            page: int | None = 1
            while page is not None:
                params: list[tuple[str, Any]] = [("id", action_id) for action_id in chunk]
                params += [("page", page), ("per_page", batch_size)]
                actions, page = self._get(params, self._request_timeout(deadline))
                snapshots.extend(actions)

        logger.debug(
            "Fetched action status | requested=%d | returned=%d",
            len(ids),
            len(snapshots),
        )
        return snapshots

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying client if this source created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpActionSource:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request_timeout(self, deadline: float | None) -> float:
        """Timeout for the next request, bounded by what is left of *deadline*.

        Raises:
            StatusSourceError: (retryable) if the deadline has already passed.
        """
        limit = self._config.request_timeout_s
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                msg = "Action status fetch ran out of time between requests"
                raise StatusSourceError(self.name, msg, retryable=True)
            limit = min(limit, remaining)
        return max(limit, _MIN_REQUEST_TIMEOUT_S)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        if self._config.api_token:
            headers["Authorization"] = f"Bearer {self._config.api_token}"
        return headers

    def _get(
        self,
        params: list[tuple[str, Any]],
        timeout: float,
    ) -> tuple[list[Action], int | None]:
        """Fetch one page; return its snapshots and the next page number."""
        try:
            response = self._client.get(
                self._url,
                params=params,
                headers=self._headers(),
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            msg = f"Action status request timed out after {timeout:.2f}s: {exc}"
            raise StatusSourceError(self.name, msg, retryable=True) from exc
        except httpx.TransportError as exc:
            msg = f"Action status request failed: {exc}"
            raise StatusSourceError(self.name, msg, retryable=True) from exc

        if response.status_code >= 400:
            raise _error_from_response(self.name, response)

        try:
            body = ActionListResponse.model_validate_json(response.content)
            actions = [schema.to_action() for schema in body.actions]
        except ValueError as exc:
            msg = f"Malformed action status response: {exc}"
            raise StatusSourceContractError(
                self.name,
                msg,
                status_code=response.status_code,
            ) from exc
        return actions, body.next_page


def _error_from_response(source: str, response: httpx.Response) -> StatusSourceError:
    """Map a non-2xx response to the matching ``StatusSourceError``."""
    status = response.status_code
    detail = _api_error_detail(response)
    msg = f"HTTP {status} from {response.request.url.path}: {detail}"

    if status in (401, 403):
        return StatusSourceAuthError(source, msg, status_code=status)
    return StatusSourceError(
        source,
        msg,
        retryable=status in RETRYABLE_HTTP_STATUSES,
        status_code=status,
    )


def _api_error_detail(response: httpx.Response) -> str:
    """Extract ``"message (code)"`` from an API error body, if present."""
    try:
        body = ApiErrorResponse.model_validate_json(response.content)
    except ValueError:
        return response.reason_phrase or "unexpected response"
    if body.error.code:
        return f"{body.error.message} ({body.error.code})"
    return body.error.message
