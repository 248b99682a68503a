"""Fakes and snapshot builders shared by the unit tests."""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from typing import TYPE_CHECKING

import httpx

from action_tracker.models.action import Action, ActionError, ActionStatus
from action_tracker.sources.base import StatusSource

if TYPE_CHECKING:
    from collections.abc import Sequence

    from action_tracker.models.action import ActionId


# ---------------------------------------------------------------------------
# Snapshot builders
# ---------------------------------------------------------------------------


def running(action_id: ActionId, progress: int = 0, **kwargs: object) -> Action:
    return Action(id=action_id, status=ActionStatus.RUNNING, progress=progress, **kwargs)  # type: ignore[arg-type]


def success(action_id: ActionId, **kwargs: object) -> Action:
    return Action(id=action_id, status=ActionStatus.SUCCESS, progress=100, **kwargs)  # type: ignore[arg-type]


def error(action_id: ActionId, message: str, code: str = "action_failed", **kwargs: object) -> Action:
    return Action(
        id=action_id,
        status=ActionStatus.ERROR,
        progress=100,
        error=ActionError(code=code, message=message),
        **kwargs,  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class ScriptedStatusSource(StatusSource):
    """Status source replaying a fixed snapshot sequence per action.

    Each fetch of an ID returns the next snapshot in its script; the last
    snapshot repeats once the script is exhausted.  IDs without a script
    are omitted from the response.  ``failures`` are raised, in order, by
    the first fetch calls before any script is consumed.
    """

    name = "scripted"

    def __init__(
        self,
        scripts: dict[ActionId, Sequence[Action]],
        *,
        failures: Sequence[BaseException] = (),
        delay: float = 0.0,
    ) -> None:
        self._scripts = {k: list(v) for k, v in scripts.items()}
        self._positions: dict[ActionId, int] = defaultdict(int)
        self._failures = list(failures)
        self._delay = delay
        self._lock = threading.Lock()
        self.calls: list[list[ActionId]] = []
        self.timeouts: list[float | None] = []

    def fetch(self, ids: Sequence[ActionId], *, timeout: float | None = None) -> list[Action]:
        with self._lock:
            self.calls.append(list(ids))
            self.timeouts.append(timeout)
            if self._failures:
                raise self._failures.pop(0)
        if self._delay:
            time.sleep(self._delay)
        result = []
        with self._lock:
            for action_id in ids:
                script = self._scripts.get(action_id)
                if not script:
                    continue
                pos = self._positions[action_id]
                result.append(script[min(pos, len(script) - 1)])
                self._positions[action_id] = pos + 1
        return result

    def fetch_count(self, action_id: ActionId) -> int:
        """Number of fetch calls that requested *action_id*."""
        return sum(action_id in call for call in self.calls)


class RecordingSink:
    """Progress sink remembering every update it receives."""

    def __init__(self) -> None:
        self.updates: list[Action] = []
        self._lock = threading.Lock()

    def on_update(self, action: Action) -> None:
        with self._lock:
            self.updates.append(action)

    def for_id(self, action_id: ActionId) -> list[Action]:
        return [a for a in self.updates if a.id == action_id]


class FakeActionsApi:
    """In-memory ``GET /actions`` endpoint for ``httpx.MockTransport``.

    ``payloads`` maps action IDs to the JSON object returned for them;
    unknown IDs are left out of the response, as the real API does.
    Every request is recorded in ``requests``.
    """

    def __init__(
        self,
        payloads: dict[int, dict[str, object]],
        *,
        per_page_limit: int = 25,
    ) -> None:
        self.payloads = payloads
        self.per_page_limit = per_page_limit
        self.requests: list[httpx.Request] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        ids = [int(v) for v in request.url.params.get_list("id")]
        page = int(request.url.params.get("page", "1"))
        per_page = min(int(request.url.params.get("per_page", "25")), self.per_page_limit)
        found = [self.payloads[i] for i in ids if i in self.payloads]
        start = (page - 1) * per_page
        next_page = page + 1 if start + per_page < len(found) else None
        return httpx.Response(
            200,
            json={
                "actions": found[start : start + per_page],
                "meta": {
                    "pagination": {"page": page, "per_page": per_page, "next_page": next_page}
                },
            },
        )


def action_payload(action_id: int, status: str = "running", progress: int = 0) -> dict[str, object]:
    """JSON object for one action as served by ``FakeActionsApi``."""
    payload: dict[str, object] = {
        "id": action_id,
        "command": "enable_backup",
        "status": status,
        "progress": progress,
        "started": "2024-01-30T23:50:00+00:00",
        "finished": None,
        "resources": [{"id": 100 + action_id, "type": "server"}],
        "error": None,
    }
    if status == "error":
        payload["error"] = {"code": "action_failed", "message": "action failed"}
    return payload
