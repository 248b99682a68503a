"""Tests for the action models and the API wire schemas.

Covers:
- Action field validation (id, status, progress)
- Terminal-state helpers and failure conversion
- Human-readable labels
- Pydantic schema validation and conversion to ``Action``
"""

from __future__ import annotations

import unittest
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from action_tracker.core.exceptions import ActionFailed
from action_tracker.models.action import (
    Action,
    ActionError,
    ActionResource,
    ActionStatus,
    ModelValidationError,
)
from action_tracker.models.api import ActionListResponse, ActionSchema, ApiErrorResponse


class TestActionValidation(unittest.TestCase):
    def test_defaults(self) -> None:
        action = Action(id=1)
        assert action.status is ActionStatus.RUNNING
        assert action.progress == 0
        assert action.error is None
        assert action.resources == ()

    def test_string_id_allowed(self) -> None:
        assert Action(id="act-1").id == "act-1"

    def test_rejects_non_positive_id(self) -> None:
        with pytest.raises(ModelValidationError):
            Action(id=0)

    def test_rejects_empty_string_id(self) -> None:
        with pytest.raises(ModelValidationError):
            Action(id="  ")

    def test_rejects_bool_id(self) -> None:
        with pytest.raises(ModelValidationError):
            Action(id=True)

    def test_rejects_raw_status_string(self) -> None:
        with pytest.raises(ModelValidationError) as exc_info:
            Action(id=1, status="running")  # type: ignore[arg-type]
        assert exc_info.value.field_name == "status"

    def test_rejects_progress_out_of_range(self) -> None:
        with pytest.raises(ModelValidationError):
            Action(id=1, progress=101)
        with pytest.raises(ModelValidationError):
            Action(id=1, progress=-1)

    def test_frozen(self) -> None:
        action = Action(id=1)
        with pytest.raises(AttributeError):
            action.progress = 50  # type: ignore[misc]


class TestActionState:
    def test_terminal_states(self) -> None:
        assert not ActionStatus.RUNNING.is_terminal
        assert ActionStatus.SUCCESS.is_terminal
        assert ActionStatus.ERROR.is_terminal

    def test_helpers(self) -> None:
        ok = Action(id=1, status=ActionStatus.SUCCESS, progress=100)
        assert ok.is_terminal
        assert ok.succeeded
        assert not ok.failed

    def test_with_status(self) -> None:
        action = Action(id=1, command="reboot")
        done = action.with_status(ActionStatus.SUCCESS, progress=100)
        assert done.status is ActionStatus.SUCCESS
        assert done.progress == 100
        assert done.command == "reboot"
        assert action.status is ActionStatus.RUNNING

    def test_describe(self) -> None:
        action = Action(
            id=5,
            command="attach_volume",
            resources=(ActionResource(1, "server"), ActionResource(2, "volume")),
        )
        assert action.describe() == "attach_volume (server: 1, volume: 2)"
        assert Action(id=5).describe() == "action 5"


class TestToFailure:
    def test_failed_action(self) -> None:
        action = Action(
            id=9,
            status=ActionStatus.ERROR,
            error=ActionError(code="quota", message="disk quota exceeded"),
            command="create_volume",
        )
        failure = action.to_failure(correlation_id="cid")
        assert isinstance(failure, ActionFailed)
        assert failure.action_id == 9
        assert failure.error_message == "disk quota exceeded"
        assert failure.error_code == "quota"
        assert failure.command == "create_volume"
        assert failure.correlation_id == "cid"

    def test_failed_action_without_details(self) -> None:
        failure = Action(id=9, status=ActionStatus.ERROR).to_failure()
        assert failure.error_message == "action failed"

    def test_non_failed_action_rejected(self) -> None:
        with pytest.raises(ValueError):
            Action(id=9).to_failure()


class TestActionSchema:
    def test_converts_full_payload(self) -> None:
        schema = ActionSchema.model_validate(
            {
                "id": 42,
                "command": "enable_backup",
                "status": "running",
                "progress": 50,
                "started": "2024-01-30T23:50:00+00:00",
                "finished": None,
                "resources": [{"id": 123, "type": "server"}],
                "error": None,
            }
        )
        action = schema.to_action()
        assert action.id == 42
        assert action.status is ActionStatus.RUNNING
        assert action.progress == 50
        assert action.resources == (ActionResource(123, "server"),)
        assert action.started == datetime(2024, 1, 30, 23, 50, tzinfo=UTC)

    def test_success_forces_full_progress(self) -> None:
        action = ActionSchema(id=1, status="success", progress=90).to_action()
        assert action.progress == 100

    def test_error_details(self) -> None:
        action = ActionSchema.model_validate(
            {"id": 1, "status": "error", "error": {"code": "locked", "message": "server locked"}}
        ).to_action()
        assert action.error == ActionError(code="locked", message="server locked")

    def test_error_without_details_gets_message(self) -> None:
        action = ActionSchema(id=1, status="error").to_action()
        assert action.error is not None
        assert action.error.message == "action failed without error details"

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ActionSchema.model_validate({"id": 1, "status": "paused"})

    def test_progress_out_of_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ActionSchema.model_validate({"id": 1, "status": "running", "progress": 150})


class TestResponses:
    def test_list_response_pagination(self) -> None:
        body = ActionListResponse.model_validate(
            {
                "actions": [{"id": 1, "status": "running"}],
                "meta": {"pagination": {"page": 1, "per_page": 25, "next_page": 2}},
            }
        )
        assert body.next_page == 2

    def test_list_response_without_meta(self) -> None:
        body = ActionListResponse.model_validate({"actions": []})
        assert body.next_page is None

    def test_missing_actions_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ActionListResponse.model_validate({"meta": {}})

    def test_api_error_response(self) -> None:
        body = ApiErrorResponse.model_validate(
            {"error": {"code": "unauthorized", "message": "unable to authenticate"}}
        )
        assert body.error.code == "unauthorized"
