"""Tests for record models and snapshot parsing."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from recurspace.core.errors import InvalidInputError
from recurspace.models.records import (
    OptimizationRecord,
    OptimizationStatus,
    RecordKind,
    Snapshot,
    parse_record,
)


def _optimization_raw(**overrides):
    raw = {
        "id": "o1",
        "userId": "user-1",
        "createdAt": "2024-03-14T10:00:00Z",
        "type": "workflow",
        "category": "efficiency",
        "title": "Improve",
        "description": "d",
        "suggestion": "s",
        "estimatedSavings": {"time": 2, "efficiency": 25},
    }
    raw.update(overrides)
    return raw


def test_naive_timestamps_are_treated_as_utc(task_factory):
    task = parse_record(RecordKind.TASK, task_factory("t1", dueDate="2024-03-20T09:00:00"))
    assert task.due_date == datetime(2024, 3, 20, 9, tzinfo=timezone.utc)


def test_unknown_status_is_invalid_input(task_factory):
    with pytest.raises(InvalidInputError, match="status"):
        parse_record(RecordKind.TASK, task_factory("t1", status="done"))


def test_workflow_progress_is_derived_from_steps(workflow_factory):
    workflow = parse_record(RecordKind.WORKFLOW, workflow_factory("wf-1", ["completed", "pending", "skipped", "completed"]))
    assert workflow.progress == 50.0
    assert workflow.to_dict()["progress"] == 50.0


def test_applied_fields_follow_status():
    with pytest.raises(PydanticValidationError):
        OptimizationRecord.model_validate(_optimization_raw(status="applied"))
    with pytest.raises(PydanticValidationError):
        OptimizationRecord.model_validate(_optimization_raw(appliedBy="user-1"))


def test_with_status_round_trip(now):
    record = OptimizationRecord.model_validate(_optimization_raw())
    applied = record.with_status(OptimizationStatus.APPLIED, actor="user-1", now=now)
    pending = applied.with_status(OptimizationStatus.PENDING, actor="user-1", now=now)

    assert (applied.applied_at, applied.applied_by) == (now, "user-1")
    assert (pending.applied_at, pending.applied_by) == (None, None)
    assert record.status == OptimizationStatus.PENDING  # original untouched


def test_snapshot_requires_user_id():
    with pytest.raises(InvalidInputError, match="userId"):
        Snapshot.from_raw({"tasks": []})


def test_snapshot_accepts_null_lists():
    assert Snapshot.from_raw({"userId": "user-1", "tasks": None}).tasks == ()


def test_workflow_name_is_capped(workflow_factory):
    with pytest.raises(InvalidInputError, match="name"):
        parse_record(RecordKind.WORKFLOW, workflow_factory("wf-1", ["pending"], name="W" * 101))
    assert parse_record(RecordKind.WORKFLOW, workflow_factory("wf-1", ["pending"], name="W" * 100)).name == "W" * 100
