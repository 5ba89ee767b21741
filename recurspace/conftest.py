# recurspace/conftest.py
import os
from datetime import datetime, timedelta, timezone

import pytest

# Tests never talk to a developer database unless asked to
os.environ.setdefault("ENV", "test")
os.environ.pop("DATABASE_URL", None)

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)  # a Friday


@pytest.fixture
def now():
    """Fixed clock for deterministic tests."""
    return NOW


@pytest.fixture(scope="function", autouse=True)
def reset_record_store():
    """
    Fresh in-memory store and metrics for every test.

    Each test should start with a clean slate.
    """
    from recurspace.core.metrics import METRICS
    from recurspace.features.optimizations.store import get_store, reset_store

    reset_store()
    METRICS.reset()
    yield
    get_store().clear()
    reset_store()


@pytest.fixture
def store():
    from recurspace.features.optimizations.store import get_store

    return get_store()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from recurspace.main import app

    return TestClient(app)


def make_task(task_id, user_id="user-1", *, days_ago=1, **fields):
    raw = {
        "id": task_id,
        "userId": user_id,
        "createdAt": (NOW - timedelta(days=days_ago)).isoformat(),
        "title": fields.pop("title", f"Task {task_id}"),
    }
    raw.update(fields)
    return raw


def make_workflow(workflow_id, step_statuses, user_id="user-1", *, days_ago=1, step_hours=None, **fields):
    steps = [
        {
            "name": f"Step {i + 1}",
            "status": status,
            "order": i,
            "estimatedTime": (step_hours[i] if step_hours else 1),
        }
        for i, status in enumerate(step_statuses)
    ]
    raw = {
        "id": workflow_id,
        "userId": user_id,
        "createdAt": (NOW - timedelta(days=days_ago)).isoformat(),
        "name": fields.pop("name", f"Workflow {workflow_id}"),
        "steps": steps,
    }
    raw.update(fields)
    return raw


@pytest.fixture
def task_factory():
    return make_task


@pytest.fixture
def workflow_factory():
    return make_workflow
