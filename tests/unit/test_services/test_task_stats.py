"""Tests for dashboard counters."""

import pytest
from datetime import date

from taskboard.models.task import Status
from taskboard.services.task_stats import summarize_tasks
from tests.utils.factories import build_task


@pytest.mark.unit
def test_summarize_tasks(staff_user):
    """Test counts per bucket."""
    tasks = [
        build_task(staff_user, status=Status.TODO, start_date="2025-09-01", end_date="2025-09-10"),
        build_task(staff_user, status=Status.IN_PROGRESS, start_date="2025-09-01", end_date="2025-09-30"),
        build_task(staff_user, status=Status.COMPLETED, start_date="2025-09-01", end_date="2025-09-02"),
        build_task(staff_user, status=Status.BLOCKED, start_date="2025-09-01", end_date="2025-09-05"),
        build_task(staff_user, status=Status.ARCHIVED, start_date=None, end_date=None),
    ]

    stats = summarize_tasks(tasks, today=date(2025, 9, 17))

    assert stats.total == 5
    assert stats.active == 2
    assert stats.completed == 1
    assert stats.blocked == 1
    assert stats.archived == 1
    assert stats.overdue == 2


@pytest.mark.unit
def test_summarize_empty():
    """Test an empty task list."""
    assert summarize_tasks([]).model_dump() == {
        "total": 0, "active": 0, "completed": 0, "blocked": 0, "archived": 0, "overdue": 0,
    }
