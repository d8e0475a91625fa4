"""Dashboard counters over the visible task set."""

from datetime import date
from typing import Iterable, Optional
from pydantic import BaseModel

from taskboard.models.task import Status, Task
from taskboard.services.task_filter import is_overdue

ACTIVE_STATUSES = (Status.TODO, Status.IN_PROGRESS)


class TaskStats(BaseModel):
    total: int = 0
    active: int = 0
    completed: int = 0
    blocked: int = 0
    archived: int = 0
    overdue: int = 0


def summarize_tasks(tasks: Iterable[Task], today: Optional[date] = None) -> TaskStats:
    """Count tasks by dashboard bucket."""
    today = today or date.today()
    stats = TaskStats()
    for task in tasks:
        stats.total += 1
        if task.status in ACTIVE_STATUSES:
            stats.active += 1
        elif task.status == Status.COMPLETED:
            stats.completed += 1
        elif task.status == Status.BLOCKED:
            stats.blocked += 1
        elif task.status == Status.ARCHIVED:
            stats.archived += 1
        if is_overdue(task, today):
            stats.overdue += 1
    return stats
