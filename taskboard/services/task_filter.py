"""Task filter engine - applies TaskFilters to an in-memory task list."""

import calendar
from datetime import date, datetime, timedelta
from typing import Iterable, Mapping, Optional

from taskboard.models.filters import DeadlineWindow, TaskFilters
from taskboard.models.task import Status, Task


def _sunday_based_weekday(day: date) -> int:
    """Day of week counted Sunday=0 .. Saturday=6."""
    return (day.weekday() + 1) % 7


def deadline_window_bounds(window: DeadlineWindow, today: date) -> tuple[Optional[date], Optional[date]]:
    """
    Inclusive (start, end) end-date bounds for a deadline window.

    ``overdue`` is open-ended: (None, yesterday). The week windows end on a
    Sunday; on a Sunday ``this-week`` runs through the following Sunday.
    """
    if window == DeadlineWindow.OVERDUE:
        return None, today - timedelta(days=1)
    if window == DeadlineWindow.TODAY:
        return today, today
    end_of_week = today + timedelta(days=7 - _sunday_based_weekday(today))
    if window == DeadlineWindow.THIS_WEEK:
        return today, end_of_week
    if window == DeadlineWindow.NEXT_WEEK:
        start_of_next_week = end_of_week + timedelta(days=1)
        return start_of_next_week, start_of_next_week + timedelta(days=6)
    # THIS_MONTH
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def is_overdue(task: Task, today: date) -> bool:
    """End date in the past and not completed; undated tasks are never overdue."""
    return (
        task.end_date is not None
        and task.end_date < today
        and task.status != Status.COMPLETED
    )


def matches_deadline(task: Task, deadline: str, today: date, include_undated: bool = True) -> bool:
    """Whether a task's end date falls in the named window. Unknown windows match nothing."""
    try:
        window = DeadlineWindow(deadline)
    except ValueError:
        return False

    if task.end_date is None:
        return include_undated

    if window == DeadlineWindow.OVERDUE:
        return is_overdue(task, today)

    start, end = deadline_window_bounds(window, today)
    return start <= task.end_date <= end


def _assignee_names(task: Task) -> list[str]:
    names = [task.owned_by.name] if task.owned_by.name else []
    names.extend(c.name for c in task.collaborators if c.name)
    return names


def task_matches(
    task: Task,
    filters: TaskFilters,
    today: date,
    project_by_task_id: Optional[Mapping[str, Optional[str]]] = None,
    include_undated: bool = True,
) -> bool:
    """True when the task passes every active criterion."""
    active = TaskFilters.is_active

    if active(filters.search) and filters.search.lower() not in task.title.lower():
        return False

    if active(filters.status) and task.status.value != filters.status:
        return False

    if active(filters.priority) and task.priority.value != filters.priority:
        return False

    if active(filters.project):
        project = (project_by_task_id or {}).get(task.id)
        if project != filters.project:
            return False

    if active(filters.assignee) and filters.assignee not in _assignee_names(task):
        return False

    if active(filters.tag) and task.tag != filters.tag:
        return False

    if active(filters.deadline) and not matches_deadline(task, filters.deadline, today, include_undated):
        return False

    return True


def filter_tasks(
    tasks: Iterable[Task],
    filters: TaskFilters,
    project_by_task_id: Optional[Mapping[str, Optional[str]]] = None,
    now: Optional[datetime] = None,
    include_undated: bool = True,
) -> list[Task]:
    """
    Return the tasks matching all active filters, in their original order.

    ``project_by_task_id`` supplies the joined project name for the project
    filter. Tasks without an end date pass the deadline filter unless
    ``include_undated`` is False.
    """
    today = (now or datetime.now()).date()
    return [
        task
        for task in tasks
        if task_matches(task, filters, today, project_by_task_id, include_undated)
    ]
