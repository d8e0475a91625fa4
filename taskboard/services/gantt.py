"""Monthly Gantt timeline layout: day columns, bar placement and per-user rows."""

import calendar
from datetime import date
from typing import Iterable, Optional
from pydantic import BaseModel, Field

from taskboard.models.task import CamelModel, Status, Task
from taskboard.models.user import UserRef
from taskboard.services.task_filter import is_overdue

# (max screen width, day interval) breakpoints
_INTERVAL_BREAKPOINTS = ((640, 7), (768, 5), (1024, 3), (1280, 2))


def day_interval(screen_width: Optional[int]) -> int:
    """Show every Nth day on narrower screens."""
    if screen_width is None:
        return 1
    for max_width, interval in _INTERVAL_BREAKPOINTS:
        if screen_width < max_width:
            return interval
    return 1


def month_days(year: int, month: int, interval: int = 1) -> list[date]:
    """Every ``interval``-th day of the month, always ending on the last day."""
    if interval < 1:
        raise ValueError("interval must be >= 1")
    last = calendar.monthrange(year, month)[1]
    days = [date(year, month, day) for day in range(1, last + 1, interval)]
    if days[-1].day != last:
        days.append(date(year, month, last))
    return days


class TaskBar(BaseModel):
    """Bar position as percentages of the timeline width."""
    left: float
    width: float


def task_bar(start: date, end: date, days: list[date]) -> Optional[TaskBar]:
    """
    Place a task on the displayed day columns.

    Returns None when the task does not overlap the displayed range. The bar
    starts at the first column on/after the overlap start, ends at the last
    column on/before the overlap end, and is never narrower than one column.
    """
    if not days or end < days[0] or start > days[-1]:
        return None

    overlap_start = max(start, days[0])
    overlap_end = min(end, days[-1])

    start_column = next(i for i, day in enumerate(days) if day >= overlap_start)
    end_column = next(i for i in range(len(days) - 1, -1, -1) if days[i] <= overlap_end)

    column_width = 100 / len(days)
    left = start_column * column_width
    width = max(column_width, (end_column - start_column + 1) * column_width)
    return TaskBar(left=round(max(0.0, left), 4), width=round(width, 4))


class GanttBar(CamelModel):
    task_id: str
    title: str
    status: Status
    start_date: date
    end_date: date
    left: float
    width: float
    is_overdue: bool = False


class GanttRow(CamelModel):
    user: UserRef
    bars: list[GanttBar] = Field(default_factory=list)


class GanttChart(CamelModel):
    month: str
    interval: int
    days: list[date]
    rows: list[GanttRow] = Field(default_factory=list)


def build_gantt(
    tasks: Iterable[Task],
    users: Iterable[UserRef],
    year: int,
    month: int,
    interval: int = 1,
    today: Optional[date] = None,
) -> GanttChart:
    """
    Lay out tasks for one month, one row per owner.

    Rows follow the order of ``users``; owners missing from ``users`` are
    appended in order of first appearance. Tasks without both dates or
    outside the month are left off the chart.
    """
    today = today or date.today()
    days = month_days(year, month, interval)

    rows: dict[str, GanttRow] = {u.id: GanttRow(user=u) for u in users}
    for task in tasks:
        if task.start_date is None or task.end_date is None:
            continue
        bar = task_bar(task.start_date, task.end_date, days)
        if bar is None:
            continue
        row = rows.setdefault(task.owned_by.id, GanttRow(user=task.owned_by))
        row.bars.append(GanttBar(
            task_id=task.id,
            title=task.title,
            status=task.status,
            start_date=task.start_date,
            end_date=task.end_date,
            left=bar.left,
            width=bar.width,
            is_overdue=is_overdue(task, today),
        ))

    return GanttChart(
        month=f"{year:04d}-{month:02d}",
        interval=interval,
        days=days,
        rows=list(rows.values()),
    )
