"""Gantt endpoint: monthly timeline rows for the caller's accessible users."""

from datetime import date

from taskboard.json_handler import JsonRequestHandler
from taskboard.services.access_resolver import build_viewer_context
from taskboard.services.gantt import build_gantt, day_interval
from taskboard.services.stores import get_task_store, get_user_directory
from taskboard.utils.errors import TaskValidationError


def parse_month(value: str) -> tuple[int, int]:
    """``YYYY-MM`` -> (year, month)."""
    try:
        year_text, month_text = value.split("-")
        year, month = int(year_text), int(month_text)
    except ValueError:
        raise TaskValidationError(["month must be in YYYY-MM format."])
    if not 1 <= month <= 12 or year < 1:
        raise TaskValidationError(["month must be in YYYY-MM format."])
    return year, month


class handler(JsonRequestHandler):
    """Vercel serverless function handler for /api/gantt?month=YYYY-MM&width=N."""

    def do_GET(self):
        self.dispatch(self._get_gantt)

    async def _get_gantt(self):
        query = self.query
        today = date.today()
        year, month = parse_month(query["month"]) if query.get("month") else (today.year, today.month)
        try:
            width = int(query["width"]) if query.get("width") else None
        except ValueError:
            raise TaskValidationError(["width must be an integer."])

        directory = get_user_directory()
        store = get_task_store()

        viewer = await self.authenticate(directory)
        context = await build_viewer_context(viewer, directory)

        found = await directory.get_users(context.accessible_user_ids)
        users = [found[user_id] for user_id in context.accessible_user_ids if user_id in found]
        tasks = await store.list_tasks(owner_ids=context.accessible_user_ids)

        chart = build_gantt(tasks, users, year, month, interval=day_interval(width), today=today)
        return 200, {"gantt": chart.model_dump(mode="json", by_alias=True)}
