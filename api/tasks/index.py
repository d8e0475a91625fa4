"""Task collection endpoint: list visible tasks (GET) and create a task (POST)."""

from taskboard.json_handler import JsonRequestHandler, parse_body
from taskboard.models.filters import TaskFilters
from taskboard.models.task import CreateTaskPayload
from taskboard.services.access_resolver import build_viewer_context
from taskboard.services.stores import get_task_store, get_user_directory
from taskboard.services.task_filter import filter_tasks
from taskboard.services.task_mutations import create_task
from taskboard.services.task_stats import summarize_tasks


class handler(JsonRequestHandler):
    """Vercel serverless function handler for /api/tasks."""

    def do_GET(self):
        """List tasks owned by the caller's accessible users, narrowed by query filters."""
        self.dispatch(self._list_tasks)

    def do_POST(self):
        """Create a task as the caller."""
        self.dispatch(self._create_task)

    async def _list_tasks(self):
        directory = get_user_directory()
        store = get_task_store()

        viewer = await self.authenticate(directory)
        context = await build_viewer_context(viewer, directory)

        query = self.query
        filters = TaskFilters.from_query(query)
        include_undated = query.get("includeUndated", "true").lower() != "false"

        tasks = await store.list_tasks(owner_ids=context.accessible_user_ids)
        projects = {}
        if TaskFilters.is_active(filters.project):
            projects = await store.project_lookup([t.id for t in tasks])

        visible = filter_tasks(tasks, filters, projects, include_undated=include_undated)
        return 200, {
            "tasks": [t.to_api() for t in visible],
            "stats": summarize_tasks(tasks).model_dump(),
            "filters": filters.active_filters(),
        }

    async def _create_task(self):
        directory = get_user_directory()
        store = get_task_store()

        actor = await self.authenticate(directory)
        payload = parse_body(CreateTaskPayload, self.read_json())
        task = await create_task(payload, actor, directory, store)
        return 201, {"task": task.to_api()}
