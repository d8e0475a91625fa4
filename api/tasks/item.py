"""Single task endpoint: fetch (GET) and partial update (PUT).

Reached as /api/tasks/:id through the rewrite in vercel.json, which passes
the id as the ``id`` query parameter.
"""

from taskboard.json_handler import JsonRequestHandler, parse_body
from taskboard.models.task import UpdateTaskPayload
from taskboard.services.access_resolver import build_viewer_context
from taskboard.services.stores import get_task_store, get_user_directory
from taskboard.services.task_mutations import update_task
from taskboard.utils.errors import NotFoundError


class handler(JsonRequestHandler):
    """Vercel serverless function handler for /api/tasks/:id."""

    def do_GET(self):
        self.dispatch(self._get_task)

    def do_PUT(self):
        self.dispatch(self._update_task)

    def _task_id(self) -> str:
        task_id = self.query.get("id")
        if not task_id:
            last_segment = self.route_path.rstrip("/").rsplit("/", 1)[-1]
            if last_segment not in ("", "tasks", "item"):
                task_id = last_segment
        if not task_id:
            raise NotFoundError("Task not found")
        return task_id

    async def _get_task(self):
        directory = get_user_directory()
        store = get_task_store()

        viewer = await self.authenticate(directory)
        context = await build_viewer_context(viewer, directory)

        task_id = self._task_id()
        task = await store.get_task(task_id)
        # Tasks outside the viewer's scope look the same as missing ones
        if task is None or not context.can_see(task.owned_by.id):
            raise NotFoundError(f"Task not found: {task_id}")
        return 200, {"task": task.to_api()}

    async def _update_task(self):
        directory = get_user_directory()
        store = get_task_store()

        actor = await self.authenticate(directory)
        context = await build_viewer_context(actor, directory)
        payload = parse_body(UpdateTaskPayload, self.read_json())
        task = await update_task(self._task_id(), payload, actor, directory, store, viewer=context)
        return 200, {"task": task.to_api()}
