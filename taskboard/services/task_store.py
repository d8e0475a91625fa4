"""Task store - per-record reads and versioned writes, backed by Supabase or a JSON file."""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Iterable, Optional

from taskboard.models.task import Task
from taskboard.services.supabase_client import SupabaseClient
from taskboard.utils.errors import ConflictError, NotFoundError, StoreError, SupabaseError
from taskboard.utils.logging import get_structured_logger, mask_user_id, timed

logger = get_structured_logger(__name__)


def task_to_row(task: Task) -> dict:
    """Task -> snake_case row; owner id is denormalised for visibility queries."""
    row = task.model_dump(mode="json")
    row["owned_by_id"] = task.owned_by.id
    return row


def row_to_task(row: dict) -> Task:
    """Row (snake_case or camelCase) -> Task, ignoring join-only columns."""
    data = dict(row)
    data["id"] = str(data["id"])
    for key in ("parent_task_id", "parentTaskId"):
        if data.get(key) is not None:
            data[key] = str(data[key])
    return Task.model_validate(data)


class TaskStore:
    """Persistence for tasks. Writes are per record with a version check."""

    async def list_tasks(self, owner_ids: Optional[Iterable[str]] = None) -> list[Task]:
        """All tasks, or only those owned by ``owner_ids`` when given."""
        raise NotImplementedError

    async def get_task(self, task_id: str) -> Optional[Task]:
        raise NotImplementedError

    async def insert_task(self, task: Task) -> Task:
        raise NotImplementedError

    async def update_task(self, task: Task, expected_version: int) -> Task:
        """Replace a task only if the stored version still equals ``expected_version``.

        Raises NotFoundError if the task is gone and ConflictError if another
        writer got there first.
        """
        raise NotImplementedError

    async def project_lookup(self, task_ids: Iterable[str]) -> dict[str, Optional[str]]:
        """Project name per task id (None when the task has no project)."""
        raise NotImplementedError


class SupabaseTaskStore(TaskStore):
    """Tasks in the Supabase ``tasks`` table, projects joined via ``project_id``."""

    TABLE = "tasks"

    @timed("tasks.list")
    async def list_tasks(self, owner_ids: Optional[Iterable[str]] = None) -> list[Task]:
        async with SupabaseClient() as client:
            try:
                query = client.table(self.TABLE).select("*")
                if owner_ids is not None:
                    ids = list(owner_ids)
                    if not ids:
                        return []
                    query = query.in_("owned_by_id", ids)
                result = query.order("created_at").execute()
            except Exception as e:
                raise SupabaseError(f"Failed to list tasks: {e}", cause=e)
        return [row_to_task(row) for row in result.data or []]

    async def get_task(self, task_id: str) -> Optional[Task]:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.TABLE).select("*").eq("id", task_id).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to get task: {e}", cause=e)
        return row_to_task(result.data[0]) if result.data else None

    async def insert_task(self, task: Task) -> Task:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.TABLE).insert(task_to_row(task)).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to create task: {e}", cause=e)
        if not result.data:
            raise SupabaseError("Failed to create task: no data returned")
        logger.info("Task created", task_id=task.id, owner_id=mask_user_id(task.owned_by.id))
        return row_to_task(result.data[0])

    async def update_task(self, task: Task, expected_version: int) -> Task:
        async with SupabaseClient() as client:
            try:
                result = (
                    client.table(self.TABLE)
                    .update(task_to_row(task))
                    .eq("id", task.id)
                    .eq("version", expected_version)
                    .execute()
                )
            except Exception as e:
                raise SupabaseError(f"Failed to update task: {e}", cause=e)

        if result.data:
            logger.info("Task updated", task_id=task.id, version=task.version)
            return row_to_task(result.data[0])

        if await self.get_task(task.id) is None:
            raise NotFoundError(f"Task not found: {task.id}")
        logger.warning("Task update conflict", task_id=task.id, expected_version=expected_version)
        raise ConflictError("Task was modified by someone else; reload and try again.")

    async def project_lookup(self, task_ids: Iterable[str]) -> dict[str, Optional[str]]:
        ids = list(task_ids)
        if not ids:
            return {}
        async with SupabaseClient() as client:
            try:
                result = (
                    client.table(self.TABLE)
                    .select("id, project:project_id(name)")
                    .in_("id", ids)
                    .execute()
                )
            except Exception as e:
                raise SupabaseError(f"Failed to look up projects: {e}", cause=e)

        lookup: dict[str, Optional[str]] = {}
        for row in result.data or []:
            project = row.get("project")
            lookup[str(row["id"])] = project.get("name") if isinstance(project, dict) else None
        return lookup


# One writer at a time per process for the flat-file store
_file_lock = threading.Lock()


class JsonTaskStore(TaskStore):
    """Tasks in ``<data_dir>/tasks.json`` as a camelCase JSON array."""

    def __init__(self, data_dir: Path):
        self.path = Path(data_dir) / "tasks.json"

    def _read_records(self) -> list[dict]:
        try:
            if not self.path.exists():
                return []
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Failed to read tasks: {e}", cause=e)

    def _write_records(self, records: list[dict]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".tasks.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreError(f"Failed to write tasks: {e}", cause=e)

    @timed("tasks.list")
    async def list_tasks(self, owner_ids: Optional[Iterable[str]] = None) -> list[Task]:
        tasks = [row_to_task(record) for record in self._read_records()]
        if owner_ids is None:
            return tasks
        wanted = set(owner_ids)
        return [t for t in tasks if t.owned_by.id in wanted]

    async def get_task(self, task_id: str) -> Optional[Task]:
        for record in self._read_records():
            if str(record.get("id")) == task_id:
                return row_to_task(record)
        return None

    async def insert_task(self, task: Task) -> Task:
        with _file_lock:
            records = self._read_records()
            records.append(task.to_api())
            self._write_records(records)
        logger.info("Task created", task_id=task.id, owner_id=mask_user_id(task.owned_by.id))
        return task

    async def update_task(self, task: Task, expected_version: int) -> Task:
        with _file_lock:
            records = self._read_records()
            for index, record in enumerate(records):
                if str(record.get("id")) != task.id:
                    continue
                if record.get("version", 1) != expected_version:
                    logger.warning("Task update conflict", task_id=task.id, expected_version=expected_version)
                    raise ConflictError("Task was modified by someone else; reload and try again.")
                replacement = task.to_api()
                if "project" in record:
                    replacement["project"] = record["project"]
                records[index] = replacement
                self._write_records(records)
                logger.info("Task updated", task_id=task.id, version=task.version)
                return task
        raise NotFoundError(f"Task not found: {task.id}")

    async def project_lookup(self, task_ids: Iterable[str]) -> dict[str, Optional[str]]:
        wanted = set(task_ids)
        return {
            str(record["id"]): record.get("project")
            for record in self._read_records()
            if str(record.get("id")) in wanted
        }
