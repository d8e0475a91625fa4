"""Task create/update flows with role-based field rules."""

from datetime import date, datetime, timezone
from typing import Iterable, Optional

from ulid import ULID

from taskboard.models.task import (
    MAX_COLLABORATORS,
    CreateTaskPayload,
    Priority,
    Status,
    Task,
    UpdateTaskPayload,
)
from taskboard.models.user import UserRef
from taskboard.services.access_resolver import ViewerContext
from taskboard.services.task_store import TaskStore
from taskboard.services.user_directory import UserDirectory
from taskboard.utils.errors import AuthorizationError, NotFoundError, TaskValidationError
from taskboard.utils.logging import get_structured_logger, mask_user_id, sanitize_text

logger = get_structured_logger(__name__)

PRIORITY_VALUES = [p.value for p in Priority]
STATUS_VALUES = [s.value for s in Status]


def generate_task_id() -> str:
    """Generate a text-based task ID (ULID format)."""
    return str(ULID())


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` or a full ISO timestamp; None if unparseable."""
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _timestamp(now: Optional[datetime]) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def _collaborator_errors(ids: list[str]) -> list[str]:
    errors = []
    if len(ids) > MAX_COLLABORATORS:
        errors.append(f"Collaborators cannot exceed {MAX_COLLABORATORS}.")
    if len(set(ids)) != len(ids):
        errors.append("Collaborators list has duplicates.")
    return errors


def _date_error(label: str, raw: Optional[str], required: bool) -> Optional[str]:
    if not raw:
        return f"{label} is required." if required else None
    if parse_iso_date(raw) is None:
        return f"{label} must be a valid date (YYYY-MM-DD)."
    return None


async def _resolve_users(
    directory: UserDirectory,
    user_ids: Iterable[str],
    known: Optional[dict[str, UserRef]] = None,
) -> tuple[list[UserRef], list[str]]:
    """Look up ids in order; returns (users, unknown ids). ``known`` skips lookups."""
    ids = list(dict.fromkeys(user_ids))
    known = known or {}
    to_fetch = [i for i in ids if i not in known]
    found = dict(known)
    if to_fetch:
        found.update(await directory.get_users(to_fetch))
    users = [found[i] for i in ids if i in found]
    unknown = [i for i in ids if i not in found]
    return users, unknown


def validate_create_payload(payload: CreateTaskPayload, actor: UserRef) -> list[str]:
    """All field-level problems with a create request (no directory lookups)."""
    errors: list[str] = []

    if not (payload.title or "").strip():
        errors.append("Title is required.")

    for label, raw in (("Start Date", payload.start_date), ("End Date", payload.end_date)):
        error = _date_error(label, raw, required=True)
        if error:
            errors.append(error)

    start = parse_iso_date(payload.start_date)
    end = parse_iso_date(payload.end_date)
    if start and end and end < start:
        errors.append("End Date must be on/after Start Date.")

    if payload.priority not in PRIORITY_VALUES:
        errors.append("Priority must be Low, Medium, or High.")

    if actor.is_manager:
        if not payload.owned_by_id:
            errors.append("Owned By (assignee) must be selected by managers.")
        if payload.status is not None and payload.status not in STATUS_VALUES:
            errors.append(f"Status must be one of: {', '.join(STATUS_VALUES)}.")

    errors.extend(_collaborator_errors(payload.collaborators_ids or []))
    return errors


async def create_task(
    payload: CreateTaskPayload,
    actor: UserRef,
    directory: UserDirectory,
    store: TaskStore,
    now: Optional[datetime] = None,
) -> Task:
    """
    Validate and persist a new task created by ``actor``.

    Staff always own what they create and start at "To Do"; a supplied
    owner or status is ignored for them. Managers must pick an owner and may
    pick the initial status. Raises TaskValidationError with every problem.
    """
    errors = validate_create_payload(payload, actor)

    owner = actor
    if actor.is_manager and payload.owned_by_id:
        found = await directory.get_user(payload.owned_by_id)
        if found is None:
            errors.append(f"Owned By user not found: {payload.owned_by_id}")
        else:
            owner = found

    collaborators, unknown = await _resolve_users(directory, payload.collaborators_ids or [])
    if unknown:
        errors.append(f"Unknown collaborators: {', '.join(unknown)}")

    if errors:
        logger.info(
            "Task create rejected",
            actor_id=mask_user_id(actor.id),
            error_count=len(errors)
        )
        raise TaskValidationError(errors)

    status = Status.TODO
    if actor.is_manager and payload.status:
        status = Status(payload.status)

    timestamp = _timestamp(now)
    task = Task(
        id=generate_task_id(),
        title=payload.title.strip(),
        description=(payload.description or "").strip(),
        created_by=actor,
        owned_by=owner,
        collaborators=collaborators,
        start_date=parse_iso_date(payload.start_date),
        end_date=parse_iso_date(payload.end_date),
        parent_task_id=payload.parent_task_id or None,
        tag=(payload.tag or "").strip() or None,
        priority=Priority(payload.priority),
        status=status,
        comments=[],
        version=1,
        created_at=timestamp,
        updated_at=timestamp,
    )

    logger.info(
        "Creating task",
        task_id=task.id,
        actor_id=mask_user_id(actor.id),
        owner_id=mask_user_id(owner.id),
        title=sanitize_text(task.title, max_length=80)
    )
    return await store.insert_task(task)


async def update_task(
    task_id: str,
    payload: UpdateTaskPayload,
    actor: UserRef,
    directory: UserDirectory,
    store: TaskStore,
    now: Optional[datetime] = None,
    viewer: Optional[ViewerContext] = None,
) -> Task:
    """
    Apply a partial update from ``actor`` to an existing task.

    Only fields present in the request body are touched. Non-managers
    cannot reassign the owner (AuthorizationError), their status changes are
    ignored, and their collaborator list is merged into the existing one
    rather than replacing it.

    With a ``viewer``, tasks outside their accessible owners are reported as
    missing, the same as on reads. An update that changes nothing is not
    written and returns the stored task.
    """
    current = await store.get_task(task_id)
    if current is None:
        raise NotFoundError(f"Task not found: {task_id}")
    if viewer is not None and not viewer.can_see(current.owned_by.id):
        raise NotFoundError(f"Task not found: {task_id}")

    fields = payload.model_fields_set
    owner_change = (
        "owned_by_id" in fields
        and bool(payload.owned_by_id)
        and payload.owned_by_id != current.owned_by.id
    )
    if owner_change and not actor.is_manager:
        logger.warning(
            "Non-manager attempted owner change",
            task_id=task_id,
            actor_id=mask_user_id(actor.id)
        )
        raise AuthorizationError("Only managers can change assignee.")

    errors: list[str] = []
    updates: dict = {}

    if "title" in fields:
        title = (payload.title or "").strip()
        if title:
            updates["title"] = title
        else:
            errors.append("Title cannot be empty.")

    if "description" in fields:
        updates["description"] = payload.description or ""

    if "tag" in fields:
        updates["tag"] = (payload.tag or "").strip() or None

    if "parent_task_id" in fields:
        updates["parent_task_id"] = payload.parent_task_id or None

    if "priority" in fields:
        if payload.priority in PRIORITY_VALUES:
            updates["priority"] = Priority(payload.priority)
        else:
            errors.append("Priority must be Low, Medium, or High.")

    if "status" in fields and payload.status is not None:
        if payload.status not in STATUS_VALUES:
            errors.append(f"Status must be one of: {', '.join(STATUS_VALUES)}.")
        elif actor.is_manager:
            updates["status"] = Status(payload.status)
        else:
            logger.debug("Ignoring status change from non-manager", task_id=task_id)

    start, end = current.start_date, current.end_date
    if "start_date" in fields:
        error = _date_error("Start Date", payload.start_date, required=True)
        if error:
            errors.append(error)
        else:
            start = updates["start_date"] = parse_iso_date(payload.start_date)
    if "end_date" in fields:
        error = _date_error("End Date", payload.end_date, required=True)
        if error:
            errors.append(error)
        else:
            end = updates["end_date"] = parse_iso_date(payload.end_date)
    if start and end and end < start:
        errors.append("End Date must be on/after Start Date.")

    if owner_change:
        owner = await directory.get_user(payload.owned_by_id)
        if owner is None:
            errors.append(f"Owned By user not found: {payload.owned_by_id}")
        else:
            updates["owned_by"] = owner

    if "collaborators_ids" in fields and payload.collaborators_ids is not None:
        existing = {c.id: c for c in current.collaborators}
        if actor.is_manager:
            ids = list(payload.collaborators_ids)
            errors.extend(_collaborator_errors(ids))
        else:
            # Additive merge: existing collaborators always stay
            ids = list(dict.fromkeys([*existing, *payload.collaborators_ids]))
            if len(ids) > MAX_COLLABORATORS:
                errors.append(f"Collaborators cannot exceed {MAX_COLLABORATORS}.")
        collaborators, unknown = await _resolve_users(directory, ids, known=existing)
        if unknown:
            errors.append(f"Unknown collaborators: {', '.join(unknown)}")
        else:
            updates["collaborators"] = collaborators

    if errors:
        logger.info(
            "Task update rejected",
            task_id=task_id,
            actor_id=mask_user_id(actor.id),
            error_count=len(errors)
        )
        raise TaskValidationError(errors)

    updates = {name: value for name, value in updates.items() if getattr(current, name) != value}
    if not updates:
        logger.debug("Update changes nothing, skipping write", task_id=task_id)
        return current

    updates["version"] = current.version + 1
    updates["updated_at"] = _timestamp(now)
    next_task = Task.model_validate({**current.model_dump(), **updates})

    return await store.update_task(next_task, expected_version=current.version)
