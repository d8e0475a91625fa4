"""Tests for task create/update rules."""

import pytest
from datetime import date, datetime, timezone

from taskboard.models.task import CreateTaskPayload, Priority, Status, UpdateTaskPayload
from taskboard.services.access_resolver import build_viewer_context
from taskboard.services.task_mutations import (
    create_task,
    generate_task_id,
    parse_iso_date,
    update_task,
    validate_create_payload,
)
from taskboard.utils.errors import AuthorizationError, NotFoundError, TaskValidationError
from tests.utils.factories import build_task
from tests.utils.helpers import read_task_records, seed_tasks

NOW = datetime(2025, 9, 19, 10, 0, tzinfo=timezone.utc)


def _create(**body):
    base = {"title": "Bug bash", "priority": "Medium", "startDate": "2025-09-20", "endDate": "2025-09-21"}
    base.update(body)
    return CreateTaskPayload.model_validate(base)


def _update(**body):
    return UpdateTaskPayload.model_validate(body)


@pytest.fixture
def stored_task(tmp_path, staff_user, other_staff):
    """Staff-owned task with one collaborator, already persisted."""
    task = build_task(
        staff_user,
        id="t-1",
        title="Prepare demo",
        start_date="2025-09-20",
        end_date="2025-09-25",
        collaborators=[other_staff],
    )
    seed_tasks(tmp_path, [task])
    return task


@pytest.mark.unit
def test_generate_task_id_is_ulid():
    """Test ULID task ids."""
    task_id = generate_task_id()
    assert len(task_id) == 26
    assert task_id != generate_task_id()


@pytest.mark.unit
@pytest.mark.parametrize("value,expected", [
    ("2025-09-20", date(2025, 9, 20)),
    ("2025-09-20T13:00:00Z", date(2025, 9, 20)),
    ("not-a-date", None),
    ("", None),
    (None, None),
])
def test_parse_iso_date(value, expected):
    """Test date parsing for request bodies."""
    assert parse_iso_date(value) == expected


@pytest.mark.unit
def test_validate_create_collects_all_errors(staff_user):
    """Test that every field problem is reported at once."""
    errors = validate_create_payload(
        _create(title="  ", startDate="2025-09-21", endDate="2025-09-20", priority="Urgent"),
        staff_user,
    )

    assert "Title is required." in errors
    assert "End Date must be on/after Start Date." in errors
    assert "Priority must be Low, Medium, or High." in errors


@pytest.mark.unit
def test_validate_create_requires_dates(staff_user):
    """Test missing and malformed dates."""
    errors = validate_create_payload(_create(startDate=None, endDate="20/09/2025"), staff_user)

    assert "Start Date is required." in errors
    assert "End Date must be a valid date (YYYY-MM-DD)." in errors


@pytest.mark.unit
def test_validate_create_manager_must_pick_owner(manager):
    """Test that managers have to choose an assignee."""
    errors = validate_create_payload(_create(), manager)

    assert "Owned By (assignee) must be selected by managers." in errors


@pytest.mark.unit
@pytest.mark.asyncio
async def test_staff_create_forces_owner_and_status(staff_user, user_directory, task_store):
    """Test staff-created tasks are owned by the creator and start as To Do."""
    payload = _create(status="Completed", ownedById="u-stf-2")

    task = await create_task(payload, staff_user, user_directory, task_store, now=NOW)

    assert task.owned_by.id == "u-stf-1"
    assert task.created_by.id == "u-stf-1"
    assert task.status == Status.TODO
    assert task.version == 1
    assert task.created_at == "2025-09-19T10:00:00+00:00"
    assert await task_store.get_task(task.id) == task


@pytest.mark.unit
@pytest.mark.asyncio
async def test_manager_create_honors_owner_and_status(manager, user_directory, task_store):
    """Test managers assign the owner and the initial status."""
    payload = _create(ownedById="u-stf-2", status="In Progress", collaboratorsIds=["u-stf-3"],
                      priority="High", tag=" launch ")

    task = await create_task(payload, manager, user_directory, task_store, now=NOW)

    assert task.owned_by.id == "u-stf-2"
    assert task.owned_by.name == "Casey Staff"
    assert task.created_by.id == "u-mgr"
    assert task.status == Status.IN_PROGRESS
    assert task.priority == Priority.HIGH
    assert task.collaborator_ids == ["u-stf-3"]
    assert task.tag == "launch"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_rejects_unknown_users(manager, user_directory, task_store):
    """Test unknown owner and collaborator ids."""
    payload = _create(ownedById="u-ghost", collaboratorsIds=["u-stf-1", "u-nobody"])

    with pytest.raises(TaskValidationError) as exc_info:
        await create_task(payload, manager, user_directory, task_store)

    assert "Owned By user not found: u-ghost" in exc_info.value.errors
    assert "Unknown collaborators: u-nobody" in exc_info.value.errors
    assert await task_store.list_tasks() == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_rejects_too_many_collaborators(manager, user_directory, task_store):
    """Test the collaborator cap on create."""
    payload = _create(ownedById="u-stf-1",
                      collaboratorsIds=["u-mgr", "u-stf-1", "u-stf-2", "u-stf-3", "u-stf-4", "u-stf-5"])

    with pytest.raises(TaskValidationError) as exc_info:
        await create_task(payload, manager, user_directory, task_store)

    assert "Collaborators cannot exceed 5." in exc_info.value.errors


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_rejects_invalid_status_from_manager(manager, user_directory, task_store):
    """Test managers get an error for unknown status values."""
    with pytest.raises(TaskValidationError) as exc_info:
        await create_task(_create(ownedById="u-stf-1", status="Done"), manager, user_directory, task_store)

    assert any(e.startswith("Status must be one of") for e in exc_info.value.errors)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_manager_update_collaborator_cap(stored_task, manager, user_directory, task_store):
    """Test that six collaborators are rejected with the cap message."""
    payload = _update(collaboratorsIds=["a", "b", "c", "d", "e", "f"])

    with pytest.raises(TaskValidationError) as exc_info:
        await update_task("t-1", payload, manager, user_directory, task_store)

    assert "Collaborators cannot exceed 5." in exc_info.value.errors
    assert (await task_store.get_task("t-1")).collaborator_ids == ["u-stf-2"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_staff_owner_change_forbidden(stored_task, staff_user, user_directory, task_store, tmp_path):
    """Test that staff cannot reassign and the store is left untouched."""
    before = read_task_records(tmp_path)

    with pytest.raises(AuthorizationError) as exc_info:
        await update_task("t-1", _update(ownedById="u-stf-2", title="Hijack"), staff_user,
                          user_directory, task_store)

    assert str(exc_info.value) == "Only managers can change assignee."
    assert exc_info.value.status_code == 403
    assert read_task_records(tmp_path) == before


@pytest.mark.unit
@pytest.mark.asyncio
async def test_staff_same_owner_is_not_a_change(stored_task, staff_user, user_directory, task_store):
    """Test that echoing the current owner is allowed."""
    result = await update_task("t-1", _update(ownedById="u-stf-1", title="Renamed"), staff_user,
                               user_directory, task_store)

    assert result.title == "Renamed"
    assert result.owned_by.id == "u-stf-1"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_staff_status_change_ignored(stored_task, staff_user, user_directory, task_store):
    """Test staff status edits are dropped while other fields apply."""
    result = await update_task("t-1", _update(status="Completed", priority="High"), staff_user,
                               user_directory, task_store, now=NOW)

    assert result.status == Status.TODO
    assert result.priority == Priority.HIGH
    assert result.version == 2
    assert result.updated_at == "2025-09-19T10:00:00+00:00"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_staff_collaborators_merge_additively(stored_task, staff_user, user_directory, task_store):
    """Test staff can add but not remove collaborators."""
    result = await update_task("t-1", _update(collaboratorsIds=["u-stf-3"]), staff_user,
                               user_directory, task_store)

    assert result.collaborator_ids == ["u-stf-2", "u-stf-3"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_staff_merge_respects_cap(stored_task, staff_user, user_directory, task_store):
    """Test the cap applies to the merged list."""
    payload = _update(collaboratorsIds=["u-mgr", "u-stf-3", "u-stf-4", "u-stf-5", "u-stf-1"])

    with pytest.raises(TaskValidationError) as exc_info:
        await update_task("t-1", payload, staff_user, user_directory, task_store)

    assert "Collaborators cannot exceed 5." in exc_info.value.errors


@pytest.mark.unit
@pytest.mark.asyncio
async def test_manager_replaces_collaborators_and_owner(stored_task, manager, user_directory, task_store):
    """Test manager updates replace the list and may reassign."""
    payload = _update(collaboratorsIds=["u-stf-4"], ownedById="u-stf-5", status="Blocked")

    result = await update_task("t-1", payload, manager, user_directory, task_store)

    assert result.collaborator_ids == ["u-stf-4"]
    assert result.owned_by.id == "u-stf-5"
    assert result.status == Status.BLOCKED
    assert (await task_store.get_task("t-1")).owned_by.id == "u-stf-5"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_date_order_checked_against_existing(stored_task, manager, user_directory, task_store):
    """Test a new start date after the stored end date is rejected."""
    with pytest.raises(TaskValidationError) as exc_info:
        await update_task("t-1", _update(startDate="2025-09-30"), manager, user_directory, task_store)

    assert exc_info.value.errors == ["End Date must be on/after Start Date."]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_collects_errors(stored_task, manager, user_directory, task_store):
    """Test multiple update problems are reported together."""
    payload = _update(title="", priority="Urgent", endDate="nope")

    with pytest.raises(TaskValidationError) as exc_info:
        await update_task("t-1", payload, manager, user_directory, task_store)

    assert "Title cannot be empty." in exc_info.value.errors
    assert "Priority must be Low, Medium, or High." in exc_info.value.errors
    assert "End Date must be a valid date (YYYY-MM-DD)." in exc_info.value.errors


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_clears_parent(task_store, staff_user, user_directory):
    """Test that an explicit null parent clears it."""
    await task_store.insert_task(build_task(staff_user, id="t-child", parent_task_id="t-parent"))

    result = await update_task("t-child", _update(parentTaskId=None), staff_user, user_directory, task_store)

    assert result.parent_task_id is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_missing_task(manager, user_directory, task_store):
    """Test unknown task ids."""
    with pytest.raises(NotFoundError):
        await update_task("t-missing", _update(title="x"), manager, user_directory, task_store)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_outside_viewer_scope_is_not_found(stored_task, other_staff, user_directory,
                                                         task_store, tmp_path):
    """Test a peer's task cannot be edited and stays unchanged."""
    viewer = await build_viewer_context(other_staff, user_directory)
    before = read_task_records(tmp_path)

    with pytest.raises(NotFoundError):
        await update_task("t-1", _update(title="mine now"), other_staff, user_directory, task_store,
                          viewer=viewer)

    assert read_task_records(tmp_path) == before


@pytest.mark.unit
@pytest.mark.asyncio
async def test_manager_updates_report_task_in_scope(stored_task, manager, user_directory, task_store):
    """Test a manager's viewer scope covers direct reports' tasks."""
    viewer = await build_viewer_context(manager, user_directory)

    result = await update_task("t-1", _update(tag="demo"), manager, user_directory, task_store, viewer=viewer)

    assert result.tag == "demo"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_empty_update_skips_write(stored_task, staff_user, user_directory, task_store, tmp_path):
    """Test an update with no fields keeps the version and the record."""
    before = read_task_records(tmp_path)

    result = await update_task("t-1", _update(), staff_user, user_directory, task_store, now=NOW)

    assert result.version == 1
    assert result.updated_at == stored_task.updated_at
    assert read_task_records(tmp_path) == before


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_with_unchanged_values_skips_write(stored_task, staff_user, user_directory,
                                                        task_store, tmp_path):
    """Test resending current values (and an ignored status) is a no-op."""
    before = read_task_records(tmp_path)
    payload = _update(title="Prepare demo", startDate="2025-09-20", collaboratorsIds=["u-stf-2"],
                      status="Completed")

    result = await update_task("t-1", payload, staff_user, user_directory, task_store)

    assert result.version == 1
    assert read_task_records(tmp_path) == before
