"""User directory - lookups by id and by manager, backed by Supabase or a JSON file."""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from taskboard.models.user import Role, UserRef
from taskboard.services.supabase_client import SupabaseClient
from taskboard.utils.errors import StoreError, SupabaseError

logger = logging.getLogger(__name__)

# Demo directory written the first time the JSON directory is read
SEED_USERS = [
    {"id": "u-mgr", "name": "Morgan Manager", "role": "manager", "department": "Ops"},
    {"id": "u-stf-1", "name": "Sam Staff", "role": "staff", "department": "Ops", "managerId": "u-mgr"},
    {"id": "u-stf-2", "name": "Casey Staff", "role": "staff", "department": "Finance", "managerId": "u-mgr"},
    {"id": "u-stf-3", "name": "Alex Staff", "role": "staff", "department": "Design", "managerId": "u-mgr"},
    {"id": "u-stf-4", "name": "Pat Staff", "role": "staff", "department": "Ops", "managerId": "u-mgr"},
    {"id": "u-stf-5", "name": "Jamie Staff", "role": "staff", "department": "Ops", "managerId": "u-mgr"},
]


def row_to_user(row: dict) -> UserRef:
    """Map a users row (with optional roles(name) embed) to a UserRef."""
    embedded = row.get("roles")
    if isinstance(embedded, list):
        embedded = embedded[0] if embedded else None
    role_name = embedded.get("name") if isinstance(embedded, dict) else None

    role = (
        Role.from_code(role_name)
        or Role.from_code(row.get("role_id"))
        or Role.from_code(row.get("role"))
        or Role.STAFF
    )
    user_id = str(row["id"])
    manager_id = row.get("manager_id", row.get("managerId"))

    return UserRef(
        id=user_id,
        name=row.get("name") or row.get("username") or row.get("email") or f"User {user_id}",
        role=role,
        department=row.get("department"),
        manager_id=str(manager_id) if manager_id is not None else None,
    )


class UserDirectory:
    """Read-only view of the people who can own tasks."""

    async def get_user(self, user_id: str) -> Optional[UserRef]:
        raise NotImplementedError

    async def list_users(self) -> list[UserRef]:
        raise NotImplementedError

    async def get_users(self, user_ids: Iterable[str]) -> dict[str, UserRef]:
        """Users keyed by id; unknown ids are left out."""
        wanted = set(user_ids)
        return {u.id: u for u in await self.list_users() if u.id in wanted}

    async def subordinate_ids(self, manager_id: str) -> list[str]:
        """Ids of users whose manager is ``manager_id`` (direct reports only)."""
        return [u.id for u in await self.list_users() if u.manager_id == manager_id]


class SupabaseUserDirectory(UserDirectory):
    """Directory backed by the Supabase ``users`` table."""

    TABLE = "users"
    COLUMNS = "id, name, department, manager_id, role_id, roles(name)"

    async def get_user(self, user_id: str) -> Optional[UserRef]:
        if not user_id:
            return None
        async with SupabaseClient() as client:
            try:
                result = client.table(self.TABLE).select(self.COLUMNS).eq("id", user_id).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to get user: {e}", cause=e)
        return row_to_user(result.data[0]) if result.data else None

    async def list_users(self) -> list[UserRef]:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.TABLE).select(self.COLUMNS).order("id").execute()
            except Exception as e:
                raise SupabaseError(f"Failed to list users: {e}", cause=e)
        return [row_to_user(row) for row in result.data or []]

    async def get_users(self, user_ids: Iterable[str]) -> dict[str, UserRef]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        async with SupabaseClient() as client:
            try:
                result = client.table(self.TABLE).select(self.COLUMNS).in_("id", ids).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to get users: {e}", cause=e)
        users = [row_to_user(row) for row in result.data or []]
        return {u.id: u for u in users}

    async def subordinate_ids(self, manager_id: str) -> list[str]:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.TABLE).select("id").eq("manager_id", manager_id).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to get subordinates: {e}", cause=e)
        return [str(row["id"]) for row in result.data or []]


class JsonUserDirectory(UserDirectory):
    """Directory stored in ``<data_dir>/users.json``, seeded with demo users."""

    def __init__(self, data_dir: Path):
        self.path = Path(data_dir) / "users.json"

    def _ensure(self) -> None:
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(SEED_USERS, indent=2), encoding="utf-8")
        logger.info("Seeded user directory", extra={"path": str(self.path)})

    async def list_users(self) -> list[UserRef]:
        try:
            self._ensure()
            records = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Failed to read user directory: {e}", cause=e)
        return [row_to_user(record) for record in records]

    async def get_user(self, user_id: str) -> Optional[UserRef]:
        if not user_id:
            return None
        for user in await self.list_users():
            if user.id == user_id:
                return user
        return None
