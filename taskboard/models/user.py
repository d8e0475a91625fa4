"""User model - people who create, own and collaborate on tasks."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    """Directory roles."""
    MANAGER = "manager"
    STAFF = "staff"

    @classmethod
    def from_code(cls, code: Optional[str]) -> Optional["Role"]:
        """Map a role name or legacy numeric role id to a Role, None if unrecognized."""
        normalized = str(code or "").strip().lower()
        return _ROLE_CODES.get(normalized)


# Legacy role ids from the users.role_id column
_ROLE_CODES = {
    "manager": Role.MANAGER,
    "2": Role.MANAGER,
    "staff": Role.STAFF,
    "3": Role.STAFF,
}


class UserRef(BaseModel):
    """Directory entry embedded in tasks as creator, owner and collaborators."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1, description="User ID")
    name: str = Field(..., description="Display name")
    role: Role = Field(default=Role.STAFF, description="Role: manager or staff")
    department: Optional[str] = Field(None, description="Department name")
    manager_id: Optional[str] = Field(None, description="Direct manager's user ID")

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER
