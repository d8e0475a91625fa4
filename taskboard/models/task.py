"""Task models and request payloads."""

from datetime import date
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taskboard.models.user import UserRef

MAX_COLLABORATORS = 5


class Priority(str, Enum):
    """Task priority values."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Status(str, Enum):
    """Task status values."""
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    BLOCKED = "Blocked"
    ARCHIVED = "Archived"


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase keys; dumps camelCase with by_alias=True."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Comment(CamelModel):
    """Comment left on a task."""
    id: str = Field(..., description="Comment ID")
    author: UserRef = Field(..., description="Comment author")
    message: str = Field(..., description="Comment text")
    created_at: str = Field(..., description="ISO-8601 timestamp")


class Task(CamelModel):
    """Task shown on the timeline and the task table."""
    id: str = Field(..., description="Task ID (text)")
    title: str = Field(..., min_length=1, description="Task title")
    description: str = Field(default="", description="Task description")
    created_by: UserRef = Field(..., description="Creator")
    owned_by: UserRef = Field(..., description="Owner/assignee")
    collaborators: list[UserRef] = Field(default_factory=list, description="Collaborators (max 5)")
    start_date: Optional[date] = Field(None, description="Start date")
    end_date: Optional[date] = Field(None, description="End date (on/after start date)")
    parent_task_id: Optional[str] = Field(None, description="Parent task ID (no cycle checks)")
    tag: Optional[str] = Field(None, description="Single free-text tag")
    priority: Priority = Field(default=Priority.MEDIUM, description="Low, Medium or High")
    status: Status = Field(default=Status.TODO, description="Task status")
    comments: list[Comment] = Field(default_factory=list, description="Comments")
    version: int = Field(default=1, ge=1, description="Optimistic concurrency token")
    created_at: str = Field(..., description="ISO-8601 timestamp")
    updated_at: str = Field(..., description="ISO-8601 timestamp")

    def model_post_init(self, __context: Any) -> None:
        """Enforce date order and the collaborator cap."""
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on/after start_date")

        if len(self.collaborators) > MAX_COLLABORATORS:
            raise ValueError(f"collaborators cannot exceed {MAX_COLLABORATORS}")

        ids = [c.id for c in self.collaborators]
        if len(set(ids)) != len(ids):
            raise ValueError("collaborators must not contain duplicates")

    @property
    def collaborator_ids(self) -> list[str]:
        return [c.id for c in self.collaborators]

    def to_api(self) -> dict:
        """JSON-ready camelCase representation."""
        return self.model_dump(mode="json", by_alias=True)


class CreateTaskPayload(CamelModel):
    """POST /api/tasks body.

    Enumerations and dates are kept as strings so that bad values surface as
    validation messages rather than pydantic errors. The creator always comes
    from the verified caller.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    owned_by_id: Optional[str] = None
    collaborators_ids: Optional[list[str]] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    parent_task_id: Optional[str] = None
    tag: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None


class UpdateTaskPayload(CamelModel):
    """PUT /api/tasks/:id body; only fields present in the body are applied."""
    title: Optional[str] = None
    description: Optional[str] = None
    owned_by_id: Optional[str] = None
    collaborators_ids: Optional[list[str]] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    parent_task_id: Optional[str] = None
    tag: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
