"""Task filter criteria used by the task table and the tasks endpoint."""

from enum import Enum
from typing import Mapping
from pydantic import BaseModel, Field

# Values that mean "no constraint"
UNCONSTRAINED = ("", "all")


class DeadlineWindow(str, Enum):
    """Named end-date windows, relative to today."""
    OVERDUE = "overdue"
    TODAY = "today"
    THIS_WEEK = "this-week"
    NEXT_WEEK = "next-week"
    THIS_MONTH = "this-month"


class TaskFilters(BaseModel):
    """Declarative filter set; every active criterion must match (AND)."""
    search: str = Field(default="", description="Case-insensitive title substring")
    status: str = Field(default="all", description="Exact status value")
    priority: str = Field(default="all", description="Exact priority value")
    project: str = Field(default="all", description="Exact project name")
    assignee: str = Field(default="all", description="Owner or collaborator display name")
    tag: str = Field(default="all", description="Exact tag")
    deadline: str = Field(default="all", description="Deadline window name")

    @staticmethod
    def is_active(value: str) -> bool:
        return value not in UNCONSTRAINED

    def active_filters(self) -> dict[str, str]:
        """Criteria that currently constrain the result."""
        return {
            name: value
            for name, value in self.model_dump().items()
            if self.is_active(value)
        }

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "TaskFilters":
        """Build filters from query-string parameters, ignoring unknown keys."""
        values = {
            name: str(query[name]).strip()
            for name in cls.model_fields
            if query.get(name) is not None
        }
        return cls(**values)
