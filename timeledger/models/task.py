"""Task and project lookup models.

Tasks and projects are owned by other services; the time tracker only
reads them.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Task workflow states."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TaskPriority(str, Enum):
    """Task priorities."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ProjectInfo(BaseModel):
    """Project fields the time tracker needs."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    name: str
    description: str = ""
    color: str = "#3B82F6"
    archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"populate_by_name": True}


class TaskInfo(BaseModel):
    """Task fields the time tracker needs."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    project_id: Optional[str] = None
    project: Optional[ProjectInfo] = None
    archived: bool = False
    created_at: datetime

    model_config = {"populate_by_name": True}

    def is_overdue(self, now: datetime) -> bool:
        """Due before ``now`` and not completed."""
        return (
            self.due_date is not None
            and self.due_date < now
            and self.status != TaskStatus.COMPLETED
        )


class ProjectRef(BaseModel):
    """Project context attached to a time entry for display."""

    id: str
    name: str
    color: str


class TaskRef(BaseModel):
    """Task context attached to a time entry for display."""

    id: str
    title: str
    status: TaskStatus
    priority: TaskPriority
    project: Optional[ProjectRef] = None

    @classmethod
    def from_task(cls, task: TaskInfo) -> "TaskRef":
        project = None
        if task.project is not None:
            project = ProjectRef(
                id=task.project.id,
                name=task.project.name,
                color=task.project.color,
            )
        return cls(
            id=task.id,
            title=task.title,
            status=task.status,
            priority=task.priority,
            project=project,
        )
