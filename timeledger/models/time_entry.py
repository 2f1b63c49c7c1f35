"""Time entry model definitions."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from timeledger.models.task import TaskRef


class TimeEntryBase(BaseModel):
    """Base time entry fields."""

    task_id: str
    description: str = ""
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None  # seconds
    is_running: bool = False


class TimeEntryCreate(BaseModel):
    """Manual time entry creation model.

    ``duration`` is ignored whenever both ``start_time`` and ``end_time``
    are given. Negative durations (and ``end_time`` before ``start_time``)
    are only accepted with ``allow_manual_adjustment``.
    """

    task_id: str = Field(min_length=1)
    description: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    allow_manual_adjustment: bool = False


class TimeEntryUpdate(BaseModel):
    """Time entry update model - all fields optional."""

    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    allow_manual_adjustment: bool = False

    def touches_timestamps(self) -> bool:
        return self.start_time is not None or self.end_time is not None


class TimerStart(BaseModel):
    """Request model for starting a timer."""

    description: str = ""


class TimeEntry(TimeEntryBase):
    """Full time entry model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    created_at: datetime
    updated_at: datetime
    task: Optional[TaskRef] = None

    model_config = {"populate_by_name": True}

    def elapsed_seconds(self, now: datetime) -> int:
        """Tracked seconds, counting live time for a running entry."""
        if self.is_running:
            return max(0, int((now - self.start_time).total_seconds()))
        return self.duration or 0


class TimeEntryFilters(BaseModel):
    """Filters for listing time entries."""

    task_id: Optional[str] = None
    project_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class Pagination(BaseModel):
    """Page selection for list endpoints."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class TaskTimeStats(BaseModel):
    """Aggregate tracked time for a single task."""

    total_time: int
    entries_count: int
    has_active_timer: bool
    active_timer: Optional[TimeEntry] = None
