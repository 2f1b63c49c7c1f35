"""Analytics request and response models."""
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from timeledger.errors import EntryValidationError
from timeledger.models.task import TaskPriority, TaskStatus
from timeledger.utils.timeutil import as_utc


class GroupBy(str, Enum):
    """Bucketing rules for time series."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    PROJECT = "project"


class AnalyticsWindow(BaseModel):
    """Resolved ``[start, end]`` window for analytics queries."""

    start: datetime
    end: datetime

    @classmethod
    def resolve(
        cls,
        now: datetime,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        default_days: int = 30,
    ) -> "AnalyticsWindow":
        """Fill in missing bounds: ``end`` defaults to now, ``start`` to ``default_days`` before now."""
        window = cls(
            start=as_utc(start) if start else now - timedelta(days=default_days),
            end=as_utc(end) if end else now,
        )
        if window.start > window.end:
            raise EntryValidationError("Window start must not be after window end")
        return window

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()


class DashboardTotals(BaseModel):
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    overdue_tasks: int
    total_time_spent: int
    projects_count: int
    completion_rate: float


class DailyStat(BaseModel):
    date: date
    created: int
    completed: int


class PriorityStat(BaseModel):
    priority: TaskPriority
    count: int


class StatusStat(BaseModel):
    status: TaskStatus
    count: int


class ProjectTimeStat(BaseModel):
    project_name: str
    total_time: int
    tasks_count: int


class WeekdayStat(BaseModel):
    weekday: str
    total_time: int
    entries_count: int
    avg_time: float


class DashboardCharts(BaseModel):
    daily_stats: list[DailyStat]
    priority_stats: list[PriorityStat]
    status_stats: list[StatusStat]
    project_time_stats: list[ProjectTimeStat]
    weekday_stats: list[WeekdayStat]


class DashboardSummary(BaseModel):
    """Dashboard metrics for one user."""

    summary: DashboardTotals
    charts: DashboardCharts


class TimeBucket(BaseModel):
    """Tracked time for one grouping key."""

    period: str
    total_time: int
    tasks_count: int


class TimeSeriesSummary(BaseModel):
    total_time: int
    total_tasks: int
    start: date
    end: date
    group_by: GroupBy


class TimeSeries(BaseModel):
    """Bucketed tracked time over a window."""

    time_data: list[TimeBucket]
    summary: TimeSeriesSummary


class ProjectReportRow(BaseModel):
    id: str
    name: str
    description: str = ""
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    overdue_tasks: int
    total_time_spent: int
    time_entries_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectReportSummary(BaseModel):
    total_projects: int
    total_time: int
    total_tasks: int
    completed_tasks: int
    start: date
    end: date


class ProjectReport(BaseModel):
    """Per-project totals over a window."""

    projects: list[ProjectReportRow]
    summary: ProjectReportSummary
