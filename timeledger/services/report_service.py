"""Report service - flat, localized tables for export renderers.

Projections only build rows; encoding to CSV/PDF happens in
``timeledger.utils.export`` at the HTTP edge.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from timeledger.models.analytics import AnalyticsWindow, GroupBy, TimeSeries
from timeledger.models.task import TaskInfo
from timeledger.models.time_entry import TimeEntry
from timeledger.services.analytics_service import AnalyticsService, project_name
from timeledger.store.base import EntryQuery, TaskDirectory, TimeEntryStore
from timeledger.utils.i18n import DEFAULT_LOCALE, format_date, format_time, t
from timeledger.utils.timeutil import utcnow


@dataclass
class ReportTable:
    """A header row, data rows and optional summary lines."""

    title: str
    header: list[str]
    rows: list[list] = field(default_factory=list)
    summary: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class TaskTotals:
    """A task with its tracked time."""

    task: TaskInfo
    total_time: int
    entries_count: int


def minutes(seconds: int) -> int:
    """Seconds rounded to whole minutes."""
    return round(seconds / 60)


def project_tasks(items: list[TaskTotals], locale: str = DEFAULT_LOCALE) -> ReportTable:
    """One row per task with status/priority labels and localized dates."""
    table = ReportTable(
        title=t("tasks_report", locale),
        header=[
            t("col_title", locale),
            t("col_status", locale),
            t("col_priority", locale),
            t("col_project", locale),
            t("col_created", locale),
            t("col_due", locale),
            t("col_total_minutes", locale),
            t("col_entries", locale),
            t("col_description", locale),
        ],
    )
    for item in items:
        task = item.task
        table.rows.append([
            task.title,
            t(task.status.value, locale),
            t(task.priority.value, locale),
            project_name(task, locale),
            format_date(task.created_at, locale),
            format_date(task.due_date, locale) if task.due_date else t("not_set", locale),
            minutes(item.total_time),
            item.entries_count,
            task.description,
        ])
    return table


def project_time_series(series: TimeSeries, locale: str = DEFAULT_LOCALE) -> ReportTable:
    """One row per bucket."""
    summary = series.summary
    table = ReportTable(
        title=t("time_series_report", locale),
        header=[t("col_period", locale), t("col_total_minutes", locale), t("col_tasks", locale)],
        summary=[
            (t("period", locale), f"{format_date(summary.start, locale)} - {format_date(summary.end, locale)}"),
            (t("total_minutes", locale), str(minutes(summary.total_time))),
            (t("col_tasks", locale), str(summary.total_tasks)),
        ],
    )
    for bucket in series.time_data:
        table.rows.append([bucket.period, minutes(bucket.total_time), bucket.tasks_count])
    return table


def project_time_entries(
    entries: list[TimeEntry],
    tasks: dict[str, TaskInfo],
    window: AnalyticsWindow,
    locale: str = DEFAULT_LOCALE,
) -> ReportTable:
    """One row per entry, with overall totals in the summary."""
    total_time = sum(entry.duration or 0 for entry in entries)
    average = minutes(total_time // len(entries)) if entries else 0

    table = ReportTable(
        title=t("time_report", locale),
        header=[
            t("col_date", locale),
            t("col_start", locale),
            t("col_end", locale),
            t("col_minutes", locale),
            t("col_task", locale),
            t("col_project", locale),
            t("col_description", locale),
        ],
        summary=[
            (t("period", locale), f"{format_date(window.start, locale)} - {format_date(window.end, locale)}"),
            (t("total_minutes", locale), str(minutes(total_time))),
            (t("entries_count", locale), str(len(entries))),
            (t("avg_minutes", locale), str(average)),
        ],
    )
    for entry in entries:
        task = tasks.get(entry.task_id)
        table.rows.append([
            format_date(entry.start_time, locale),
            format_time(entry.start_time, locale),
            format_time(entry.end_time, locale) if entry.end_time else t("active", locale),
            minutes(entry.duration or 0),
            task.title if task else entry.task_id,
            project_name(task, locale),
            entry.description,
        ])
    return table


class ReportService:
    """Fetches report data and hands it to the projections."""

    def __init__(
        self,
        store: TimeEntryStore,
        tasks: TaskDirectory,
        clock: Callable[[], datetime] = utcnow,
        locale: str = DEFAULT_LOCALE,
    ):
        self.store = store
        self.tasks = tasks
        self.clock = clock
        self.locale = locale
        self.analytics = AnalyticsService(store, tasks, clock=clock, locale=locale)

    async def task_table(
        self,
        user_id: str,
        window: AnalyticsWindow,
        project_id: Optional[str] = None,
    ) -> ReportTable:
        """Active tasks with time tracked inside the window."""
        tasks = await self.tasks.list_tasks(user_id, project_id=project_id)
        entries = await self.store.find(EntryQuery(
            user_id=user_id,
            task_ids=[task.id for task in tasks],
            start_from=window.start,
            start_to=window.end,
        ))

        total_time = defaultdict(int)
        entries_count = defaultdict(int)
        for entry in entries:
            total_time[entry.task_id] += entry.duration or 0
            entries_count[entry.task_id] += 1

        items = [
            TaskTotals(task=task, total_time=total_time[task.id], entries_count=entries_count[task.id])
            for task in tasks
        ]
        return project_tasks(items, self.locale)

    async def time_series_table(
        self,
        user_id: str,
        window: AnalyticsWindow,
        project_id: Optional[str] = None,
        group_by: GroupBy = GroupBy.DAY,
    ) -> ReportTable:
        series = await self.analytics.time_series(user_id, window, project_id, group_by)
        return project_time_series(series, self.locale)

    async def time_entry_table(
        self,
        user_id: str,
        window: AnalyticsWindow,
        project_id: Optional[str] = None,
    ) -> ReportTable:
        """Entries inside the window, newest first."""
        entries = await self.analytics.window_entries(user_id, window, project_id)
        tasks = await self.tasks.get_tasks(user_id, [entry.task_id for entry in entries])
        return project_time_entries(entries, tasks, window, self.locale)
