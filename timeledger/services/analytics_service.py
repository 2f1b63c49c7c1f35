"""Analytics service - read-only rollups over the time entry ledger."""
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Callable, Optional

from timeledger.models.analytics import (
    AnalyticsWindow,
    DailyStat,
    DashboardCharts,
    DashboardSummary,
    DashboardTotals,
    GroupBy,
    PriorityStat,
    ProjectReport,
    ProjectReportRow,
    ProjectReportSummary,
    ProjectTimeStat,
    StatusStat,
    TimeBucket,
    TimeSeries,
    TimeSeriesSummary,
    WeekdayStat,
)
from timeledger.models.task import TaskInfo, TaskPriority, TaskStatus
from timeledger.models.time_entry import TimeEntry
from timeledger.store.base import EntryQuery, TaskDirectory, TimeEntryStore
from timeledger.utils.i18n import DEFAULT_LOCALE, t, weekday_labels
from timeledger.utils.timeutil import sunday_first_weekday, utcnow, week_of_year

DAILY_STATS_LIMIT = 30
TOP_PROJECTS_LIMIT = 10


def project_name(task: Optional[TaskInfo], locale: str = DEFAULT_LOCALE) -> str:
    """Display name of a task's project, or the "no project" label."""
    if task is not None and task.project is not None:
        return task.project.name
    return t("no_project", locale)


def bucket_key(
    entry: TimeEntry,
    group_by: GroupBy,
    task: Optional[TaskInfo] = None,
    locale: str = DEFAULT_LOCALE,
) -> str:
    """
    Grouping key of an entry.

    Examples:
        >>> from datetime import datetime
        >>> entry = TimeEntry(_id="e1", user_id="u", task_id="t",
        ...     start_time=datetime(2024, 1, 8, 9), created_at=datetime(2024, 1, 8),
        ...     updated_at=datetime(2024, 1, 8))
        >>> bucket_key(entry, GroupBy.DAY)
        '2024-01-08'
        >>> bucket_key(entry, GroupBy.WEEK)
        '2024-W02'
        >>> bucket_key(entry, GroupBy.MONTH)
        '2024-01'
    """
    start = entry.start_time
    if group_by == GroupBy.DAY:
        return start.strftime("%Y-%m-%d")
    if group_by == GroupBy.WEEK:
        return f"{start.year}-W{week_of_year(start.date()):02d}"
    if group_by == GroupBy.MONTH:
        return start.strftime("%Y-%m")
    return project_name(task, locale)


class AnalyticsService:
    """Dashboard, time series and project rollups for one user."""

    def __init__(
        self,
        store: TimeEntryStore,
        tasks: TaskDirectory,
        clock: Callable[[], datetime] = utcnow,
        locale: str = DEFAULT_LOCALE,
    ):
        """Initialize service with the entry store and task lookup."""
        self.store = store
        self.tasks = tasks
        self.clock = clock
        self.locale = locale

    async def _entry_tasks(self, user_id: str, entries: list[TimeEntry]) -> dict[str, TaskInfo]:
        return await self.tasks.get_tasks(user_id, [entry.task_id for entry in entries])

    async def dashboard_summary(self, user_id: str, period_days: int = 30) -> DashboardSummary:
        """
        Dashboard metrics over the last ``period_days`` days.

        ``total_time_spent`` includes the live elapsed time of a running
        timer; every other figure counts stored durations only.

        Args:
            user_id: User ID
            period_days: Window length in days, ending now

        Returns:
            Totals and chart series
        """
        now = self.clock()
        window_start = now - timedelta(days=period_days)

        tasks = await self.tasks.list_tasks(user_id)
        projects = await self.tasks.list_projects(user_id)
        entries = await self.store.find(EntryQuery(user_id=user_id, start_from=window_start))
        entry_tasks = await self._entry_tasks(user_id, entries)

        total_tasks = len(tasks)
        completed_tasks = sum(1 for task in tasks if task.status == TaskStatus.COMPLETED)

        totals = DashboardTotals(
            total_tasks=total_tasks,
            completed_tasks=completed_tasks,
            in_progress_tasks=sum(1 for task in tasks if task.status == TaskStatus.IN_PROGRESS),
            overdue_tasks=sum(1 for task in tasks if task.is_overdue(now)),
            total_time_spent=sum(entry.elapsed_seconds(now) for entry in entries),
            projects_count=len(projects),
            completion_rate=completed_tasks / total_tasks if total_tasks else 0.0,
        )

        charts = DashboardCharts(
            daily_stats=self._daily_stats(tasks, window_start),
            priority_stats=self._priority_stats(tasks),
            status_stats=self._status_stats(tasks),
            project_time_stats=self._project_time_stats(entries, entry_tasks),
            weekday_stats=self._weekday_stats(entries),
        )

        return DashboardSummary(summary=totals, charts=charts)

    def _daily_stats(self, tasks: list[TaskInfo], window_start: datetime) -> list[DailyStat]:
        created = Counter()
        completed = Counter()
        for task in tasks:
            if task.created_at < window_start:
                continue
            day = task.created_at.date()
            created[day] += 1
            if task.status == TaskStatus.COMPLETED:
                completed[day] += 1

        days = sorted(created)[:DAILY_STATS_LIMIT]
        return [DailyStat(date=day, created=created[day], completed=completed[day]) for day in days]

    def _priority_stats(self, tasks: list[TaskInfo]) -> list[PriorityStat]:
        counts = Counter(task.priority for task in tasks)
        return [
            PriorityStat(priority=priority, count=counts[priority])
            for priority in TaskPriority if counts[priority]
        ]

    def _status_stats(self, tasks: list[TaskInfo]) -> list[StatusStat]:
        counts = Counter(task.status for task in tasks)
        return [
            StatusStat(status=status, count=counts[status])
            for status in TaskStatus if counts[status]
        ]

    def _project_time_stats(
        self,
        entries: list[TimeEntry],
        entry_tasks: dict[str, TaskInfo],
    ) -> list[ProjectTimeStat]:
        total_time = defaultdict(int)
        task_ids = defaultdict(set)
        for entry in entries:
            name = project_name(entry_tasks.get(entry.task_id), self.locale)
            total_time[name] += entry.duration or 0
            task_ids[name].add(entry.task_id)

        stats = [
            ProjectTimeStat(project_name=name, total_time=total_time[name], tasks_count=len(task_ids[name]))
            for name in total_time
        ]
        stats.sort(key=lambda stat: stat.total_time, reverse=True)
        return stats[:TOP_PROJECTS_LIMIT]

    def _weekday_stats(self, entries: list[TimeEntry]) -> list[WeekdayStat]:
        total_time = [0] * 7
        entries_count = [0] * 7
        for entry in entries:
            index = sunday_first_weekday(entry.start_time.date())
            total_time[index] += entry.duration or 0
            entries_count[index] += 1

        return [
            WeekdayStat(
                weekday=label,
                total_time=total_time[index],
                entries_count=entries_count[index],
                avg_time=total_time[index] / entries_count[index] if entries_count[index] else 0.0,
            )
            for index, label in enumerate(weekday_labels(self.locale))
        ]

    async def window_entries(
        self,
        user_id: str,
        window: AnalyticsWindow,
        project_id: Optional[str] = None,
    ) -> list[TimeEntry]:
        """Entries started inside the window, optionally limited to one project."""
        query = EntryQuery(user_id=user_id, start_from=window.start, start_to=window.end)
        if project_id:
            project_tasks = await self.tasks.list_tasks(
                user_id, project_id=project_id, include_archived=True,
            )
            query.task_ids = [task.id for task in project_tasks]
        return await self.store.find(query)

    async def time_series(
        self,
        user_id: str,
        window: AnalyticsWindow,
        project_id: Optional[str] = None,
        group_by: GroupBy = GroupBy.DAY,
    ) -> TimeSeries:
        """
        Bucket tracked time over a window.

        Buckets are sorted by key, except project buckets, which are sorted
        by total time descending. Running entries contribute no time.

        Args:
            user_id: User ID
            window: Start-time window
            project_id: Optional project filter
            group_by: Bucketing rule

        Returns:
            Buckets and a summary with the echoed window
        """
        entries = await self.window_entries(user_id, window, project_id)

        entry_tasks = {}
        if group_by == GroupBy.PROJECT:
            entry_tasks = await self._entry_tasks(user_id, entries)

        total_time = defaultdict(int)
        task_ids = defaultdict(set)
        for entry in entries:
            key = bucket_key(entry, group_by, entry_tasks.get(entry.task_id), self.locale)
            total_time[key] += entry.duration or 0
            task_ids[key].add(entry.task_id)

        buckets = [
            TimeBucket(period=key, total_time=total_time[key], tasks_count=len(task_ids[key]))
            for key in total_time
        ]
        if group_by == GroupBy.PROJECT:
            buckets.sort(key=lambda bucket: bucket.total_time, reverse=True)
        else:
            buckets.sort(key=lambda bucket: bucket.period)

        summary = TimeSeriesSummary(
            total_time=sum(bucket.total_time for bucket in buckets),
            total_tasks=len({entry.task_id for entry in entries}),
            start=window.start_date,
            end=window.end_date,
            group_by=group_by,
        )
        return TimeSeries(time_data=buckets, summary=summary)

    async def project_report(self, user_id: str, window: AnalyticsWindow) -> ProjectReport:
        """
        Per-project task counts and tracked time over a window.

        Args:
            user_id: User ID
            window: Start-time window for tracked time

        Returns:
            Active projects sorted by tracked time descending, plus totals
        """
        now = self.clock()
        projects = await self.tasks.list_projects(user_id)
        tasks = await self.tasks.list_tasks(user_id)
        entries = await self.window_entries(user_id, window)

        tasks_by_project = defaultdict(list)
        for task in tasks:
            if task.project_id:
                tasks_by_project[task.project_id].append(task)

        entries_by_task = defaultdict(list)
        for entry in entries:
            entries_by_task[entry.task_id].append(entry)

        rows = []
        for project in projects:
            project_tasks = tasks_by_project[project.id]
            project_entries = [
                entry for task in project_tasks for entry in entries_by_task[task.id]
            ]
            rows.append(ProjectReportRow(
                id=project.id,
                name=project.name,
                description=project.description,
                total_tasks=len(project_tasks),
                completed_tasks=sum(1 for task in project_tasks if task.status == TaskStatus.COMPLETED),
                in_progress_tasks=sum(1 for task in project_tasks if task.status == TaskStatus.IN_PROGRESS),
                overdue_tasks=sum(1 for task in project_tasks if task.is_overdue(now)),
                total_time_spent=sum(entry.duration or 0 for entry in project_entries),
                time_entries_count=len(project_entries),
                created_at=project.created_at,
                updated_at=project.updated_at,
            ))

        rows.sort(key=lambda row: row.total_time_spent, reverse=True)

        summary = ProjectReportSummary(
            total_projects=len(rows),
            total_time=sum(row.total_time_spent for row in rows),
            total_tasks=sum(row.total_tasks for row in rows),
            completed_tasks=sum(row.completed_tasks for row in rows),
            start=window.start_date,
            end=window.end_date,
        )
        return ProjectReport(projects=rows, summary=summary)
