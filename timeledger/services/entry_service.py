"""Entry service - manual time entries, listing and per-task statistics."""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from timeledger.errors import EntryValidationError, NotFoundError
from timeledger.models.task import TaskRef
from timeledger.models.time_entry import (
    Pagination,
    TaskTimeStats,
    TimeEntry,
    TimeEntryCreate,
    TimeEntryFilters,
    TimeEntryUpdate,
)
from timeledger.services.reconciler import compute_duration
from timeledger.store.base import EntryQuery, TaskDirectory, TimeEntryStore
from timeledger.utils.timeutil import as_utc, utcnow

logger = logging.getLogger(__name__)


def _check_manual_duration(duration: Optional[int], allow_adjustment: bool) -> None:
    if duration is not None and duration < 0 and not allow_adjustment:
        raise EntryValidationError(
            "Negative durations require allow_manual_adjustment"
        )


class EntryService:
    """Service for explicitly entered time records."""

    def __init__(
        self,
        store: TimeEntryStore,
        tasks: TaskDirectory,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize service with the entry store and task lookup."""
        self.store = store
        self.tasks = tasks
        self.clock = clock

    async def _with_tasks(self, user_id: str, entries: list[TimeEntry]) -> list[TimeEntry]:
        """Attach task/project display context to entries."""
        tasks = await self.tasks.get_tasks(user_id, [entry.task_id for entry in entries])
        return [
            entry.model_copy(update={"task": TaskRef.from_task(tasks[entry.task_id])})
            if entry.task_id in tasks else entry
            for entry in entries
        ]

    async def create_entry(
        self,
        user_id: str,
        entry_create: TimeEntryCreate,
    ) -> TimeEntry:
        """
        Create a manual time entry.

        Args:
            user_id: User ID
            entry_create: Time entry creation data

        Returns:
            Created time entry

        Raises:
            NotFoundError: If the task doesn't exist or belongs to someone else
            EntryValidationError: If end is before start, or the duration is
                negative, without ``allow_manual_adjustment``
        """
        task = await self.tasks.get_task(user_id, entry_create.task_id)
        if not task:
            raise NotFoundError("Task not found")

        now = self.clock()
        start_time = as_utc(entry_create.start_time) or now
        end_time = as_utc(entry_create.end_time)

        # Timestamps win over a caller-supplied duration
        if end_time is not None:
            duration = compute_duration(
                start_time,
                end_time,
                allow_negative=entry_create.allow_manual_adjustment,
            )
        else:
            duration = entry_create.duration
            _check_manual_duration(duration, entry_create.allow_manual_adjustment)

        entry_doc = {
            "user_id": user_id,
            "task_id": entry_create.task_id,
            "description": entry_create.description,
            "start_time": start_time,
            "end_time": end_time,
            "duration": duration,
            "is_running": False,
            "created_at": now,
            "updated_at": now,
        }

        created = await self.store.insert(entry_doc)
        logger.info("Created manual time entry %s for user %s (%ss)", created.id, user_id, duration)
        return created.model_copy(update={"task": TaskRef.from_task(task)})

    async def update_entry(
        self,
        user_id: str,
        entry_id: str,
        entry_update: TimeEntryUpdate,
    ) -> TimeEntry:
        """
        Update a time entry.

        Touching either timestamp recomputes the duration from the resulting
        pair. Setting ``end_time`` on a running entry stops it. A bare
        ``duration`` on an entry with both timestamps moves its end time so
        the two stay consistent. On an entry without an end time, a patched
        ``duration`` is stored as given alongside any new ``start_time``.

        Args:
            user_id: User ID
            entry_id: Time entry ID
            entry_update: Update data

        Returns:
            Updated time entry

        Raises:
            NotFoundError: If entry not found
            EntryValidationError: If the patch is contradictory
        """
        allow_adjustment = entry_update.allow_manual_adjustment

        async with self.store.user_lock(user_id):
            existing = await self.store.get(user_id, entry_id)
            if not existing:
                raise NotFoundError("Time entry not found")

            update_doc = {}

            if entry_update.description is not None:
                update_doc["description"] = entry_update.description

            if entry_update.touches_timestamps():
                start_time = as_utc(entry_update.start_time) or existing.start_time
                end_time = as_utc(entry_update.end_time) or existing.end_time

                update_doc["start_time"] = start_time
                if end_time is not None:
                    update_doc["end_time"] = end_time
                    update_doc["duration"] = compute_duration(
                        start_time, end_time, allow_negative=allow_adjustment,
                    )
                    update_doc["is_running"] = False
                elif entry_update.duration is not None:
                    if existing.is_running:
                        raise EntryValidationError("Cannot set a duration on a running timer")
                    _check_manual_duration(entry_update.duration, allow_adjustment)
                    update_doc["duration"] = entry_update.duration

            elif entry_update.duration is not None:
                if existing.is_running:
                    raise EntryValidationError("Cannot set a duration on a running timer")
                _check_manual_duration(entry_update.duration, allow_adjustment)

                update_doc["duration"] = entry_update.duration
                if existing.end_time is not None:
                    update_doc["end_time"] = existing.start_time + timedelta(
                        seconds=entry_update.duration
                    )

            updated = await self.store.update(user_id, entry_id, update_doc)
            if not updated:
                raise NotFoundError("Time entry not found")

        if existing.is_running and not updated.is_running:
            logger.info("Time entry %s for user %s stopped via update", entry_id, user_id)

        entries = await self._with_tasks(user_id, [updated])
        return entries[0]

    async def delete_entry(
        self,
        user_id: str,
        entry_id: str,
    ) -> None:
        """
        Delete a time entry.

        Args:
            user_id: User ID
            entry_id: Time entry ID

        Raises:
            NotFoundError: If entry not found
        """
        deleted = await self.store.delete(user_id, entry_id)
        if not deleted:
            raise NotFoundError("Time entry not found")

        logger.info("Deleted time entry %s for user %s", entry_id, user_id)

    async def list_entries(
        self,
        user_id: str,
        filters: TimeEntryFilters,
        pagination: Pagination,
    ) -> tuple[list[TimeEntry], int]:
        """
        List time entries for a user with optional filtering.

        Args:
            user_id: User ID
            filters: Task, project and start-time filters
            pagination: Page and page size

        Returns:
            Tuple of (entries on this page, newest first; total matching entries)
        """
        query = EntryQuery(
            user_id=user_id,
            task_id=filters.task_id,
            start_from=as_utc(filters.date_from),
            start_to=as_utc(filters.date_to),
        )

        if filters.project_id:
            project_tasks = await self.tasks.list_tasks(
                user_id, project_id=filters.project_id, include_archived=True,
            )
            query.task_ids = [task.id for task in project_tasks]

        entries = await self.store.find(query, skip=pagination.skip, limit=pagination.limit)
        total = await self.store.count(query)

        return await self._with_tasks(user_id, entries), total

    async def task_stats(self, user_id: str, task_id: str) -> TaskTimeStats:
        """
        Total tracked time for one task, including a running timer's live time.

        Raises:
            NotFoundError: If the task doesn't exist or belongs to someone else
        """
        task = await self.tasks.get_task(user_id, task_id)
        if not task:
            raise NotFoundError("Task not found")

        entries = await self.store.find(EntryQuery(user_id=user_id, task_id=task_id))
        now = self.clock()

        active_timer = next((entry for entry in entries if entry.is_running), None)
        if active_timer is not None:
            active_timer = active_timer.model_copy(update={"task": TaskRef.from_task(task)})

        return TaskTimeStats(
            total_time=sum(entry.elapsed_seconds(now) for entry in entries),
            entries_count=len(entries),
            has_active_timer=active_timer is not None,
            active_timer=active_timer,
        )
