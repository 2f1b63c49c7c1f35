"""Timer service - start/stop logic for running timers."""
import logging
from datetime import datetime
from typing import Callable, Optional

from timeledger.errors import NotFoundError
from timeledger.models.task import TaskInfo, TaskRef
from timeledger.models.time_entry import TimeEntry
from timeledger.services.reconciler import compute_duration
from timeledger.store.base import EntryQuery, TaskDirectory, TimeEntryStore
from timeledger.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


class TimerService:
    """Service owning the one-running-timer-per-user rule."""

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

    async def _stop_entry(self, entry: TimeEntry, now: datetime) -> Optional[TimeEntry]:
        """Close a running entry at ``now``; None if it was no longer running."""
        end_time = max(now, entry.start_time)
        duration = compute_duration(entry.start_time, end_time)
        return await self.store.close_running(entry.user_id, entry.id, end_time, duration)

    async def _rollback(self, user_id: str, stopped: list[TimeEntry]) -> None:
        for entry in stopped:
            try:
                await self.store.reopen(user_id, entry.id)
            except Exception:
                logger.exception(
                    "Failed to reopen time entry %s for user %s after aborted start",
                    entry.id, user_id,
                )

    async def start_timer(
        self,
        user_id: str,
        task_id: str,
        description: str = "",
    ) -> TimeEntry:
        """
        Start a new timer, stopping whatever timer the user had running.

        The stop and the insert happen under the user's lock. If either step
        fails, the entries already stopped are reopened before the error
        propagates.

        Args:
            user_id: User ID
            task_id: Task to track time against
            description: Optional description

        Returns:
            Created running time entry

        Raises:
            NotFoundError: If the task does not exist or belongs to someone else
            ConflictError: If another process started a timer concurrently
        """
        task = await self.tasks.get_task(user_id, task_id)
        if not task:
            raise NotFoundError("Task not found")

        async with self.store.user_lock(user_id):
            now = self.clock()

            entry_doc = {
                "user_id": user_id,
                "task_id": task_id,
                "description": description or "",
                "start_time": now,
                "end_time": None,
                "duration": None,
                "is_running": True,
                "created_at": now,
                "updated_at": now,
            }

            running = await self.store.find(EntryQuery(user_id=user_id, is_running=True))
            stopped = []
            try:
                for entry in running:
                    closed = await self._stop_entry(entry, now)
                    if closed:
                        stopped.append(closed)
                        logger.info(
                            "Superseded timer %s for user %s after %ss",
                            closed.id, user_id, closed.duration,
                        )

                created = await self.store.insert(entry_doc)
            except Exception:
                logger.warning(
                    "Starting timer for user %s failed, reopening %d stopped entries",
                    user_id, len(stopped),
                )
                await self._rollback(user_id, stopped)
                raise

        logger.info("Started timer %s for user %s on task %s", created.id, user_id, task_id)
        return self._attach_task(created, task)

    async def stop_timer(self, user_id: str, entry_id: str) -> TimeEntry:
        """
        Stop a running timer.

        Args:
            user_id: User ID
            entry_id: Running time entry ID

        Returns:
            Stopped time entry with end_time and duration

        Raises:
            NotFoundError: If no running entry with this ID belongs to the user
        """
        async with self.store.user_lock(user_id):
            entry = await self.store.get(user_id, entry_id)
            if not entry or not entry.is_running:
                raise NotFoundError("No active timer matching that id")

            stopped = await self._stop_entry(entry, self.clock())
            if not stopped:
                raise NotFoundError("No active timer matching that id")

        logger.info("Stopped timer %s for user %s after %ss", stopped.id, user_id, stopped.duration)
        task = await self.tasks.get_task(user_id, stopped.task_id)
        return self._attach_task(stopped, task)

    async def get_active_timer(self, user_id: str) -> Optional[TimeEntry]:
        """
        Get the currently running timer, if any.

        Args:
            user_id: User ID

        Returns:
            Running time entry with task context, or None
        """
        running = await self.store.find(EntryQuery(user_id=user_id, is_running=True), limit=1)
        if not running:
            return None

        entry = running[0]
        task = await self.tasks.get_task(user_id, entry.task_id)
        return self._attach_task(entry, task)

    def _attach_task(self, entry: TimeEntry, task: Optional[TaskInfo]) -> TimeEntry:
        if task is None:
            return entry
        return entry.model_copy(update={"task": TaskRef.from_task(task)})
