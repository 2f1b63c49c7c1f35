"""Abstract store interfaces.

``TimeEntryStore`` owns the time entry ledger. ``TaskDirectory`` is a
read-only view over tasks and projects owned by other services.
"""
import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Optional

from timeledger.models.task import ProjectInfo, TaskInfo
from timeledger.models.time_entry import TimeEntry


@dataclass
class EntryQuery:
    """Filter over one user's time entries. ``None`` fields are not applied."""

    user_id: str
    task_id: Optional[str] = None
    task_ids: Optional[list[str]] = None
    start_from: Optional[datetime] = None
    start_to: Optional[datetime] = None
    is_running: Optional[bool] = None


class UserLocks:
    """
    Per-user ``asyncio.Lock`` registry.

    A user's lock is dropped once nobody holds or waits on it.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._users[user_id] = self._users.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[user_id] -= 1
            if not self._users[user_id]:
                del self._users[user_id]
                del self._locks[user_id]


class TimeEntryStore(ABC):
    """Time entry ledger."""

    def __init__(self):
        self.locks = UserLocks()

    def user_lock(self, user_id: str):
        """Mutual-exclusion token for timer transitions of one user."""
        return self.locks.hold(user_id)

    async def ensure_indexes(self) -> None:
        """Create backend indexes. No-op by default."""

    @abstractmethod
    async def insert(self, entry_doc: dict) -> TimeEntry:
        """
        Insert a new entry.

        Raises:
            ConflictError: If the entry is running and the user already has
                a running entry
            StoreError: If the backend fails to write the entry
        """

    @abstractmethod
    async def get(self, user_id: str, entry_id: str) -> Optional[TimeEntry]:
        """Entry by id, or None when missing or owned by someone else."""

    @abstractmethod
    async def find(
        self,
        query: EntryQuery,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[TimeEntry]:
        """Entries matching ``query``, newest ``start_time`` first."""

    @abstractmethod
    async def count(self, query: EntryQuery) -> int:
        """Number of entries matching ``query``."""

    @abstractmethod
    async def update(
        self,
        user_id: str,
        entry_id: str,
        fields: dict,
    ) -> Optional[TimeEntry]:
        """Set ``fields`` on an owned entry; None when it does not exist."""

    @abstractmethod
    async def close_running(
        self,
        user_id: str,
        entry_id: str,
        end_time: datetime,
        duration: int,
    ) -> Optional[TimeEntry]:
        """
        Stop an entry only if it is still running.

        Returns:
            The stopped entry, or None when no running entry matched
        """

    @abstractmethod
    async def reopen(self, user_id: str, entry_id: str) -> Optional[TimeEntry]:
        """Undo ``close_running``: mark the entry running again and clear its end."""

    @abstractmethod
    async def delete(self, user_id: str, entry_id: str) -> bool:
        """Delete an owned entry; False when nothing was deleted."""

    @abstractmethod
    async def find_unreconciled(self, limit: int) -> list[TimeEntry]:
        """
        Entries across all users with ``end_time`` set and ``duration`` missing.

        Entries whose end is before their start are left out, so they never
        take up a batch slot that a repairable entry could use.
        """

    @abstractmethod
    async def set_reconciled_duration(
        self,
        entry_id: str,
        duration: int,
    ) -> bool:
        """Fill in a missing duration and clear ``is_running``; False if already filled."""


class TaskDirectory(ABC):
    """Read-only lookup of tasks and projects."""

    @abstractmethod
    async def get_task(self, user_id: str, task_id: str) -> Optional[TaskInfo]:
        """Task with its project, or None when missing or not owned."""

    @abstractmethod
    async def get_tasks(
        self,
        user_id: str,
        task_ids: list[str],
    ) -> dict[str, TaskInfo]:
        """Owned tasks (with projects) keyed by id; unknown ids are omitted."""

    @abstractmethod
    async def list_tasks(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        include_archived: bool = False,
    ) -> list[TaskInfo]:
        """Tasks of a user, optionally restricted to one project, newest first."""

    @abstractmethod
    async def list_projects(
        self,
        user_id: str,
        include_archived: bool = False,
    ) -> list[ProjectInfo]:
        """Projects of a user."""
