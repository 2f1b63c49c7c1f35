"""In-process store backend for development and tests.

Documents are plain dicts shaped like the MongoDB documents, so both
backends share the same semantics, including the one-running-entry rule
that MongoDB enforces with a partial unique index.
"""
import uuid
from datetime import datetime
from typing import Optional

from timeledger.errors import ConflictError
from timeledger.models.task import ProjectInfo, TaskInfo
from timeledger.models.time_entry import TimeEntry
from timeledger.store.base import EntryQuery, TaskDirectory, TimeEntryStore
from timeledger.utils.timeutil import utcnow


class MemoryTimeEntryStore(TimeEntryStore):
    """Time entries held in a dict keyed by id."""

    def __init__(self):
        super().__init__()
        self.docs: dict[str, dict] = {}

    def _to_entry(self, doc: dict) -> TimeEntry:
        return TimeEntry(**doc)

    def _matches(self, doc: dict, query: EntryQuery) -> bool:
        if doc["user_id"] != query.user_id:
            return False
        if query.task_id and doc["task_id"] != query.task_id:
            return False
        if query.task_ids is not None and doc["task_id"] not in query.task_ids:
            return False
        if query.is_running is not None and doc["is_running"] != query.is_running:
            return False
        if query.start_from and doc["start_time"] < query.start_from:
            return False
        if query.start_to and doc["start_time"] > query.start_to:
            return False
        return True

    def _has_other_running(self, user_id: str, entry_id: Optional[str] = None) -> bool:
        return any(
            doc["user_id"] == user_id and doc["is_running"] and doc["_id"] != entry_id
            for doc in self.docs.values()
        )

    def _owned(self, user_id: str, entry_id: str) -> Optional[dict]:
        doc = self.docs.get(entry_id)
        if doc is None or doc["user_id"] != user_id:
            return None
        return doc

    async def insert(self, entry_doc: dict) -> TimeEntry:
        doc = {
            "description": "",
            "end_time": None,
            "duration": None,
            "is_running": False,
            **entry_doc,
        }
        if doc["is_running"] and self._has_other_running(doc["user_id"]):
            raise ConflictError("Another timer is already running")
        doc["_id"] = uuid.uuid4().hex
        self.docs[doc["_id"]] = doc
        return self._to_entry(doc)

    async def get(self, user_id: str, entry_id: str) -> Optional[TimeEntry]:
        doc = self._owned(user_id, entry_id)
        return self._to_entry(doc) if doc else None

    async def find(
        self,
        query: EntryQuery,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[TimeEntry]:
        docs = sorted(
            (doc for doc in self.docs.values() if self._matches(doc, query)),
            key=lambda doc: doc["start_time"],
            reverse=True,
        )
        docs = docs[skip:]
        if limit:
            docs = docs[:limit]
        return [self._to_entry(doc) for doc in docs]

    async def count(self, query: EntryQuery) -> int:
        return sum(1 for doc in self.docs.values() if self._matches(doc, query))

    async def update(
        self,
        user_id: str,
        entry_id: str,
        fields: dict,
    ) -> Optional[TimeEntry]:
        doc = self._owned(user_id, entry_id)
        if doc is None:
            return None
        doc.update(fields)
        doc["updated_at"] = utcnow()
        return self._to_entry(doc)

    async def close_running(
        self,
        user_id: str,
        entry_id: str,
        end_time: datetime,
        duration: int,
    ) -> Optional[TimeEntry]:
        doc = self._owned(user_id, entry_id)
        if doc is None or not doc["is_running"]:
            return None
        doc.update({
            "end_time": end_time,
            "duration": duration,
            "is_running": False,
            "updated_at": utcnow(),
        })
        return self._to_entry(doc)

    async def reopen(self, user_id: str, entry_id: str) -> Optional[TimeEntry]:
        doc = self._owned(user_id, entry_id)
        if doc is None or doc["is_running"]:
            return None
        if self._has_other_running(user_id, entry_id):
            raise ConflictError("Another timer is already running")
        doc.update({
            "end_time": None,
            "duration": None,
            "is_running": True,
            "updated_at": utcnow(),
        })
        return self._to_entry(doc)

    async def delete(self, user_id: str, entry_id: str) -> bool:
        if self._owned(user_id, entry_id) is None:
            return False
        del self.docs[entry_id]
        return True

    async def find_unreconciled(self, limit: int) -> list[TimeEntry]:
        docs = [
            doc for doc in self.docs.values()
            if doc["end_time"] is not None
            and doc["duration"] is None
            and doc["end_time"] >= doc["start_time"]
        ]
        return [self._to_entry(doc) for doc in docs[:limit]]

    async def set_reconciled_duration(self, entry_id: str, duration: int) -> bool:
        doc = self.docs.get(entry_id)
        if doc is None or doc["duration"] is not None:
            return False
        doc.update({
            "duration": duration,
            "is_running": False,
            "updated_at": utcnow(),
        })
        return True


class MemoryTaskDirectory(TaskDirectory):
    """Tasks and projects registered in-process with ``add_project``/``add_task``."""

    def __init__(self):
        self.projects: dict[str, ProjectInfo] = {}
        self.tasks: dict[str, TaskInfo] = {}

    def add_project(self, user_id: str, name: str, **fields) -> ProjectInfo:
        now = utcnow()
        project = ProjectInfo(
            _id=fields.pop("id", uuid.uuid4().hex),
            user_id=user_id,
            name=name,
            created_at=fields.pop("created_at", now),
            updated_at=fields.pop("updated_at", now),
            **fields,
        )
        self.projects[project.id] = project
        return project

    def add_task(self, user_id: str, title: str, **fields) -> TaskInfo:
        task = TaskInfo(
            _id=fields.pop("id", uuid.uuid4().hex),
            user_id=user_id,
            title=title,
            created_at=fields.pop("created_at", utcnow()),
            **fields,
        )
        self.tasks[task.id] = task
        return task

    def _with_project(self, task: TaskInfo) -> TaskInfo:
        project = self.projects.get(task.project_id) if task.project_id else None
        if project is not None and project.user_id != task.user_id:
            project = None
        return task.model_copy(update={"project": project})

    async def get_task(self, user_id: str, task_id: str) -> Optional[TaskInfo]:
        task = self.tasks.get(task_id)
        if task is None or task.user_id != user_id:
            return None
        return self._with_project(task)

    async def get_tasks(self, user_id: str, task_ids: list[str]) -> dict[str, TaskInfo]:
        found = {}
        for task_id in set(task_ids):
            task = await self.get_task(user_id, task_id)
            if task is not None:
                found[task_id] = task
        return found

    async def list_tasks(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        include_archived: bool = False,
    ) -> list[TaskInfo]:
        tasks = [
            self._with_project(task)
            for task in self.tasks.values()
            if task.user_id == user_id
            and (project_id is None or task.project_id == project_id)
            and (include_archived or not task.archived)
        ]
        return sorted(tasks, key=lambda task: task.created_at, reverse=True)

    async def list_projects(
        self,
        user_id: str,
        include_archived: bool = False,
    ) -> list[ProjectInfo]:
        return [
            project for project in self.projects.values()
            if project.user_id == user_id and (include_archived or not project.archived)
        ]
