"""MongoDB (Motor) implementations of the store interfaces."""
import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from timeledger.errors import ConflictError, StoreError
from timeledger.models.task import ProjectInfo, TaskInfo
from timeledger.models.time_entry import TimeEntry
from timeledger.store.base import EntryQuery, TaskDirectory, TimeEntryStore
from timeledger.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

RUNNING_INDEX_NAME = "one_running_timer_per_user"


def _object_id(value: str) -> Optional[ObjectId]:
    """Parse an id, returning None for malformed input."""
    if not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


class MongoTimeEntryStore(TimeEntryStore):
    """Time entries in the ``time_entries`` collection."""

    def __init__(self, db):
        """Initialize store with database connection."""
        super().__init__()
        self.db = db
        self.time_entries = db["time_entries"]

    def _doc_to_entry(self, doc: dict) -> TimeEntry:
        """
        Convert database document to TimeEntry model.
        """
        return TimeEntry(
            _id=str(doc["_id"]),
            user_id=doc["user_id"],
            task_id=doc["task_id"],
            description=doc.get("description", ""),
            start_time=doc["start_time"],
            end_time=doc.get("end_time"),
            duration=doc.get("duration"),
            is_running=doc.get("is_running", False),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    def _build_query(self, query: EntryQuery) -> dict:
        mongo_query = {
            "user_id": query.user_id,
        }

        if query.task_id:
            mongo_query["task_id"] = query.task_id
        if query.task_ids is not None:
            mongo_query["task_id"] = {"$in": query.task_ids}
            if query.task_id:
                mongo_query["task_id"]["$eq"] = query.task_id
        if query.is_running is not None:
            mongo_query["is_running"] = query.is_running

        if query.start_from or query.start_to:
            mongo_query["start_time"] = {}
            if query.start_from:
                mongo_query["start_time"]["$gte"] = query.start_from
            if query.start_to:
                mongo_query["start_time"]["$lte"] = query.start_to

        return mongo_query

    async def ensure_indexes(self) -> None:
        """
        Create the indexes the ledger relies on.

        The partial unique index admits at most one ``is_running: true``
        document per user, across every process sharing the database.
        """
        await self.time_entries.create_index(
            [("user_id", ASCENDING)],
            name=RUNNING_INDEX_NAME,
            unique=True,
            partialFilterExpression={"is_running": True},
        )
        await self.time_entries.create_index(
            [("user_id", ASCENDING), ("start_time", DESCENDING)],
        )
        logger.info("Time entry indexes ensured")

    async def insert(self, entry_doc: dict) -> TimeEntry:
        doc = dict(entry_doc)
        try:
            result = await self.time_entries.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("Another timer is already running")
        except PyMongoError as exc:
            logger.error("Failed to insert time entry for user %s: %s", doc.get("user_id"), exc)
            raise StoreError("Failed to store time entry") from exc
        doc["_id"] = result.inserted_id
        return self._doc_to_entry(doc)

    async def get(self, user_id: str, entry_id: str) -> Optional[TimeEntry]:
        object_id = _object_id(entry_id)
        if object_id is None:
            return None

        doc = await self.time_entries.find_one({
            "_id": object_id,
            "user_id": user_id,
        })
        return self._doc_to_entry(doc) if doc else None

    async def find(
        self,
        query: EntryQuery,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[TimeEntry]:
        cursor = self.time_entries.find(self._build_query(query)).sort("start_time", -1)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        entry_docs = await cursor.to_list(length=None)
        return [self._doc_to_entry(doc) for doc in entry_docs]

    async def count(self, query: EntryQuery) -> int:
        return await self.time_entries.count_documents(self._build_query(query))

    async def update(
        self,
        user_id: str,
        entry_id: str,
        fields: dict,
    ) -> Optional[TimeEntry]:
        object_id = _object_id(entry_id)
        if object_id is None:
            return None

        update_doc = dict(fields)
        update_doc["updated_at"] = utcnow()

        updated_doc = await self.time_entries.find_one_and_update(
            {"_id": object_id, "user_id": user_id},
            {"$set": update_doc},
            return_document=True,
        )
        return self._doc_to_entry(updated_doc) if updated_doc else None

    async def close_running(
        self,
        user_id: str,
        entry_id: str,
        end_time: datetime,
        duration: int,
    ) -> Optional[TimeEntry]:
        object_id = _object_id(entry_id)
        if object_id is None:
            return None

        updated_doc = await self.time_entries.find_one_and_update(
            {"_id": object_id, "user_id": user_id, "is_running": True},
            {"$set": {
                "end_time": end_time,
                "duration": duration,
                "is_running": False,
                "updated_at": utcnow(),
            }},
            return_document=True,
        )
        return self._doc_to_entry(updated_doc) if updated_doc else None

    async def reopen(self, user_id: str, entry_id: str) -> Optional[TimeEntry]:
        object_id = _object_id(entry_id)
        if object_id is None:
            return None

        try:
            updated_doc = await self.time_entries.find_one_and_update(
                {"_id": object_id, "user_id": user_id, "is_running": False},
                {"$set": {
                    "end_time": None,
                    "duration": None,
                    "is_running": True,
                    "updated_at": utcnow(),
                }},
                return_document=True,
            )
        except DuplicateKeyError:
            raise ConflictError("Another timer is already running")
        return self._doc_to_entry(updated_doc) if updated_doc else None

    async def delete(self, user_id: str, entry_id: str) -> bool:
        object_id = _object_id(entry_id)
        if object_id is None:
            return False

        result = await self.time_entries.delete_one({
            "_id": object_id,
            "user_id": user_id,
        })
        return result.deleted_count > 0

    async def find_unreconciled(self, limit: int) -> list[TimeEntry]:
        cursor = self.time_entries.find({
            "end_time": {"$ne": None},
            "duration": None,
            "$expr": {"$gte": ["$end_time", "$start_time"]},
        }).limit(limit)
        entry_docs = await cursor.to_list(length=None)
        return [self._doc_to_entry(doc) for doc in entry_docs]

    async def set_reconciled_duration(self, entry_id: str, duration: int) -> bool:
        object_id = _object_id(entry_id)
        if object_id is None:
            return False

        result = await self.time_entries.update_one(
            {"_id": object_id, "duration": None},
            {"$set": {
                "duration": duration,
                "is_running": False,
                "updated_at": utcnow(),
            }},
        )
        return result.modified_count > 0


class MongoTaskDirectory(TaskDirectory):
    """Read-only view over the ``tasks`` and ``projects`` collections."""

    def __init__(self, db):
        """Initialize directory with database connection."""
        self.db = db
        self.tasks = db["tasks"]
        self.projects = db["projects"]

    def _doc_to_project(self, doc: dict) -> ProjectInfo:
        return ProjectInfo(
            _id=str(doc["_id"]),
            user_id=doc["user_id"],
            name=doc["name"],
            description=doc.get("description") or "",
            color=doc.get("color") or "#3B82F6",
            archived=doc.get("archived", False),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    def _doc_to_task(self, doc: dict, project: Optional[ProjectInfo] = None) -> TaskInfo:
        return TaskInfo(
            _id=str(doc["_id"]),
            user_id=doc["user_id"],
            title=doc["title"],
            description=doc.get("description") or "",
            status=doc.get("status", "TODO"),
            priority=doc.get("priority", "MEDIUM"),
            due_date=doc.get("due_date"),
            project_id=doc.get("project_id"),
            project=project,
            archived=doc.get("archived", False),
            created_at=doc["created_at"],
        )

    async def _projects_by_id(self, user_id: str, project_ids: set[str]) -> dict[str, ProjectInfo]:
        object_ids = [oid for oid in (_object_id(pid) for pid in project_ids) if oid]
        if not object_ids:
            return {}
        cursor = self.projects.find({"_id": {"$in": object_ids}, "user_id": user_id})
        project_docs = await cursor.to_list(length=None)
        return {str(doc["_id"]): self._doc_to_project(doc) for doc in project_docs}

    async def _with_projects(self, user_id: str, task_docs: list[dict]) -> list[TaskInfo]:
        project_ids = {doc["project_id"] for doc in task_docs if doc.get("project_id")}
        projects = await self._projects_by_id(user_id, project_ids)
        return [
            self._doc_to_task(doc, projects.get(doc.get("project_id")))
            for doc in task_docs
        ]

    async def get_task(self, user_id: str, task_id: str) -> Optional[TaskInfo]:
        object_id = _object_id(task_id)
        if object_id is None:
            return None

        task_doc = await self.tasks.find_one({"_id": object_id, "user_id": user_id})
        if not task_doc:
            return None

        tasks = await self._with_projects(user_id, [task_doc])
        return tasks[0]

    async def get_tasks(self, user_id: str, task_ids: list[str]) -> dict[str, TaskInfo]:
        object_ids = [oid for oid in (_object_id(tid) for tid in set(task_ids)) if oid]
        if not object_ids:
            return {}

        cursor = self.tasks.find({"_id": {"$in": object_ids}, "user_id": user_id})
        task_docs = await cursor.to_list(length=None)
        return {task.id: task for task in await self._with_projects(user_id, task_docs)}

    async def list_tasks(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        include_archived: bool = False,
    ) -> list[TaskInfo]:
        query = {
            "user_id": user_id,
        }
        if project_id:
            query["project_id"] = project_id
        if not include_archived:
            query["archived"] = {"$ne": True}

        cursor = self.tasks.find(query).sort("created_at", -1)
        task_docs = await cursor.to_list(length=None)
        return await self._with_projects(user_id, task_docs)

    async def list_projects(
        self,
        user_id: str,
        include_archived: bool = False,
    ) -> list[ProjectInfo]:
        query = {
            "user_id": user_id,
        }
        if not include_archived:
            query["archived"] = {"$ne": True}

        cursor = self.projects.find(query)
        project_docs = await cursor.to_list(length=None)
        return [self._doc_to_project(doc) for doc in project_docs]
