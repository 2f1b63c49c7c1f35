"""Storage wiring: MongoDB connection via Motor, or the in-process backend."""
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from timeledger.config import settings
from timeledger.store.base import TaskDirectory, TimeEntryStore
from timeledger.store.memory import MemoryTaskDirectory, MemoryTimeEntryStore
from timeledger.store.mongo import MongoTaskDirectory, MongoTimeEntryStore

logger = logging.getLogger(__name__)


class Database:
    """Storage connection manager."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None
    time_entries: TimeEntryStore | None = None
    tasks: TaskDirectory | None = None

    async def connect(self) -> None:
        """Connect to the configured backend and prepare indexes."""
        if settings.store_backend == "memory":
            self.time_entries = MemoryTimeEntryStore()
            self.tasks = MemoryTaskDirectory()
            logger.info("Using in-memory store")
            return

        self.client = AsyncIOMotorClient(settings.mongodb_url)
        self.db = self.client[settings.mongodb_db_name]
        self.time_entries = MongoTimeEntryStore(self.db)
        self.tasks = MongoTaskDirectory(self.db)
        await self.time_entries.ensure_indexes()
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            self.client = None
            logger.info("Disconnected from MongoDB")


# Global database instance
database = Database()


async def get_time_entry_store() -> TimeEntryStore:
    """Dependency to get the time entry store."""
    if database.time_entries is None:
        raise RuntimeError("Database not connected")
    return database.time_entries


async def get_task_directory() -> TaskDirectory:
    """Dependency to get the task directory."""
    if database.tasks is None:
        raise RuntimeError("Database not connected")
    return database.tasks
