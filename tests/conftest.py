"""Pytest configuration and fixtures."""
import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("RECONCILE_INTERVAL_SECONDS", "0")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402

from timeledger.database import get_task_directory, get_time_entry_store  # noqa: E402
from timeledger.main import app  # noqa: E402
from timeledger.store.memory import MemoryTaskDirectory, MemoryTimeEntryStore  # noqa: E402
from timeledger.utils.auth import create_access_token  # noqa: E402


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 1, 8, 9, 0, 0))


@pytest.fixture
def entry_store():
    return MemoryTimeEntryStore()


@pytest.fixture
def task_directory():
    return MemoryTaskDirectory()


@pytest.fixture
def auth_headers():
    token = create_access_token(user_id="user123")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def app_client(entry_store, task_directory):
    """
    Create a test client backed by the in-memory stores.

    This fixture:
    - Overrides the store dependencies with fresh in-memory backends
    - Yields an async HTTP client for testing
    - Clears the overrides afterwards
    """
    app.dependency_overrides[get_time_entry_store] = lambda: entry_store
    app.dependency_overrides[get_task_directory] = lambda: task_directory

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()
