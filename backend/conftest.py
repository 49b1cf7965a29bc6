"""Pytest configuration: set test env before any app imports so DB and storage use test values."""

import asyncio
import os
import tempfile
import uuid
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Set before files_manager.db.session or files_manager.config are used
_tmp = tempfile.mkdtemp(prefix="files_manager_test_")
os.environ.setdefault("FILES_MANAGER_DB_PATH", os.path.join(_tmp, "test.db"))
os.environ.setdefault("FILES_MANAGER_FOLDER_PATH", os.path.join(_tmp, "files"))
os.environ.setdefault("FILES_MANAGER_RATE_LIMIT_ENABLED", "false")

from files_manager.thumbnails.queue import QueuedJob  # noqa: E402


class MemorySessionStore:
    """Session store substitute. TTLs are recorded, not enforced."""

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.values[key] = value
        self.ttls[key] = ttl_seconds

    async def delete(self, key: str) -> None:
        self.values.pop(key, None)
        self.ttls.pop(key, None)

    async def ping(self) -> bool:
        return True


class MemoryJobQueue:
    """Job queue substitute recording acknowledgements."""

    def __init__(self):
        self.pending: List[Any] = []
        self.completed: List[Any] = []
        self.failed: List[Tuple[Any, bool, str]] = []

    async def enqueue(self, payload: Dict[str, Any]) -> str:
        job_id = uuid.uuid4().hex
        self.pending.append(QueuedJob(id=job_id, data=payload, attempts=0, raw=job_id))
        return job_id

    async def reserve(self, timeout: int = 0):
        return self.pending.pop(0) if self.pending else None

    async def complete(self, job) -> None:
        self.completed.append(job)

    async def fail(self, job, retryable: bool, reason: str) -> None:
        self.failed.append((job, retryable, reason))


@pytest.fixture(scope="session")
def init_test_db():
    """Create tables once per test session."""
    from files_manager.db.session import init_db
    from files_manager.files.models import FileNode  # noqa: F401 - register with Base
    from files_manager.users.models import User  # noqa: F401 - register with Base

    asyncio.run(init_db())


@pytest.fixture
def session_factory(init_test_db):
    """Yield get_session so tests can use async with session_factory() as session."""
    from files_manager.db.session import get_session
    return get_session


@pytest.fixture
def session_store():
    return MemorySessionStore()


@pytest.fixture
def job_queue():
    return MemoryJobQueue()


@pytest.fixture
def content_store(tmp_path):
    from files_manager.files.storage import LocalContentStore
    return LocalContentStore(tmp_path / "content")


@pytest.fixture
def unique_email():
    """Factory for emails that are unused in the shared test database."""
    return lambda prefix="user": f"{prefix}-{uuid.uuid4().hex[:10]}@example.com"
