"""FastAPI dependencies for the file registry and the thumbnail queue."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.config import get_settings
from files_manager.db.redis import get_redis
from files_manager.db.session import get_db
from files_manager.files.registry import FileRegistry
from files_manager.files.storage import LocalContentStore
from files_manager.thumbnails.queue import JobQueue, RedisJobQueue


def get_content_store() -> LocalContentStore:
    return LocalContentStore(get_settings().folder_path)


def get_job_queue() -> JobQueue:
    settings = get_settings()
    return RedisJobQueue(get_redis(), settings.queue_name, settings.job_max_attempts)


def get_registry(
    session: Annotated[AsyncSession, Depends(get_db)],
    content_store: Annotated[LocalContentStore, Depends(get_content_store)],
) -> FileRegistry:
    return FileRegistry(session, content_store, get_settings().page_size)
