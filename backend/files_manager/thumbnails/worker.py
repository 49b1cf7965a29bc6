"""Thumbnail worker: reads jobs from the queue and acknowledges them by outcome."""

import asyncio
import logging
import signal
import socket
from typing import Awaitable, Callable, Optional

from files_manager.config import get_settings
from files_manager.db.redis import close_redis, get_redis
from files_manager.db.session import get_session, init_db
from files_manager.files.registry import FileRegistry
from files_manager.files.storage import LocalContentStore
from files_manager.logging_setup import setup_logging
from files_manager.thumbnails.pipeline import JobResult, JobState, ThumbnailJob, ThumbnailPipeline
from files_manager.thumbnails.queue import JobQueue, QueueError, RedisJobQueue

log = logging.getLogger(__name__)

JobHandler = Callable[[ThumbnailJob], Awaitable[JobResult]]


async def process_thumbnail_job(job: ThumbnailJob) -> JobResult:
    """Run the pipeline for one job with its own database session."""
    settings = get_settings()
    content_store = LocalContentStore(settings.folder_path)
    job.widths = tuple(settings.thumbnail_widths)
    async with get_session() as session:
        registry = FileRegistry(session, content_store)
        return await ThumbnailPipeline(registry, content_store).process(job)


class ThumbnailWorker:
    """Pulls jobs one at a time; several workers may share a queue."""

    def __init__(self, queue: JobQueue, handler: JobHandler = process_thumbnail_job):
        self._queue = queue
        self._handler = handler

    async def run_once(self, timeout: int = 0) -> Optional[JobResult]:
        """Process at most one job. Returns its result, or None if the queue was empty."""
        queued = await self._queue.reserve(timeout)
        if queued is None:
            return None
        job = ThumbnailJob.from_payload(queued.data)
        try:
            result = await self._handler(job)
        except Exception as e:
            log.exception("Unhandled error in job %s", queued.id)
            result = JobResult(job=job, state=JobState.FAILED_RETRYABLE, reason=str(e))
        if result.state == JobState.COMPLETED:
            await self._queue.complete(queued)
        else:
            await self._queue.fail(queued, result.retryable, result.reason)
        return result

    async def run(self, stop: asyncio.Event, poll_seconds: int = 5) -> None:
        """
        Process jobs until ``stop`` is set. Queue outages are logged and waited
        out, the worker keeps running.
        """
        log.info("Thumbnail worker started")
        while not stop.is_set():
            try:
                await self.run_once(timeout=poll_seconds)
            except QueueError as e:
                log.warning("Queue unavailable, retrying in %ss: %s", poll_seconds, e)
                await _wait_or_stop(stop, poll_seconds)
        log.info("Thumbnail worker stopped")


async def _wait_or_stop(stop: asyncio.Event, seconds: float) -> None:
    """Sleep up to ``seconds``, returning early once ``stop`` is set."""
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass


async def _serve() -> None:
    settings = get_settings()
    await init_db()
    consumer = settings.worker_id or socket.gethostname()
    queue = RedisJobQueue(
        get_redis(), settings.queue_name, settings.job_max_attempts, consumer=consumer
    )
    log.info("Worker %s on queue %s", consumer, settings.queue_name)
    await queue.recover()
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)
    try:
        await ThumbnailWorker(queue).run(stop, settings.worker_poll_seconds)
    finally:
        await close_redis()


def main() -> None:
    """Entry point for ``files-manager-worker``."""
    setup_logging("worker")
    asyncio.run(_serve())


if __name__ == "__main__":
    main()
