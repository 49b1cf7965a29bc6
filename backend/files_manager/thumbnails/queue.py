"""Redis list job queue with at-least-once delivery.

Keys (``<name>`` is the queue name):
  <name>:pending     jobs waiting, pushed left, reserved from the right
  <name>:processing:<consumer>
                     jobs reserved by one worker and not yet acknowledged
  <name>:failed      dead letters: fatal failures and exhausted retries

A reserved job stays in its worker's processing list until acknowledged. Each
worker has its own list, named by a stable consumer id, so ``recover`` on
restart redelivers only the jobs that worker held when it stopped.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

log = logging.getLogger(__name__)


class QueueError(Exception):
    """Queue backend unavailable or failing."""


@dataclass
class QueuedJob:
    """A reserved job. ``raw`` is the exact list entry, used to acknowledge it."""

    id: str
    data: Dict[str, Any]
    attempts: int
    raw: str


class JobQueue(Protocol):
    async def enqueue(self, payload: Dict[str, Any]) -> str: ...

    async def reserve(self, timeout: int = 0) -> Optional[QueuedJob]: ...

    async def complete(self, job: QueuedJob) -> None: ...

    async def fail(self, job: QueuedJob, retryable: bool, reason: str) -> None: ...


def _encode(job_id: str, data: Dict[str, Any], attempts: int, **extra: Any) -> str:
    return json.dumps({"id": job_id, "data": data, "attempts": attempts, **extra})


class RedisJobQueue:
    """Job queue on Redis lists (LPUSH / BLMOVE / LREM)."""

    def __init__(
        self,
        client: redis.Redis,
        name: str = "fileQueue",
        max_attempts: int = 3,
        consumer: str = "worker",
    ):
        self._redis = client
        self.name = name
        self.max_attempts = max_attempts
        self.pending_key = f"{name}:pending"
        self.consumer = consumer
        self.processing_key = f"{name}:processing:{consumer}"
        self.failed_key = f"{name}:failed"

    async def enqueue(self, payload: Dict[str, Any]) -> str:
        """Add a job and return its id."""
        job_id = uuid.uuid4().hex
        try:
            await self._redis.lpush(self.pending_key, _encode(job_id, payload, 0))
        except RedisError as e:
            raise QueueError(f"Failed to enqueue to {self.name}: {e}") from e
        log.debug("Enqueued job %s on %s", job_id, self.name)
        return job_id

    async def reserve(self, timeout: int = 0) -> Optional[QueuedJob]:
        """
        Move the oldest pending job to processing and return it. Blocks up to
        ``timeout`` seconds when positive; returns None if nothing arrived.
        """
        try:
            if timeout > 0:
                raw = await self._redis.blmove(
                    self.pending_key, self.processing_key, timeout, "RIGHT", "LEFT"
                )
            else:
                raw = await self._redis.lmove(
                    self.pending_key, self.processing_key, "RIGHT", "LEFT"
                )
        except RedisError as e:
            raise QueueError(f"Failed to reserve from {self.name}: {e}") from e
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
            return QueuedJob(
                id=entry.get("id", ""),
                data=entry.get("data") or {},
                attempts=int(entry.get("attempts", 0)),
                raw=raw,
            )
        except (ValueError, TypeError, AttributeError):
            # Undecodable entries can never succeed
            log.error("Dropping malformed entry from %s: %r", self.name, raw)
            try:
                await self._redis.lrem(self.processing_key, 1, raw)
                await self._redis.lpush(self.failed_key, raw)
            except RedisError as e:
                raise QueueError(f"Failed to dead-letter entry on {self.name}: {e}") from e
            return None

    async def complete(self, job: QueuedJob) -> None:
        """Acknowledge a finished job."""
        try:
            await self._redis.lrem(self.processing_key, 1, job.raw)
        except RedisError as e:
            raise QueueError(f"Failed to acknowledge {job.id}: {e}") from e

    async def fail(self, job: QueuedJob, retryable: bool, reason: str) -> None:
        """
        Acknowledge a failed job. Retryable failures go back to pending until
        max_attempts is reached; the rest go to the dead-letter list.
        """
        attempts = job.attempts + 1
        try:
            pipe = self._redis.pipeline()
            pipe.lrem(self.processing_key, 1, job.raw)
            if retryable and attempts < self.max_attempts:
                pipe.lpush(self.pending_key, _encode(job.id, job.data, attempts))
                log.info("Job %s retry %d/%d: %s", job.id, attempts, self.max_attempts, reason)
            else:
                pipe.lpush(self.failed_key, _encode(job.id, job.data, attempts, reason=reason))
                log.warning("Job %s dead-lettered after %d attempt(s): %s", job.id, attempts, reason)
            await pipe.execute()
        except RedisError as e:
            raise QueueError(f"Failed to record failure of {job.id}: {e}") from e

    async def recover(self) -> int:
        """Move this consumer's in-flight jobs back to pending. Returns how many moved."""
        moved = 0
        try:
            while await self._redis.lmove(self.processing_key, self.pending_key, "RIGHT", "RIGHT"):
                moved += 1
        except RedisError as e:
            raise QueueError(f"Failed to recover {self.name}: {e}") from e
        if moved:
            log.info("Redelivering %d in-flight job(s) of %s on %s", moved, self.consumer, self.name)
        return moved
