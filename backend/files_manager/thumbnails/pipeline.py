"""Thumbnail pipeline: one job in, renditions out, outcome tagged fatal or retryable.

Job states: QUEUED -> PROCESSING -> COMPLETED | FAILED_FATAL | FAILED_RETRYABLE.

A job runs after the upload request is gone, so ownership is checked again
against the stored node. Renditions are written at references derived from
(content ref, width); running a job twice overwrites the same references.
"""

import enum
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from files_manager.errors import NoContentError, NotFoundError, StorageError
from files_manager.files.registry import FileRegistry
from files_manager.files.storage import LocalContentStore, derived_ref

log = logging.getLogger(__name__)

THUMBNAIL_WIDTHS: Tuple[int, ...] = (500, 250, 100)


class JobState(str, enum.Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED_FATAL = "failed_fatal"
    FAILED_RETRYABLE = "failed_retryable"


@dataclass
class ThumbnailJob:
    """Queue payload: which file, on whose behalf, at which widths."""

    file_id: Any = None
    user_id: Any = None
    widths: Tuple[int, ...] = THUMBNAIL_WIDTHS

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ThumbnailJob":
        return cls(file_id=payload.get("fileId"), user_id=payload.get("userId"))

    def to_payload(self) -> Dict[str, Any]:
        return {"fileId": self.file_id, "userId": self.user_id}


@dataclass
class JobResult:
    job: ThumbnailJob
    state: JobState
    reason: str = ""
    derived_refs: List[str] = field(default_factory=list)

    @property
    def retryable(self) -> bool:
        return self.state == JobState.FAILED_RETRYABLE


def make_rendition(original: bytes, width: int) -> bytes:
    """
    Resize image bytes to ``width`` keeping the aspect ratio. Output keeps the
    original format (PNG when it has none). Raises UnidentifiedImageError for
    data that is not an image.
    """
    with Image.open(io.BytesIO(original)) as img:
        fmt = img.format or "PNG"
        height = max(1, round(img.height * width / img.width))
        resized = img.resize((width, height), Image.Resampling.LANCZOS)
        if fmt == "JPEG" and resized.mode not in ("RGB", "L"):
            resized = resized.convert("RGB")
        out = io.BytesIO()
        resized.save(out, format=fmt)
        return out.getvalue()


class ThumbnailPipeline:
    """Processes thumbnail jobs against the registry and the content store."""

    def __init__(self, registry: FileRegistry, content_store: LocalContentStore):
        self._registry = registry
        self._content = content_store

    async def process(self, job: ThumbnailJob) -> JobResult:
        """Run one job to a terminal state. Never raises for job-level failures."""
        if job.file_id is None or job.file_id == "":
            return self._finish(job, JobState.FAILED_FATAL, "Missing fileId")
        if job.user_id is None or job.user_id == "":
            return self._finish(job, JobState.FAILED_FATAL, "Missing userId")

        log.debug("Job file=%s user=%s %s", job.file_id, job.user_id, JobState.PROCESSING.value)
        node = await self._registry.find_owned(job.file_id, job.user_id)
        if node is None:
            return self._finish(job, JobState.FAILED_FATAL, "File not found")

        try:
            original = self._registry.read_original(node)
        except (NotFoundError, NoContentError):
            return self._finish(job, JobState.FAILED_FATAL, "Original content missing")
        except StorageError as e:
            return self._finish(job, JobState.FAILED_RETRYABLE, f"Read failed: {e}")

        refs: List[str] = []
        for width in job.widths:
            try:
                rendition = make_rendition(original, width)
                self._content.store_derived(node.content_ref, width, rendition)
            # UnidentifiedImageError is an OSError; it must be caught first
            except (UnidentifiedImageError, Image.DecompressionBombError, ValueError) as e:
                return self._finish(job, JobState.FAILED_FATAL, f"Not a usable image: {e}", refs)
            except (StorageError, OSError, MemoryError) as e:
                return self._finish(job, JobState.FAILED_RETRYABLE, f"Width {width} failed: {e}", refs)
            refs.append(derived_ref(node.content_ref, width))
        return self._finish(job, JobState.COMPLETED, "", refs)

    @staticmethod
    def _finish(
        job: ThumbnailJob, state: JobState, reason: str, refs: Optional[List[str]] = None
    ) -> JobResult:
        if state == JobState.COMPLETED:
            log.info("Thumbnails done file=%s refs=%d", job.file_id, len(refs or []))
        else:
            log.warning("Thumbnail job file=%s %s: %s", job.file_id, state.value, reason)
        return JobResult(job=job, state=state, reason=reason, derived_refs=list(refs or []))
