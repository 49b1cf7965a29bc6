"""Content store: raw bytes on disk under opaque references (no traversal)."""

import logging
import re
import uuid
from pathlib import Path

from files_manager.errors import NotFoundError, StorageError

log = logging.getLogger(__name__)

# References are generated here as uuid4 hex; anything else never names a file.
_SAFE_REF = re.compile(r"^[0-9a-f]{32}$")


def derived_ref(ref: str, width: int) -> str:
    """Reference of the rendition of ``ref`` at ``width``. Pure and repeatable."""
    return f"{ref}_{int(width)}"


class LocalContentStore:
    """Stores payloads as files named by reference under a root directory."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, ref: str) -> Path:
        base, _, width = ref.partition("_")
        if not _SAFE_REF.match(base) or (width and not width.isdigit()):
            raise NotFoundError()
        return self.root / ref

    def path_for(self, ref: str) -> Path:
        """Filesystem path of a reference."""
        return self._path(ref)

    def _write(self, ref: str, data: bytes) -> None:
        target = self._path(ref)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            log.error("Write failed for ref=%s: %s", ref, e)
            raise StorageError() from e

    def _read(self, ref: str) -> bytes:
        target = self._path(ref)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            raise NotFoundError() from None
        except OSError as e:
            log.error("Read failed for ref=%s: %s", ref, e)
            raise StorageError() from e

    def store(self, data: bytes) -> str:
        """Write bytes under a new reference and return it."""
        ref = uuid.uuid4().hex
        self._write(ref, data)
        log.debug("Stored ref=%s size=%d", ref, len(data))
        return ref

    def read(self, ref: str) -> bytes:
        """Bytes for ``ref``; NotFoundError if absent."""
        return self._read(ref)

    def store_derived(self, ref: str, width: int, data: bytes) -> None:
        """Write (or overwrite) the rendition of ``ref`` at ``width``."""
        self._write(derived_ref(ref, width), data)

    def read_derived(self, ref: str, width: int) -> bytes:
        """Bytes of a rendition; NotFoundError if it was never generated."""
        return self._read(derived_ref(ref, width))
