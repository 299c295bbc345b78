# hotprices/storage/file_manager.py

"""Atomic file publishing for durable artifacts."""

import logging
import os
import tempfile
from pathlib import Path

from hotprices.errors import StoreIOError

logger = logging.getLogger("hotprices.storage")


class FileManager:
    """Writes files so a reader never observes a partial artifact."""

    @staticmethod
    def write_atomic(path: Path, data: bytes) -> Path:
        """Write ``data`` to a temp file beside ``path``, then rename it.

        ``os.replace`` is atomic on the same filesystem, so ``path``
        holds either the previous content or the complete new content.
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
        except OSError as exc:
            raise StoreIOError(
                f"Failed to prepare {path}: {exc}"
            ) from exc

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise StoreIOError(f"Failed to write {path}: {exc}") from exc

        logger.debug("Published %d bytes to %s", len(data), path)
        return path

    @staticmethod
    def read_bytes(path: Path) -> bytes:
        """Read a whole file, mapping OS errors to StoreIOError."""
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StoreIOError(f"Failed to read {path}: {exc}") from exc
