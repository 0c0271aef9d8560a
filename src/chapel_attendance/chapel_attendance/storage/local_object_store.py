from __future__ import annotations

import logging
from pathlib import Path

from ..core.exceptions import StorageError
from .repository import ObjectStore

logger = logging.getLogger(__name__)


class LocalObjectStore(ObjectStore):
    """Filesystem-backed object store rooted at a single directory."""

    def __init__(self, root: str | Path):
        self._root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self._root / path.lstrip("/")).resolve()
        if self._root != target and self._root not in target.parents:
            raise StorageError(f"Invalid storage path: {path}")
        return target

    def put_bytes(self, path: str, content: bytes) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to store {path}: {e}") from e
        logger.debug("Stored %d bytes at %s", len(content), path)

    def get_bytes(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise StorageError(f"Stored file not found: {path}")
        try:
            return target.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e
