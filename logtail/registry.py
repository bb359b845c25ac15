"""Offset registry: last-read byte offset per file, shared by both change detectors."""

import logging
import os
import threading

logger = logging.getLogger(__name__)


class OffsetRegistry:
    """In-memory (path → byte offset) table. Paths are normalised to absolute form."""

    def __init__(self):
        self._offsets: dict[str, int] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(path: str) -> str:
        return os.path.abspath(path)

    def get_offset(self, path: str) -> int:
        with self._lock:
            return self._offsets.get(self._key(path), 0)

    def set_offset(self, path: str, offset: int):
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        with self._lock:
            self._offsets[self._key(path)] = offset

    def clear(self):
        with self._lock:
            count = len(self._offsets)
            self._offsets.clear()
        logger.debug("Cleared %d offset(s)", count)

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._offsets)

    def __len__(self) -> int:
        with self._lock:
            return len(self._offsets)
