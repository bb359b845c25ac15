"""In-memory, append-only record store with a running error counter."""

import threading
from collections import Counter

from logtail.models import LogCategory, LogLevel, LogRecord


class RecordStore:
    def __init__(self):
        self._records: list[LogRecord] = []
        self._error_count = 0
        self._lock = threading.Lock()

    def append_batch(self, records: list[LogRecord]):
        """Append records and count Error/Critical ones in one step."""
        errors = sum(1 for r in records if r.is_error)
        with self._lock:
            self._records.extend(records)
            self._error_count += errors

    def get_all(self) -> list[LogRecord]:
        """Return a snapshot copy in insertion order."""
        with self._lock:
            return list(self._records)

    def clear(self):
        with self._lock:
            self._records.clear()
            self._error_count = 0

    def error_count(self) -> int:
        with self._lock:
            return self._error_count

    def level_counts(self) -> dict[LogLevel, int]:
        counts = Counter(r.level for r in self.get_all())
        return {level: counts.get(level, 0) for level in LogLevel}

    def category_counts(self) -> dict[LogCategory, int]:
        counts = Counter(r.category for r in self.get_all())
        return {category: counts.get(category, 0) for category in LogCategory}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
