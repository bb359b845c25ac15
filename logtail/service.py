"""LogTailService — the command surface the host application calls into."""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone

from logtail.models import LogRecord, record_to_dict
from logtail.registry import OffsetRegistry
from logtail.store import RecordStore
from logtail.tailer import DirectoryTailer

logger = logging.getLogger(__name__)


class LogTailService:
    """Owns one store, one offset registry and one tailer for the process.

    ``on_batch(records, path)`` is called from the reader thread for every
    incremental read that produced at least one record.
    """

    def __init__(
        self,
        store: RecordStore | None = None,
        registry: OffsetRegistry | None = None,
        tailer: DirectoryTailer | None = None,
        on_batch=None,
        **tailer_options,
    ):
        self.store = store if store is not None else RecordStore()
        self.registry = registry if registry is not None else OffsetRegistry()
        self.tailer = tailer if tailer is not None else DirectoryTailer(
            self.store, self.registry, on_batch=on_batch, **tailer_options,
        )

    def load_folder(self, path: str) -> list[LogRecord]:
        """Reset store and offsets, then read every log file under ``path``."""
        if not os.path.isdir(path):
            raise NotADirectoryError(f"Not a directory: {path}")
        self.store.clear()
        self.registry.clear()
        return self.tailer.load_folder(path)

    def clear_logs(self):
        """Empty the store. Offsets are kept so old lines are not re-read."""
        self.store.clear()

    def start_watching(self, path: str):
        self.tailer.start(path)

    def stop_watching(self):
        self.tailer.stop()

    def get_logs(self) -> list[LogRecord]:
        return self.store.get_all()

    def error_count(self) -> int:
        return self.store.error_count()

    def export_logs(self, path: str, records: list[LogRecord] | None = None) -> str:
        """Write records (default: everything in the store) as a JSON array.

        If ``path`` is an existing directory a timestamped file is created in
        it. The write is atomic. Returns the path written.
        """
        if records is None:
            records = self.store.get_all()

        if os.path.isdir(path):
            ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
            path = os.path.join(path, f"logs-export-{ts}.json")
        target_dir = os.path.dirname(os.path.abspath(path))
        os.makedirs(target_dir, exist_ok=True)

        tmp_fd, tmp_path = tempfile.mkstemp(dir=target_dir, suffix=".tmp")
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                json.dump([record_to_dict(r) for r in records], f, indent=2)
                f.write("\n")
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info("Exported %d record(s) to %s", len(records), path)
        return path
