"""DirectoryTailer: discovers, reads and tails log files under a watched root.

Two producers report changed files:
  - a watchdog Observer (recursive, create/modify/move events)
  - a poll thread that re-enumerates the tree every ``poll_interval`` seconds

Both push paths onto one queue. A single reader thread drains it and runs the
incremental read, so reads for a session never overlap. ``read_new_records``
additionally holds a per-path lock, which keeps direct concurrent callers safe.
"""

import logging
import os
import queue
import threading
from enum import Enum

from watchdog.observers import Observer

from logtail.harvester import ChangeHarvester, has_log_extension
from logtail.models import LogRecord
from logtail.parsers import parse_line
from logtail.registry import OffsetRegistry
from logtail.store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".log", ".jsonl", ".json")
DEFAULT_POLL_INTERVAL = 2.0
READER_TIMEOUT = 0.2
JOIN_TIMEOUT = 5.0


class WatchError(Exception):
    """Raised when a watch session cannot be started."""


class TailerState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    ACTIVE = "active"


def collect_log_files(root: str, extensions: tuple[str, ...] = DEFAULT_EXTENSIONS) -> list[str]:
    """Recursively list qualifying files under root. Unreadable directories are skipped."""

    def _skip(err: OSError):
        logger.debug("Skipping unreadable directory %s: %s", err.filename, err)

    files = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_skip):
        for name in filenames:
            path = os.path.join(dirpath, name)
            if has_log_extension(name, extensions) and os.path.isfile(path):
                files.append(os.path.abspath(path))
    files.sort()
    return files


class _WatchSession:
    """Per-session channel: pending-path queue plus the stop signal."""

    def __init__(self, root: str):
        self.root = root
        self.stop_event = threading.Event()
        self.queue: queue.Queue[str] = queue.Queue()
        self._pending: set[str] = set()
        self._pending_lock = threading.Lock()
        self.observer = None
        self.poller: threading.Thread | None = None
        self.reader: threading.Thread | None = None

    def notify(self, path: str):
        """Queue a changed path unless it is already waiting."""
        if self.stop_event.is_set():
            return
        with self._pending_lock:
            if path in self._pending:
                return
            self._pending.add(path)
        self.queue.put(path)

    def take(self, timeout: float) -> str | None:
        try:
            path = self.queue.get(timeout=timeout)
        except queue.Empty:
            return None
        with self._pending_lock:
            self._pending.discard(path)
        return path


class ChangePoller(threading.Thread):
    """Re-enumerates the root every interval and reports every qualifying file."""

    def __init__(self, session: _WatchSession, extensions: tuple[str, ...], interval: float):
        super().__init__(daemon=True, name="logtail-poller")
        self._session = session
        self._extensions = extensions
        self._interval = interval

    def run(self):
        stop = self._session.stop_event
        while not stop.wait(self._interval):
            for path in collect_log_files(self._session.root, self._extensions):
                if stop.is_set():
                    break
                self._session.notify(path)
        logger.debug("Poller for %s exited", self._session.root)


class ChangeReader(threading.Thread):
    """Drains the session queue and runs the incremental read for each path."""

    def __init__(self, session: _WatchSession, handle):
        super().__init__(daemon=True, name="logtail-reader")
        self._session = session
        self._handle = handle

    def run(self):
        stop = self._session.stop_event
        while not stop.is_set():
            path = self._session.take(READER_TIMEOUT)
            if path is None or stop.is_set():
                continue
            try:
                self._handle(path)
            except Exception:
                logger.exception("Incremental read failed for %s", path)
        logger.debug("Reader for %s exited", self._session.root)


class DirectoryTailer:
    def __init__(
        self,
        store: RecordStore,
        registry: OffsetRegistry,
        extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        on_batch=None,
        parser=parse_line,
        observer_factory=Observer,
    ):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {poll_interval}")
        self._store = store
        self._registry = registry
        self._extensions = tuple(extensions)
        self._poll_interval = poll_interval
        self._on_batch = on_batch
        self._parser = parser
        self._observer_factory = observer_factory

        self._path_locks: dict[str, threading.Lock] = {}
        self._path_locks_guard = threading.Lock()

        self._session: _WatchSession | None = None
        self._session_lock = threading.Lock()
        self._state = TailerState.STOPPED

    @property
    def state(self) -> TailerState:
        return self._state

    @property
    def is_watching(self) -> bool:
        return self._state is TailerState.ACTIVE

    @property
    def watched_root(self) -> str | None:
        session = self._session
        return session.root if session else None

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def discover(self, root: str) -> list[str]:
        return collect_log_files(root, self._extensions)

    def _lock_for(self, path: str) -> threading.Lock:
        with self._path_locks_guard:
            lock = self._path_locks.get(path)
            if lock is None:
                lock = self._path_locks[path] = threading.Lock()
            return lock

    def _prune_path_locks(self, keep: list[str]):
        """Drop per-path locks for files outside ``keep`` that nobody holds."""
        keep_set = set(keep)
        with self._path_locks_guard:
            stale = [p for p, lock in self._path_locks.items()
                     if p not in keep_set and not lock.locked()]
            for path in stale:
                del self._path_locks[path]
        if stale:
            logger.debug("Dropped %d stale path lock(s)", len(stale))

    def _parse_bytes(self, data: bytes) -> list[LogRecord]:
        records = []
        for line in data.decode("utf-8", errors="replace").split("\n"):
            record = self._parser(line)
            if record is not None:
                records.append(record)
        return records

    def read_full(self, path: str) -> list[LogRecord]:
        """Read a whole file from byte 0 and record its end offset."""
        abs_path = os.path.abspath(path)
        with self._lock_for(abs_path):
            try:
                with open(abs_path, "rb") as f:
                    data = f.read()
            except OSError as e:
                logger.debug("Cannot read %s: %s", abs_path, e)
                return []
            self._registry.set_offset(abs_path, len(data))
        return self._parse_bytes(data)

    def read_new_records(self, path: str) -> list[LogRecord]:
        """Read whatever was appended since the stored offset.

        A file shorter than the stored offset was truncated or rotated and is
        re-read from the start. The new offset is the file length observed at
        this read, not a sum of parsed line lengths.
        """
        abs_path = os.path.abspath(path)
        with self._lock_for(abs_path):
            stored = self._registry.get_offset(abs_path)
            try:
                with open(abs_path, "rb") as f:
                    file_len = os.fstat(f.fileno()).st_size
                    offset = stored
                    if file_len < stored:
                        logger.info("File truncated: %s (offset %d > size %d)",
                                    abs_path, stored, file_len)
                        offset = 0
                    if file_len <= offset:
                        if offset != stored:
                            self._registry.set_offset(abs_path, offset)
                        return []
                    f.seek(offset)
                    data = f.read(file_len - offset)
            except OSError as e:
                logger.debug("Cannot read %s: %s", abs_path, e)
                return []

            new_offset = offset + len(data)
            self._registry.set_offset(abs_path, new_offset)

        records = self._parse_bytes(data)
        logger.debug("Read %d record(s) from %s (offset %d -> %d)",
                     len(records), abs_path, offset, new_offset)
        return records

    def load_folder(self, root: str) -> list[LogRecord]:
        """Full read of every qualifying file; newest-first batch into the store."""
        records: list[LogRecord] = []
        files = self.discover(root)
        self._prune_path_locks(files)
        for path in files:
            records.extend(self.read_full(path))
        records.sort(key=lambda r: r.timestamp, reverse=True)
        self._store.append_batch(records)
        logger.info("Loaded %d record(s) from %d file(s) under %s", len(records), len(files), root)
        return records

    def handle_change(self, path: str) -> list[LogRecord]:
        """Incremental read, then append to the store and publish the batch."""
        records = self.read_new_records(path)
        if not records:
            return records
        self._store.append_batch(records)
        if self._on_batch is not None:
            try:
                self._on_batch(records, os.path.abspath(path))
            except Exception:
                logger.exception("Batch callback failed for %s", path)
        return records

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start(self, root: str):
        """Stop any previous session, then watch ``root``. Raises WatchError."""
        with self._session_lock:
            self._stop_session()
            self._state = TailerState.STARTING
            abs_root = os.path.abspath(root)

            if not os.path.isdir(abs_root):
                self._state = TailerState.STOPPED
                logger.error("Cannot watch %s: not a directory", abs_root)
                raise WatchError(f"Not a directory: {abs_root}")

            session = _WatchSession(abs_root)
            try:
                observer = self._observer_factory()
                observer.schedule(ChangeHarvester(session.notify, self._extensions),
                                  abs_root, recursive=True)
                observer.start()
            except Exception as e:
                self._state = TailerState.STOPPED
                logger.error("Watch registration failed for %s: %s", abs_root, e)
                raise WatchError(f"Cannot watch {abs_root}: {e}") from e

            session.observer = observer
            session.poller = ChangePoller(session, self._extensions, self._poll_interval)
            session.reader = ChangeReader(session, self.handle_change)
            session.reader.start()
            session.poller.start()

            self._session = session
            self._state = TailerState.ACTIVE
            logger.info("Watching %s (poll every %.1fs)", abs_root, self._poll_interval)

    def stop(self):
        """Stop the active session. No-op when nothing is being watched."""
        with self._session_lock:
            self._stop_session()

    def _stop_session(self):
        session = self._session
        if session is None:
            return
        self._session = None
        session.stop_event.set()

        observer = session.observer
        try:
            observer.unschedule_all()
            observer.stop()
        except Exception as e:
            logger.warning("Error stopping observer for %s: %s", session.root, e)

        current = threading.current_thread()
        for thread in (observer, session.poller, session.reader):
            if isinstance(thread, threading.Thread) and thread is not current and thread.is_alive():
                thread.join(timeout=JOIN_TIMEOUT)

        self._state = TailerState.STOPPED
        logger.info("Stopped watching %s", session.root)
