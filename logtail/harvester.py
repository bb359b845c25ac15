"""ChangeHarvester: watchdog event handler that reports changed log files."""

import logging
import os

from watchdog.events import FileSystemEventHandler

logger = logging.getLogger(__name__)


def has_log_extension(path: str, extensions: tuple[str, ...]) -> bool:
    return os.path.splitext(path)[1] in extensions


class ChangeHarvester(FileSystemEventHandler):
    """Forwards create/modify events on qualifying files to ``notify(path)``.

    A move whose destination qualifies is reported as a creation of the
    destination. Directory events and deletions are ignored.
    """

    def __init__(self, notify, extensions: tuple[str, ...]):
        super().__init__()
        self._notify = notify
        self._extensions = extensions

    def _report(self, raw_path):
        path = os.path.abspath(os.fsdecode(raw_path))
        if has_log_extension(path, self._extensions):
            self._notify(path)

    def on_created(self, event):
        if event.is_directory:
            return
        logger.debug("Created: %s", event.src_path)
        self._report(event.src_path)

    def on_modified(self, event):
        if event.is_directory:
            return
        self._report(event.src_path)

    def on_moved(self, event):
        if event.is_directory:
            return
        logger.debug("Moved: %s -> %s", event.src_path, event.dest_path)
        self._report(event.dest_path)
