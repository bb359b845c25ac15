"""Console formatters — plain, colorized (ANSI) and NDJSON."""

import json
from typing import Callable

from logtail.models import LogLevel, LogRecord, record_to_dict

# ANSI color codes
COLORS = {
    LogLevel.DEBUG: "\033[36m",     # cyan
    LogLevel.INFO: "\033[32m",      # green
    LogLevel.WARNING: "\033[33m",   # yellow
    LogLevel.ERROR: "\033[31m",     # red
    LogLevel.CRITICAL: "\033[35m",  # magenta
}
RESET = "\033[0m"


def _location(record: LogRecord) -> str:
    if not record.file:
        return ""
    if record.line is not None:
        return f" ({record.file}:{record.line})"
    return f" ({record.file})"


def format_text(record: LogRecord) -> str:
    level = record.level.value.upper()
    return (f"{record.timestamp} {level:<8} [{record.category.value}] "
            f"[{record.thread}] {record.message}{_location(record)}")


def format_color(record: LogRecord) -> str:
    color = COLORS.get(record.level, "")
    level = record.level.value.upper()
    return (f"{record.timestamp} {color}{level:<8}{RESET} [{record.category.value}] "
            f"[{record.thread}] {record.message}{_location(record)}")


def format_json(record: LogRecord) -> str:
    """One JSON object per line, compatible with jq."""
    return json.dumps(record_to_dict(record))


def get_formatter(output_format: str = "text", color: bool = False) -> Callable[[LogRecord], str]:
    if output_format == "json":
        return format_json
    if color:
        return format_color
    return format_text
