"""Log record model — every line on disk maps to one LogRecord."""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LogCategory(str, Enum):
    NETWORK = "network"
    UI = "ui"
    PERFORMANCE = "performance"
    STATE = "state"
    BACKGROUND = "background"


_LEVEL_ALIASES = {
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "warning": LogLevel.WARNING,
    "warn": LogLevel.WARNING,
    "error": LogLevel.ERROR,
    "critical": LogLevel.CRITICAL,
    "fatal": LogLevel.CRITICAL,
}

_CATEGORY_ALIASES = {c.value: c for c in LogCategory}

ERROR_LEVELS = frozenset({LogLevel.ERROR, LogLevel.CRITICAL})

NO_MESSAGE = "(no message)"
DEFAULT_THREAD = "main"


def level_from_str(value: Any, default: LogLevel = LogLevel.INFO) -> LogLevel:
    """Map any value to a LogLevel. Unknown tokens and non-strings → default."""
    if not isinstance(value, str):
        return default
    return _LEVEL_ALIASES.get(value.strip().lower(), default)


def category_from_str(value: Any, default: LogCategory = LogCategory.STATE) -> LogCategory:
    """Map any value to a LogCategory. Unknown tokens and non-strings → default."""
    if not isinstance(value, str):
        return default
    return _CATEGORY_ALIASES.get(value.strip().lower(), default)


def now_timestamp() -> str:
    """Current UTC time as '2024-01-01T00:00:00.000Z'."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


@dataclass(frozen=True)
class NetworkDetails:
    url: str
    method: str
    status_code: int
    duration: float
    request_headers: dict[str, str] | None = None
    request_body: Any = None
    response_body: Any = None


@dataclass(frozen=True)
class PerformanceDetails:
    start_time: float
    end_time: float
    duration: float
    memory_delta: float | None = None


@dataclass(frozen=True)
class LogRecord:
    id: str
    timestamp: str       # ISO 8601, millisecond precision
    level: LogLevel
    category: LogCategory
    message: str
    thread: str = DEFAULT_THREAD

    file: str | None = None
    function: str | None = None
    line: int | None = None
    queue_label: str | None = None
    metadata: dict[str, Any] | None = None
    network_details: NetworkDetails | None = None
    performance_details: PerformanceDetails | None = None

    @property
    def is_error(self) -> bool:
        return self.level in ERROR_LEVELS


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _to_wire(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def record_to_dict(record: LogRecord) -> dict[str, Any]:
    """Convert a LogRecord to its camelCase JSON form, dropping None values.

    Keys inside ``metadata`` and ``request_headers`` are user data and are
    left untouched.
    """
    out: dict[str, Any] = {}
    for key, value in asdict(record).items():
        if value is None:
            continue
        if key == "metadata":
            out[key] = value
        elif key in ("network_details", "performance_details"):
            sub = {}
            for sub_key, sub_value in value.items():
                if sub_value is None:
                    continue
                sub[_camel(sub_key)] = sub_value
            out[_camel(key)] = sub
        else:
            out[_camel(key)] = _to_wire(value)
    return out
