"""Line parser: one text line → one LogRecord, with tiered fallback.

Parse order:
  1. Strict   — JSON object with the full record shape (exact enum values)
  2. Salvage  — any JSON object; recognised fields pulled out one by one
  3. Plain    — not JSON at all; the raw line becomes the message

Only empty / whitespace-only lines yield None.
"""

import json
import logging
import uuid
from typing import Any

from logtail.models import (
    DEFAULT_THREAD,
    NO_MESSAGE,
    LogCategory,
    LogLevel,
    LogRecord,
    NetworkDetails,
    PerformanceDetails,
    category_from_str,
    level_from_str,
    now_timestamp,
)

logger = logging.getLogger(__name__)

_MAX_LINE_NUMBER = 2**32 - 1
_MAX_STATUS_CODE = 2**16 - 1


class StrictParseError(ValueError):
    """The JSON object does not match the full record shape."""


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _new_id() -> str:
    return str(uuid.uuid4())


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _opt_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _opt_line(value: Any) -> int | None:
    if _is_int(value) and 0 <= value <= _MAX_LINE_NUMBER:
        return value
    return None


def _opt_metadata(value: Any) -> dict[str, Any] | None:
    return dict(value) if isinstance(value, dict) else None


def _network_details(value: Any) -> NetworkDetails:
    """Build NetworkDetails or raise StrictParseError."""
    if not isinstance(value, dict):
        raise StrictParseError("networkDetails is not an object")
    url, method = value.get("url"), value.get("method")
    status_code, duration = value.get("statusCode"), value.get("duration")
    if not isinstance(url, str) or not isinstance(method, str):
        raise StrictParseError("networkDetails.url/method must be strings")
    if not _is_int(status_code) or not 0 <= status_code <= _MAX_STATUS_CODE:
        raise StrictParseError("networkDetails.statusCode out of range")
    if not _is_number(duration):
        raise StrictParseError("networkDetails.duration must be a number")

    headers = value.get("requestHeaders")
    if headers is not None:
        if not isinstance(headers, dict) or not all(isinstance(v, str) for v in headers.values()):
            raise StrictParseError("networkDetails.requestHeaders must map strings to strings")
        headers = dict(headers)

    return NetworkDetails(
        url=url,
        method=method,
        status_code=status_code,
        duration=float(duration),
        request_headers=headers,
        request_body=value.get("requestBody"),
        response_body=value.get("responseBody"),
    )


def _performance_details(value: Any) -> PerformanceDetails:
    """Build PerformanceDetails or raise StrictParseError."""
    if not isinstance(value, dict):
        raise StrictParseError("performanceDetails is not an object")
    start, end, duration = value.get("startTime"), value.get("endTime"), value.get("duration")
    if not (_is_number(start) and _is_number(end) and _is_number(duration)):
        raise StrictParseError("performanceDetails times must be numbers")
    memory_delta = value.get("memoryDelta")
    if memory_delta is not None and not _is_number(memory_delta):
        raise StrictParseError("performanceDetails.memoryDelta must be a number")
    return PerformanceDetails(
        start_time=float(start),
        end_time=float(end),
        duration=float(duration),
        memory_delta=float(memory_delta) if memory_delta is not None else None,
    )


def _maybe(builder, value: Any):
    """Run a sub-record builder, dropping the field instead of failing."""
    if value is None:
        return None
    try:
        return builder(value)
    except StrictParseError as e:
        logger.debug("Dropping invalid sub-record: %s", e)
        return None


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------


def parse_strict(data: dict[str, Any]) -> LogRecord:
    """Parse a JSON object that carries the full record shape.

    Raises StrictParseError on any missing required field, wrong type or
    non-canonical enum value. An empty id is replaced with a fresh one.
    """
    for key in ("id", "timestamp", "level", "category", "message", "thread"):
        if not isinstance(data.get(key), str):
            raise StrictParseError(f"missing or non-string field: {key}")

    try:
        level = LogLevel(data["level"])
        category = LogCategory(data["category"])
    except ValueError as e:
        raise StrictParseError(str(e)) from e

    optional_strs = {}
    for key in ("file", "function", "queueLabel"):
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            raise StrictParseError(f"field {key} must be a string")
        optional_strs[key] = value

    line = data.get("line")
    if line is not None and _opt_line(line) is None:
        raise StrictParseError("field line must be a non-negative 32-bit integer")

    metadata = data.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise StrictParseError("field metadata must be an object")

    network = data.get("networkDetails")
    performance = data.get("performanceDetails")

    return LogRecord(
        id=data["id"] or _new_id(),
        timestamp=data["timestamp"],
        level=level,
        category=category,
        message=data["message"],
        thread=data["thread"],
        file=optional_strs["file"],
        function=optional_strs["function"],
        line=line,
        queue_label=optional_strs["queueLabel"],
        metadata=dict(metadata) if metadata is not None else None,
        network_details=_network_details(network) if network is not None else None,
        performance_details=_performance_details(performance) if performance is not None else None,
    )


def parse_salvage(data: dict[str, Any]) -> LogRecord:
    """Best-effort extraction from any JSON object. Never raises."""
    record_id = data.get("id")
    timestamp = data.get("timestamp")
    message = data.get("message")
    thread = data.get("thread")

    return LogRecord(
        id=record_id if isinstance(record_id, str) and record_id else _new_id(),
        timestamp=timestamp if isinstance(timestamp, str) and timestamp else now_timestamp(),
        level=level_from_str(data.get("level")),
        category=category_from_str(data.get("category")),
        message=message if isinstance(message, str) and message else NO_MESSAGE,
        thread=thread if isinstance(thread, str) else DEFAULT_THREAD,
        file=_opt_str(data.get("file")),
        function=_opt_str(data.get("function")),
        line=_opt_line(data.get("line")),
        queue_label=_opt_str(data.get("queueLabel")),
        metadata=_opt_metadata(data.get("metadata")),
        network_details=_maybe(_network_details, data.get("networkDetails")),
        performance_details=_maybe(_performance_details, data.get("performanceDetails")),
    )


def plain_text_record(line: str) -> LogRecord:
    """Wrap a non-JSON line verbatim."""
    return LogRecord(
        id=_new_id(),
        timestamp=now_timestamp(),
        level=LogLevel.INFO,
        category=LogCategory.STATE,
        message=line,
        thread=DEFAULT_THREAD,
    )


def parse_line(line: str) -> LogRecord | None:
    """Parse one line. Returns None only for empty / whitespace-only input."""
    stripped = line.strip()
    if not stripped:
        return None

    try:
        data = json.loads(stripped)
    except (ValueError, RecursionError):
        return plain_text_record(stripped)

    if not isinstance(data, dict):
        return plain_text_record(stripped)

    try:
        return parse_strict(data)
    except StrictParseError as e:
        logger.debug("Strict parse failed (%s), salvaging", e)
        return parse_salvage(data)
