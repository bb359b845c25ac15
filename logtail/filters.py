"""Record filtering by level, category and free-text search."""

from logtail.models import LogCategory, LogLevel, LogRecord


def matches_search(record: LogRecord, query: str) -> bool:
    """Case-insensitive substring match over the searchable fields."""
    q = query.lower()
    fields = (
        record.message,
        record.level.value,
        record.category.value,
        record.thread,
        record.file,
        record.function,
    )
    return any(f is not None and q in f.lower() for f in fields)


def filter_records(
    records: list[LogRecord],
    level: LogLevel | None = None,
    category: LogCategory | None = None,
    search: str | None = None,
) -> list[LogRecord]:
    """Keep records matching every given criterion. None means 'all'."""
    result = []
    for record in records:
        if level is not None and record.level != level:
            continue
        if category is not None and record.category != category:
            continue
        if search and not matches_search(record, search):
            continue
        result.append(record)
    return result
