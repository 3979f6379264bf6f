"""Time-bucket aggregation of document word and file counts.

Groups documents by the calendar window their creation date falls into
(day, ISO week, month, year, or one explicit range) and derives per-bucket
totals, averages, and running cumulative sums.  Used by the analytics
engine (analytics.py) for every bucket series it serves.
"""

from __future__ import annotations

import asyncio
import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, Iterable

from word_count import count_words

logger = logging.getLogger(__name__)

GRANULARITIES = ("day", "week", "month", "year", "range")
DEFAULT_GRANULARITY = "day"
DEFAULT_BATCH_SIZE = 50
CHARS_PER_WORD_ESTIMATE = 5

ReadText = Callable[[str], Awaitable[str]]


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------

def _local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def coerce_datetime(value: Any) -> datetime | None:
    """Convert a timestamp in any supported form to a naive datetime.

    Args:
        value: A ``datetime``, a ``date`` (midnight is assumed), a POSIX
            epoch number, or an ISO-8601 string.

    Returns:
        The corresponding datetime, or None when *value* cannot be
        interpreted as a timestamp.  Timezone-aware inputs are converted
        to local time and made naive.
    """
    if isinstance(value, datetime):
        try:
            return _local_naive(value)
        except (OverflowError, OSError):
            return None
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value))
        except (TypeError, ValueError, OSError, OverflowError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return _local_naive(datetime.fromisoformat(text))
        except (ValueError, OverflowError, OSError):
            return None
    return None


def coerce_date(value: Any) -> date | None:
    """Like ``coerce_datetime`` but returns only the calendar date."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    dt = coerce_datetime(value)
    return dt.date() if dt is not None else None


def normalize_granularity(granularity: Any) -> str:
    """Return *granularity* if supported, otherwise fall back to daily."""
    if isinstance(granularity, str) and granularity.lower() in GRANULARITIES:
        return granularity.lower()
    logger.warning(
        "Unsupported granularity %r; falling back to %r",
        granularity, DEFAULT_GRANULARITY,
    )
    return DEFAULT_GRANULARITY


def normalize_range(date_range: Any) -> tuple[date, date] | None:
    """Validate an inclusive (start, end) date range.

    Inverted ranges are corrected by swapping the bounds rather than
    rejected.  A range that cannot be parsed is dropped with a warning,
    which means "no filtering".

    Args:
        date_range: None, or a 2-sequence of dates, datetimes, or ISO
            strings.

    Returns:
        An ordered ``(start, end)`` tuple of dates, or None.
    """
    if date_range is None:
        return None
    try:
        raw_start, raw_end = date_range
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed date range %r", date_range)
        return None

    start = coerce_date(raw_start)
    end = coerce_date(raw_end)
    if start is None or end is None:
        logger.warning("Ignoring unparseable date range %r", date_range)
        return None
    if start > end:
        logger.warning("Date range %s..%s is inverted; swapping bounds", start, end)
        start, end = end, start
    return start, end


# ---------------------------------------------------------------------------
# Bucket keys
# ---------------------------------------------------------------------------

def range_label(start: date, end: date) -> str:
    """Key for a single custom-range bucket, e.g. "2024-03-01 to 2024-03-31"."""
    return f"{start.isoformat()} to {end.isoformat()}"


def bucket_window(day: date, granularity: str) -> tuple[str, date, date]:
    """Compute the bucket key and window bounds containing *day*.

    Keys are zero-padded so that, for a fixed granularity, lexicographic
    order is chronological order.

    Args:
        day: The calendar date to place.
        granularity: One of "day", "week", "month", "year".  Weeks are ISO
            weeks, Monday through Sunday, keyed by ISO year and week number.

    Returns:
        A ``(key, start, end)`` tuple where *start* and *end* are the first
        and last calendar dates of the window.
    """
    if granularity == "week":
        iso = day.isocalendar()
        monday = day - timedelta(days=day.weekday())
        return f"{iso[0]}-W{iso[1]:02d}", monday, monday + timedelta(days=6)
    if granularity == "month":
        last = calendar.monthrange(day.year, day.month)[1]
        return (
            f"{day.year:04d}-{day.month:02d}",
            day.replace(day=1),
            day.replace(day=last),
        )
    if granularity == "year":
        return f"{day.year:04d}", date(day.year, 1, 1), date(day.year, 12, 31)
    return day.isoformat(), day, day


# ---------------------------------------------------------------------------
# Bucket construction (pure)
# ---------------------------------------------------------------------------

def _init_bucket(key: str, start: date, end: date) -> dict:
    """Create a fresh bucket accumulator."""
    return {
        "key": key,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "total_words": 0,
        "files_created": 0,
        "avg_words_per_file": 0,
        "cumulative_words": 0,
        "cumulative_files": 0,
    }


def build_buckets(
    contributions: Iterable[tuple[str, date, date, int]],
) -> list[dict]:
    """Group per-document contributions into ordered buckets.

    Args:
        contributions: One ``(key, start, end, words)`` tuple per document.

    Returns:
        Bucket dicts sorted ascending by key.  Each has keys key, start,
        end, total_words, files_created, avg_words_per_file,
        cumulative_words, and cumulative_files.  The averages and
        cumulative sums are filled in a single left-to-right pass.
    """
    grouped: dict[str, dict] = {}
    for key, start, end, words in contributions:
        if key not in grouped:
            grouped[key] = _init_bucket(key, start, end)
        grouped[key]["total_words"] += words
        grouped[key]["files_created"] += 1

    buckets = [grouped[k] for k in sorted(grouped)]
    cumulative_words = 0
    cumulative_files = 0
    for b in buckets:
        files = b["files_created"]
        b["avg_words_per_file"] = round(b["total_words"] / files) if files > 0 else 0
        cumulative_words += b["total_words"]
        cumulative_files += files
        b["cumulative_words"] = cumulative_words
        b["cumulative_files"] = cumulative_files
    return buckets


# ---------------------------------------------------------------------------
# Document helpers
# ---------------------------------------------------------------------------

def _size_estimate(document: dict) -> int:
    """Estimate a word count from file size (about 5 bytes per word)."""
    try:
        size = int(document.get("size_bytes") or 0)
    except (TypeError, ValueError):
        return 0
    return max(0, size) // CHARS_PER_WORD_ESTIMATE


def filter_by_folder(documents: list[dict], folder: str | None) -> list[dict]:
    """Keep only documents whose path lies under *folder*.

    An empty or None *folder* keeps everything.
    """
    if not folder:
        return list(documents)
    prefix = folder.strip("/") + "/"
    return [
        d for d in documents
        if str(d.get("path", "")).lstrip("/").startswith(prefix)
    ]


def collect_active_days(documents: Iterable[dict]) -> set[date]:
    """Collect every calendar date on which a document was created or modified.

    Args:
        documents: Document records with "created_at" and "modified_at".

    Returns:
        Set of dates.  Timestamps that cannot be parsed are skipped.
    """
    days: set[date] = set()
    for doc in documents:
        for field in ("created_at", "modified_at"):
            d = coerce_date(doc.get(field))
            if d is not None:
                days.add(d)
    return days


async def count_document_words(document: dict, read_text: ReadText) -> int:
    """Read one document and count its words, tolerating failures.

    A read failure substitutes the size-based estimate; content that is not
    text counts as zero words.  Neither is raised.

    Args:
        document: Document record with "path" and "size_bytes".
        read_text: Coroutine function returning the document's content.

    Returns:
        Word count (exact or estimated), never negative.
    """
    path = document.get("path")
    try:
        content = await read_text(path)
    except Exception as exc:
        estimate = _size_estimate(document)
        logger.warning(
            "Could not read %s (%s); estimating %d words from size",
            path, exc, estimate,
        )
        return estimate
    if not isinstance(content, str):
        logger.warning(
            "Document %s returned %s instead of text; counting 0 words",
            path, type(content).__name__,
        )
        return 0
    return count_words(content)


async def aggregate_documents(
    documents: list[dict],
    granularity: str = DEFAULT_GRANULARITY,
    date_range: Any = None,
    *,
    read_text: ReadText,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> list[dict]:
    """Bucket documents by creation date and count their words.

    Reads run concurrently within a batch; batches run one after another
    with a yield to the event loop in between so long aggregations do not
    starve other work.  Bucket contents do not depend on *batch_size*.

    Args:
        documents: Document records (path, created_at, modified_at,
            size_bytes).  Records without a usable created_at are skipped.
        granularity: "day", "week", "month", "year", or "range".
            Anything else falls back to "day".
        date_range: Optional inclusive ``(start, end)`` filter on the
            creation date.  Inverted ranges are swapped.
        read_text: Coroutine function ``path -> content``.
        batch_size: Number of documents read concurrently.

    Returns:
        Bucket dicts sorted by key (see ``build_buckets``).  Empty when no
        document falls in range.
    """
    granularity = normalize_granularity(granularity)
    bounds = normalize_range(date_range)
    batch_size = max(1, int(batch_size))

    selected: list[tuple[dict, date]] = []
    for doc in documents:
        created = coerce_date(doc.get("created_at"))
        if created is None:
            logger.warning(
                "Skipping %s: unusable created_at %r",
                doc.get("path"), doc.get("created_at"),
            )
            continue
        if bounds is not None and not bounds[0] <= created <= bounds[1]:
            continue
        selected.append((doc, created))

    if not selected:
        return []

    if granularity == "range":
        if bounds is not None:
            span_start, span_end = bounds
        else:
            span_start = min(c for _, c in selected)
            span_end = max(c for _, c in selected)
        label = range_label(span_start, span_end)

    contributions: list[tuple[str, date, date, int]] = []
    for offset in range(0, len(selected), batch_size):
        if offset:
            await asyncio.sleep(0)
        batch = selected[offset : offset + batch_size]
        word_counts = await asyncio.gather(
            *(count_document_words(doc, read_text) for doc, _ in batch)
        )
        for (_, created), words in zip(batch, word_counts):
            if granularity == "range":
                contributions.append((label, span_start, span_end, words))
            else:
                key, start, end = bucket_window(created, granularity)
                contributions.append((key, start, end, words))

    logger.debug(
        "Aggregated %d documents into %s buckets", len(selected), granularity,
    )
    return build_buckets(contributions)
