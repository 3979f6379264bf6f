"""File size distribution and growth statistics.

Works purely on document metadata (``size_bytes`` and ``modified_at``);
no content is read.  There is no history of past sizes, so "growth" is an
estimate: a large file edited in the last week is assumed to have grown
from roughly 70% of its current size.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from aggregation import coerce_datetime

SMALL_LIMIT = 10 * 1024
MEDIUM_LIMIT = 100 * 1024
LARGE_LIMIT = 1024 * 1024

RECENT_WINDOW_DAYS = 30
GROWTH_WINDOW_DAYS = 7
PREVIOUS_SIZE_RATIO = 0.7
TOP_N = 10

CATEGORIES = ("small", "medium", "large", "very-large")
_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(num_bytes: float) -> str:
    """Human-readable size using 1024-based units, e.g. ``"1.5 KB"``."""
    if num_bytes <= 0:
        return "0 B"
    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {_UNITS[unit]}"


def size_category(num_bytes: int) -> str:
    if num_bytes < SMALL_LIMIT:
        return "small"
    if num_bytes < MEDIUM_LIMIT:
        return "medium"
    if num_bytes < LARGE_LIMIT:
        return "large"
    return "very-large"


def _file_entry(doc: dict, size: int, modified: datetime | None) -> dict[str, Any]:
    path = str(doc.get("path", ""))
    return {
        "file_name": path.rsplit("/", 1)[-1],
        "path": path,
        "size_bytes": size,
        "size_formatted": format_bytes(size),
        "modified_at": modified.isoformat() if modified else None,
        "category": size_category(size),
    }


def _growth_entry(entry: dict, now: datetime) -> dict[str, Any]:
    current = entry["size_bytes"]
    previous = current * PREVIOUS_SIZE_RATIO
    growth = current - previous
    return {
        "file_name": entry["file_name"],
        "path": entry["path"],
        "previous_size_bytes": round(previous),
        "previous_size_formatted": format_bytes(previous),
        "previous_size_date": (now - timedelta(days=GROWTH_WINDOW_DAYS)).date().isoformat(),
        "size_bytes": current,
        "size_formatted": entry["size_formatted"],
        "growth_rate": round(growth / previous * 100, 2),
        "total_growth_bytes": round(growth),
        "trend": "growing",
    }


def file_size_stats(documents: list[dict], now: datetime) -> dict[str, Any]:
    """Summarize document sizes.

    Args:
        documents: Document records with "path", "size_bytes" and
            "modified_at".  Empty (or unsized) documents are ignored.
        now: Reference time for the recent-growth windows.

    Returns:
        Dict with keys total_files, total_size_bytes, total_size_formatted,
        average_size_bytes, average_size_formatted, largest_file,
        smallest_file, distribution (count per category), top_files (10
        largest), and recent_growth (at most 10 growing files, fastest
        first).
    """
    entries = []
    for doc in documents:
        try:
            size = int(doc.get("size_bytes") or 0)
        except (TypeError, ValueError):
            continue
        if size <= 0:
            continue
        entries.append(_file_entry(doc, size, coerce_datetime(doc.get("modified_at"))))

    distribution = {c: 0 for c in CATEGORIES}
    if not entries:
        return {
            "total_files": 0,
            "total_size_bytes": 0,
            "total_size_formatted": "0 B",
            "average_size_bytes": 0,
            "average_size_formatted": "0 B",
            "largest_file": None,
            "smallest_file": None,
            "distribution": distribution,
            "top_files": [],
            "recent_growth": [],
        }

    for e in entries:
        distribution[e["category"]] += 1

    by_size = sorted(entries, key=lambda e: (-e["size_bytes"], e["path"]))
    total = sum(e["size_bytes"] for e in entries)
    average = total / len(entries)

    recent_cutoff = now - timedelta(days=RECENT_WINDOW_DAYS)
    growth_cutoff = now - timedelta(days=GROWTH_WINDOW_DAYS)
    growing = []
    for e in by_size:
        modified = coerce_datetime(e["modified_at"])
        if modified is None or modified <= recent_cutoff:
            continue
        if e["category"] in ("large", "very-large") and modified > growth_cutoff:
            growing.append(_growth_entry(e, now))
    growing.sort(key=lambda g: (-g["growth_rate"], -g["size_bytes"]))

    return {
        "total_files": len(entries),
        "total_size_bytes": total,
        "total_size_formatted": format_bytes(total),
        "average_size_bytes": round(average),
        "average_size_formatted": format_bytes(average),
        "largest_file": by_size[0],
        "smallest_file": by_size[-1],
        "distribution": distribution,
        "top_files": by_size[:TOP_N],
        "recent_growth": growing[:TOP_N],
    }
