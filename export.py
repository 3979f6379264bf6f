"""CSV and JSON export of bucketed analytics.

Writes one file per call into *output_dir*, named
``notes-analytics-<granularity>-<YYYY-MM-DD>.<ext>``.
"""

from __future__ import annotations

import csv
import json
import logging
import os
from datetime import date
from typing import Any

from aggregation import normalize_granularity

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "json")
BUCKET_FIELDS = [
    "key",
    "start",
    "end",
    "total_words",
    "files_created",
    "avg_words_per_file",
    "cumulative_words",
    "cumulative_files",
]
SUMMARY_FIELDS = ["total_files", "total_words", "avg_words_per_file", "current_streak", "longest_streak"]


def export_filename(granularity: str, fmt: str, today: date) -> str:
    return f"notes-analytics-{granularity}-{today.isoformat()}.{fmt}"


def _write_csv(path: str, buckets: list[dict], summary: dict) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=BUCKET_FIELDS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(buckets)

        # Summary block after one blank row.
        plain = csv.writer(f)
        plain.writerow([])
        plain.writerow(["summary", "value"])
        for field in SUMMARY_FIELDS:
            if field in summary:
                plain.writerow([field, summary[field]])


def _write_json(path: str, buckets: list[dict], summary: dict, granularity: str, today: date) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(
            {
                "export_date": today.isoformat(),
                "granularity": granularity,
                "summary": summary,
                "data": buckets,
            },
            f,
            indent=2,
        )


def export_analytics(
    buckets: list[dict],
    summary: dict[str, Any],
    granularity: str,
    fmt: str = "csv",
    output_dir: str = "notes_analytics",
    today: date | None = None,
) -> str:
    """Write a bucket series and its summary to disk.

    Args:
        buckets: Bucket dicts (see ``aggregation.build_buckets``).
        summary: Summary dict (see ``analytics.compute_summary``).
        granularity: Granularity the buckets were built with; used in the
            file name.
        fmt: "csv" or "json".  Anything else falls back to CSV.
        output_dir: Directory for the export.  Created if it doesn't exist.
        today: Date stamped into the file name.  Defaults to today.

    Returns:
        Path of the written file.
    """
    fmt = (fmt or "").lower()
    if fmt not in EXPORT_FORMATS:
        logger.warning("Unsupported export format %r; writing CSV", fmt)
        fmt = "csv"
    today = today or date.today()

    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, export_filename(granularity, fmt, today))

    if fmt == "json":
        _write_json(path, buckets, summary, granularity, today)
    else:
        _write_csv(path, buckets, summary)

    logger.info("Exported %d %s buckets to %s", len(buckets), granularity, path)
    return path


async def export_engine(
    engine: Any,
    granularity: str = "day",
    fmt: str = "csv",
    output_dir: str = "notes_analytics",
) -> str:
    """Export the engine's current buckets and summary for *granularity*."""
    granularity = normalize_granularity(granularity)
    buckets = await engine.get_buckets(granularity)
    summary = await engine.get_summary()
    return export_analytics(buckets, summary, granularity, fmt, output_dir, engine.now().date())
