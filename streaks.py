"""Writing streaks computed from the set of active calendar days.

An active day is any date on which a document was created or modified
(see ``aggregation.collect_active_days``).  Every result is recomputed from
the full set on each call, so backdated or reordered edits can never leave
a stale counter behind.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Any, Iterable

ONE_DAY = timedelta(days=1)


def current_streak(active_days: set[date], today: date) -> int:
    """Count consecutive active days ending today or yesterday.

    A streak that ended yesterday is still alive (today may not have
    been written yet).  Otherwise the streak is 0.
    """
    if today in active_days:
        check = today
    elif today - ONE_DAY in active_days:
        check = today - ONE_DAY
    else:
        return 0

    streak = 0
    while check in active_days:
        streak += 1
        check -= ONE_DAY
    return streak


def _runs(sorted_days: list[date]) -> list[int]:
    """Lengths of the runs of consecutive days in an ascending list."""
    runs: list[int] = []
    previous = None
    for day in sorted_days:
        if previous is not None and day - previous == ONE_DAY:
            runs[-1] += 1
        else:
            runs.append(1)
        previous = day
    return runs


def longest_streak(active_days: Iterable[date]) -> int:
    """Length of the longest run of consecutive active days."""
    return max(_runs(sorted(set(active_days))), default=0)


def streak_level(streak: int) -> str:
    """Classify a current streak length."""
    if streak < 3:
        return "beginner"
    if streak < 7:
        return "building"
    if streak < 30:
        return "strong"
    return "legendary"


def compute_streak(active_days: Iterable[date], today: date) -> dict[str, Any]:
    """Compute the streak state for *today*.

    Args:
        active_days: Dates with any document activity.
        today: The reference date (injected so results are reproducible).

    Returns:
        Dict with keys current_streak, longest_streak,
        active_days_this_month, last_active_date (ISO string or None),
        and streak_level.
    """
    days = set(active_days)
    current = current_streak(days, today)
    this_month = sum(1 for d in days if d.year == today.year and d.month == today.month)
    return {
        "current_streak": current,
        "longest_streak": longest_streak(days),
        "active_days_this_month": this_month,
        "last_active_date": max(days).isoformat() if days else None,
        "streak_level": streak_level(current),
    }


def compute_streak_stats(active_days: Iterable[date], today: date) -> dict[str, Any]:
    """Year-to-date streak statistics.

    Args:
        active_days: Dates with any document activity.
        today: Reference date; only days of its year up to and including
            *today* are considered.

    Returns:
        Dict with keys streaks_this_year (number of runs),
        average_streak_length, longest_streak_this_year,
        days_active_this_year, and consistency_percentage (active days as a
        share of the elapsed days of the year).
    """
    year_start = date(today.year, 1, 1)
    days = sorted(d for d in set(active_days) if year_start <= d <= today)
    runs = _runs(days)
    elapsed = (today - year_start).days + 1
    return {
        "streaks_this_year": len(runs),
        "average_streak_length": round(len(days) / len(runs)) if runs else 0,
        "longest_streak_this_year": max(runs, default=0),
        "days_active_this_year": len(days),
        "consistency_percentage": round(len(days) / elapsed * 100),
    }


def _intensity(words: int, files: int) -> str:
    if not words and not files:
        return "none"
    activity = words + files * 100
    if activity < 100:
        return "low"
    if activity < 500:
        return "medium"
    if activity < 1000:
        return "high"
    return "extreme"


def build_activity_calendar(
    daily_buckets: list[dict],
    active_days: Iterable[date],
    year: int,
) -> list[dict[str, Any]]:
    """One entry per day of *year* describing writing activity.

    Args:
        daily_buckets: Day-granularity buckets (keys are ISO dates).
        active_days: Dates with any creation or modification.
        year: Calendar year to lay out.

    Returns:
        List of dicts (date, has_activity, word_count, files_created,
        intensity) from January 1 through December 31.
    """
    by_day = {b["key"]: b for b in daily_buckets}
    days = set(active_days)
    total_days = 366 if calendar.isleap(year) else 365
    start = date(year, 1, 1)

    entries = []
    for offset in range(total_days):
        day = start + timedelta(days=offset)
        bucket = by_day.get(day.isoformat())
        words = bucket["total_words"] if bucket else 0
        files = bucket["files_created"] if bucket else 0
        entries.append(
            {
                "date": day.isoformat(),
                "has_activity": day in days or files > 0,
                "word_count": words,
                "files_created": files,
                "intensity": _intensity(words, files),
            }
        )
    return entries
