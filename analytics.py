"""Analytics engine for a corpus of markdown notes.

Ties together aggregation, statistical analysis, streaks and file size
statistics behind one cached facade.  Used by the web service (app.py) and
by the export helpers (export.py).

The engine reads documents through an injected *source* object that must
provide:

* ``list_documents()`` returning document dicts with keys "path",
  "created_at", "modified_at", and "size_bytes";
* ``async read_text(path)`` returning the document content.

Every accessor result is memoized in an ``AnalyticsCache`` under a
fingerprint key (partition, operation, parameters, corpus generation) and
invalidated by the ``ChangeCoordinator`` as the corpus changes.
"""

from __future__ import annotations

import calendar
import logging
import time
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, NamedTuple

from advanced_analytics import (
    correlations,
    predict,
    seasonal_patterns,
    statistical_summary,
    trend_for,
    writing_insights,
)
from aggregation import (
    aggregate_documents,
    coerce_datetime,
    collect_active_days,
    filter_by_folder,
    normalize_granularity,
    normalize_range,
)
from analytics_cache import MISS, AnalyticsCache
from change_coordinator import ChangeCoordinator, partition_pattern
from config import AnalyticsSettings
from config import settings as default_settings
from file_sizes import file_size_stats
from streaks import build_activity_calendar, compute_streak, compute_streak_stats

logger = logging.getLogger(__name__)

DASHBOARD_GRANULARITIES = ("day", "week", "month", "year")
_DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

class Metric(NamedTuple):
    """A bucket series the analyzer can be pointed at."""

    name: str
    label: str
    fetch: Callable[[list[dict]], list[float]]
    correlated: bool = True


def _field_series(field: str) -> Callable[[list[dict]], list[float]]:
    def fetch(buckets: list[dict]) -> list[float]:
        return [b[field] for b in buckets]
    return fetch


METRICS: dict[str, Metric] = {
    m.name: m
    for m in (
        Metric("words", "Words written", _field_series("total_words")),
        Metric("files", "Files created", _field_series("files_created")),
        Metric("avg_words", "Average words per file", _field_series("avg_words_per_file")),
        # Running totals correlate with anything that grows; keep them out.
        Metric(
            "cumulative_words", "Cumulative words",
            _field_series("cumulative_words"), correlated=False,
        ),
    )
}
DEFAULT_METRIC = "words"


def resolve_metric(name: str) -> Metric:
    """Look up a metric by name, falling back to words for unknown names."""
    metric = METRICS.get(name)
    if metric is None:
        logger.warning("Unknown metric %r; falling back to %r", name, DEFAULT_METRIC)
        return METRICS[DEFAULT_METRIC]
    return metric


# ---------------------------------------------------------------------------
# Summary & period comparison (pure)
# ---------------------------------------------------------------------------

def compute_summary(
    documents: list[dict],
    total_words: int,
    today: date,
) -> dict[str, Any]:
    """Compute high-level corpus statistics.

    Args:
        documents: Document records.  Those without a usable created_at
            are left out of every count.
        total_words: Word total across the corpus (from aggregation).
        today: Reference date for the today/week/month counts and streaks.

    Returns:
        Dict with keys total_files, total_words, files_today,
        files_this_week, files_this_month, avg_words_per_file,
        most_active_weekday (name or None), oldest_file, newest_file
        (each ``{"path", "created_at"}`` or None), current_streak, and
        longest_streak.
    """
    dated = []
    for doc in documents:
        created = coerce_datetime(doc.get("created_at"))
        if created is not None:
            dated.append((created, str(doc.get("path", ""))))
    dated.sort()

    week_start = today - timedelta(days=today.weekday())
    created_days = [c.date() for c, _ in dated]
    weekdays = Counter(d.weekday() for d in created_days)
    total_files = len(dated)
    streak = compute_streak(collect_active_days(documents), today)

    def _file(item: tuple[datetime, str] | None) -> dict | None:
        if item is None:
            return None
        return {"path": item[1], "created_at": item[0].isoformat()}

    return {
        "total_files": total_files,
        "total_words": total_words,
        "files_today": sum(1 for d in created_days if d == today),
        "files_this_week": sum(1 for d in created_days if week_start <= d <= today),
        "files_this_month": sum(
            1 for d in created_days if (d.year, d.month) == (today.year, today.month)
        ),
        "avg_words_per_file": round(total_words / total_files) if total_files else 0,
        "most_active_weekday": (
            _DAY_NAMES[weekdays.most_common(1)[0][0]] if weekdays else None
        ),
        "oldest_file": _file(dated[0] if dated else None),
        "newest_file": _file(dated[-1] if dated else None),
        "current_streak": streak["current_streak"],
        "longest_streak": streak["longest_streak"],
    }


def _compute_period_bucket(
    created_days: list[date],
    match_fn: Callable[[date], bool],
) -> dict[str, int]:
    """Count the creation dates that fall in one period."""
    return {"files": sum(1 for d in created_days if match_fn(d))}


def _add_period_projections(stats: dict, elapsed: int, total: int) -> None:
    """Add pro-rata projections to a current-period stats dict.

    Args:
        stats: Period stats dict (modified in place).  Must contain "files".
        elapsed: Number of days elapsed in the current period.
        total: Total number of days in the full period.
    """
    stats["elapsed_days"] = elapsed
    stats["total_days"] = total
    factor = total / elapsed if elapsed > 0 else 1
    stats["projected_files"] = round(stats["files"] * factor, 2)


def compute_period_comparison(
    created_days: list[date],
    reference: date,
) -> dict[str, Any]:
    """Compute month-over-month and year-over-year file creation counts.

    Args:
        created_days: Creation date of every document.
        reference: The date treated as "today" for period boundaries.

    Returns:
        Dict with keys this_month, last_month, this_year, last_year, each
        a dict with "files".  The current (partial) periods additionally
        carry elapsed_days, total_days and projected_files.
    """
    if reference.month == 1:
        last_month = (reference.year - 1, 12)
    else:
        last_month = (reference.year, reference.month - 1)
    this_month = (reference.year, reference.month)

    result = {
        "this_month": _compute_period_bucket(created_days, lambda d: (d.year, d.month) == this_month),
        "last_month": _compute_period_bucket(created_days, lambda d: (d.year, d.month) == last_month),
        "this_year": _compute_period_bucket(created_days, lambda d: d.year == reference.year),
        "last_year": _compute_period_bucket(created_days, lambda d: d.year == reference.year - 1),
    }

    month_total_days = calendar.monthrange(reference.year, reference.month)[1]
    year_total_days = 366 if calendar.isleap(reference.year) else 365
    year_elapsed = (reference - date(reference.year, 1, 1)).days + 1

    _add_period_projections(result["this_month"], reference.day, month_total_days)
    _add_period_projections(result["this_year"], year_elapsed, year_total_days)
    return result


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class AnalyticsEngine:
    """Cached analytics over one document source.

    Args:
        source: Document source (see module docstring).
        settings: Engine settings; defaults to the environment-derived
            ``config.settings``.
        now: Wall-clock source used for "today" and recent windows.
        clock: Monotonic clock used for cache TTLs and debouncing.
    """

    def __init__(
        self,
        source: Any,
        settings: AnalyticsSettings | None = None,
        now: Callable[[], datetime] = datetime.now,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.settings = settings or default_settings
        self.now = now
        self.cache = AnalyticsCache(
            max_entries=self.settings.cache_max_entries,
            max_memory_bytes=self.settings.cache_max_memory_bytes,
            clock=clock,
        )
        self.coordinator = ChangeCoordinator(
            self.cache,
            debounce_seconds=self.settings.modify_debounce_seconds,
            clock=clock,
        )
        self.disposed = False

    # -- plumbing ----------------------------------------------------------

    def _key(self, partition: str, op: str, **params: Any) -> str:
        """Fingerprint for one accessor call under the current generation."""
        args = "|".join(f"{k}={params[k]}" for k in sorted(params))
        return f"{partition_pattern(partition)}{op}|{args}|g{self.coordinator.generation}"

    async def _cached(
        self,
        key: str,
        ttl_seconds: float,
        compute: Callable[[], Awaitable[Any]],
    ) -> Any:
        value = self.cache.get(key)
        if value is not MISS:
            logger.debug("Cache hit %s", key)
            return value
        logger.debug("Cache miss %s", key)
        changes = self.coordinator.changes
        value = await compute()
        if self.coordinator.changes != changes:
            logger.debug("Corpus changed while computing %s; not caching", key)
            return value
        self.cache.set(key, value, ttl_seconds)
        return value

    def _list_documents(self) -> list[dict]:
        try:
            return list(self.source.list_documents())
        except Exception:
            logger.exception("Could not enumerate documents; serving empty results")
            return []

    async def _aggregate(
        self,
        documents: list[dict],
        granularity: str,
        date_range: tuple[date, date] | None = None,
    ) -> list[dict]:
        return await aggregate_documents(
            documents,
            granularity,
            date_range,
            read_text=self.source.read_text,
            batch_size=self.settings.batch_size,
        )

    def _today(self) -> date:
        return self.now().date()

    async def _window_buckets(self) -> list[dict]:
        """Daily buckets for documents created in the analysis window."""
        today = self._today()
        window = (today - timedelta(days=self.settings.analysis_window_days), today)

        async def compute() -> list[dict]:
            return await self._aggregate(self._list_documents(), "day", window)

        key = self._key("analytics", "daily_window", start=window[0], end=window[1])
        return await self._cached(key, self.settings.ttl_analytics_seconds, compute)

    # -- buckets -----------------------------------------------------------

    async def get_buckets(
        self,
        granularity: str = "day",
        date_range: Any = None,
        folder: str | None = None,
    ) -> list[dict]:
        """Bucketed word and file counts.

        Args:
            granularity: "day", "week", "month", "year", or "range".
            date_range: Optional inclusive ``(start, end)`` on creation date.
            folder: Optional folder prefix restricting the documents.

        Returns:
            Bucket dicts sorted by key; empty when there is no data.
        """
        granularity = normalize_granularity(granularity)
        bounds = normalize_range(date_range)
        folder = folder.strip("/") if folder else None
        if bounds is not None or folder:
            ttl = self.settings.ttl_range_seconds
        else:
            ttl = self.settings.ttl_analytics_seconds

        async def compute() -> list[dict]:
            documents = filter_by_folder(self._list_documents(), folder)
            return await self._aggregate(documents, granularity, bounds)

        span = f"{bounds[0]}..{bounds[1]}" if bounds else None
        key = self._key("words", "buckets", granularity=granularity, range=span, folder=folder)
        return await self._cached(key, ttl, compute)

    # -- statistical analysis ----------------------------------------------

    async def get_trend(self, metric: str = DEFAULT_METRIC) -> dict[str, Any]:
        m = resolve_metric(metric)

        async def compute() -> dict[str, Any]:
            return trend_for(m.fetch(await self._window_buckets()))

        return await self._cached(
            self._key("analytics", "trend", metric=m.name),
            self.settings.ttl_analytics_seconds,
            compute,
        )

    async def get_prediction(self, metric: str = DEFAULT_METRIC) -> dict[str, Any]:
        m = resolve_metric(metric)

        async def compute() -> dict[str, Any]:
            return predict(m.fetch(await self._window_buckets()))

        return await self._cached(
            self._key("analytics", "prediction", metric=m.name),
            self.settings.ttl_analytics_seconds,
            compute,
        )

    async def get_statistical_summary(self, metric: str = DEFAULT_METRIC) -> dict[str, Any]:
        m = resolve_metric(metric)

        async def compute() -> dict[str, Any]:
            return statistical_summary(m.fetch(await self._window_buckets()))

        return await self._cached(
            self._key("analytics", "statistics", metric=m.name),
            self.settings.ttl_analytics_seconds,
            compute,
        )

    async def get_correlations(self) -> list[dict[str, Any]]:
        async def compute() -> list[dict[str, Any]]:
            buckets = await self._window_buckets()
            return correlations(
                {m.name: m.fetch(buckets) for m in METRICS.values() if m.correlated}
            )

        return await self._cached(
            self._key("analytics", "correlations"),
            self.settings.ttl_analytics_seconds,
            compute,
        )

    async def get_seasonal_patterns(self) -> list[dict[str, Any]]:
        async def compute() -> list[dict[str, Any]]:
            return seasonal_patterns(await self._window_buckets(), "total_words")

        return await self._cached(
            self._key("analytics", "seasonal"),
            self.settings.ttl_analytics_seconds,
            compute,
        )

    async def get_insights(self) -> dict[str, Any]:
        async def compute() -> dict[str, Any]:
            return writing_insights(await self._window_buckets())

        return await self._cached(
            self._key("analytics", "insights"),
            self.settings.ttl_analytics_seconds,
            compute,
        )

    # -- streaks -----------------------------------------------------------

    async def get_streak(self) -> dict[str, Any]:
        """Current streak state, recomputed from every active day."""
        today = self._today()

        async def compute() -> dict[str, Any]:
            return compute_streak(collect_active_days(self._list_documents()), today)

        return await self._cached(
            self._key("streak", "state", today=today),
            self.settings.ttl_totals_seconds,
            compute,
        )

    async def get_streak_stats(self) -> dict[str, Any]:
        today = self._today()

        async def compute() -> dict[str, Any]:
            return compute_streak_stats(collect_active_days(self._list_documents()), today)

        return await self._cached(
            self._key("streak", "stats", today=today),
            self.settings.ttl_totals_seconds,
            compute,
        )

    async def get_activity_calendar(self, year: int | None = None) -> list[dict[str, Any]]:
        """Per-day activity for *year* (defaults to the current year)."""
        year = year or self._today().year

        async def compute() -> list[dict[str, Any]]:
            documents = self._list_documents()
            daily = await self._aggregate(
                documents, "day", (date(year, 1, 1), date(year, 12, 31))
            )
            return build_activity_calendar(daily, collect_active_days(documents), year)

        return await self._cached(
            self._key("streak", "calendar", year=year),
            self.settings.ttl_range_seconds,
            compute,
        )

    # -- totals ------------------------------------------------------------

    async def get_summary(self) -> dict[str, Any]:
        today = self._today()

        async def compute() -> dict[str, Any]:
            documents = self._list_documents()
            yearly = await self._aggregate(documents, "year")
            total_words = yearly[-1]["cumulative_words"] if yearly else 0
            return compute_summary(documents, total_words, today)

        return await self._cached(
            self._key("summary", "totals", today=today),
            self.settings.ttl_totals_seconds,
            compute,
        )

    async def get_period_comparison(self) -> dict[str, Any]:
        today = self._today()

        async def compute() -> dict[str, Any]:
            created_days = []
            for doc in self._list_documents():
                created = coerce_datetime(doc.get("created_at"))
                if created is not None:
                    created_days.append(created.date())
            return compute_period_comparison(created_days, today)

        return await self._cached(
            self._key("comparison", "periods", today=today),
            self.settings.ttl_totals_seconds,
            compute,
        )

    async def get_file_size_stats(self) -> dict[str, Any]:
        async def compute() -> dict[str, Any]:
            return file_size_stats(self._list_documents(), self.now())

        return await self._cached(
            self._key("sizes", "stats"),
            self.settings.ttl_totals_seconds,
            compute,
        )

    def get_cache_stats(self) -> dict[str, Any]:
        return self.cache.stats()

    # -- change events -----------------------------------------------------

    def on_document_created(self, path: str) -> None:
        self.coordinator.on_document_created(path)

    def on_document_modified(self, path: str) -> None:
        self.coordinator.on_document_modified(path)

    def on_document_deleted(self, path: str) -> None:
        self.coordinator.on_document_deleted(path)

    def handle_event(self, event_type: str, path: str) -> str | None:
        return self.coordinator.handle_event(event_type, path)

    def on_settings_changed(self, settings: AnalyticsSettings | None = None) -> None:
        """Apply new settings (if given) and drop every cached result."""
        if settings is not None:
            self.settings = settings
            self.cache.max_entries = settings.cache_max_entries
            self.cache.max_memory_bytes = settings.cache_max_memory_bytes
            self.coordinator.set_debounce(settings.modify_debounce_seconds)
        self.coordinator.on_settings_changed()

    def flush(self) -> None:
        self.coordinator.flush()

    def dispose(self) -> None:
        """Cancel pending invalidations and release cached results."""
        if self.disposed:
            return
        self.coordinator.dispose()
        self.cache.clear()
        self.disposed = True
        logger.info("Analytics engine disposed")


async def build_dashboard_payload(engine: AnalyticsEngine) -> dict[str, Any]:
    """One-call entry point: every accessor the dashboard needs.

    Args:
        engine: The engine to query.

    Returns:
        Dict with keys generated_at (ISO timestamp), summary, buckets (per
        granularity), trends, predictions (per metric), statistics,
        correlations, seasonal_patterns, insights, streak, streak_stats,
        comparison, file_sizes, and cache.
    """
    buckets = {g: await engine.get_buckets(g) for g in DASHBOARD_GRANULARITIES}
    trends = {name: await engine.get_trend(name) for name in METRICS}
    predictions = {name: await engine.get_prediction(name) for name in METRICS}

    return {
        "generated_at": engine.now().isoformat(),
        "summary": await engine.get_summary(),
        "buckets": buckets,
        "trends": trends,
        "predictions": predictions,
        "statistics": await engine.get_statistical_summary(DEFAULT_METRIC),
        "correlations": await engine.get_correlations(),
        "seasonal_patterns": await engine.get_seasonal_patterns(),
        "insights": await engine.get_insights(),
        "streak": await engine.get_streak(),
        "streak_stats": await engine.get_streak_stats(),
        "comparison": await engine.get_period_comparison(),
        "file_sizes": await engine.get_file_size_stats(),
        "cache": engine.get_cache_stats(),
    }
