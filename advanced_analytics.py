"""Statistical analysis over ordered bucket series.

Trend detection (least-squares regression), short-horizon prediction,
Pearson correlation between metrics, weekday/weekend bias, and
consistency scoring.  Everything here is pure: inputs are plain numeric
series or bucket dicts as produced by ``aggregation.build_buckets``.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Any

INSUFFICIENT_DATA = "insufficient_data"
MIN_TREND_SAMPLES = 7
MIN_CORRELATION_SAMPLES = 10
MIN_SEASONAL_SAMPLES = 14
PREDICTION_WINDOW = 14
STABLE_SLOPE = 0.1
BIAS_RATIO = 1.2
MAX_BIAS_CONFIDENCE = 90

_DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


# ---------------------------------------------------------------------------
# Helpers (pure Python, no numpy)
# ---------------------------------------------------------------------------

def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _population_std(values: list[float]) -> float:
    if not values:
        return 0.0
    m = _mean(values)
    return math.sqrt(sum((v - m) ** 2 for v in values) / len(values))


def _linear_fit(values: list[float]) -> tuple[float, float, float]:
    """Ordinary least-squares fit of value against index.

    Returns:
        ``(slope, intercept, r_squared)``.  R² is 1 when the series has no
        variance (a flat line fits perfectly).
    """
    n = len(values)
    sum_x = n * (n - 1) / 2
    sum_xx = (n - 1) * n * (2 * n - 1) / 6
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))

    denominator = n * sum_xx - sum_x * sum_x
    slope = (n * sum_xy - sum_x * sum_y) / denominator if denominator else 0.0
    intercept = (sum_y - slope * sum_x) / n if n else 0.0

    y_mean = sum_y / n if n else 0.0
    ss_res = sum((v - (slope * i + intercept)) ** 2 for i, v in enumerate(values))
    ss_tot = sum((v - y_mean) ** 2 for v in values)
    r_squared = 1.0 if ss_tot == 0 else max(0.0, 1 - ss_res / ss_tot)
    return slope, intercept, r_squared


# ---------------------------------------------------------------------------
# Trend & prediction
# ---------------------------------------------------------------------------

def _insufficient_trend(n: int) -> dict[str, Any]:
    return {
        "direction": "stable",
        "strength": "weak",
        "percent_change": 0.0,
        "confidence": 0,
        "sample_size": n,
        "period": INSUFFICIENT_DATA,
    }


def trend_for(series: list[float]) -> dict[str, Any]:
    """Detect the direction and strength of a trend in *series*.

    Direction comes from the regression slope (``stable`` when its magnitude
    is below 0.1).  Strength buckets the first-to-last percent change at
    10% and 25%.  Confidence is R² as a 0-100 integer.

    Args:
        series: Chronologically ordered values.

    Returns:
        Dict with keys direction, strength, percent_change, confidence,
        sample_size, period.  With fewer than 7 samples a zero-confidence
        "insufficient_data" trend is returned instead of raising.
    """
    values = [float(v) for v in series]
    n = len(values)
    if n < MIN_TREND_SAMPLES:
        return _insufficient_trend(n)

    slope, _, r_squared = _linear_fit(values)

    first, last = values[0], values[-1]
    percent_change = 0.0 if first == 0 else (last - first) / abs(first) * 100

    if abs(slope) < STABLE_SLOPE:
        direction = "stable"
    elif slope > 0:
        direction = "increasing"
    else:
        direction = "decreasing"

    magnitude = abs(percent_change)
    if magnitude < 10:
        strength = "weak"
    elif magnitude < 25:
        strength = "moderate"
    else:
        strength = "strong"

    return {
        "direction": direction,
        "strength": strength,
        "percent_change": round(percent_change, 2),
        "confidence": round(r_squared * 100),
        "sample_size": n,
        "period": f"{n} samples",
    }


def predict(series: list[float]) -> dict[str, Any]:
    """Project the next week and month from the recent moving average.

    Takes the mean of the last 14 samples (or all of them when fewer),
    scales it to 7 and 30 periods, and nudges the result by 10% in the
    direction of the recent trend.

    Args:
        series: Chronologically ordered daily values.

    Returns:
        Dict with keys next_week, next_month (ints), confidence, and
        methodology.  Fewer than 7 samples yield zeros with confidence 0.
    """
    values = [float(v) for v in series]
    if len(values) < MIN_TREND_SAMPLES:
        return {
            "next_week": 0,
            "next_month": 0,
            "confidence": 0,
            "methodology": INSUFFICIENT_DATA,
        }

    recent = values[-PREDICTION_WINDOW:]
    recent_average = _mean(recent)
    trend = trend_for(recent)
    multiplier = {"increasing": 1.1, "decreasing": 0.9}.get(trend["direction"], 1.0)

    return {
        "next_week": round(recent_average * 7 * multiplier),
        "next_month": round(recent_average * 30 * multiplier),
        "confidence": max(30, trend["confidence"]),
        "methodology": "moving_average_with_trend",
    }


# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------

def pearson(x: list[float], y: list[float]) -> float:
    """Pearson correlation coefficient of two equal-length series.

    Returns:
        A value in [-1, 1].  0 when either series has zero variance, the
        lengths differ, or the series are empty.
    """
    n = len(x)
    if n == 0 or n != len(y):
        return 0.0
    mx = sum(x) / n
    my = sum(y) / n
    sxy = sum((a - mx) * (b - my) for a, b in zip(x, y))
    sxx = sum((a - mx) ** 2 for a in x)
    syy = sum((b - my) ** 2 for b in y)
    denominator = math.sqrt(sxx * syy)
    if denominator == 0:
        return 0.0
    return max(-1.0, min(1.0, sxy / denominator))


def correlation_strength(abs_coefficient: float) -> str:
    """Describe the magnitude of a correlation coefficient."""
    if abs_coefficient < 0.2:
        return "very weak"
    if abs_coefficient < 0.4:
        return "weak"
    if abs_coefficient < 0.6:
        return "moderate"
    if abs_coefficient < 0.8:
        return "strong"
    return "very strong"


def correlations(series_by_metric: dict[str, list[float]]) -> list[dict[str, Any]]:
    """Correlate every pair of metric series.

    Args:
        series_by_metric: Metric name to aligned value series.  Pairs are
            produced in the mapping's insertion order.

    Returns:
        List of dicts with keys metric_a, metric_b, coefficient (3 dp),
        strength, significance.  Empty when the series have fewer than 10
        samples.
    """
    names = list(series_by_metric)
    if not names or min(len(series_by_metric[m]) for m in names) < MIN_CORRELATION_SAMPLES:
        return []

    results = []
    for i, metric_a in enumerate(names):
        for metric_b in names[i + 1 :]:
            r = pearson(series_by_metric[metric_a], series_by_metric[metric_b])
            results.append(
                {
                    "metric_a": metric_a,
                    "metric_b": metric_b,
                    "coefficient": round(r, 3),
                    "strength": correlation_strength(abs(r)),
                    "significance": round((1 - abs(r)) * 100),
                }
            )
    return results


# ---------------------------------------------------------------------------
# Patterns & consistency
# ---------------------------------------------------------------------------

def _bias_confidence(high: float, low: float) -> int:
    if low == 0:
        return MAX_BIAS_CONFIDENCE
    return min(MAX_BIAS_CONFIDENCE, round((high / low - 1) * 100))


def seasonal_patterns(records: list[dict], field: str = "total_words") -> list[dict[str, Any]]:
    """Detect a weekday or weekend bias in daily records.

    Args:
        records: Daily bucket dicts.  Each must contain "start" (ISO date)
            and *field*.
        field: The bucket field to compare.

    Returns:
        A list with at most one pattern dict (pattern, description,
        confidence).  Empty with fewer than 14 records, when either group
        has no samples, or when neither mean exceeds the other by 20%.
    """
    if len(records) < MIN_SEASONAL_SAMPLES:
        return []

    weekday_values: list[float] = []
    weekend_values: list[float] = []
    for r in records:
        day = date.fromisoformat(r["start"])
        (weekday_values if day.weekday() < 5 else weekend_values).append(r[field])

    if not weekday_values or not weekend_values:
        return []

    weekday_mean = _mean(weekday_values)
    weekend_mean = _mean(weekend_values)

    if weekday_mean > 0 and weekday_mean >= weekend_mean * BIAS_RATIO:
        return [
            {
                "pattern": "weekday_bias",
                "description": "More writing happens on weekdays than on weekends",
                "confidence": _bias_confidence(weekday_mean, weekend_mean),
            }
        ]
    if weekend_mean > 0 and weekend_mean >= weekday_mean * BIAS_RATIO:
        return [
            {
                "pattern": "weekend_bias",
                "description": "More writing happens on weekends than on weekdays",
                "confidence": _bias_confidence(weekend_mean, weekday_mean),
            }
        ]
    return []


def consistency_score(series: list[float]) -> int:
    """Score 0-100 from the inverse coefficient of variation.

    A mean of zero counts as the worst case (coefficient of variation 1).
    """
    values = [float(v) for v in series]
    mean = _mean(values)
    cv = 1.0 if mean == 0 else _population_std(values) / mean
    return round(max(0.0, 1 - min(1.0, cv)) * 100)


def statistical_summary(series: list[float]) -> dict[str, float]:
    """Population variance, standard deviation, skewness and excess kurtosis."""
    values = [float(v) for v in series]
    n = len(values)
    if n == 0:
        return {"variance": 0.0, "standard_deviation": 0.0, "skewness": 0.0, "kurtosis": 0.0}

    mean = _mean(values)
    variance = sum((v - mean) ** 2 for v in values) / n
    std = math.sqrt(variance)
    skewness = 0.0
    kurtosis = 0.0
    if std > 0:
        if n > 2:
            skewness = sum(((v - mean) / std) ** 3 for v in values) / n
        if n > 3:
            kurtosis = sum(((v - mean) / std) ** 4 for v in values) / n - 3

    return {
        "variance": round(variance, 2),
        "standard_deviation": round(std, 2),
        "skewness": round(skewness, 3),
        "kurtosis": round(kurtosis, 3),
    }


def writing_insights(records: list[dict]) -> dict[str, Any]:
    """Summarize writing habits from daily records.

    Args:
        records: Daily bucket dicts with "start" and "total_words".

    Returns:
        Dict with keys most_productive_day (weekday name or "No data"),
        average_daily_words, consistency_score, and suggestions (list of
        short recommendations).
    """
    if not records:
        return {
            "most_productive_day": "No data",
            "average_daily_words": 0,
            "consistency_score": 0,
            "suggestions": ["Write more regularly to get insights"],
        }

    totals = [0.0] * 7
    counts = [0] * 7
    for r in records:
        weekday = date.fromisoformat(r["start"]).weekday()
        totals[weekday] += r["total_words"]
        counts[weekday] += 1

    averages = [totals[i] / counts[i] if counts[i] else 0.0 for i in range(7)]
    best = max(range(7), key=lambda i: averages[i])
    most_productive_day = _DAY_NAMES[best] if averages[best] > 0 else "No data"

    words = [r["total_words"] for r in records]
    mean = _mean(words)
    score = consistency_score(words)

    suggestions = []
    if score < 50:
        suggestions.append("Try to write more consistently each day")
    if mean < 100:
        suggestions.append("Consider setting a daily word count goal")
    active = sum(1 for w in words if w > 0)
    if active < len(words) * 0.7:
        suggestions.append("Try to write something every day, even a few words")
    if not suggestions:
        suggestions.append("Keep up your consistent writing habits")

    return {
        "most_productive_day": most_productive_day,
        "average_daily_words": round(mean),
        "consistency_score": score,
        "suggestions": suggestions,
    }
