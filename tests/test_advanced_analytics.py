"""Tests for advanced_analytics.py statistical functions."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from advanced_analytics import (
    INSUFFICIENT_DATA,
    _linear_fit,
    consistency_score,
    correlation_strength,
    correlations,
    pearson,
    predict,
    seasonal_patterns,
    statistical_summary,
    trend_for,
    writing_insights,
)


def _daily(values: list[float], start: date = date(2024, 1, 1)) -> list[dict]:
    """Daily bucket-like records starting on *start* (a Monday by default)."""
    return [
        {"start": (start + timedelta(days=i)).isoformat(), "total_words": v}
        for i, v in enumerate(values)
    ]


# ── Helpers ─────────────────────────────────


class TestLinearFit:
    def test_perfect_line(self):
        slope, intercept, r2 = _linear_fit([1, 3, 5, 7])
        assert slope == pytest.approx(2)
        assert intercept == pytest.approx(1)
        assert r2 == pytest.approx(1)

    def test_flat_series_has_r2_one(self):
        assert _linear_fit([4, 4, 4])[2] == 1.0


# ── Trend ───────────────────────────────────


class TestTrendFor:
    def test_linear_increase(self):
        result = trend_for([10, 20, 30, 40, 50, 60, 70])
        assert result["direction"] == "increasing"
        assert result["strength"] == "strong"
        assert result["confidence"] == 100
        assert result["percent_change"] == 600.0
        assert result["sample_size"] == 7

    def test_decrease(self):
        result = trend_for([70, 60, 50, 40, 30, 20, 10])
        assert result["direction"] == "decreasing"
        assert result["percent_change"] == pytest.approx(-85.71)

    def test_flat_is_stable(self):
        result = trend_for([5] * 10)
        assert result["direction"] == "stable"
        assert result["strength"] == "weak"
        assert result["confidence"] == 100

    def test_zero_first_value_has_zero_percent_change(self):
        result = trend_for([0, 1, 2, 3, 4, 5, 6])
        assert result["percent_change"] == 0.0
        assert result["direction"] == "increasing"

    def test_moderate_strength(self):
        result = trend_for([100, 102, 104, 106, 108, 110, 115])
        assert result["strength"] == "moderate"

    def test_insufficient_data(self):
        result = trend_for([1, 2, 3])
        assert result == {
            "direction": "stable",
            "strength": "weak",
            "percent_change": 0.0,
            "confidence": 0,
            "sample_size": 3,
            "period": INSUFFICIENT_DATA,
        }

    def test_confidence_in_range(self):
        result = trend_for([3, 9, 1, 7, 2, 8, 4, 6])
        assert 0 <= result["confidence"] <= 100


# ── Prediction ──────────────────────────────


class TestPredict:
    def test_insufficient_data(self):
        assert predict([10, 20]) == {
            "next_week": 0,
            "next_month": 0,
            "confidence": 0,
            "methodology": INSUFFICIENT_DATA,
        }

    def test_flat_series(self):
        result = predict([100] * 14)
        assert result["next_week"] == 700
        assert result["next_month"] == 3000
        assert result["confidence"] == 100

    def test_increasing_series_is_nudged_up(self):
        series = list(range(10, 150, 10))  # 14 samples, mean 75
        result = predict(series)
        assert result["next_week"] == round(75 * 7 * 1.1)
        assert result["next_month"] == round(75 * 30 * 1.1)

    def test_uses_only_last_fourteen(self):
        series = [1000] * 10 + [50] * 14
        assert predict(series)["next_week"] == 350

    def test_confidence_floor(self):
        result = predict([3, 9, 1, 7, 2, 8, 4, 6, 5, 5])
        assert result["confidence"] >= 30


# ── Correlation ─────────────────────────────


class TestPearson:
    def test_self_correlation_is_one(self):
        x = [1.0, 4.0, 2.0, 8.0, 5.0]
        assert pearson(x, x) == pytest.approx(1.0)

    def test_negated_is_minus_one(self):
        x = [1.0, 4.0, 2.0, 8.0, 5.0]
        assert pearson(x, [-v for v in x]) == pytest.approx(-1.0)

    def test_zero_variance(self):
        assert pearson([1, 1, 1], [1, 2, 3]) == 0.0

    def test_length_mismatch(self):
        assert pearson([1, 2, 3], [1, 2]) == 0.0

    def test_empty(self):
        assert pearson([], []) == 0.0

    def test_bounded(self):
        r = pearson([3, 1, 4, 1, 5, 9, 2, 6], [2, 7, 1, 8, 2, 8, 1, 8])
        assert -1.0 <= r <= 1.0


class TestCorrelationStrength:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (0.1, "very weak"),
            (0.2, "weak"),
            (0.45, "moderate"),
            (0.6, "strong"),
            (0.95, "very strong"),
        ],
    )
    def test_thresholds(self, value, expected):
        assert correlation_strength(value) == expected


class TestCorrelations:
    def test_all_pairs(self):
        words = [float(i) for i in range(10)]
        files = [float(i % 3) for i in range(10)]
        avg = [float(10 - i) for i in range(10)]
        results = correlations({"words": words, "files": files, "avg_words": avg})
        pairs = [(r["metric_a"], r["metric_b"]) for r in results]
        assert pairs == [("words", "files"), ("words", "avg_words"), ("files", "avg_words")]

    def test_coefficient_and_significance(self):
        x = [float(i) for i in range(12)]
        (result,) = correlations({"a": x, "b": [2 * v for v in x]})
        assert result["coefficient"] == 1.0
        assert result["strength"] == "very strong"
        assert result["significance"] == 0

    def test_too_few_samples(self):
        assert correlations({"a": [1.0] * 9, "b": [2.0] * 9}) == []


# ── Seasonal patterns ───────────────────────


class TestSeasonalPatterns:
    def test_weekday_bias(self):
        week = [100, 100, 100, 100, 100, 10, 10]
        (pattern,) = seasonal_patterns(_daily(week * 2))
        assert pattern["pattern"] == "weekday_bias"
        assert pattern["confidence"] == 90

    def test_weekend_bias(self):
        week = [50, 50, 50, 50, 50, 60, 70]
        (pattern,) = seasonal_patterns(_daily(week * 2))
        assert pattern["pattern"] == "weekend_bias"
        assert pattern["confidence"] == 30

    def test_weekend_zero_caps_confidence(self):
        week = [10, 10, 10, 10, 10, 0, 0]
        (pattern,) = seasonal_patterns(_daily(week * 2))
        assert pattern["confidence"] == 90

    def test_no_bias(self):
        assert seasonal_patterns(_daily([50] * 14)) == []

    def test_too_few_samples(self):
        assert seasonal_patterns(_daily([100] * 13)) == []

    def test_all_zero(self):
        assert seasonal_patterns(_daily([0] * 14)) == []


# ── Consistency & summary ───────────────────


class TestConsistencyScore:
    def test_perfectly_consistent(self):
        assert consistency_score([20, 20, 20]) == 100

    def test_zero_mean(self):
        assert consistency_score([0, 0, 0]) == 0

    def test_empty(self):
        assert consistency_score([]) == 0

    def test_partial(self):
        # mean 15, population std 5 -> 1 - 1/3
        assert consistency_score([10, 20]) == 67

    def test_very_spiky_is_zero(self):
        assert consistency_score([0, 0, 0, 100]) == 0


class TestStatisticalSummary:
    def test_empty(self):
        assert statistical_summary([]) == {
            "variance": 0.0, "standard_deviation": 0.0, "skewness": 0.0, "kurtosis": 0.0,
        }

    def test_symmetric_series(self):
        result = statistical_summary([1, 2, 3, 4, 5])
        assert result["variance"] == 2.0
        assert result["standard_deviation"] == pytest.approx(1.41)
        assert result["skewness"] == 0.0

    def test_constant_series(self):
        result = statistical_summary([7, 7, 7, 7])
        assert result["standard_deviation"] == 0.0
        assert result["kurtosis"] == 0.0


# ── Insights ────────────────────────────────


class TestWritingInsights:
    def test_no_data(self):
        result = writing_insights([])
        assert result["most_productive_day"] == "No data"
        assert result["suggestions"] == ["Write more regularly to get insights"]

    def test_most_productive_day(self):
        # 2024-01-03 is a Wednesday
        records = _daily([100, 100, 900, 100, 100, 100, 100])
        assert writing_insights(records)["most_productive_day"] == "Wednesday"

    def test_consistent_writer(self):
        result = writing_insights(_daily([500] * 14))
        assert result["average_daily_words"] == 500
        assert result["consistency_score"] == 100
        assert result["suggestions"] == ["Keep up your consistent writing habits"]

    def test_sparse_writer_gets_suggestions(self):
        result = writing_insights(_daily([0, 0, 0, 50, 0, 0, 0]))
        assert "Consider setting a daily word count goal" in result["suggestions"]
        assert "Try to write something every day, even a few words" in result["suggestions"]
