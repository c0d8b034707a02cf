"""
Tests for the correlation engine mathematical computations.

Covers: Pearson sum formula and its degenerate cases, population stddev,
p-values, windowing, trends, benchmark windows, and the prompt summary.
"""
from datetime import date, timedelta

import pytest

from correlation_engine import (
    MIN_BENCHMARK_DAYS,
    CorrelationEngine,
    p_value,
    pearson,
    std_dev,
    strength_label,
)
from models import DailySnapshot

REF = date(2026, 3, 31)


def _snap(day: str, **overrides) -> DailySnapshot:
    values = dict(
        sleep_minutes=450.0, sleep_efficiency=92.0, calories=2200.0, protein=150.0,
        hydration_ml=2500.0, steps=9000.0, strength_volume=3000.0,
        screen_minutes=180.0, study_minutes=45.0, score=72.0,
    )
    values.update(overrides)
    return DailySnapshot(date=day, **values)


def _history(n: int, end: date = REF, **series):
    """n consecutive days ending at ``end``; each kwarg is a list of n values."""
    out = {}
    for i in range(n):
        day = (end - timedelta(days=n - 1 - i)).isoformat()
        out[day] = _snap(day, **{k: v[i] for k, v in series.items()})
    return out


# ─── Pearson ──────────────────────────────────────────────────


class TestPearson:

    def test_self_correlation_is_one(self):
        xs = [3.0, 7.5, 1.2, 9.9, 4.4]
        assert pearson(xs, xs) == pytest.approx(1.0)

    def test_perfect_negative(self):
        assert pearson([1, 2, 3, 4], [8, 6, 4, 2]) == pytest.approx(-1.0)

    def test_constant_series_gives_zero(self):
        assert pearson([5, 5, 5, 5], [1, 2, 3, 4]) == 0.0

    @pytest.mark.parametrize("value", [0.1, 440 / 60, 1234.56, 2.3])
    @pytest.mark.parametrize("n", [2, 3, 7, 13, 28, 40, 95])
    def test_constant_float_series_is_exactly_zero(self, value, n):
        ramp = [float(i) for i in range(n)]
        assert pearson([value] * n, ramp) == 0.0
        assert pearson(ramp, [value] * n) == 0.0

    def test_constant_sleep_gives_no_p_value(self):
        n = 13
        snaps = _history(n, sleep_minutes=[440.0] * n, screen_minutes=[100.0 + 7 * i for i in range(n)])
        res = CorrelationEngine(snaps).correlate("screen_minutes", "sleep_hours")
        assert res.coefficient == 0.0
        assert res.p_value is None
        assert res.label == "Insignificant"

    @pytest.mark.parametrize("x,y", [([], []), ([1.0], [2.0])])
    def test_fewer_than_two_points(self, x, y):
        assert pearson(x, y) == 0.0

    def test_uses_shorter_series(self):
        assert pearson([1, 2, 3, 100], [2, 4, 6]) == pytest.approx(1.0)

    def test_symmetric(self):
        x = [1.0, 4.0, 2.0, 8.0, 5.0]
        y = [2.0, 3.0, 9.0, 1.0, 4.0]
        assert pearson(x, y) == pytest.approx(pearson(y, x))

    def test_bounded(self):
        x = [1e-9, 2e-9, 3e-9]
        r = pearson(x, x)
        assert -1.0 <= r <= 1.0


class TestSpreadAndSignificance:

    def test_population_stddev(self):
        assert std_dev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)

    def test_empty_stddev(self):
        assert std_dev([]) == 0.0

    def test_p_value_needs_three_points(self):
        assert p_value(0.5, 2) is None

    def test_p_value_undefined_for_perfect_r(self):
        assert p_value(1.0, 10) is None

    def test_strong_r_is_significant(self):
        assert p_value(0.9, 10) < 0.01

    @pytest.mark.parametrize("r,label", [
        (0.8, "Strong Positive"), (-0.6, "Strong Negative"),
        (0.5, "Insignificant"), (-0.1, "Insignificant"),
    ])
    def test_strength_label(self, r, label):
        assert strength_label(r) == label


# ─── Engine ───────────────────────────────────────────────────


class TestCorrelationEngine:

    def test_screen_time_vs_sleep(self):
        n = 10
        snaps = _history(
            n,
            screen_minutes=[120.0 + 15 * i for i in range(n)],
            sleep_minutes=[500.0 - 10 * i for i in range(n)],
        )
        res = CorrelationEngine(snaps).correlate("screen_minutes", "sleep_hours")
        assert res.coefficient == pytest.approx(-1.0)
        assert res.n == n
        assert res.label == "Strong Negative"

    def test_frame_is_date_sorted(self):
        snaps = _history(5, sleep_minutes=[400.0, 410.0, 420.0, 430.0, 440.0])
        shuffled = dict(reversed(list(snaps.items())))
        engine = CorrelationEngine(shuffled)
        assert engine.series("sleep_minutes") == [400.0, 410.0, 420.0, 430.0, 440.0]

    def test_window_takes_most_recent(self):
        snaps = _history(6, steps=[1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
        assert CorrelationEngine(snaps).series("steps", window=3) == [4.0, 5.0, 6.0]

    def test_unknown_metric_raises(self):
        with pytest.raises(KeyError):
            CorrelationEngine(_history(3)).correlate("mood", "steps")

    def test_missing_scores_are_dropped(self):
        snaps = _history(4, score=[70.0, None, 80.0, None])
        assert CorrelationEngine(snaps).series("score") == [70.0, 80.0]

    def test_empty_history_degenerates(self):
        engine = CorrelationEngine({})
        assert len(engine) == 0
        res = engine.correlate("steps", "sleep_efficiency")
        assert res.coefficient == 0.0 and res.n == 0
        assert engine.sleep_consistency() == 0.0

    def test_matrix_covers_each_pair_once(self):
        engine = CorrelationEngine(_history(5))
        matrix = engine.correlation_matrix(["steps", "calories", "score"])
        assert set(matrix) == {("steps", "calories"), ("steps", "score"), ("calories", "score")}

    def test_trend_window(self):
        engine = CorrelationEngine(_history(20, sleep_minutes=[420.0 + i for i in range(20)]))
        trend = engine.trend("sleep_hours", 14)
        assert len(trend) == 14
        assert trend[-1] == pytest.approx(439.0 / 60.0)

    def test_constant_sleep_is_perfectly_consistent(self):
        assert CorrelationEngine(_history(10)).sleep_consistency() == 0.0


# ─── Benchmarks ───────────────────────────────────────────────


class TestBenchmarks:

    def test_no_history_fails(self):
        out = CorrelationEngine({}).compute_benchmarks(REF)
        assert out["analysis_status"] == "failed"
        assert out["degraded_reasons"] == ["no_history"]

    def test_too_few_days_is_degraded(self):
        out = CorrelationEngine(_history(MIN_BENCHMARK_DAYS - 2)).compute_benchmarks(REF)
        assert out["available"] == []
        assert out["analysis_status"] == "degraded"
        assert "insufficient_daily_rows" in out["degraded_reasons"]

    def test_windows_with_identical_ranges_are_skipped(self):
        out = CorrelationEngine(_history(10)).compute_benchmarks(REF)
        # 1_month clamps to the same range as 2_weeks
        assert out["available"] == ["1_week", "2_weeks"]
        assert out["longest"] == "2_weeks"
        assert out["benchmarks"]["1_week"]["n_days"] == 7
        assert out["benchmarks"]["2_weeks"]["n_days"] == 10
        assert out["analysis_status"] == "success"
        assert out["data_days"] == 10

    def test_benchmark_correlations_serialised(self):
        out = CorrelationEngine(_history(8)).compute_benchmarks(REF)
        corr = out["benchmarks"]["1_week"]["correlations"]
        assert [c["metric_x"] for c in corr] == ["screen_minutes", "steps"]


# ─── Summary ──────────────────────────────────────────────────


class TestBuildSummary:

    def test_empty(self):
        assert CorrelationEngine({}).build_summary() == "No historical snapshots yet."

    def test_header_and_sections(self):
        n = 10
        snaps = _history(n, sleep_minutes=[400.0 + 10 * i for i in range(n)])
        text = CorrelationEngine(snaps).build_summary()
        assert text.startswith("HISTORY: 10 days analysed.")
        assert "Does screen time affect sleep duration?" in text
        assert "Sleep trend (10d): up" in text
        assert "Composite score: mean 72.0" in text
