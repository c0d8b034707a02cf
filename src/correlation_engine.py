"""
Historical Correlation Engine
=============================
Statistics over the date-keyed series of daily snapshots.

Layers:
  Layer 0 - Load:  snapshot mapping -> date-sorted DataFrame, derived
            sleep_hours column.
  Layer 1 - Pearson:  paired series over a trailing window, with a
            t-distribution p-value when n >= 3.
  Layer 2 - Spread + trend:  population stddev, trailing trend windows,
            7-day sleep consistency.
  Layer 3 - Summary:  short natural-language digest for the advisory
            prompt.

Degenerate input never raises: fewer than 2 points or a constant series
gives r = 0, an empty series gives stddev 0.
"""

from __future__ import annotations

import logging
import math
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats as sp_stats

from models import CorrelationResult, DailySnapshot

log = logging.getLogger("correlation_engine")


# ══════════════════════════════════════════════════════════════
#  CONSTANTS
# ══════════════════════════════════════════════════════════════

METRIC_COLUMNS = [
    "sleep_minutes", "sleep_hours", "sleep_efficiency",
    "calories", "protein", "hydration_ml",
    "steps", "strength_volume",
    "screen_minutes", "study_minutes",
    "score",
]

# Pairs surfaced on the insights panel: (x, y, question)
DEFAULT_PAIRS = [
    ("screen_minutes", "sleep_hours", "Does screen time affect sleep duration?"),
    ("steps", "sleep_efficiency", "Does activity affect sleep efficiency?"),
]

STRONG_THRESHOLD = 0.5
TREND_WINDOW = 14
CONSISTENCY_WINDOW = 7
MIN_BENCHMARK_DAYS = 5

# Benchmark periods: (key, label, days), all ending at the reference date
BENCHMARK_PERIODS = [
    ("1_week",   "Last 7 Days",   7),
    ("2_weeks",  "Last 14 Days",  14),
    ("1_month",  "Last 30 Days",  30),
    ("3_months", "Last 90 Days",  90),
    ("9_months", "Last 270 Days", 270),
]


# ══════════════════════════════════════════════════════════════
#  MATH
# ══════════════════════════════════════════════════════════════

def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson r by the sum formula, over the shorter of the two series.

    Returns 0.0 for n < 2, a constant series, or a zero denominator.
    """
    n = min(len(x), len(y))
    if n < 2:
        return 0.0
    xs = np.asarray(x[:n], dtype=np.float64)
    ys = np.asarray(y[:n], dtype=np.float64)
    # Zero spread on either side: r is undefined
    if np.ptp(xs) == 0 or np.ptp(ys) == 0:
        return 0.0
    sum_x, sum_y = xs.sum(), ys.sum()
    numerator = n * (xs * ys).sum() - sum_x * sum_y
    radicand = (n * (xs * xs).sum() - sum_x ** 2) * (n * (ys * ys).sum() - sum_y ** 2)
    if radicand <= 0:
        return 0.0
    r = numerator / math.sqrt(radicand)
    return float(max(-1.0, min(1.0, r)))


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation; 0.0 for an empty series."""
    if len(values) == 0:
        return 0.0
    arr = np.asarray(values, dtype=np.float64)
    return float(np.sqrt(np.mean((arr - arr.mean()) ** 2)))


def p_value(r: float, n: int) -> Optional[float]:
    """Two-sided significance of r under H0: rho = 0."""
    if n < 3 or abs(r) >= 1.0:
        return None
    t = r * math.sqrt((n - 2) / (1 - r * r))
    return float(2 * sp_stats.t.sf(abs(t), n - 2))


def strength_label(r: float) -> str:
    if abs(r) > STRONG_THRESHOLD:
        return "Strong Positive" if r > 0 else "Strong Negative"
    return "Insignificant"


# ══════════════════════════════════════════════════════════════
#  ENGINE
# ══════════════════════════════════════════════════════════════

class CorrelationEngine:
    """
    Read-only view over a snapshot mapping.  Build a new engine (cheap)
    whenever the history changes; results depend only on the ordered
    snapshots inside the evaluation window.
    """

    def __init__(self, snapshots: Mapping[str, DailySnapshot]):
        self.snapshots = dict(snapshots)
        self._df: Optional[pd.DataFrame] = None

    # ─── Layer 0: load ────────────────────────────────────────

    @property
    def frame(self) -> pd.DataFrame:
        if self._df is None:
            self._df = self._layer0_load(self.snapshots.values())
        return self._df

    @staticmethod
    def _layer0_load(snapshots: Iterable[DailySnapshot]) -> pd.DataFrame:
        rows = [s.to_dict() for s in snapshots]
        if not rows:
            return pd.DataFrame(columns=["date", *METRIC_COLUMNS])
        df = pd.DataFrame(rows)
        df["date"] = pd.to_datetime(df["date"])
        df = df.sort_values("date").drop_duplicates("date", keep="last").reset_index(drop=True)
        df["sleep_hours"] = df["sleep_minutes"] / 60.0
        for col in METRIC_COLUMNS:
            df[col] = pd.to_numeric(df[col], errors="coerce")
        return df

    def __len__(self) -> int:
        return len(self.frame)

    def _window(self, window: Optional[int] = None,
                date_start: Optional[date] = None,
                date_end: Optional[date] = None) -> pd.DataFrame:
        df = self.frame
        if date_start is not None:
            df = df[df["date"] >= pd.Timestamp(date_start)]
        if date_end is not None:
            df = df[df["date"] <= pd.Timestamp(date_end)]
        if window is not None:
            df = df.tail(window)
        return df

    def series(self, metric: str, window: Optional[int] = None) -> List[float]:
        if metric not in METRIC_COLUMNS:
            raise KeyError(f"Unknown metric: {metric}")
        return [float(v) for v in self._window(window)[metric].dropna()]

    # ─── Layer 1: Pearson ─────────────────────────────────────

    def correlate(self, metric_x: str, metric_y: str, window: Optional[int] = None,
                  date_start: Optional[date] = None,
                  date_end: Optional[date] = None) -> CorrelationResult:
        for m in (metric_x, metric_y):
            if m not in METRIC_COLUMNS:
                raise KeyError(f"Unknown metric: {m}")
        paired = self._window(window, date_start, date_end)[[metric_x, metric_y]].dropna()
        xs = paired[metric_x].astype(float).tolist()
        ys = paired[metric_y].astype(float).tolist()
        r = pearson(xs, ys)
        n = len(xs)
        return CorrelationResult(
            metric_x=metric_x,
            metric_y=metric_y,
            coefficient=r,
            n=n,
            x=xs,
            y=ys,
            p_value=p_value(r, n) if r != 0.0 else None,
            label=strength_label(r),
        )

    def correlation_matrix(self, metrics: Optional[Sequence[str]] = None,
                           window: Optional[int] = None) -> Dict[Tuple[str, str], float]:
        metrics = list(metrics or METRIC_COLUMNS)
        out: Dict[Tuple[str, str], float] = {}
        for i, m1 in enumerate(metrics):
            for m2 in metrics[i + 1:]:
                out[(m1, m2)] = self.correlate(m1, m2, window).coefficient
        return out

    def default_correlations(self, window: Optional[int] = None) -> List[CorrelationResult]:
        return [self.correlate(x, y, window) for x, y, _ in DEFAULT_PAIRS]

    # ─── Layer 2: spread + trend ──────────────────────────────

    def std_dev(self, metric: str, window: Optional[int] = None) -> float:
        return std_dev(self.series(metric, window))

    def trend(self, metric: str = "sleep_hours", window: int = TREND_WINDOW) -> List[float]:
        return self.series(metric, window)

    def sleep_consistency(self, window: int = CONSISTENCY_WINDOW) -> float:
        """Stddev of the last ``window`` sleep durations, in hours."""
        return self.std_dev("sleep_hours", window)

    # ─── Benchmarks ───────────────────────────────────────────

    def _compute_raw_with_status(self, date_start: date, date_end: date) -> Dict[str, Any]:
        """Correlate the default pairs in a date range, with status metadata."""
        result: Dict[str, Any] = {
            "correlations": [],
            "n_days": 0,
            "analysis_status": "success",
            "degraded_reasons": [],
        }
        n_days = len(self._window(date_start=date_start, date_end=date_end))
        result["n_days"] = n_days
        if n_days < MIN_BENCHMARK_DAYS:
            result["analysis_status"] = "degraded"
            result["degraded_reasons"] = ["insufficient_daily_rows"]
            return result

        try:
            result["correlations"] = [
                self.correlate(x, y, date_start=date_start, date_end=date_end)
                for x, y, _ in DEFAULT_PAIRS
            ]
        except Exception as e:
            log.exception("Correlation layer failed: %s", e)
            result["analysis_status"] = "failed"
            result["degraded_reasons"] = ["core_layer_failure"]
        return result

    def compute_benchmarks(self, ref_date: Optional[date] = None) -> Dict[str, Any]:
        """Correlate the default pairs over every benchmark window that holds
        at least ``MIN_BENCHMARK_DAYS`` snapshots.

        Returns
        -------
        dict with keys:
            benchmarks       : {period_key: {label, start, end, n_days, correlations}}
            available        : [period_keys that were computed]
            longest          : key of the longest computed period
            data_days        : total snapshots in history
            analysis_status  : success | degraded | failed
            degraded_reasons : list of reason codes
        """
        ref = ref_date or date.today()
        df = self.frame
        if df.empty:
            log.info("   No snapshots in history.")
            return {
                "benchmarks": {},
                "available": [],
                "longest": None,
                "data_days": 0,
                "analysis_status": "failed",
                "degraded_reasons": ["no_history"],
            }

        earliest = df["date"].min().date()
        latest = df["date"].max().date()
        log.info("   History range: %s -> %s (%d days)", earliest, latest, len(df))

        benchmarks: Dict[str, Dict[str, Any]] = {}
        seen_ranges: set = set()
        overall = "success"
        reasons: List[str] = []

        for key, label, days in BENCHMARK_PERIODS:
            ds = ref - timedelta(days=days - 1)
            actual_start = max(ds, earliest)
            actual_end = min(ref, latest)
            range_key = (actual_start, actual_end)
            if range_key in seen_ranges:
                log.info("   %s: same effective range as a shorter window, skipping", label)
                continue

            run = self._compute_raw_with_status(ds, ref)
            if run["n_days"] < MIN_BENCHMARK_DAYS:
                log.info("   %s: skipping (%d days, need >=%d)", label, run["n_days"], MIN_BENCHMARK_DAYS)
                continue
            seen_ranges.add(range_key)

            if run["analysis_status"] == "failed":
                overall = "failed"
            elif run["analysis_status"] == "degraded" and overall != "failed":
                overall = "degraded"
            for reason in run["degraded_reasons"]:
                if reason not in reasons:
                    reasons.append(reason)

            benchmarks[key] = {
                "label": label,
                "start": ds.isoformat(),
                "end": ref.isoformat(),
                "n_days": run["n_days"],
                "analysis_status": run["analysis_status"],
                "correlations": [c.to_dict() for c in run["correlations"]],
            }

        if not benchmarks:
            overall = "degraded"
            reasons.append("insufficient_daily_rows")

        available = list(benchmarks)
        return {
            "benchmarks": benchmarks,
            "available": available,
            "longest": available[-1] if available else None,
            "data_days": len(df),
            "analysis_status": overall,
            "degraded_reasons": reasons,
        }

    # ─── Layer 3: summary ─────────────────────────────────────

    def build_summary(self, window: Optional[int] = None) -> str:
        """Compact digest used as advisory prompt context."""
        n = len(self._window(window))
        if n == 0:
            return "No historical snapshots yet."

        lines = [f"HISTORY: {n} days analysed."]
        for (_, _, question), res in zip(DEFAULT_PAIRS, self.default_correlations(window)):
            lines.append(f"  {question} r={res.coefficient:+.2f} ({res.label}, n={res.n})")

        recent = self.trend("sleep_hours")
        if len(recent) >= 4:
            mid = len(recent) // 2
            first = sum(recent[:mid]) / mid
            second = sum(recent[mid:]) / (len(recent) - mid)
            direction = "up" if second > first else "down" if second < first else "stable"
            lines.append(
                f"  Sleep trend ({len(recent)}d): {direction}, "
                f"{first:.1f}h -> {second:.1f}h"
            )
        lines.append(f"  Sleep consistency (7d stddev): {self.sleep_consistency():.2f}h")

        scores = self.series("score", window)
        if scores:
            lines.append(
                f"  Composite score: mean {sum(scores) / len(scores):.1f}, "
                f"stddev {std_dev(scores):.1f}"
            )
        return "\n".join(lines)
