"""
Shared helpers for API routes.
Contains: type coercion, text formatting, payload builders.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from correlation_engine import DEFAULT_PAIRS, CorrelationEngine
from models import DailySnapshot

log = logging.getLogger("api")


# ─── Type coercion ──────────────────────────────────────────

def _num(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _round(value: Any, digits: int = 2) -> Optional[float]:
    v = _num(value)
    return round(v, digits) if v is not None else None


# ─── Text formatting ───────────────────────────────────────

def _window_note(values: List[float], higher_is_better: bool = True) -> str:
    clean = [v for v in values if v is not None]
    if len(clean) < 4:
        return "Not enough data points yet."
    mid = len(clean) // 2
    first = sum(clean[:mid]) / max(mid, 1)
    second = sum(clean[mid:]) / max(len(clean) - mid, 1)
    if first == 0:
        return "Not enough data points yet."
    pct = ((second - first) / abs(first)) * 100.0
    improving = pct > 0 if higher_is_better else pct < 0
    direction = "improved" if improving else "declined"
    return f"{direction} {abs(pct):.1f}% between early and recent window."


# ─── Payload builders ──────────────────────────────────────

def _analytics_payload(analytics: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-safe view of compute_analytics() output."""
    scores = {k: _round(v) for k, v in asdict(analytics["scores"]).items()}
    return {
        "scores": scores,
        "system": scores["composite"],
        "status": analytics["status"],
        "energy": {k: _round(v) for k, v in analytics["energy"].items()},
        "nutrients": {k: _round(v) for k, v in asdict(analytics["nutrients"]).items()},
        "load": {k: _round(v) for k, v in analytics["load"].items()},
        "cognitive": {k: _round(v) for k, v in analytics["cognitive"].items()},
        "raw": {k: _round(v) for k, v in analytics["raw"].items()},
    }


def _build_history_rows(snapshots: List[DailySnapshot]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for snap in snapshots:
        row = {k: (_round(v) if k != "date" else v) for k, v in snap.to_dict().items()}
        row["sleep_hours"] = _round(snap.sleep_hours)
        out.append(row)
    return out


def _correlation_payload(engine: CorrelationEngine, window: Optional[int],
                         trend_window: int) -> Dict[str, Any]:
    correlations = []
    for (_, _, question), res in zip(DEFAULT_PAIRS, engine.default_correlations(window)):
        correlations.append({
            "metric_x": res.metric_x,
            "metric_y": res.metric_y,
            "question": question,
            "coefficient": _round(res.coefficient, 4),
            "p_value": _round(res.p_value, 4),
            "n": res.n,
            "label": res.label,
        })
    trend = engine.trend("sleep_hours", trend_window)
    return {
        "data_days": len(engine),
        "correlations": correlations,
        "trends": {
            "sleep": [_round(v) for v in trend],
            "note": "Sleep duration " + _window_note(trend, higher_is_better=True),
        },
        "consistency": {
            "sleep_stddev_hours_7d": _round(engine.sleep_consistency(), 3),
            "score_stddev": _round(engine.std_dev("score", window), 3),
        },
        "summary": engine.build_summary(window),
    }
