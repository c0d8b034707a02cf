"""
Scoring Engine
==============
Maps calculator outputs onto 0-100 sub-scores and a weighted composite.

Canonical curve set:
  sleep      Gaussian around 480 min, sigma 90 min
  nutrition  Euclidean adherence in (p, c, f) space
  hydration  linear ramp to target, x50 decay above it
  physical   50/50 blend of steps and volume ratios, each capped
  mind       70 + study bonus - super-linear screen fatigue

Sub-scores are clamped before composition and the composite is clamped
again.  ``compute_analytics`` is a pure function of a ``DayState``.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional

from analytics.calculators import (
    aggregate_nutrients,
    cognitive_load,
    energy_balance,
    merge_exercise_db,
    merge_food_db,
    physical_load,
    sleep_physics,
)
from constants import (
    HYDRATION_DECAY,
    MIND_BASELINE,
    SCORE_WEIGHTS,
    SLEEP_SIGMA_MIN,
    SLEEP_TARGET_MIN,
    STATUS_DEGRADED,
    STATUS_OPTIMAL,
    STEPS_TARGET,
    STUDY_BONUS_RATE,
    VOLUME_TARGET,
)
from models import DailySnapshot, DayState, MacroTargets, NutrientTotals, ScoreSet


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    if math.isnan(value):
        return lo
    return max(lo, min(hi, value))


# ─── Curves ────────────────────────────────────────────────

def gaussian_score(value: float, target: float, sigma: float) -> float:
    if sigma <= 0:
        return 100.0 if value == target else 0.0
    return 100.0 * math.exp(-0.5 * ((value - target) / sigma) ** 2)


def sleep_score(total_sleep_min: float) -> float:
    return clamp(gaussian_score(total_sleep_min, SLEEP_TARGET_MIN, SLEEP_SIGMA_MIN))


def macro_adherence(current: NutrientTotals, target: MacroTargets) -> float:
    """100 at the target, 0 at (or beyond) the origin-to-target distance."""
    max_dist = math.sqrt(target.p ** 2 + target.c ** 2 + target.f ** 2)
    dist = math.sqrt(
        (current.p - target.p) ** 2
        + (current.c - target.c) ** 2
        + (current.f - target.f) ** 2
    )
    if max_dist == 0:
        return 100.0 if dist == 0 else 0.0
    return clamp(100.0 * (1 - dist / max_dist))


def hydration_score(intake_ml: float, target_ml: float) -> float:
    if target_ml <= 0:
        return 0.0
    ratio = intake_ml / target_ml
    if ratio <= 1:
        return clamp(ratio * 100.0)
    return clamp(100.0 - (ratio - 1) * HYDRATION_DECAY)


def physical_score(steps: float, volume: float) -> float:
    steps_term = min(100.0, steps / STEPS_TARGET * 100.0)
    volume_term = min(100.0, volume / VOLUME_TARGET * 100.0)
    return clamp(0.5 * steps_term + 0.5 * volume_term)


def mind_score(study: float, fatigue: float) -> float:
    return clamp(MIND_BASELINE + STUDY_BONUS_RATE * study - fatigue)


def composite_score(sub_scores: Dict[str, float]) -> float:
    total = sum(clamp(sub_scores[name]) * weight for name, weight in SCORE_WEIGHTS.items())
    return clamp(total)


def status_band(composite: float) -> str:
    if composite > STATUS_OPTIMAL:
        return "optimal"
    if composite > STATUS_DEGRADED:
        return "degraded"
    return "critical"


# ─── Engine ────────────────────────────────────────────────

def score_set(
    total_sleep_min: float,
    nutrients: NutrientTotals,
    targets: MacroTargets,
    intake_ml: float,
    target_ml: float,
    steps: float,
    volume: float,
    study: float,
    fatigue: float,
) -> ScoreSet:
    subs = {
        "sleep": sleep_score(total_sleep_min),
        "nutrition": macro_adherence(nutrients, targets),
        "hydration": hydration_score(intake_ml, target_ml),
        "physical": physical_score(steps, volume),
        "mind": mind_score(study, fatigue),
    }
    return ScoreSet(composite=composite_score(subs), **subs)


def compute_analytics(state: DayState, simulated_delta: float = 0.0) -> Dict[str, Any]:
    """Run every calculator over ``state`` and score the result."""
    food_db = merge_food_db(state.custom_foods)
    exercise_db = merge_exercise_db(state.custom_exercises)

    nut = aggregate_nutrients(state.meals, food_db)
    sleep = sleep_physics(state.sleep)
    load = physical_load(
        state.steps, state.runs, state.strength, state.profile.weight_kg, exercise_db,
    )
    mind = cognitive_load(state.mind)
    energy = energy_balance(
        state.profile,
        nut.cal,
        load["cardio_calories"],
        load["strength_calories"],
        simulated_delta=simulated_delta,
    )

    scores = score_set(
        total_sleep_min=sleep["total_sleep_min"],
        nutrients=nut,
        targets=state.targets,
        intake_ml=state.hydration.intake_ml,
        target_ml=state.hydration.target_ml,
        steps=state.steps,
        volume=load["volume"],
        study=mind["study_score"],
        fatigue=mind["screen_fatigue"],
    )

    return {
        "scores": scores,
        "status": status_band(scores.composite),
        "energy": energy,
        "nutrients": nut,
        "load": load,
        "cognitive": mind,
        "raw": {
            "sleep_min": sleep["total_sleep_min"],
            "sleep_efficiency": sleep["efficiency"],
            "time_in_bed_min": sleep["time_in_bed_min"],
            "steps": float(state.steps),
            "volume": load["volume"],
        },
    }


def build_snapshot(
    day: str,
    state: DayState,
    analytics: Optional[Dict[str, Any]] = None,
) -> DailySnapshot:
    """Project a computed day onto the persisted snapshot record."""
    analytics = analytics or compute_analytics(state)
    raw = analytics["raw"]
    nut: NutrientTotals = analytics["nutrients"]
    return DailySnapshot(
        date=day,
        sleep_minutes=raw["sleep_min"],
        sleep_efficiency=raw["sleep_efficiency"],
        calories=nut.cal,
        protein=nut.p,
        hydration_ml=state.hydration.intake_ml,
        steps=float(state.steps),
        strength_volume=raw["volume"],
        screen_minutes=state.mind.screen_minutes,
        study_minutes=state.mind.reading_minutes + state.mind.lecture_minutes,
        score=analytics["scores"].composite,
    )
