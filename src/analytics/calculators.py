"""Per-domain calculators: nutrients, physical load, sleep, cognitive load, energy.

Every function is a pure function of its arguments.  Unknown database ids
contribute zero rather than raising, and every division has a defined
zero fallback.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from constants import (
    ACTIVITY_MULTIPLIER,
    EXERCISE_DB,
    GENDER_CONSTANT,
    INGREDIENTS_DB,
    JUNK_SLOT,
    LECTURE_WEIGHT,
    RUN_METS,
    SCREEN_ALLOWANCE_MIN,
    SCREEN_FATIGUE_EXPONENT,
    SCREEN_FATIGUE_SCALE,
    STEP_KCAL,
)
from models import (
    Exercise,
    FoodEntry,
    FoodItem,
    MacroProfile,
    MindLog,
    NutrientTotals,
    RunEntry,
    SleepLog,
    StrengthSession,
    UserProfile,
)

MINUTES_PER_DAY = 24 * 60


# ─── Databases ─────────────────────────────────────────────

def builtin_foods() -> List[FoodItem]:
    return [
        FoodItem(id=row["id"], name=row["name"], macros=MacroProfile(**row["macros"]))
        for row in INGREDIENTS_DB
    ]


def builtin_exercises() -> List[Exercise]:
    return [Exercise(**row) for row in EXERCISE_DB]


def merge_food_db(custom: Iterable[FoodItem] = ()) -> Dict[str, FoodItem]:
    """Union of built-in and user foods keyed by id.  Collisions are not
    policed; a user entry with a built-in id replaces it."""
    db = {item.id: item for item in builtin_foods()}
    db.update({item.id: item for item in custom})
    return db


def merge_exercise_db(custom: Iterable[Exercise] = ()) -> Dict[str, Exercise]:
    db = {ex.id: ex for ex in builtin_exercises()}
    db.update({ex.id: ex for ex in custom})
    return db


# ─── Nutrient aggregator ───────────────────────────────────

def resolve_profile(entry: FoodEntry, food_db: Mapping[str, FoodItem]) -> Optional[MacroProfile]:
    if entry.macros is not None:
        return entry.macros
    item = food_db.get(entry.id)
    return item.macros if item else None


def aggregate_nutrients(
    meals: Mapping[str, Sequence[FoodEntry]],
    food_db: Mapping[str, FoodItem],
) -> NutrientTotals:
    """Sum profile x amount over every slot.  Rebuilt from scratch each call."""
    cal = p = c = f = junk = 0.0
    for slot, entries in meals.items():
        for entry in entries:
            profile = resolve_profile(entry, food_db)
            if profile is None:
                continue
            cal += profile.cal * entry.amount
            p += profile.p * entry.amount
            c += profile.c * entry.amount
            f += profile.f * entry.amount
            if slot == JUNK_SLOT:
                junk += profile.cal * entry.amount
    return NutrientTotals(cal=cal, p=p, c=c, f=f, junk_cal=junk)


# ─── Physical load ─────────────────────────────────────────

def step_calories(steps: float) -> float:
    return steps * STEP_KCAL


def run_calories(runs: Iterable[RunEntry], weight_kg: float) -> float:
    return sum(RUN_METS * weight_kg * (run.duration_min / 60.0) for run in runs)


def strength_volume(sessions: Iterable[StrengthSession]) -> float:
    return sum(s.sets * s.reps * s.weight_kg for s in sessions)


def strength_calories(
    sessions: Iterable[StrengthSession],
    exercise_db: Mapping[str, Exercise],
) -> float:
    total = 0.0
    for s in sessions:
        ex = exercise_db.get(s.exercise_id)
        if ex is None:
            continue
        total += s.sets * s.reps * ex.cal_per_rep
    return total


def physical_load(
    steps: float,
    runs: Sequence[RunEntry],
    sessions: Sequence[StrengthSession],
    weight_kg: float,
    exercise_db: Mapping[str, Exercise],
) -> Dict[str, float]:
    step_kcal = step_calories(steps)
    run_kcal = run_calories(runs, weight_kg)
    return {
        "step_calories": step_kcal,
        "run_calories": run_kcal,
        "cardio_calories": step_kcal + run_kcal,
        "strength_calories": strength_calories(sessions, exercise_db),
        "volume": strength_volume(sessions),
    }


# ─── Sleep physics ─────────────────────────────────────────

def parse_clock(value: str) -> int:
    """'HH:MM' -> minute of day."""
    hh, mm = value.strip().split(":")
    hours, minutes = int(hh), int(mm)
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid time of day: {value!r}")
    return hours * 60 + minutes


def time_in_bed(bedtime: str, waketime: str) -> int:
    bed = parse_clock(bedtime)
    wake = parse_clock(waketime)
    if wake < bed:
        wake += MINUTES_PER_DAY
    return wake - bed


def sleep_physics(sleep: SleepLog) -> Dict[str, float]:
    """Time in bed on a 24h wheel, naps add back, efficiency 0 when tib <= 0."""
    tib = time_in_bed(sleep.bedtime, sleep.waketime)
    naps = sum(n.duration_min for n in sleep.naps)
    total = tib - sleep.awake_duration_min + naps
    efficiency = (total / tib) * 100.0 if tib > 0 else 0.0
    return {
        "total_sleep_min": float(total),
        "efficiency": efficiency,
        "time_in_bed_min": float(tib),
    }


# ─── Cognitive load ────────────────────────────────────────

def study_score(mind: MindLog) -> float:
    return mind.reading_minutes + LECTURE_WEIGHT * mind.lecture_minutes


def screen_fatigue(screen_minutes: float) -> float:
    excess = screen_minutes - SCREEN_ALLOWANCE_MIN
    if excess <= 0:
        return 0.0
    return (excess / 60.0) ** SCREEN_FATIGUE_EXPONENT * SCREEN_FATIGUE_SCALE


def cognitive_load(mind: MindLog) -> Dict[str, float]:
    return {
        "study_score": study_score(mind),
        "screen_fatigue": screen_fatigue(mind.screen_minutes),
    }


# ─── Energy balance ────────────────────────────────────────

def basal_rate(profile: UserProfile) -> float:
    """Mifflin-St Jeor.  Only male/female are modelled; anything else uses male."""
    constant = GENDER_CONSTANT.get(profile.gender.lower(), GENDER_CONSTANT["male"])
    return 10 * profile.weight_kg + 6.25 * profile.height_cm - 5 * profile.age + constant


def energy_balance(
    profile: UserProfile,
    intake_cal: float,
    cardio_calories: float,
    strength_kcal: float,
    simulated_delta: float = 0.0,
) -> Dict[str, float]:
    bmr = basal_rate(profile)
    tdee = bmr * ACTIVITY_MULTIPLIER + cardio_calories + strength_kcal
    return {
        "bmr": bmr,
        "tdee": tdee,
        "intake": intake_cal,
        "balance": intake_cal - tdee + simulated_delta,
    }


def format_clock(minute_of_day: int) -> str:
    hours, minutes = divmod(minute_of_day % MINUTES_PER_DAY, 60)
    return f"{hours:02d}:{minutes:02d}"
