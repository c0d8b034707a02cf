"""
Record types for the analytics core.

The working day is an explicit ``DayState`` value passed into pure
calculators; nothing in the core reads ambient globals.  Snapshots are
the persisted, one-row-per-date projection of a computed day.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from constants import MEAL_SLOTS


def _f(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    return float(value)


@dataclass(frozen=True)
class MacroProfile:
    cal: float = 0.0
    p: float = 0.0
    c: float = 0.0
    f: float = 0.0

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> Optional["MacroProfile"]:
        if raw is None:
            return None
        return cls(
            cal=_f(raw.get("cal")),
            p=_f(raw.get("p")),
            c=_f(raw.get("c")),
            f=_f(raw.get("f")),
        )


@dataclass(frozen=True)
class FoodItem:
    id: str
    name: str
    macros: MacroProfile


@dataclass(frozen=True)
class FoodEntry:
    """A logged food.  ``macros`` set means an inline composite item."""
    id: str
    amount: float
    macros: Optional[MacroProfile] = None
    name: str = ""

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FoodEntry":
        return cls(
            id=str(raw.get("id", "")),
            amount=_f(raw.get("amount")),
            macros=MacroProfile.from_dict(raw.get("macros")),
            name=str(raw.get("name") or ""),
        )


@dataclass(frozen=True)
class Exercise:
    id: str
    name: str
    type: str
    cal_per_rep: float


@dataclass(frozen=True)
class StrengthSession:
    exercise_id: str
    sets: int
    reps: int
    weight_kg: float

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "StrengthSession":
        return cls(
            exercise_id=str(raw.get("exercise_id") or raw.get("id") or ""),
            sets=int(raw.get("sets") or 0),
            reps=int(raw.get("reps") or 0),
            weight_kg=_f(raw.get("weight_kg", raw.get("weight"))),
        )


@dataclass(frozen=True)
class RunEntry:
    duration_min: float
    distance_km: float = 0.0

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RunEntry":
        return cls(
            duration_min=_f(raw.get("duration_min", raw.get("duration"))),
            distance_km=_f(raw.get("distance_km", raw.get("distance"))),
        )


@dataclass(frozen=True)
class Nap:
    duration_min: float


@dataclass(frozen=True)
class SleepLog:
    bedtime: str = "22:30"
    waketime: str = "06:15"
    awakenings: int = 2
    awake_duration_min: float = 25.0
    quality_rating: int = 7
    naps: List[Nap] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SleepLog":
        naps = [
            Nap(duration_min=_f(n.get("duration_min", n.get("duration"))))
            for n in raw.get("naps") or []
        ]
        return cls(
            bedtime=str(raw.get("bedtime", "22:30")),
            waketime=str(raw.get("waketime", "06:15")),
            awakenings=int(raw.get("awakenings") or 0),
            awake_duration_min=_f(raw.get("awake_duration_min", raw.get("awakeDuration"))),
            quality_rating=int(raw.get("quality_rating", raw.get("qualityRating")) or 0),
            naps=naps,
        )


@dataclass(frozen=True)
class UserProfile:
    name: str = "Operator"
    weight_kg: float = 78.5
    height_cm: float = 180.0
    age: int = 28
    gender: str = "male"


@dataclass(frozen=True)
class MacroTargets:
    p: float = 180.0
    c: float = 250.0
    f: float = 70.0


@dataclass(frozen=True)
class Hydration:
    intake_ml: float = 1200.0
    target_ml: float = 3500.0


@dataclass(frozen=True)
class MindLog:
    screen_minutes: float = 145.0
    reading_minutes: float = 30.0
    lecture_minutes: float = 0.0


def _default_meals() -> Dict[str, List[FoodEntry]]:
    return {slot: [] for slot in MEAL_SLOTS}


@dataclass(frozen=True)
class DayState:
    """Complete working state for one day.  Treated as immutable: every
    mutation builds a new value (see ``dataclasses.replace``)."""
    profile: UserProfile = field(default_factory=UserProfile)
    meals: Dict[str, List[FoodEntry]] = field(default_factory=_default_meals)
    targets: MacroTargets = field(default_factory=MacroTargets)
    hydration: Hydration = field(default_factory=Hydration)
    steps: int = 4500
    runs: List[RunEntry] = field(default_factory=list)
    strength: List[StrengthSession] = field(default_factory=list)
    sleep: SleepLog = field(default_factory=SleepLog)
    mind: MindLog = field(default_factory=MindLog)
    custom_foods: List[FoodItem] = field(default_factory=list)
    custom_exercises: List[Exercise] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DayState":
        """Build a state from a JSON-shaped dict; absent sections keep defaults."""
        raw = raw or {}
        profile = UserProfile(**raw["profile"]) if raw.get("profile") else UserProfile()
        meals = _default_meals()
        for slot, entries in (raw.get("meals") or {}).items():
            meals[str(slot)] = [FoodEntry.from_dict(e) for e in entries or []]
        targets = MacroTargets(**raw["targets"]) if raw.get("targets") else MacroTargets()
        hydration = Hydration(**raw["hydration"]) if raw.get("hydration") else Hydration()
        custom_foods = [
            FoodItem(
                id=str(item["id"]),
                name=str(item.get("name", "")),
                macros=MacroProfile.from_dict(item.get("macros")) or MacroProfile(),
            )
            for item in raw.get("custom_foods") or []
        ]
        custom_exercises = [
            Exercise(
                id=str(ex["id"]),
                name=str(ex.get("name", "")),
                type=str(ex.get("type", "strength")),
                cal_per_rep=_f(ex.get("cal_per_rep")),
            )
            for ex in raw.get("custom_exercises") or []
        ]
        return cls(
            profile=profile,
            meals=meals,
            targets=targets,
            hydration=hydration,
            steps=int(raw.get("steps", 4500) or 0),
            runs=[RunEntry.from_dict(r) for r in raw.get("runs") or []],
            strength=[StrengthSession.from_dict(s) for s in raw.get("strength") or []],
            sleep=SleepLog.from_dict(raw["sleep"]) if raw.get("sleep") else SleepLog(),
            mind=MindLog(**raw["mind"]) if raw.get("mind") else MindLog(),
            custom_foods=custom_foods,
            custom_exercises=custom_exercises,
        )


@dataclass(frozen=True)
class NutrientTotals:
    cal: float = 0.0
    p: float = 0.0
    c: float = 0.0
    f: float = 0.0
    junk_cal: float = 0.0


@dataclass(frozen=True)
class ScoreSet:
    sleep: float
    nutrition: float
    hydration: float
    physical: float
    mind: float
    composite: float


# Flat snapshot keys <- nested dashboard layout (section, key)
_NESTED_SNAPSHOT_KEYS = {
    "sleep_minutes": ("sleep", "durationMinutes"),
    "sleep_efficiency": ("sleep", "efficiency"),
    "calories": ("nutrition", "calories"),
    "protein": ("nutrition", "protein"),
    "hydration_ml": ("nutrition", "hydration"),
    "steps": ("physical", "steps"),
    "strength_volume": ("physical", "strengthVol"),
    "screen_minutes": ("mind", "screenTime"),
    "study_minutes": ("mind", "studyMinutes"),
}


@dataclass(frozen=True)
class DailySnapshot:
    date: str
    sleep_minutes: float
    sleep_efficiency: float
    calories: float
    protein: float
    hydration_ml: float
    steps: float
    strength_volume: float
    screen_minutes: float
    study_minutes: float
    score: Optional[float] = None

    @property
    def sleep_hours(self) -> float:
        return self.sleep_minutes / 60.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, day: str, raw: Dict[str, Any]) -> "DailySnapshot":
        """Accept the flat layout or the nested dashboard layout."""
        values: Dict[str, Any] = {}
        for key, (section, nested_key) in _NESTED_SNAPSHOT_KEYS.items():
            if key in raw:
                values[key] = _f(raw[key])
            elif isinstance(raw.get(section), dict):
                values[key] = _f(raw[section].get(nested_key))
            else:
                raise KeyError(key)
        score = raw.get("score")
        # The dashboard wrote 0 as "not yet scored"
        values["score"] = float(score) if score else None
        return cls(date=day, **values)


@dataclass(frozen=True)
class CorrelationResult:
    metric_x: str
    metric_y: str
    coefficient: float
    n: int
    x: List[float]
    y: List[float]
    p_value: Optional[float] = None
    label: str = "Insignificant"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
