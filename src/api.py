"""
FastAPI backend for the MetrixOS dashboard.

One active editor: the app owns a single working ``DayState`` and the
history store.  Every mutation recomputes analytics and rewrites today's
snapshot (last write wins).  Route handlers live here; shared utilities
live in routes/helpers.py.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

import config
from advisor import AdvisoryClient, error_payload
from analytics.scoring import build_snapshot, compute_analytics
from correlation_engine import CorrelationEngine
from history_store import HistoryStore
from models import DayState, FoodEntry, Hydration, RunEntry, StrengthSession
from routes.helpers import (
    _analytics_payload,
    _build_history_rows,
    _correlation_payload,
)

log = logging.getLogger("api")

CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# ─── App setup ─────────────────────────────────────────────

app = FastAPI(title="MetrixOS Health API", version="1.0.0")

_origin_env = os.getenv("FRONTEND_ORIGINS", "")
_origins = [o.strip() for o in _origin_env.split(",") if o.strip()] or [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
)


# ─── Request models ────────────────────────────────────────

class MacroIn(BaseModel):
    cal: float = 0.0
    p: float = 0.0
    c: float = 0.0
    f: float = 0.0


class ProfileIn(BaseModel):
    name: str = "Operator"
    weight_kg: float = Field(default=78.5, gt=0)
    height_cm: float = Field(default=180.0, gt=0)
    age: int = Field(default=28, ge=0)
    gender: Literal["male", "female"] = "male"


class FoodEntryIn(BaseModel):
    id: str
    amount: float = Field(ge=0)
    macros: Optional[MacroIn] = None
    name: str = ""


class StrengthIn(BaseModel):
    exercise_id: str
    sets: int = Field(ge=0)
    reps: int = Field(ge=0)
    weight_kg: float = Field(ge=0)


class RunIn(BaseModel):
    duration_min: float = Field(ge=0)
    distance_km: float = Field(default=0.0, ge=0)


class NapIn(BaseModel):
    duration_min: float = Field(ge=0)


class SleepIn(BaseModel):
    bedtime: str = Field(default="22:30", pattern=CLOCK_PATTERN)
    waketime: str = Field(default="06:15", pattern=CLOCK_PATTERN)
    awakenings: int = Field(default=2, ge=0)
    awake_duration_min: float = Field(default=25.0, ge=0)
    quality_rating: int = Field(default=7, ge=0, le=10)
    naps: List[NapIn] = Field(default_factory=list)


class TargetsIn(BaseModel):
    p: float = Field(default=180.0, ge=0)
    c: float = Field(default=250.0, ge=0)
    f: float = Field(default=70.0, ge=0)


class HydrationIn(BaseModel):
    intake_ml: float = Field(default=1200.0, ge=0)
    target_ml: float = Field(default=3500.0, ge=0)


class MindIn(BaseModel):
    screen_minutes: float = Field(default=145.0, ge=0)
    reading_minutes: float = Field(default=30.0, ge=0)
    lecture_minutes: float = Field(default=0.0, ge=0)


class CustomFoodIn(BaseModel):
    id: str
    name: str = ""
    macros: MacroIn


class CustomExerciseIn(BaseModel):
    id: str
    name: str = ""
    type: str = "strength"
    cal_per_rep: float = Field(ge=0)


class DayStateIn(BaseModel):
    profile: ProfileIn = Field(default_factory=ProfileIn)
    meals: Dict[str, List[FoodEntryIn]] = Field(default_factory=dict)
    targets: TargetsIn = Field(default_factory=TargetsIn)
    hydration: HydrationIn = Field(default_factory=HydrationIn)
    steps: int = Field(default=4500, ge=0)
    runs: List[RunIn] = Field(default_factory=list)
    strength: List[StrengthIn] = Field(default_factory=list)
    sleep: SleepIn = Field(default_factory=SleepIn)
    mind: MindIn = Field(default_factory=MindIn)
    custom_foods: List[CustomFoodIn] = Field(default_factory=list)
    custom_exercises: List[CustomExerciseIn] = Field(default_factory=list)


class LogFoodRequest(BaseModel):
    slot: str = Field(min_length=1)
    entry: FoodEntryIn


class HydrationDelta(BaseModel):
    amount_ml: float


# ─── Working state ─────────────────────────────────────────

_state: DayState = DayState()
_store: Optional[HistoryStore] = None
_advisor = AdvisoryClient()
# Handlers run in a threadpool; guards every read-modify-write of _state
_state_lock = threading.RLock()


def _get_store() -> HistoryStore:
    global _store
    with _state_lock:
        if _store is None:
            _store = HistoryStore(config.HISTORY_PATH)
            _store.load(seed_days=config.SEED_DAYS, seed=config.SEED)
        return _store


def _commit(state: DayState) -> Dict[str, Any]:
    """Replace the working state, rescore, and rewrite today's snapshot."""
    global _state
    with _state_lock:
        _state = state
        analytics = compute_analytics(state)
        today = date.today().isoformat()
        try:
            _get_store().put(build_snapshot(today, state, analytics))
        except OSError as e:
            log.warning("Snapshot write failed for %s: %s", today, e)
    return _analytics_payload(analytics)


# ─── Routes ────────────────────────────────────────────────

@app.get("/")
def root() -> Dict[str, Any]:
    return {"service": "metrix-health-api", "status": "ok"}


@app.get("/health-check")
def health_check() -> Dict[str, Any]:
    try:
        store = _get_store()
        return {"status": "Online", "history_days": len(store), "seeded": store.seeded}
    except Exception as e:
        return {"status": "Degraded", "message": f"History store unavailable: {e}"}


@app.get("/api/v1/state")
def get_state() -> Dict[str, Any]:
    return _state.to_dict()


@app.put("/api/v1/state")
def put_state(body: DayStateIn) -> Dict[str, Any]:
    return _commit(DayState.from_dict(body.model_dump()))


@app.post("/api/v1/nutrition/log")
def log_food(body: LogFoodRequest) -> Dict[str, Any]:
    entry = FoodEntry.from_dict(body.entry.model_dump())
    with _state_lock:
        meals = {slot: list(entries) for slot, entries in _state.meals.items()}
        meals.setdefault(body.slot, []).append(entry)
        return _commit(replace(_state, meals=meals))


@app.post("/api/v1/nutrition/hydration")
def adjust_hydration(body: HydrationDelta) -> Dict[str, Any]:
    with _state_lock:
        current = _state.hydration
        updated = Hydration(
            intake_ml=max(0.0, current.intake_ml + body.amount_ml),
            target_ml=current.target_ml,
        )
        return _commit(replace(_state, hydration=updated))


@app.post("/api/v1/training/strength")
def log_strength(body: StrengthIn) -> Dict[str, Any]:
    session = StrengthSession.from_dict(body.model_dump())
    with _state_lock:
        return _commit(replace(_state, strength=[*_state.strength, session]))


@app.post("/api/v1/training/runs")
def log_run(body: RunIn) -> Dict[str, Any]:
    run = RunEntry.from_dict(body.model_dump())
    with _state_lock:
        return _commit(replace(_state, runs=[*_state.runs, run]))


@app.get("/api/v1/scores")
def scores(simulated_delta: float = Query(default=0.0)) -> Dict[str, Any]:
    return _analytics_payload(compute_analytics(_state, simulated_delta=simulated_delta))


@app.get("/api/v1/metrics/history")
def metrics_history(days: int = Query(default=60, ge=1, le=3650)) -> Dict[str, Any]:
    try:
        snaps = _get_store().snapshots
        ordered = [snaps[d] for d in sorted(snaps)][-days:]
        items = _build_history_rows(ordered)
        return {"data": items, "history": items}
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/v1/insights/correlations")
def insights_correlations(
    window: Optional[int] = Query(default=None, ge=2, le=3650),
    trend_window: int = Query(default=14, ge=2, le=365),
) -> Dict[str, Any]:
    try:
        engine = CorrelationEngine(_get_store().snapshots)
        return _correlation_payload(engine, window, trend_window)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/advisor/diagnostic")
def advisor_diagnostic() -> Dict[str, Any]:
    try:
        analytics = compute_analytics(_state)
        summary = CorrelationEngine(_get_store().snapshots).build_summary()
        return _advisor.diagnose(analytics, summary)
    except Exception as e:
        log.exception("Diagnostic request failed: %s", e)
        return error_payload(f"Diagnostic request failed: {e}")


@app.post("/api/v1/advisor/meal")
def advisor_meal() -> Dict[str, Any]:
    try:
        return _advisor.suggest_meal(compute_analytics(_state), _state)
    except Exception as e:
        log.exception("Meal request failed: %s", e)
        return error_payload(f"Meal request failed: {e}", kind="meal")
