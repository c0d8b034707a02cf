"""
AI Advisory
===========
Formats score/metric prompts for the external LLM and turns whatever
comes back (JSON, fenced JSON, free text, nothing) into a payload the UI
can always render.  Failures never leave this module as exceptions: they
degrade to a "Simulation" or "Error" placeholder with warnings.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from crewai import LLM
from pydantic import BaseModel, Field, ValidationError

import config
from models import DayState, NutrientTotals, ScoreSet
from pipeline.summary_builder import build_concise_summary

log = logging.getLogger("advisor")

# ── LLM (lazy-init to avoid import-time crashes) ──
_llm = None


def _get_llm() -> LLM:
    global _llm
    if _llm is None:
        _llm = LLM(
            model=config.LLM_MODEL,
            api_key=config.google_api_key(),
            temperature=config.LLM_TEMPERATURE,
        )
    return _llm


# ── Response schemas (every field optional) ──

class SubsystemAdvisory(BaseModel):
    name: str = ""
    status: str = ""
    advisory: str = ""


class DiagnosticReport(BaseModel):
    diagnosis: Optional[str] = None
    prime_directive: Optional[str] = None
    subsystems: List[SubsystemAdvisory] = Field(default_factory=list)
    correlation_insight: Optional[str] = None


class MealSuggestion(BaseModel):
    meal_name: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)
    rationale: Optional[str] = None


SUBSYSTEM_LABELS = {
    "sleep": "Recovery",
    "nutrition": "Metabolic",
    "hydration": "Hydration",
    "physical": "Physical",
    "mind": "Cognitive",
}

SYSTEM_PROMPT = (
    "You are the diagnostic core of a personal health dashboard. "
    "Reply with a single JSON object and nothing else."
)


# ── Prompt builders ──

def build_diagnostic_prompt(analytics: Dict[str, Any], history_summary: str = "") -> str:
    scores: ScoreSet = analytics["scores"]
    energy = analytics["energy"]
    raw = analytics["raw"]
    nut: NutrientTotals = analytics["nutrients"]
    return (
        "Analyze today's biometric telemetry.\n\n"
        f"SYSTEM INTEGRITY: {scores.composite:.1f}/100 ({analytics.get('status', '')})\n"
        f"SUB-SCORES: sleep={scores.sleep:.1f} nutrition={scores.nutrition:.1f} "
        f"hydration={scores.hydration:.1f} physical={scores.physical:.1f} mind={scores.mind:.1f}\n"
        f"SLEEP: {raw['sleep_min']:.0f} min, efficiency {raw['sleep_efficiency']:.1f}%\n"
        f"INTAKE: {nut.cal:.0f} kcal, P {nut.p:.0f}g C {nut.c:.0f}g F {nut.f:.0f}g, "
        f"junk {nut.junk_cal:.0f} kcal\n"
        f"ENERGY: TDEE {energy['tdee']:.0f} kcal, balance {energy['balance']:+.0f} kcal\n"
        f"ACTIVITY: {raw['steps']:.0f} steps, strength volume {raw['volume']:.0f} kg\n\n"
        f"{history_summary or 'No history context.'}\n\n"
        "Return JSON with keys: diagnosis (string), prime_directive (string), "
        "subsystems (list of {name, status, advisory}), correlation_insight (string)."
    )


def build_meal_prompt(analytics: Dict[str, Any], state: DayState) -> str:
    nut: NutrientTotals = analytics["nutrients"]
    t = state.targets
    return (
        "Suggest one meal that closes today's macro gap.\n"
        f"Remaining: P {max(0.0, t.p - nut.p):.0f}g, C {max(0.0, t.c - nut.c):.0f}g, "
        f"F {max(0.0, t.f - nut.f):.0f}g. "
        f"Energy balance so far: {analytics['energy']['balance']:+.0f} kcal.\n"
        "Return JSON with keys: meal_name (string), ingredients (list of strings), "
        "rationale (string)."
    )


# ── Response parsing ──

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def _extract_json(text: str) -> Optional[Dict[str, Any]]:
    """Return the JSON object in ``text`` (fenced or bare), else None."""
    candidates = [m.strip() for m in _FENCE_RE.findall(text)]
    candidates.append(text.strip())
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        candidates.append(text[start:end + 1])
    for cand in candidates:
        try:
            obj = json.loads(cand)
        except (json.JSONDecodeError, TypeError):
            continue
        if isinstance(obj, dict):
            return obj
    return None


def _text_payload(text: str) -> Dict[str, Any]:
    return {
        "status": "Text",
        "text": text,
        "summary": build_concise_summary(text),
        "warnings": [],
    }


def parse_diagnostic(text: str) -> Dict[str, Any]:
    obj = _extract_json(text or "")
    if obj is None:
        return _text_payload(text or "")
    try:
        report = DiagnosticReport.model_validate(obj)
    except ValidationError as e:
        log.warning("Diagnostic JSON did not match schema: %s", e)
        return _text_payload(text)
    return {"status": "OK", **report.model_dump(), "warnings": []}


def parse_meal(text: str) -> Dict[str, Any]:
    obj = _extract_json(text or "")
    if obj is None:
        return _text_payload(text or "")
    try:
        meal = MealSuggestion.model_validate(obj)
    except ValidationError as e:
        log.warning("Meal JSON did not match schema: %s", e)
        return _text_payload(text)
    return {"status": "OK", **meal.model_dump(), "warnings": []}


# ── Local placeholders ──

def simulated_diagnostic(analytics: Dict[str, Any], reason: str = "") -> Dict[str, Any]:
    """Deterministic placeholder built from the scores alone."""
    scores: ScoreSet = analytics["scores"]
    subs = {name: getattr(scores, name) for name in SUBSYSTEM_LABELS}
    weakest = min(subs, key=subs.get)
    subsystems = [
        {
            "name": SUBSYSTEM_LABELS[name],
            "status": "NOMINAL" if value >= 70 else "WARNING" if value >= 40 else "CRITICAL",
            "advisory": f"{name} score {value:.0f}/100",
        }
        for name, value in subs.items()
    ]
    return {
        "status": "Simulation",
        "diagnosis": f"System integrity at {scores.composite:.0f}/100 ({analytics.get('status', '')}).",
        "prime_directive": f"Prioritise {SUBSYSTEM_LABELS[weakest].lower()} ({weakest} score {subs[weakest]:.0f}).",
        "subsystems": subsystems,
        "correlation_insight": None,
        "warnings": [reason] if reason else [],
    }


def error_payload(reason: str, kind: str = "diagnostic") -> Dict[str, Any]:
    base: Dict[str, Any] = {"status": "Error", "warnings": [reason]}
    if kind == "meal":
        base.update(meal_name=None, ingredients=[], rationale="Meal suggestion unavailable.")
    else:
        base.update(
            diagnosis="Advisory service unavailable.",
            prime_directive=None,
            subsystems=[],
            correlation_insight=None,
        )
    return base


# ── Client ──

class AdvisoryClient:
    """Thin boundary around the LLM call; never raises into scoring."""

    def _call(self, prompt: str) -> str:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        return str(_get_llm().call(messages))

    def diagnose(self, analytics: Dict[str, Any], history_summary: str = "") -> Dict[str, Any]:
        if not config.google_api_key():
            log.info("GOOGLE_API_KEY not set; returning simulated diagnostic")
            return simulated_diagnostic(analytics, "GOOGLE_API_KEY not set; simulated output.")
        try:
            text = self._call(build_diagnostic_prompt(analytics, history_summary))
        except Exception as e:
            log.warning("Advisory call failed: %s", e)
            return error_payload(f"Advisory call failed: {e}")
        return parse_diagnostic(text)

    def suggest_meal(self, analytics: Dict[str, Any], state: DayState) -> Dict[str, Any]:
        if not config.google_api_key():
            return {
                **error_payload("GOOGLE_API_KEY not set; simulated output.", kind="meal"),
                "status": "Simulation",
            }
        try:
            text = self._call(build_meal_prompt(analytics, state))
        except Exception as e:
            log.warning("Meal suggestion call failed: %s", e)
            return error_payload(f"Meal suggestion failed: {e}", kind="meal")
        return parse_meal(text)
