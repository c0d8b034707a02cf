"""Daily recompute pipeline with explicit health signalling."""

from __future__ import annotations

import json
import logging
import os
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

import config
from advisor import AdvisoryClient
from analytics.scoring import build_snapshot, compute_analytics
from correlation_engine import CorrelationEngine
from history_store import HistoryStore
from models import DayState

log = logging.getLogger("daily_sync")


class DailyPipeline:
    """Recompute today, snapshot it, refresh correlations, optionally advise."""

    def __init__(self, store: Optional[HistoryStore] = None,
                 advisor: Optional[AdvisoryClient] = None):
        self.store = store or HistoryStore(config.HISTORY_PATH)
        self.advisor = advisor or AdvisoryClient()

    def run(self, state: DayState, day: Optional[date] = None,
            skip_ai: bool = False) -> Dict[str, Any]:
        """Execute the pipeline and return a machine-readable status dict."""
        day = day or date.today()
        status: Dict[str, Any] = {
            "run_date": day.isoformat(),
            "run_started_at": datetime.now(timezone.utc).isoformat(),
            "history_ok": False,
            "scoring_ok": False,
            "correlation_ok": False,
            "advisory_status": "skipped" if skip_ai else "pending",
            "analysis_status": "unknown",
            "degraded_reasons": [],
        }
        analytics: Dict[str, Any] = {}
        corr: Dict[str, Any] = {}
        advisory: Dict[str, Any] = {}

        log.info("=" * 60)
        log.info("  DAILY RECOMPUTE STARTED  (%s)", day)
        log.info("=" * 60)

        try:
            log.info("Step 1/4: Loading history...")
            self.store.load(seed_days=config.SEED_DAYS, seed=config.SEED, today=day)
            status["history_ok"] = True
            if self.store.seeded:
                status["degraded_reasons"].append("history_seeded")

            log.info("Step 2/4: Scoring current state...")
            analytics = compute_analytics(state)
            self.store.put(build_snapshot(day.isoformat(), state, analytics))
            status["scoring_ok"] = True

            log.info("Step 3/4: Computing correlations...")
            corr = self._compute_correlations(day)
            status["analysis_status"] = corr.get("analysis_status", "unknown")
            status["degraded_reasons"].extend(corr.get("degraded_reasons", []))
            status["correlation_ok"] = status["analysis_status"] == "success"

            if not skip_ai:
                log.info("Step 4/4: Requesting advisory...")
                engine = CorrelationEngine(self.store.snapshots)
                advisory = self.advisor.diagnose(analytics, engine.build_summary())
                status["advisory_status"] = advisory.get("status", "Error")
            else:
                log.info("Step 4/4: SKIPPED (--no-ai)")
        except Exception as e:
            status["analysis_status"] = "failed"
            status["degraded_reasons"].append("pipeline_exception")
            log.exception("Pipeline failed: %s", e)
        finally:
            status["run_finished_at"] = datetime.now(timezone.utc).isoformat()
            status["overall_status"] = self._overall_status(status)
            self._print_summary(analytics, status)
            log.info("=" * 60)
            log.info("  DAILY RECOMPUTE COMPLETE (status=%s)", status["overall_status"])
            log.info("=" * 60)

        return {
            "status": status,
            "analytics": analytics,
            "correlations": corr,
            "advisory": advisory,
        }

    def _compute_correlations(self, day: date) -> Dict[str, Any]:
        try:
            engine = CorrelationEngine(self.store.snapshots)
            return engine.compute_benchmarks(ref_date=day)
        except Exception as e:
            log.warning("Correlation engine error: %s", e)
            return {
                "benchmarks": {},
                "available": [],
                "longest": None,
                "data_days": 0,
                "analysis_status": "failed",
                "degraded_reasons": ["correlation_engine_exception"],
            }

    @staticmethod
    def _overall_status(status: Dict[str, Any]) -> str:
        if not status.get("history_ok") or not status.get("scoring_ok"):
            return "failed"
        if status.get("analysis_status") == "failed":
            return "failed"
        if status.get("advisory_status") in ("Error", "Simulation"):
            return "degraded"
        if status.get("analysis_status") == "degraded":
            return "degraded"
        return "success"

    @staticmethod
    def is_healthy(status: Dict[str, Any]) -> bool:
        """Exit-code health.  STRICT_PIPELINE_HEALTH=1 also fails degraded runs."""
        strict_health = os.getenv("STRICT_PIPELINE_HEALTH", "0").strip() == "1"
        if strict_health:
            return status.get("overall_status") == "success"
        return status.get("overall_status") != "failed"

    @staticmethod
    def write_status_file(status: Dict[str, Any], path: Optional[str] = None) -> None:
        path = path or os.getenv(
            "PIPELINE_STATUS_PATH", f"pipeline_status_{status.get('run_date', 'unknown')}.json"
        )
        try:
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(status, fh, indent=2, ensure_ascii=False)
            log.info("Pipeline status written to %s", path)
        except OSError as e:
            log.warning("Failed to write pipeline status file: %s", e)

    @staticmethod
    def _print_summary(analytics: Dict[str, Any], status: Dict[str, Any]) -> None:
        log.info("RECOMPUTE SUMMARY:")
        scores = analytics.get("scores")
        if scores is not None:
            log.info(
                "  Integrity %.1f  (sleep %.0f  nutr %.0f  hydro %.0f  phys %.0f  mind %.0f)",
                scores.composite, scores.sleep, scores.nutrition,
                scores.hydration, scores.physical, scores.mind,
            )
        log.info("  Correlation status: %s", status.get("analysis_status"))
        reasons = status.get("degraded_reasons") or []
        if reasons:
            log.info("  Degraded reasons: %s", ", ".join(reasons))
        log.info("  Advisory: %s", status.get("advisory_status"))
        log.info("  Overall status: %s", status.get("overall_status"))
