"""
MetrixOS Daily Sync — recompute and snapshot one day
====================================================
Standalone orchestrator.  Run at end of day (or after edits) to:
  1. Load snapshot history (seeding synthetic history on first run)
  2. Score the day's working state
  3. Write the day's snapshot (last write wins)
  4. Recompute benchmark correlations
  5. Request an AI advisory (optional)

Usage:
    python daily_sync.py --state today.json          # Full pipeline
    python daily_sync.py --state today.json --no-ai  # Skip the advisory
    python daily_sync.py --reseed                    # Discard history and reseed
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("daily_sync")

import config
from analytics.calculators import time_in_bed
from history_store import HistoryStore
from models import DayState
from pipeline.daily_pipeline import DailyPipeline


def load_state(path: str | None) -> DayState:
    """Read a day-state JSON file; no path means dashboard defaults."""
    if not path:
        return DayState()
    with open(path, "r", encoding="utf-8") as fh:
        raw = json.load(fh)
    if not isinstance(raw, dict):
        raise ValueError(f"State file {path} must hold a JSON object, got {type(raw).__name__}")
    state = DayState.from_dict(raw)
    # Reject malformed HH:MM before anything is scored
    time_in_bed(state.sleep.bedtime, state.sleep.waketime)
    return state


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="MetrixOS Daily Sync")
    parser.add_argument("--state", help="Path to the day-state JSON file")
    parser.add_argument("--date", help="Day to snapshot (YYYY-MM-DD, default: today)")
    parser.add_argument("--history", default=str(config.HISTORY_PATH),
                        help=f"History JSON path (default: {config.HISTORY_PATH})")
    parser.add_argument("--no-ai", action="store_true",
                        help="Skip the AI advisory step")
    parser.add_argument("--reseed", action="store_true",
                        help="Delete existing history and seed synthetic data")
    parser.add_argument("--status-file", help="Write the pipeline status JSON here")
    args = parser.parse_args(argv)

    try:
        day = date.fromisoformat(args.date) if args.date else date.today()
        state = load_state(args.state)
    except (OSError, ValueError, TypeError, KeyError, AttributeError) as e:
        log.error("Invalid input: %s", e)
        return 2

    history = Path(args.history)
    if args.reseed and history.exists():
        log.info("Removing existing history at %s", history)
        history.unlink()

    pipeline = DailyPipeline(store=HistoryStore(history))
    result = pipeline.run(state, day=day, skip_ai=args.no_ai)
    status = result["status"]

    advisory = result.get("advisory") or {}
    if advisory:
        log.info("ADVISORY [%s]: %s", advisory.get("status"),
                 advisory.get("prime_directive") or advisory.get("summary") or advisory.get("diagnosis"))
    if args.status_file:
        DailyPipeline.write_status_file(status, args.status_file)

    return 0 if DailyPipeline.is_healthy(status) else 1


if __name__ == "__main__":
    sys.exit(main())
