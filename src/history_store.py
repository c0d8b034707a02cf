"""
History Store
=============
Key-value persistence of daily snapshots: one JSON object mapping
ISO dates (YYYY-MM-DD) to snapshot dicts, loaded and rewritten wholesale.

A missing, empty or unparseable file, or one with no usable entry, is
treated as absent and replaced by deterministic synthetic history, so
startup never fails on bad state.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from analytics.calculators import format_clock
from analytics.scoring import build_snapshot, compute_analytics
from models import (
    DailySnapshot,
    DayState,
    FoodEntry,
    Hydration,
    MacroProfile,
    MindLog,
    SleepLog,
    StrengthSession,
)

log = logging.getLogger("history_store")

JUNK_SNACK = MacroProfile(cal=5.2, p=0.06, c=0.55, f=0.30)


class HistoryStore:
    """Append-only snapshot history backed by a JSON file.

    Safe to share between request threads: every read-modify-write of the
    in-memory map and the file rewrite happen under one re-entrant lock.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._snapshots: Dict[str, DailySnapshot] = {}
        self.seeded = False
        self._lock = threading.RLock()

    # ─── Load / save ──────────────────────────────────────────

    def _read_raw(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            log.warning("Could not read history file %s: %s", self.path, e)
            return None
        if not text.strip():
            return None
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            log.warning("History file %s is not valid JSON (%s); treating as absent", self.path, e)
            return None
        if not isinstance(raw, dict):
            log.warning("History file %s is not a JSON object; treating as absent", self.path)
            return None
        return raw

    @staticmethod
    def _parse(raw: Dict[str, Any]) -> Dict[str, DailySnapshot]:
        snapshots: Dict[str, DailySnapshot] = {}
        skipped = 0
        for day, entry in raw.items():
            try:
                date.fromisoformat(day)
                snapshots[day] = DailySnapshot.from_dict(day, entry)
            except (KeyError, TypeError, ValueError, AttributeError):
                skipped += 1
        if skipped:
            log.warning("Skipped %d malformed history entries", skipped)
        return snapshots

    def load(self, seed_days: int = 270, seed: int = 42,
             today: Optional[date] = None) -> Dict[str, DailySnapshot]:
        """Load history, seeding synthetic data when the store is absent
        or holds no usable entry."""
        with self._lock:
            raw = self._read_raw()
            snapshots = self._parse(raw) if raw else {}
            if not snapshots:
                log.info("No usable history at %s; seeding %d synthetic days", self.path, seed_days)
                self._snapshots = seed_history(seed_days, seed=seed, today=today)
                self.seeded = True
                self.save()
                return self.snapshots

            self._snapshots = snapshots
            self.seeded = False
            log.info("Loaded %d snapshots from %s", len(snapshots), self.path)
            return self.snapshots

    def save(self) -> None:
        with self._lock:
            payload = {day: snap.to_dict() for day, snap in sorted(self._snapshots.items())}
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=self.path.name + ".", suffix=".tmp",
                                       dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh, indent=1, ensure_ascii=False)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise

    # ─── Access ───────────────────────────────────────────────

    @property
    def snapshots(self) -> Dict[str, DailySnapshot]:
        with self._lock:
            return dict(self._snapshots)

    def get(self, day: str) -> Optional[DailySnapshot]:
        return self._snapshots.get(day)

    def put(self, snapshot: DailySnapshot) -> None:
        """Write one date; last write wins for a recomputed day."""
        with self._lock:
            self._snapshots[snapshot.date] = snapshot
            self.save()

    def __len__(self) -> int:
        return len(self._snapshots)


# ══════════════════════════════════════════════════════════════
#  SYNTHETIC SEEDING
# ══════════════════════════════════════════════════════════════

def synthetic_state(rng: np.random.Generator, days_ago: int) -> DayState:
    """One plausible day: ~7-9h sleep, ~2200 kcal, 8-13k steps, lifting every other day."""
    seasonality = np.sin(days_ago / 30) * 10

    def noise() -> float:
        return (rng.random() - 0.5) * 20

    bed = 22 * 60 + 30 + int(rng.integers(0, 90))
    awake = int(rng.integers(5, 40))
    asleep = int(round(420 + rng.random() * 120 + seasonality))
    sleep = SleepLog(
        bedtime=format_clock(bed),
        waketime=format_clock(bed + asleep + awake),
        awakenings=int(rng.integers(0, 4)),
        awake_duration_min=float(awake),
        quality_rating=int(rng.integers(5, 10)),
    )

    meals = {
        "breakfast": [
            FoodEntry(id="5", amount=float(rng.integers(60, 100))),
            FoodEntry(id="6", amount=float(rng.integers(25, 40))),
        ],
        "lunch": [
            FoodEntry(id="1", amount=float(rng.integers(200, 300))),
            FoodEntry(id="2", amount=float(rng.integers(120, 200))),
        ],
        "dinner": [
            FoodEntry(id="1", amount=float(rng.integers(150, 250))),
            FoodEntry(id="2", amount=float(rng.integers(80, 150))),
            FoodEntry(id="4", amount=float(rng.integers(5, 20))),
        ],
        "junk": [],
    }
    if rng.random() < 0.3:
        meals["junk"].append(
            FoodEntry(id="snack", amount=float(rng.integers(40, 150)), macros=JUNK_SNACK, name="Snack")
        )

    strength = []
    if days_ago % 2 == 0:
        strength = [
            StrengthSession("str1", 5, 5, float(rng.integers(100, 140))),
            StrengthSession("str3", 5, 5, float(rng.integers(70, 90))),
            StrengthSession("str2", 3, 5, float(rng.integers(140, 180))),
        ]

    study = 30 + rng.random() * 60
    lecture_share = rng.random() * 0.5
    return DayState(
        meals=meals,
        hydration=Hydration(intake_ml=float(max(0.0, 2500 + noise() * 50 + seasonality * 5))),
        steps=int(8000 + rng.random() * 5000),
        strength=strength,
        sleep=sleep,
        mind=MindLog(
            screen_minutes=float(max(0.0, 180 + noise() * 3)),
            reading_minutes=study * (1 - lecture_share),
            lecture_minutes=study * lecture_share,
        ),
    )


def seed_history(days: int = 270, seed: int = 42,
                 today: Optional[date] = None) -> Dict[str, DailySnapshot]:
    """Deterministic synthetic history ending at ``today`` (inclusive).

    Each day is a full synthetic working state run through the analytics
    engine, so seeded scores are real composite scores.
    """
    today = today or date.today()
    rng = np.random.default_rng(seed)
    out: Dict[str, DailySnapshot] = {}
    for i in range(days, -1, -1):
        day = (today - timedelta(days=i)).isoformat()
        state = synthetic_state(rng, i)
        out[day] = build_snapshot(day, state, compute_analytics(state))
    return out
