"""
Tests for the JSON snapshot history: seeding, legacy layout parsing,
malformed-file recovery and last-write-wins updates.
"""
import json
import threading
from dataclasses import replace
from datetime import date, timedelta

import pytest

from history_store import HistoryStore, seed_history
from models import DailySnapshot

TODAY = date(2026, 3, 31)

FLAT = {
    "sleep_minutes": 455, "sleep_efficiency": 93.5, "calories": 2150, "protein": 160,
    "hydration_ml": 2600, "steps": 9800, "strength_volume": 4200,
    "screen_minutes": 170, "study_minutes": 50, "score": 78.2,
}

NESTED = {
    "sleep": {"durationMinutes": 455, "efficiency": 93.5},
    "nutrition": {"calories": 2150, "protein": 160, "hydration": 2600},
    "physical": {"steps": 9800, "strengthVol": 4200},
    "mind": {"screenTime": 170, "studyMinutes": 50},
    "score": 78.2,
}


class TestSeeding:

    def test_missing_file_is_seeded_and_written(self, history_path):
        store = HistoryStore(history_path)
        snaps = store.load(seed_days=20, seed=7, today=TODAY)
        assert store.seeded is True
        assert len(snaps) == 21
        assert max(snaps) == TODAY.isoformat()
        assert history_path.exists()

    def test_seed_is_deterministic(self):
        a = seed_history(15, seed=42, today=TODAY)
        b = seed_history(15, seed=42, today=TODAY)
        assert a == b

    def test_different_seed_differs(self):
        a = seed_history(15, seed=1, today=TODAY)
        b = seed_history(15, seed=2, today=TODAY)
        assert a != b

    def test_seeded_days_carry_real_scores(self):
        for snap in seed_history(30, seed=42, today=TODAY).values():
            assert snap.score is not None
            assert 0.0 <= snap.score <= 100.0
            assert 300 <= snap.sleep_minutes <= 600

    @pytest.mark.parametrize("content", ["", "   ", "{not json", "[1, 2, 3]", "{}"])
    def test_unusable_file_is_treated_as_absent(self, history_path, content):
        history_path.write_text(content, encoding="utf-8")
        store = HistoryStore(history_path)
        snaps = store.load(seed_days=5, seed=42, today=TODAY)
        assert store.seeded is True
        assert len(snaps) == 6
        # Seeded history replaces the bad file
        assert len(json.loads(history_path.read_text(encoding="utf-8"))) == 6


class TestLoad:

    def test_nested_layout_matches_flat(self, history_path):
        history_path.write_text(json.dumps({"2026-03-01": FLAT, "2026-03-02": NESTED}), encoding="utf-8")
        snaps = HistoryStore(history_path).load()
        flat, nested = snaps["2026-03-01"], snaps["2026-03-02"]
        assert replace(nested, date=flat.date) == flat

    def test_malformed_entries_are_skipped(self, history_path):
        history_path.write_text(json.dumps({
            "2026-03-01": FLAT,
            "not-a-date": FLAT,
            "2026-03-02": {"sleep_minutes": 400},
            "2026-03-03": "garbage",
        }), encoding="utf-8")
        store = HistoryStore(history_path)
        snaps = store.load()
        assert list(snaps) == ["2026-03-01"]
        assert store.seeded is False

    def test_all_entries_malformed_falls_back_to_seed(self, history_path):
        history_path.write_text(json.dumps({
            "not-a-date": FLAT,
            "2026-03-02": {"sleep_minutes": 400},
            "2026-03-03": "garbage",
        }), encoding="utf-8")
        store = HistoryStore(history_path)
        snaps = store.load(seed_days=5, seed=42, today=TODAY)
        assert store.seeded is True
        assert len(snaps) == 6
        assert "not-a-date" not in json.loads(history_path.read_text(encoding="utf-8"))

    def test_zero_score_means_unscored(self, history_path):
        history_path.write_text(json.dumps({"2026-03-01": dict(FLAT, score=0)}), encoding="utf-8")
        assert HistoryStore(history_path).load()["2026-03-01"].score is None


class TestPut:

    def test_last_write_wins_and_persists(self, history_path):
        store = HistoryStore(history_path)
        store.load(seed_days=3, seed=42, today=TODAY)
        day = TODAY.isoformat()
        first = DailySnapshot.from_dict(day, FLAT)
        second = replace(first, steps=15000.0)
        store.put(first)
        store.put(second)
        assert store.get(day) == second

        reloaded = HistoryStore(history_path)
        reloaded.load()
        assert reloaded.get(day).steps == 15000.0
        assert len(reloaded) == 4

    def test_snapshots_returns_copy(self, history_path):
        store = HistoryStore(history_path)
        store.load(seed_days=3, seed=42, today=TODAY)
        view = store.snapshots
        view.clear()
        assert len(store) == 4

    def test_concurrent_puts_all_land(self, history_path):
        store = HistoryStore(history_path)
        store.load(seed_days=3, seed=42, today=TODAY)
        base = DailySnapshot.from_dict("2026-01-01", FLAT)
        errors = []

        def writer(worker):
            try:
                for i in range(30):
                    day = (date(2025, 1, 1) + timedelta(days=worker * 30 + i)).isoformat()
                    store.put(replace(base, date=day, steps=float(i)))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(w,)) for w in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(store) == 4 + 8 * 30
        on_disk = json.loads(history_path.read_text(encoding="utf-8"))
        assert len(on_disk) == 4 + 8 * 30
        assert [p.name for p in history_path.parent.iterdir() if p.suffix == ".tmp"] == []
