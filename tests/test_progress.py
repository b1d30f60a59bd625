"""Tests for typist.core.progress – practice level progress persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from typist.core.progress import PASS_ACCURACY, LevelProgress, PracticeProgressStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def store(tmp_path: Path) -> PracticeProgressStore:
    """Store backed by a temp file so tests don't touch ~/.typist."""
    return PracticeProgressStore(tmp_path / "practice.json")


# ---------------------------------------------------------------------------
# LevelProgress dataclass
# ---------------------------------------------------------------------------

class TestLevelProgress:
    def test_defaults(self):
        lp = LevelProgress()
        assert lp.completed == 0
        assert lp.best_wpm == 0.0
        assert not lp.passed

    def test_passed_once_completed(self):
        assert LevelProgress(completed=1).passed


# ---------------------------------------------------------------------------
# record_result
# ---------------------------------------------------------------------------

class TestRecordResult:
    def test_passing_run(self, store: PracticeProgressStore):
        assert store.record_result("level1", wpm=40.0, accuracy=95.0, duration=20.0) is True
        lp = store.get_level_progress("level1")
        assert lp.completed == 1
        assert lp.best_wpm == 40.0
        assert lp.best_duration == 20.0

    def test_threshold_is_inclusive(self, store: PracticeProgressStore):
        assert store.record_result("level1", 30.0, PASS_ACCURACY, 10.0) is True

    def test_failing_run_keeps_bests(self, store: PracticeProgressStore):
        assert store.record_result("level1", wpm=55.0, accuracy=70.0, duration=12.0) is False
        lp = store.get_level_progress("level1")
        assert lp.completed == 0
        assert lp.best_wpm == 55.0
        assert lp.best_accuracy == 70.0

    def test_keeps_max_wpm(self, store: PracticeProgressStore):
        store.record_result("level1", 50.0, 95.0, 10.0)
        store.record_result("level1", 30.0, 99.0, 15.0)
        lp = store.get_level_progress("level1")
        assert lp.best_wpm == 50.0
        assert lp.best_duration == 10.0
        assert lp.best_accuracy == 99.0
        assert lp.completed == 2

    def test_persists_to_disk(self, store: PracticeProgressStore, tmp_path: Path):
        store.record_result("level2", 35.0, 92.0, 30.0)
        data = json.loads((tmp_path / "practice.json").read_text(encoding="utf-8"))
        assert data["levels"]["level2"]["completed"] == 1

    def test_reloaded_by_new_store(self, store: PracticeProgressStore, tmp_path: Path):
        store.record_result("level2", 35.0, 92.0, 30.0)
        again = PracticeProgressStore(tmp_path / "practice.json")
        assert again.get_level_progress("level2").passed


# ---------------------------------------------------------------------------
# first_not_done
# ---------------------------------------------------------------------------

class TestFirstNotDone:
    def test_fresh(self, store: PracticeProgressStore):
        assert store.first_not_done(["level1", "level2", "level3"]) == 0

    def test_skips_passed_levels(self, store: PracticeProgressStore):
        store.record_result("level1", 30.0, 95.0, 10.0)
        assert store.first_not_done(["level1", "level2", "level3"]) == 1

    def test_all_passed_returns_last(self, store: PracticeProgressStore):
        for key in ("level1", "level2"):
            store.record_result(key, 30.0, 95.0, 10.0)
        assert store.first_not_done(["level1", "level2"]) == 1

    def test_empty(self, store: PracticeProgressStore):
        assert store.first_not_done([]) == 0


# ---------------------------------------------------------------------------
# reset
# ---------------------------------------------------------------------------

class TestReset:
    def test_reset_level(self, store: PracticeProgressStore):
        store.record_result("level1", 40.0, 95.0, 10.0)
        store.record_result("level2", 40.0, 95.0, 10.0)
        store.reset_level("level1")
        assert store.get_level_progress("level1") == LevelProgress()
        assert store.get_level_progress("level2").completed == 1

    def test_reset_all(self, store: PracticeProgressStore):
        store.record_result("level1", 40.0, 95.0, 10.0)
        store.reset()
        assert store.get_level_progress("level1") == LevelProgress()


# ---------------------------------------------------------------------------
# Loading edge cases
# ---------------------------------------------------------------------------

class TestLoadEdgeCases:
    def test_corrupt_json(self, tmp_path: Path):
        f = tmp_path / "practice.json"
        f.write_text("NOT VALID JSON", encoding="utf-8")
        s = PracticeProgressStore(f)
        assert s.get_level_progress("level1") == LevelProgress()

    def test_not_a_mapping(self, tmp_path: Path):
        f = tmp_path / "practice.json"
        f.write_text("[1, 2]", encoding="utf-8")
        assert PracticeProgressStore(f).get_level_progress("level1") == LevelProgress()

    def test_levels_not_a_mapping(self, tmp_path: Path):
        f = tmp_path / "practice.json"
        f.write_text(json.dumps({"levels": "bad"}), encoding="utf-8")
        assert PracticeProgressStore(f).get_level_progress("level1") == LevelProgress()

    def test_level_missing_fields(self, tmp_path: Path):
        f = tmp_path / "practice.json"
        f.write_text(json.dumps({"levels": {"level1": {}}}), encoding="utf-8")
        lp = PracticeProgressStore(f).get_level_progress("level1")
        assert lp.completed == 0
        assert lp.best_wpm == 0.0

    def test_malformed_level_skipped(self, tmp_path: Path):
        f = tmp_path / "practice.json"
        f.write_text(
            json.dumps({"levels": {"level1": {"completed": "x"}, "level2": {"completed": 2}}}),
            encoding="utf-8",
        )
        s = PracticeProgressStore(f)
        assert s.get_level_progress("level1") == LevelProgress()
        assert s.get_level_progress("level2").completed == 2


# ---------------------------------------------------------------------------
# starting_level
# ---------------------------------------------------------------------------

class TestStartingLevel:
    KEYS = ["level1", "level2", "level3"]

    def test_practice_opens_first_not_passed(self, store: PracticeProgressStore):
        store.record_result("level1", 30.0, 95.0, 10.0)
        assert store.starting_level(self.KEYS, selected_level=0, practice=True) == 1

    def test_practice_ignores_stale_selection(self, store: PracticeProgressStore):
        store.record_result("level1", 30.0, 95.0, 10.0)
        store.record_result("level2", 30.0, 95.0, 10.0)
        assert store.starting_level(self.KEYS, selected_level=0, practice=True) == 2

    def test_other_modes_keep_selection(self, store: PracticeProgressStore):
        store.record_result("level1", 30.0, 95.0, 10.0)
        assert store.starting_level(self.KEYS, selected_level=0, practice=False) == 0

    def test_missing_level_reset(self, store: PracticeProgressStore):
        assert store.starting_level(self.KEYS, selected_level=7, practice=False) == 0
