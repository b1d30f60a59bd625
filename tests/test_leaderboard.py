"""Tests for typist.core.leaderboard – locked, append-only result storage."""

from __future__ import annotations

import json
import multiprocessing
import sys
from pathlib import Path

import pytest
from filelock import FileLock

from typist.core import leaderboard as lb
from typist.core.config import Language
from typist.core.leaderboard import (
    LeaderboardEntry,
    LeaderboardIOError,
    LeaderboardLockTimeout,
    LeaderboardSerializationError,
    LeaderboardStore,
    LeaderboardValidationError,
    rank_entries,
)
from typist.core.modes import PracticeMode, QuoteMode, TimedMode, WikiMode, WordCountMode


def make_entry(wpm: float = 50.0, accuracy: float = 95.0, timestamp: str = "2026-01-01T10:00:00+00:00", **kw) -> LeaderboardEntry:
    fields = dict(
        wpm=wpm,
        accuracy=accuracy,
        test_type=lb.TestType.time(30),
        test_mode="time",
        word_count=25,
        duration_seconds=30.0,
        timestamp=timestamp,
        language=Language.ENGLISH,
    )
    fields.update(kw)
    return LeaderboardEntry(**fields)


@pytest.fixture()
def store(tmp_path: Path) -> LeaderboardStore:
    return LeaderboardStore(tmp_path / "leaderboard.json", lock_timeout=0.5)


def _append_many(path: str, worker: int, count: int) -> None:
    store = LeaderboardStore(Path(path), lock_timeout=30.0)
    for i in range(count):
        store.append(make_entry(wpm=float(worker * 100 + i), timestamp=f"2026-01-01T10:{worker:02d}:{i:02d}+00:00"))


# ---------------------------------------------------------------------------
# TestType
# ---------------------------------------------------------------------------

class TestTestType:
    @pytest.mark.parametrize(
        "test_type",
        [lb.TestType.practice(3), lb.TestType.time(60), lb.TestType.word(25), lb.TestType.quote(), lb.TestType.wiki()],
    )
    def test_dict_round_trip(self, test_type):
        assert lb.TestType.from_dict(test_type.to_dict()) == test_type

    def test_for_mode(self):
        assert lb.TestType.for_mode(TimedMode(15.0)) == lb.TestType.time(15)
        assert lb.TestType.for_mode(WordCountMode(50)) == lb.TestType.word(50)
        assert lb.TestType.for_mode(QuoteMode()) == lb.TestType.quote()
        assert lb.TestType.for_mode(WikiMode()) == lb.TestType.wiki()

    def test_practice_level_one_based(self):
        assert lb.TestType.for_mode(PracticeMode(level=0)) == lb.TestType.practice(1)

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            lb.TestType.from_dict({"kind": "marathon", "value": 1})

    def test_missing_value(self):
        with pytest.raises(ValueError):
            lb.TestType.from_dict({"kind": "time", "value": None})

    def test_unexpected_value(self):
        with pytest.raises(ValueError):
            lb.TestType.from_dict({"kind": "quote", "value": 3})

    def test_negative_value(self):
        with pytest.raises(ValueError):
            lb.TestType.from_dict({"kind": "word", "value": -10})

    def test_negative_value_not_stored(self, store):
        with pytest.raises(LeaderboardValidationError):
            store.append(make_entry(test_type=lb.TestType.time(-30)))
        assert store.load_all() == []

    def test_label(self):
        assert lb.TestType.time(30).label() == "time 30s"
        assert lb.TestType.word(10).label() == "words 10"
        assert lb.TestType.practice(2).label() == "practice 2"
        assert lb.TestType.wiki().label() == "wiki"


# ---------------------------------------------------------------------------
# LeaderboardEntry
# ---------------------------------------------------------------------------

class TestLeaderboardEntry:
    def test_valid_entry(self):
        make_entry().validate()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"wpm": -1.0},
            {"wpm": float("nan")},
            {"accuracy": 100.5},
            {"accuracy": -0.1},
            {"word_count": -1},
            {"duration_seconds": -2.0},
            {"timestamp": "  "},
            {"test_mode": ""},
            {"test_type": lb.TestType(lb.TestKind.QUOTE, 4)},
            {"test_type": lb.TestType.time(-15)},
            {"test_type": lb.TestType.word(-1)},
            {"test_type": lb.TestType.practice(-2)},
        ],
    )
    def test_invalid_entries(self, overrides):
        with pytest.raises(LeaderboardValidationError):
            make_entry(**overrides).validate()

    def test_dict_round_trip(self):
        entry = make_entry(test_type=lb.TestType.practice(2), test_mode="practice", language=Language.ITALIAN)
        assert LeaderboardEntry.from_dict(entry.to_dict()) == entry


# ---------------------------------------------------------------------------
# LeaderboardStore – reading and appending
# ---------------------------------------------------------------------------

class TestLeaderboardStore:
    def test_missing_file_is_empty(self, store):
        assert store.load_all() == []

    def test_empty_file_is_empty(self, store):
        store.file_path.write_text("  \n", encoding="utf-8")
        assert store.load_all() == []

    def test_append_then_load(self, store):
        entry = make_entry()
        store.append(entry)
        assert store.load_all() == [entry]

    def test_insertion_order(self, store):
        entries = [make_entry(wpm=w) for w in (30.0, 80.0, 50.0)]
        for e in entries:
            store.append(e)
        assert store.load_all() == entries

    def test_file_format(self, store):
        store.append(make_entry(test_type=lb.TestType.word(10), test_mode="word"))
        payload = json.loads(store.file_path.read_text(encoding="utf-8"))
        assert list(payload) == ["entries"]
        raw = payload["entries"][0]
        assert raw["test_type"] == {"kind": "word", "value": 10}
        assert raw["language"] == "english"

    def test_creates_parent_dir(self, tmp_path):
        store = LeaderboardStore(tmp_path / "nested" / "dir" / "board.json")
        store.append(make_entry())
        assert len(store.load_all()) == 1

    def test_invalid_entry_not_stored(self, store):
        store.append(make_entry())
        with pytest.raises(LeaderboardValidationError):
            store.append(make_entry(accuracy=150.0))
        assert len(store.load_all()) == 1

    def test_no_temp_files_left(self, store):
        store.append(make_entry())
        store.append(make_entry())
        leftovers = [p.name for p in store.file_path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []


# ---------------------------------------------------------------------------
# LeaderboardStore – failures
# ---------------------------------------------------------------------------

class TestLeaderboardFailures:
    def test_invalid_json(self, store):
        store.file_path.write_text("{oops", encoding="utf-8")
        with pytest.raises(LeaderboardSerializationError):
            store.load_all()

    def test_wrong_shape(self, store):
        store.file_path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(LeaderboardSerializationError):
            store.load_all()

    def test_malformed_entry(self, store):
        store.file_path.write_text(json.dumps({"entries": [{"wpm": 1}]}), encoding="utf-8")
        with pytest.raises(LeaderboardSerializationError):
            store.load_all()

    def test_append_leaves_corrupt_file_alone(self, store):
        store.file_path.write_text("{oops", encoding="utf-8")
        with pytest.raises(LeaderboardSerializationError):
            store.append(make_entry())
        assert store.file_path.read_text(encoding="utf-8") == "{oops"

    def test_path_is_directory(self, store):
        store.file_path.mkdir()
        with pytest.raises(LeaderboardIOError):
            store.load_all()

    def test_lock_timeout(self, tmp_path):
        store = LeaderboardStore(tmp_path / "board.json", lock_timeout=0.05)
        with FileLock(str(store.file_path) + ".lock"):
            with pytest.raises(LeaderboardLockTimeout):
                store.append(make_entry())
        assert not store.file_path.exists()

    def test_lock_released_after_failure(self, store):
        store.file_path.write_text("{oops", encoding="utf-8")
        with pytest.raises(LeaderboardSerializationError):
            store.load_all()
        other = FileLock(str(store.file_path) + ".lock", timeout=0.05)
        with other:
            assert other.is_locked


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

class TestRanking:
    def test_wpm_descending(self):
        entries = [make_entry(wpm=w) for w in (40.0, 90.0, 60.0)]
        assert [e.wpm for e in rank_entries(entries)] == [90.0, 60.0, 40.0]

    def test_ties_by_accuracy_then_time(self):
        late = make_entry(wpm=50.0, accuracy=95.0, timestamp="2026-01-02T00:00:00+00:00")
        early = make_entry(wpm=50.0, accuracy=95.0, timestamp="2026-01-01T00:00:00+00:00")
        sharp = make_entry(wpm=50.0, accuracy=99.0, timestamp="2026-01-03T00:00:00+00:00")
        assert rank_entries([late, early, sharp]) == [sharp, early, late]

    def test_ranked_limit_and_mode(self, store):
        store.append(make_entry(wpm=70.0))
        store.append(make_entry(wpm=90.0, test_type=lb.TestType.quote(), test_mode="quote"))
        store.append(make_entry(wpm=80.0))
        assert [e.wpm for e in store.ranked(limit=2)] == [90.0, 80.0]
        assert [e.wpm for e in store.ranked(test_mode="time")] == [80.0, 70.0]


# ---------------------------------------------------------------------------
# Concurrent writers
# ---------------------------------------------------------------------------

@pytest.mark.skipif(sys.platform == "win32", reason="needs the fork start method")
class TestConcurrentAppend:
    def test_two_processes_lose_nothing(self, tmp_path):
        path = tmp_path / "leaderboard.json"
        ctx = multiprocessing.get_context("fork")
        workers = [ctx.Process(target=_append_many, args=(str(path), n, 10)) for n in (1, 2)]
        for p in workers:
            p.start()
        for p in workers:
            p.join(timeout=60)
            assert p.exitcode == 0

        entries = LeaderboardStore(path).load_all()
        assert len(entries) == 20
        assert sorted(e.wpm for e in entries) == [float(n * 100 + i) for n in (1, 2) for i in range(10)]
