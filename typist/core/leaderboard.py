"""Durable, append-only leaderboard of finished sessions.

Every read and every read-modify-write of the backing JSON file happens under
an exclusive cross-process lock (``filelock``) with a bounded wait. Writes go
through a temp file and an atomic rename, so concurrent instances never lose
or interleave entries and a crash never leaves a partial file.
"""

from __future__ import annotations

import json
import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from filelock import FileLock, Timeout

from typist.core.config import Language
from typist.core.modes import (
    Mode,
    PracticeMode,
    QuoteMode,
    TimedMode,
    WikiMode,
    WordCountMode,
)
from typist.core.storage import app_dir, atomic_write_text

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 5.0


class LeaderboardError(Exception):
    """Base class for every leaderboard failure."""


class LeaderboardValidationError(LeaderboardError):
    """The entry failed sanity checks and was not stored."""


class LeaderboardIOError(LeaderboardError):
    """The leaderboard file could not be read or written."""


class LeaderboardLockTimeout(LeaderboardError):
    """Another writer held the lock for longer than the timeout."""


class LeaderboardSerializationError(LeaderboardError):
    """The leaderboard file exists but could not be parsed."""


class TestKind(Enum):
    PRACTICE = "practice"
    TIME = "time"
    WORD = "word"
    QUOTE = "quote"
    WIKI = "wiki"


_KINDS_WITH_VALUE = (TestKind.PRACTICE, TestKind.TIME, TestKind.WORD)


@dataclass(frozen=True)
class TestType:
    """Which test produced an entry: ``Practice(level)``, ``Time(seconds)``,
    ``Word(count)``, ``Quote`` or ``Wiki``."""

    kind: TestKind
    value: Optional[int] = None

    @classmethod
    def practice(cls, level: int) -> "TestType":
        return cls(TestKind.PRACTICE, level)

    @classmethod
    def time(cls, seconds: int) -> "TestType":
        return cls(TestKind.TIME, seconds)

    @classmethod
    def word(cls, count: int) -> "TestType":
        return cls(TestKind.WORD, count)

    @classmethod
    def quote(cls) -> "TestType":
        return cls(TestKind.QUOTE)

    @classmethod
    def wiki(cls) -> "TestType":
        return cls(TestKind.WIKI)

    @classmethod
    def for_mode(cls, mode: Mode) -> "TestType":
        """Practice levels are stored 1-based, like the level picker shows them."""
        if isinstance(mode, TimedMode):
            return cls.time(int(mode.test_time))
        if isinstance(mode, WordCountMode):
            return cls.word(mode.word_count)
        if isinstance(mode, QuoteMode):
            return cls.quote()
        if isinstance(mode, WikiMode):
            return cls.wiki()
        if isinstance(mode, PracticeMode):
            return cls.practice(mode.level + 1)
        raise TypeError(f"Unknown mode: {mode!r}")

    def label(self) -> str:
        if self.kind is TestKind.TIME:
            return f"time {self.value}s"
        if self.kind is TestKind.WORD:
            return f"words {self.value}"
        if self.kind is TestKind.PRACTICE:
            return f"practice {self.value}"
        return self.kind.value

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "value": self.value}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TestType":
        kind = TestKind(raw["kind"])
        value = raw.get("value")
        if kind in _KINDS_WITH_VALUE:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"test type {kind.value!r} needs an integer value, got {value!r}")
            if value < 0:
                raise ValueError(f"test type {kind.value!r} needs a non-negative value, got {value!r}")
        elif value is not None:
            raise ValueError(f"test type {kind.value!r} takes no value, got {value!r}")
        return cls(kind, value)


@dataclass(frozen=True)
class LeaderboardEntry:
    """One finished session. Never edited once written."""

    wpm: float
    accuracy: float
    test_type: TestType
    test_mode: str
    word_count: int
    duration_seconds: float
    timestamp: str
    language: Language

    def validate(self) -> None:
        """Raise ``LeaderboardValidationError`` if the entry is not fit to store."""
        problems = []
        if not math.isfinite(self.wpm) or self.wpm < 0:
            problems.append(f"wpm must be a non-negative number, got {self.wpm!r}")
        if not math.isfinite(self.accuracy) or not 0.0 <= self.accuracy <= 100.0:
            problems.append(f"accuracy must be within [0, 100], got {self.accuracy!r}")
        if self.word_count < 0:
            problems.append(f"word_count must be non-negative, got {self.word_count!r}")
        if not math.isfinite(self.duration_seconds) or self.duration_seconds < 0:
            problems.append(f"duration must be non-negative, got {self.duration_seconds!r}")
        if not self.timestamp.strip():
            problems.append("timestamp is empty")
        if not self.test_mode.strip():
            problems.append("test_mode is empty")
        has_value = self.test_type.value is not None
        if has_value != (self.test_type.kind in _KINDS_WITH_VALUE):
            problems.append(f"test type payload does not match its kind: {self.test_type!r}")
        elif has_value and self.test_type.value < 0:
            problems.append(f"test type value must be non-negative, got {self.test_type.value!r}")
        if problems:
            raise LeaderboardValidationError("; ".join(problems))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wpm": self.wpm,
            "accuracy": self.accuracy,
            "test_type": self.test_type.to_dict(),
            "test_mode": self.test_mode,
            "word_count": self.word_count,
            "duration_seconds": self.duration_seconds,
            "timestamp": self.timestamp,
            "language": self.language.value,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "LeaderboardEntry":
        return cls(
            wpm=float(raw["wpm"]),
            accuracy=float(raw["accuracy"]),
            test_type=TestType.from_dict(raw["test_type"]),
            test_mode=str(raw["test_mode"]),
            word_count=int(raw["word_count"]),
            duration_seconds=float(raw["duration_seconds"]),
            timestamp=str(raw["timestamp"]),
            language=Language(raw["language"]),
        )


def default_leaderboard_path() -> Path:
    return app_dir() / "leaderboard.json"


def rank_entries(entries: List[LeaderboardEntry]) -> List[LeaderboardEntry]:
    """Highest WPM first; ties go to higher accuracy, then the earlier run."""
    by_time = sorted(entries, key=lambda e: e.timestamp)
    return sorted(by_time, key=lambda e: (-e.wpm, -e.accuracy))


class LeaderboardStore:
    """Leaderboard persisted to ``~/.typist/leaderboard.json`` by default."""

    def __init__(
        self,
        file_path: Optional[Path] = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ) -> None:
        self._file_path = Path(file_path) if file_path is not None else default_leaderboard_path()
        self._lock_timeout = lock_timeout
        self._lock = FileLock(str(self._file_path) + ".lock", timeout=lock_timeout)

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def lock_timeout(self) -> float:
        return self._lock_timeout

    def append(self, entry: LeaderboardEntry) -> None:
        try:
            entry.validate()
        except LeaderboardValidationError as e:
            logger.warning("Rejected leaderboard entry: %s", e)
            raise
        with self._locked():
            entries = self._read()
            entries.append(entry)
            self._write(entries)
        logger.info(
            "Saved leaderboard entry: %.1f wpm, %.1f%% (%s)",
            entry.wpm,
            entry.accuracy,
            entry.test_type.label(),
        )

    def load_all(self) -> List[LeaderboardEntry]:
        """All entries in insertion order; ``[]`` for a missing or empty file."""
        with self._locked():
            return self._read()

    def ranked(self, limit: Optional[int] = None, test_mode: Optional[str] = None) -> List[LeaderboardEntry]:
        entries = self.load_all()
        if test_mode is not None:
            entries = [e for e in entries if e.test_mode == test_mode]
        ranked = rank_entries(entries)
        return ranked if limit is None else ranked[:limit]

    @contextmanager
    def _locked(self) -> Iterator[None]:
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._lock.acquire(timeout=self._lock_timeout)
        except Timeout as e:
            raise LeaderboardLockTimeout(
                f"Timed out after {self._lock_timeout}s waiting for {self._lock.lock_file}"
            ) from e
        except OSError as e:
            raise LeaderboardIOError(f"Could not lock {self._file_path}: {e}") from e
        try:
            yield
        finally:
            self._lock.release()

    def _read(self) -> List[LeaderboardEntry]:
        if not self._file_path.exists():
            return []
        try:
            text = self._file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise LeaderboardIOError(f"Could not read {self._file_path}: {e}") from e
        if not text.strip():
            return []
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise LeaderboardSerializationError(f"{self._file_path} is not valid JSON: {e}") from e

        raw_entries = payload.get("entries") if isinstance(payload, dict) else None
        if not isinstance(raw_entries, list):
            raise LeaderboardSerializationError(f"{self._file_path}: expected an 'entries' list")
        entries: List[LeaderboardEntry] = []
        for i, raw in enumerate(raw_entries):
            try:
                entries.append(LeaderboardEntry.from_dict(raw))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise LeaderboardSerializationError(
                    f"{self._file_path}: entry {i} is malformed: {e!r}"
                ) from e
        return entries

    def _write(self, entries: List[LeaderboardEntry]) -> None:
        payload = {"entries": [e.to_dict() for e in entries]}
        try:
            atomic_write_text(self._file_path, json.dumps(payload, indent=2, ensure_ascii=False))
        except OSError as e:
            raise LeaderboardIOError(f"Could not write {self._file_path}: {e}") from e
