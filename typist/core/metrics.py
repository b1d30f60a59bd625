from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from typist.core.matching import CharVerdict

_WORD_RE = re.compile(r"\S+")

_DONE_VERDICTS = (CharVerdict.CORRECT, CharVerdict.CORRECTED)


def count_words(reference: str) -> int:
    return len(reference.split())


def count_correct_words(reference: str, verdicts: Sequence[CharVerdict]) -> int:
    """Words whose every character is Correct or Corrected."""
    correct = 0
    for match in _WORD_RE.finditer(reference):
        span = verdicts[match.start():match.end()]
        if len(span) == match.end() - match.start() and all(v in _DONE_VERDICTS for v in span):
            correct += 1
    return correct


def average_word_length(reference: str) -> float:
    """Mean word length plus one for the trailing space; 5.0 for an empty text."""
    words = reference.split()
    if not words:
        return 5.0
    return sum(len(w) for w in words) / len(words) + 1.0


def accuracy(correct_keystrokes: int, total_keystrokes: int) -> float:
    if total_keystrokes <= 0:
        return 0.0
    return (correct_keystrokes / total_keystrokes) * 100.0


def words_per_minute(correct_words: int, elapsed_seconds: float) -> float:
    if elapsed_seconds <= 0:
        return 0.0
    return correct_words / elapsed_seconds * 60.0


@dataclass
class SessionResult:
    """Totals and series for a finished session."""

    wpm: float
    accuracy: float
    cpm: float
    correct_words: int
    words_done: int
    keystrokes: int
    correct_keystrokes: int
    errors: int
    duration: float
    speed_per_second: List[float] = field(default_factory=list)
    errors_per_second: List[float] = field(default_factory=list)


class MetricsAggregator:
    """Per-second speed and error sampling for a single session.

    Samples are keyed off caller-supplied instants: ``tick`` appends one
    sample for every whole second elapsed since the previous sample, and
    ``flush`` closes the in-progress bucket when the session ends.
    """

    def __init__(self) -> None:
        self.speed_per_second: List[float] = []
        self.errors_per_second: List[float] = []
        self._chars_at_last_tick = 0
        self._errors_this_second = 0.0
        self._last_sample: Optional[float] = None

    @property
    def errors_this_second(self) -> float:
        return self._errors_this_second

    def start(self, now: float) -> None:
        self._last_sample = now

    def record_error(self) -> None:
        self._errors_this_second += 1.0

    def tick(self, now: float, typed: int) -> int:
        """Append a sample per whole second elapsed; return how many were added."""
        if self._last_sample is None:
            return 0
        added = 0
        while now - self._last_sample >= 1.0:
            self._sample(typed)
            self._last_sample += 1.0
            added += 1
        return added

    def flush(self, now: float, typed: int) -> bool:
        """Close the partial bucket; a no-op when nothing is pending."""
        if self._last_sample is None:
            return False
        pending = typed != self._chars_at_last_tick or self._errors_this_second > 0
        if now <= self._last_sample and not pending:
            return False
        self._sample(typed)
        self._last_sample = now
        return True

    def _sample(self, typed: int) -> None:
        chars_this_second = max(0, typed - self._chars_at_last_tick)
        self.speed_per_second.append(chars_this_second * 60.0)
        self.errors_per_second.append(self._errors_this_second)
        self._errors_this_second = 0.0
        self._chars_at_last_tick = typed

    def summarize(
        self,
        correct_words: int,
        words_done: int,
        keystrokes: int,
        correct_keystrokes: int,
        errors: int,
        elapsed: float,
    ) -> SessionResult:
        cpm = keystrokes / elapsed * 60.0 if elapsed > 0 else 0.0
        return SessionResult(
            wpm=words_per_minute(correct_words, elapsed),
            accuracy=accuracy(correct_keystrokes, keystrokes),
            cpm=cpm,
            correct_words=correct_words,
            words_done=words_done,
            keystrokes=keystrokes,
            correct_keystrokes=correct_keystrokes,
            errors=errors,
            duration=elapsed,
            speed_per_second=list(self.speed_per_second),
            errors_per_second=list(self.errors_per_second),
        )
