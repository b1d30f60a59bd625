"""Session modes and the completion predicate that dispatches over them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Union

PRACTICE_WORDS = 50


@dataclass(frozen=True)
class TimedMode:
    test_time: float = 30.0


@dataclass(frozen=True)
class WordCountMode:
    word_count: int = 50


@dataclass(frozen=True)
class QuoteMode:
    pass


@dataclass(frozen=True)
class WikiMode:
    pass


@dataclass(frozen=True)
class PracticeMode:
    level: int = 0
    word_count: int = PRACTICE_WORDS


Mode = Union[TimedMode, WordCountMode, QuoteMode, WikiMode, PracticeMode]


class SessionProgress(NamedTuple):
    """Snapshot of a running session fed to ``is_complete``."""

    elapsed: float
    words_done: int
    position: int
    reference_length: int
    reference_words: int


def is_continuous(mode: Mode) -> bool:
    """Continuous modes replace an exhausted text instead of finishing."""
    return isinstance(mode, (TimedMode, WordCountMode))


def is_complete(mode: Mode, progress: SessionProgress) -> bool:
    if isinstance(mode, TimedMode):
        return progress.elapsed >= mode.test_time
    if isinstance(mode, WordCountMode):
        return progress.words_done >= mode.word_count
    if isinstance(mode, (QuoteMode, WikiMode)):
        return (
            progress.position >= progress.reference_length
            or progress.words_done >= progress.reference_words
        )
    if isinstance(mode, PracticeMode):
        return (
            progress.words_done >= mode.word_count
            or progress.position >= progress.reference_length
        )
    raise TypeError(f"Unknown mode: {mode!r}")


def mode_name(mode: Mode) -> str:
    """Short name recorded as the leaderboard ``test_mode``."""
    if isinstance(mode, TimedMode):
        return "time"
    if isinstance(mode, WordCountMode):
        return "word"
    if isinstance(mode, QuoteMode):
        return "quote"
    if isinstance(mode, WikiMode):
        return "wiki"
    if isinstance(mode, PracticeMode):
        return "practice"
    raise TypeError(f"Unknown mode: {mode!r}")
