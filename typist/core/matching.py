from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union


class CharVerdict(Enum):
    """Outcome recorded for a single reference character."""

    UNTOUCHED = "untouched"
    CORRECT = "correct"
    CORRECTED = "corrected"
    INCORRECT = "incorrect"


@dataclass(frozen=True)
class Char:
    """A printable character typed by the user."""

    char: str


@dataclass(frozen=True)
class Backspace:
    pass


KeyEvent = Union[Char, Backspace]

BACKSPACE = Backspace()

# Tab, newline, carriage return, escape, delete and the arrow-key sentinels.
IGNORED_INPUT = frozenset("\t\n\r\x1b\x7f") | frozenset(chr(c) for c in range(0xF700, 0xF706))


def parse_input(ch: str) -> Optional[KeyEvent]:
    """Translate a raw input character into an engine event, or None to drop it."""
    if len(ch) != 1:
        return None
    if ch == "\b":
        return BACKSPACE
    if ch in IGNORED_INPUT or (not ch.isprintable() and ch != " "):
        return None
    return Char(ch)


@dataclass(frozen=True)
class VerdictDelta:
    """What a single event changed in the engine."""

    index: int
    before: Optional[CharVerdict]
    after: Optional[CharVerdict]
    moved: int = 0
    words_delta: int = 0
    error: bool = False


@dataclass(frozen=True)
class LoggedKey:
    char: str
    first_try: bool


class MatchEngine:
    """Per-character correctness state machine for one reference text at a time.

    The engine owns the typing position, the verdict for every reference
    character and the keystroke log. ``load`` swaps the reference and resets
    verdicts and position together; the log and the counters survive so a
    session can span several texts.
    """

    def __init__(self, reference: str = "", practice: bool = False) -> None:
        self._practice = practice
        self._log: List[LoggedKey] = []
        self._words_done = 0
        self._correct_count = 0
        self._error_count = 0
        self._reference = ""
        self._verdicts: List[CharVerdict] = []
        self._position = 0
        self.load(reference)

    @property
    def reference(self) -> str:
        return self._reference

    @property
    def verdicts(self) -> Tuple[CharVerdict, ...]:
        return tuple(self._verdicts)

    @property
    def position(self) -> int:
        return self._position

    @property
    def words_done(self) -> int:
        return self._words_done

    @property
    def keystrokes(self) -> int:
        """Number of keystrokes currently in the log."""
        return len(self._log)

    @property
    def typed(self) -> str:
        return "".join(k.char for k in self._log)

    @property
    def correct_count(self) -> int:
        """First-try correct keystrokes still in the log."""
        return self._correct_count

    @property
    def error_count(self) -> int:
        """Total incorrect keystrokes; backspace does not undo them."""
        return self._error_count

    @property
    def at_end(self) -> bool:
        return self._position >= len(self._reference)

    def verdict_at(self, index: int) -> CharVerdict:
        return self._verdicts[index]

    def load(self, reference: str) -> None:
        """Replace the reference text, resetting verdicts and position."""
        self._reference = reference
        self._verdicts = [CharVerdict.UNTOUCHED] * len(reference)
        self._position = 0

    def apply(self, event: KeyEvent) -> VerdictDelta:
        if isinstance(event, Backspace):
            return self._backspace()
        return self._type(event.char)

    def _type(self, ch: str) -> VerdictDelta:
        pos = self._position
        if pos >= len(self._reference):
            return VerdictDelta(index=pos, before=None, after=None)

        expected = self._reference[pos]
        before = self._verdicts[pos]
        first_try = False
        if expected == ch and before not in (CharVerdict.INCORRECT, CharVerdict.CORRECTED):
            after = CharVerdict.CORRECT
            first_try = True
        elif expected == ch:
            after = CharVerdict.CORRECTED
        else:
            after = CharVerdict.INCORRECT
            self._error_count += 1
        self._verdicts[pos] = after

        self._log.append(LoggedKey(ch, first_try))
        if first_try:
            self._correct_count += 1

        error = after is CharVerdict.INCORRECT
        # practice mode holds the cursor until the character is fixed
        if self._practice and error:
            return VerdictDelta(index=pos, before=before, after=after, error=True)

        self._position += 1
        words_delta = 0
        if self._on_boundary(self._position):
            self._words_done += 1
            words_delta = 1
        return VerdictDelta(
            index=pos, before=before, after=after, moved=1, words_delta=words_delta, error=error
        )

    def _backspace(self) -> VerdictDelta:
        pos = self._position
        if not self._log:
            return VerdictDelta(index=pos, before=None, after=None)

        words_delta = 0
        if self._on_boundary(pos) and self._words_done > 0:
            self._words_done -= 1
            words_delta = -1

        popped = self._log.pop()
        if popped.first_try:
            self._correct_count -= 1

        moved = 0
        if pos > 0:
            self._position -= 1
            moved = -1
        index = self._position
        verdict = self._verdicts[index] if index < len(self._verdicts) else None
        return VerdictDelta(
            index=index, before=verdict, after=verdict, moved=moved, words_delta=words_delta
        )

    def _on_boundary(self, pos: int) -> bool:
        return pos >= len(self._reference) or self._reference[pos].isspace()
