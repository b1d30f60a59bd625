from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Union

from typist.core.clock import SessionClock
from typist.core.config import AppConfig
from typist.core.leaderboard import (
    LeaderboardEntry,
    LeaderboardError,
    LeaderboardIOError,
    LeaderboardLockTimeout,
    LeaderboardSerializationError,
    LeaderboardStore,
    LeaderboardValidationError,
    TestType,
)
from typist.core.levels import LevelRepository
from typist.core.matching import Char, CharVerdict, KeyEvent, MatchEngine, VerdictDelta, parse_input
from typist.core.metrics import (
    MetricsAggregator,
    SessionResult,
    accuracy,
    average_word_length,
    count_correct_words,
    count_words,
)
from typist.core.modes import (
    Mode,
    PracticeMode,
    QuoteMode,
    SessionProgress,
    TimedMode,
    WikiMode,
    WordCountMode,
    is_complete,
    is_continuous,
    mode_name,
)
from typist.core.progress import PracticeProgressStore
from typist.core.reference import ReferenceSource

logger = logging.getLogger(__name__)

RESTART_WINDOW = 1.0


class SessionState(Enum):
    NOT_STARTED = "not_started"
    STARTED = "started"
    FINISHED = "finished"


class DoublePress:
    """Fires when a key is pressed twice within ``window`` seconds.

    The window slides: a press that comes too late arms a new window. Once
    fired, further presses are ignored until the window that fired has run out.
    """

    def __init__(self, window: float = RESTART_WINDOW) -> None:
        self._window = window
        self._armed_at: Optional[float] = None
        self._quiet_until: Optional[float] = None

    def press(self, now: float) -> bool:
        if self._quiet_until is not None and now < self._quiet_until:
            return False
        self._quiet_until = None
        if self._armed_at is not None and now - self._armed_at < self._window:
            self._quiet_until = self._armed_at + self._window
            self._armed_at = None
            return True
        self._armed_at = now
        return False

    def reset(self) -> None:
        self._armed_at = None
        self._quiet_until = None


class SessionController:
    """Drives one typing session at a time against the configured mode.

    The controller is passive: a driver feeds it keystrokes with
    ``on_keystroke`` and calls ``on_tick`` at its own cadence, passing
    monotonic instants (or letting the controller read the clock). Nothing in
    here blocks except the single leaderboard write when a session finishes.
    """

    def __init__(
        self,
        config: AppConfig,
        source: ReferenceSource,
        leaderboard: Optional[LeaderboardStore] = None,
        practice_progress: Optional[PracticeProgressStore] = None,
        levels: Optional[LevelRepository] = None,
        restart_window: float = RESTART_WINDOW,
    ) -> None:
        self._config = config
        self._source = source
        self._leaderboard = leaderboard
        self._practice_progress = practice_progress
        self._levels = levels
        self._restart = DoublePress(restart_window)
        self._new_session()

    # -- read-only state ---------------------------------------------------

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def reference(self) -> str:
        return self._engine.reference

    @property
    def verdicts(self) -> Tuple[CharVerdict, ...]:
        return self._engine.verdicts

    @property
    def position(self) -> int:
        return self._engine.position

    @property
    def words_done(self) -> int:
        return self._engine.words_done

    @property
    def keystrokes(self) -> int:
        return self._engine.keystrokes

    @property
    def error_count(self) -> int:
        return self._engine.error_count

    @property
    def metrics(self) -> MetricsAggregator:
        return self._metrics

    @property
    def result(self) -> Optional[SessionResult]:
        """Set once the session has finished."""
        return self._result

    @property
    def last_entry(self) -> Optional[LeaderboardEntry]:
        """The entry persisted for this session, if the save succeeded."""
        return self._last_entry

    @property
    def batches(self) -> int:
        """Reference texts used so far, counting the current one."""
        return self._batches

    def is_finished(self) -> bool:
        return self._state is SessionState.FINISHED

    def elapsed(self, now: Optional[float] = None) -> float:
        return self._clock.elapsed(now)

    def remaining(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds left in a timed session, None in other modes."""
        if not isinstance(self._mode, TimedMode):
            return None
        return max(0.0, self._mode.test_time - self.elapsed(now))

    def target_words(self) -> int:
        if isinstance(self._mode, (WordCountMode, PracticeMode)):
            return self._mode.word_count
        return count_words(self.reference)

    def live_wpm(self, now: Optional[float] = None) -> float:
        """Typed characters per minute scaled by the text's average word length."""
        elapsed = self.elapsed(now)
        if elapsed <= 0:
            return 0.0
        return self.keystrokes / average_word_length(self.reference) / elapsed * 60.0

    def live_accuracy(self) -> float:
        return accuracy(self._engine.correct_count, self._engine.keystrokes)

    # -- driving -----------------------------------------------------------

    def on_keystroke(
        self, event: Union[KeyEvent, str], now: Optional[float] = None
    ) -> Optional[VerdictDelta]:
        """Feed one keystroke; raw characters are filtered through ``parse_input``."""
        if isinstance(event, str):
            parsed = parse_input(event)
            if parsed is None:
                return None
            event = parsed
        if self._state is SessionState.FINISHED:
            return None
        now = self._clock.now() if now is None else now

        started_here = False
        if isinstance(event, Char):
            if self._engine.at_end:
                return None
            if self._state is SessionState.NOT_STARTED:
                # a session cannot be started by a space
                if event.char == " " and self._engine.position == 0:
                    return None
                self._start(now)
                started_here = True

        if self._state is SessionState.STARTED and not started_here:
            # a keystroke past the deadline is not scored
            self._check_completion(now)
            if self._state is SessionState.FINISHED:
                return None
            self._metrics.tick(now, self._engine.keystrokes)

        delta = self._engine.apply(event)
        if delta.error:
            self._metrics.record_error()

        if self._state is SessionState.STARTED:
            self._check_completion(now)
            if self._state is SessionState.STARTED and is_continuous(self._mode) and self._engine.at_end:
                self._rollover()
        return delta

    def on_tick(self, now: Optional[float] = None) -> SessionState:
        if self._state is not SessionState.STARTED:
            return self._state
        now = self._clock.now() if now is None else now
        self._check_completion(now)
        if self._state is SessionState.STARTED:
            self._metrics.tick(now, self._engine.keystrokes)
        return self._state

    def press_restart(self, now: Optional[float] = None) -> bool:
        """Register a press of the restart key; the second press within the window restarts."""
        now = self._clock.now() if now is None else now
        if self._restart.press(now):
            self.restart()
            return True
        return False

    def restart(self, config: Optional[AppConfig] = None) -> None:
        """Throw the current session away and start a fresh one. Nothing is persisted."""
        if config is not None:
            self._config = config
        if self._state is SessionState.STARTED:
            logger.info("Abandoned %s session after %d keystrokes", mode_name(self._mode), self.keystrokes)
        self._new_session()

    # -- internals ---------------------------------------------------------

    def _new_session(self) -> None:
        self._mode: Mode = self._config.mode_variant()
        self._engine = MatchEngine(practice=isinstance(self._mode, PracticeMode))
        self._engine.load(self._fetch_reference())
        self._clock = SessionClock()
        self._metrics = MetricsAggregator()
        self._state = SessionState.NOT_STARTED
        self._carried_correct_words = 0
        self._batches = 1
        self._result: Optional[SessionResult] = None
        self._last_entry: Optional[LeaderboardEntry] = None
        logger.debug("New %s session with %d characters", mode_name(self._mode), len(self.reference))

    def _fetch_reference(self) -> str:
        mode = self._mode
        if isinstance(mode, TimedMode):
            return self._source.next_batch(self._config.batch_size)
        if isinstance(mode, WordCountMode):
            return self._source.next_batch(min(self._config.batch_size, mode.word_count))
        if isinstance(mode, QuoteMode):
            return self._source.quote()
        if isinstance(mode, WikiMode):
            return self._source.external_summary()
        if isinstance(mode, PracticeMode):
            return self._source.practice_text(mode.level, mode.word_count)
        raise TypeError(f"Unknown mode: {mode!r}")

    def _start(self, now: float) -> None:
        self._clock.start(now)
        self._metrics.start(now)
        self._state = SessionState.STARTED
        logger.info("Started %s session", mode_name(self._mode))

    def _progress(self, now: float) -> SessionProgress:
        return SessionProgress(
            elapsed=self._clock.elapsed(now),
            words_done=self._engine.words_done,
            position=self._engine.position,
            reference_length=len(self._engine.reference),
            reference_words=count_words(self._engine.reference),
        )

    def _check_completion(self, now: float) -> None:
        if is_complete(self._mode, self._progress(now)):
            self._finish(now)

    def _rollover(self) -> None:
        self._carried_correct_words += count_correct_words(self._engine.reference, self._engine.verdicts)
        reference = self._fetch_reference()
        if not reference:
            logger.warning("Reference source returned an empty batch")
        self._engine.load(reference)
        self._batches += 1
        logger.debug("Rolled over to batch %d (%d words done)", self._batches, self.words_done)

    def _finish(self, now: float) -> None:
        if isinstance(self._mode, TimedMode):
            # a timed session ends at its deadline, however late the driver noticed
            now = min(now, self._clock.start_time + self._mode.test_time)
        typed = self._engine.keystrokes
        self._metrics.tick(now, typed)
        self._metrics.flush(now, typed)
        elapsed = self._clock.stop(now)
        self._state = SessionState.FINISHED

        correct_words = self._carried_correct_words + count_correct_words(
            self._engine.reference, self._engine.verdicts
        )
        self._result = self._metrics.summarize(
            correct_words=correct_words,
            words_done=self._engine.words_done,
            keystrokes=typed,
            correct_keystrokes=self._engine.correct_count,
            errors=self._engine.error_count,
            elapsed=elapsed,
        )
        logger.info(
            "Finished %s session: %.1f wpm, %.1f%% accuracy in %.1fs",
            mode_name(self._mode),
            self._result.wpm,
            self._result.accuracy,
            elapsed,
        )
        if isinstance(self._mode, PracticeMode):
            self._record_practice(self._mode, self._result)
        self._persist(self._result)

    def _record_practice(self, mode: PracticeMode, result: SessionResult) -> None:
        if self._practice_progress is None:
            return
        if self._levels is not None:
            level_key = self._levels.by_index(mode.level).key
        else:
            level_key = f"level{mode.level + 1}"
        self._practice_progress.record_result(level_key, result.wpm, result.accuracy, result.duration)

    def _persist(self, result: SessionResult) -> None:
        if self._leaderboard is None:
            return
        entry = LeaderboardEntry(
            wpm=result.wpm,
            accuracy=result.accuracy,
            test_type=TestType.for_mode(self._mode),
            test_mode=mode_name(self._mode),
            word_count=result.words_done,
            duration_seconds=result.duration,
            timestamp=datetime.now().astimezone().isoformat(),
            language=self._config.language,
        )
        try:
            self._leaderboard.append(entry)
        except LeaderboardValidationError as e:
            logger.warning("Leaderboard entry rejected, not saved: %s", e)
        except LeaderboardLockTimeout as e:
            logger.warning("Leaderboard busy, another instance may be writing: %s", e)
        except LeaderboardSerializationError as e:
            logger.error("Leaderboard file is corrupt and was left untouched: %s", e)
        except LeaderboardIOError as e:
            logger.error("Could not save leaderboard entry: %s", e)
        except LeaderboardError as e:
            logger.error("Could not save leaderboard entry: %s", e)
        else:
            self._last_entry = entry
