from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QCloseEvent, QKeyEvent
from PySide6.QtWidgets import (
    QDialog,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from typist.core.config import BATCH_SIZES, TEST_TIMES, WORD_NUMBERS, ConfigStore, Language
from typist.core.leaderboard import LeaderboardError, LeaderboardStore
from typist.core.levels import LevelRepository
from typist.core.matching import BACKSPACE
from typist.core.progress import PracticeProgressStore
from typist.core.session import SessionController, SessionState
from typist.ui.colors import get_scheme, scheme_names
from typist.ui.typing_widgets import ReferenceTextWidget, SpeedChartWidget

logger = logging.getLogger(__name__)

TICK_MS = 16

MODE_KEYS = {
    Qt.Key.Key_F1: "time",
    Qt.Key.Key_F2: "words",
    Qt.Key.Key_F3: "quote",
    Qt.Key.Key_F4: "wiki",
    Qt.Key.Key_F5: "practice",
}

HELP_TEXT = (
    "F1 time · F2 words · F3 quote · F4 wiki · F5 practice · F6 length · F7 punctuation · "
    "F8 numbers · F9 language · F10 theme · F11 batch · Tab Tab restart · Ctrl+L leaderboard · Esc quit"
)


def _next_in(options, current):
    options = list(options)
    try:
        return options[(options.index(current) + 1) % len(options)]
    except ValueError:
        return options[0]


class LeaderboardDialog(QDialog):
    """Ranked leaderboard, best WPM first."""

    COLUMNS = ("#", "WPM", "Accuracy", "Test", "Words", "Time", "Language", "Date")

    def __init__(self, store: LeaderboardStore, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Leaderboard")
        self.resize(760, 480)
        layout = QVBoxLayout(self)
        self._status = QLabel("")
        self._table = QTableWidget(0, len(self.COLUMNS))
        self._table.setHorizontalHeaderLabels(self.COLUMNS)
        self._table.verticalHeader().setVisible(False)
        self._table.setEditTriggers(QTableWidget.NoEditTriggers)
        layout.addWidget(self._status)
        layout.addWidget(self._table)
        self._load(store)

    def _load(self, store: LeaderboardStore) -> None:
        try:
            entries = store.ranked(limit=100)
        except LeaderboardError as e:
            logger.warning("Could not load leaderboard: %s", e)
            self._status.setText(f"Could not load leaderboard: {e}")
            return
        if not entries:
            self._status.setText("No results yet. Finish a test to get on the board.")
        self._table.setRowCount(len(entries))
        for row, entry in enumerate(entries):
            values = (
                str(row + 1),
                f"{entry.wpm:.1f}",
                f"{entry.accuracy:.1f}%",
                entry.test_type.label(),
                str(entry.word_count),
                f"{entry.duration_seconds:.1f}s",
                entry.language.value,
                entry.timestamp[:16].replace("T", " "),
            )
            for col, value in enumerate(values):
                self._table.setItem(row, col, QTableWidgetItem(value))
        self._table.resizeColumnsToContents()


class MainWindow(QMainWindow):
    """Typing screen: forwards keys to the session controller and polls it on a timer.

    All UI-only state (which popup is open, the current theme) lives here; the
    controller only sees keystrokes, ticks and the config at restart.
    """

    def __init__(
        self,
        controller: SessionController,
        config_store: ConfigStore,
        leaderboard: LeaderboardStore,
        practice_progress: PracticeProgressStore,
        levels: LevelRepository,
    ) -> None:
        super().__init__()
        self._controller = controller
        self._config_store = config_store
        self._leaderboard = leaderboard
        self._practice_progress = practice_progress
        self._levels = levels
        self._shown_result = False

        self.setWindowTitle("Typist")
        central = QWidget(self)
        layout = QVBoxLayout(central)
        layout.setContentsMargins(32, 24, 32, 24)

        header = QHBoxLayout()
        self._mode_label = QLabel("")
        self._live_label = QLabel("")
        self._live_label.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
        header.addWidget(self._mode_label)
        header.addWidget(self._live_label)
        layout.addLayout(header)

        self._text_widget = ReferenceTextWidget(central)
        layout.addWidget(self._text_widget, 1)

        self._result_label = QLabel("")
        self._result_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self._result_label)
        self._chart = SpeedChartWidget(central)
        self._chart.hide()
        layout.addWidget(self._chart)

        self._help_label = QLabel(HELP_TEXT)
        self._help_label.setAlignment(Qt.AlignCenter)
        self._help_label.setWordWrap(True)
        layout.addWidget(self._help_label)

        self.setCentralWidget(central)
        self.setFocusPolicy(Qt.StrongFocus)
        self._apply_scheme()
        self._refresh()

        self._tick_timer = QTimer(self)
        self._tick_timer.timeout.connect(self._on_tick)
        self._tick_timer.start(TICK_MS)

    def keyPressEvent(self, event: QKeyEvent) -> None:
        key = event.key()
        if key == Qt.Key.Key_Escape:
            self.close()
            return
        if key == Qt.Key.Key_Tab:
            self._controller.press_restart()
        elif key == Qt.Key.Key_Backspace:
            self._controller.on_keystroke(BACKSPACE)
        elif key == Qt.Key.Key_L and event.modifiers() & Qt.ControlModifier:
            LeaderboardDialog(self._leaderboard, self).exec()
        elif key in MODE_KEYS:
            self._switch_mode(MODE_KEYS[key])
        elif Qt.Key.Key_F6 <= key <= Qt.Key.Key_F11:
            self._change_setting(key)
        elif event.text():
            self._controller.on_keystroke(event.text())
        else:
            super().keyPressEvent(event)
            return
        self._refresh()

    def focusNextPrevChild(self, next: bool) -> bool:
        # Tab is the restart key, not focus navigation
        return False

    def closeEvent(self, event: QCloseEvent) -> None:
        self._tick_timer.stop()
        self._config_store.save(self._controller.config)
        super().closeEvent(event)

    def _on_tick(self) -> None:
        if self._controller.state is SessionState.STARTED:
            self._controller.on_tick()
            self._refresh()

    def _switch_mode(self, mode: str) -> None:
        config = self._controller.config
        config.mode = mode
        if mode == "practice":
            config.selected_level = self._practice_progress.first_not_done(
                level.key for level in self._levels.all()
            )
        self._restart_with(config)

    def _change_setting(self, key: int) -> None:
        config = self._controller.config
        if key == Qt.Key.Key_F6:
            if config.mode == "time":
                config.test_time = _next_in(TEST_TIMES, config.test_time)
            elif config.mode == "words":
                config.word_number = _next_in(WORD_NUMBERS, config.word_number)
            elif config.mode == "practice":
                config.selected_level = (config.selected_level + 1) % len(self._levels)
        elif key == Qt.Key.Key_F7:
            config.punctuation = not config.punctuation
        elif key == Qt.Key.Key_F8:
            config.numbers = not config.numbers
        elif key == Qt.Key.Key_F9:
            config.language = _next_in(Language, config.language)
        elif key == Qt.Key.Key_F10:
            config.color_scheme = _next_in(scheme_names(), config.color_scheme)
            self._apply_scheme()
            self._config_store.save(config)
            return
        elif key == Qt.Key.Key_F11:
            config.batch_size = _next_in(BATCH_SIZES, config.batch_size)
        self._restart_with(config)

    def _restart_with(self, config) -> None:
        self._config_store.save(config)
        self._controller.restart(config)

    def _apply_scheme(self) -> None:
        scheme = get_scheme(self._controller.config.color_scheme)
        self._text_widget.set_scheme(scheme)
        self._chart.set_scheme(scheme)
        self.setStyleSheet(
            f"QMainWindow, QWidget {{ background: {scheme.bg}; color: {scheme.text}; }}"
            f"QLabel {{ font-size: 15px; }}"
        )
        self._mode_label.setStyleSheet(f"color: {scheme.main}; font-size: 18px; font-weight: 600;")
        self._help_label.setStyleSheet(f"color: {scheme.ref}; font-size: 12px;")

    def _mode_text(self) -> str:
        config = self._controller.config
        if config.mode == "time":
            detail = f"time {config.test_time:.0f}s"
        elif config.mode == "words":
            detail = f"words {config.word_number}"
        elif config.mode == "practice":
            detail = f"practice · {self._levels.by_index(config.selected_level).name}"
        else:
            detail = config.mode
        flags = [config.language.value]
        if config.punctuation:
            flags.append("punctuation")
        if config.numbers:
            flags.append("numbers")
        return f"{detail}  ({', '.join(flags)})"

    def _refresh(self) -> None:
        c = self._controller
        self._mode_label.setText(self._mode_text())
        self._text_widget.set_state(c.reference, c.verdicts, c.position)

        remaining = c.remaining()
        if remaining is not None:
            progress = f"{remaining:.0f}s"
        else:
            progress = f"{c.words_done}/{c.target_words()}"
        self._live_label.setText(
            f"{progress}   {c.live_wpm():.0f} wpm   {c.live_accuracy():.0f}%"
        )

        if c.is_finished() and c.result is not None:
            if not self._shown_result:
                r = c.result
                saved = "" if c.last_entry is not None else "   (not saved)"
                self._result_label.setText(
                    f"{r.wpm:.1f} wpm · {r.accuracy:.1f}% accuracy · {r.cpm:.0f} cpm · "
                    f"{r.correct_words} correct words · {r.errors} errors · {r.duration:.1f}s{saved}"
                )
                self._chart.set_series(r.speed_per_second, r.errors_per_second)
                self._chart.show()
                self._shown_result = True
        elif self._shown_result:
            self._result_label.setText("")
            self._chart.hide()
            self._shown_result = False
