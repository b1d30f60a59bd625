"""Application entry point and setup for the Typist typing trainer."""

import logging
import sys

from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import QApplication

from typist.core.config import ConfigStore
from typist.core.leaderboard import LeaderboardStore
from typist.core.levels import LevelRepository
from typist.core.progress import PracticeProgressStore
from typist.core.reference import LocalReferenceSource
from typist.core.session import SessionController
from typist.ui.main_window import MainWindow


def configure_logging() -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_controller(
    config_store: ConfigStore,
    leaderboard: LeaderboardStore,
    practice_progress: PracticeProgressStore,
    levels: LevelRepository,
) -> SessionController:
    """Wire the session engine to its collaborators from the saved config."""
    config = config_store.load()
    config.selected_level = practice_progress.starting_level(
        (level.key for level in levels.all()),
        config.selected_level,
        practice=config.mode == "practice",
    )
    source = LocalReferenceSource(config, levels=levels)
    return SessionController(
        config,
        source,
        leaderboard=leaderboard,
        practice_progress=practice_progress,
        levels=levels,
    )


def run() -> None:
    """Initialize the application, load resources, and start the main window."""
    configure_logging()
    app = QApplication(sys.argv)
    app.setApplicationName("Typist")
    app.setApplicationDisplayName("Typist")

    config_store = ConfigStore()
    leaderboard = LeaderboardStore()
    practice_progress = PracticeProgressStore()
    levels = LevelRepository()
    controller = build_controller(config_store, leaderboard, practice_progress, levels)

    window = MainWindow(
        controller,
        config_store=config_store,
        leaderboard=leaderboard,
        practice_progress=practice_progress,
        levels=levels,
    )
    screen = QGuiApplication.primaryScreen()
    if screen is not None:
        geometry = screen.availableGeometry()
        window.resize(int(geometry.width() * 0.7), int(geometry.height() * 0.6))
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    run()
