from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Iterable, Optional

from typist.core.storage import app_dir, atomic_write_text

logger = logging.getLogger(__name__)

PASS_ACCURACY = 90.0


@dataclass
class LevelProgress:
    completed: int = 0
    best_wpm: float = 0.0
    best_accuracy: float = 0.0
    best_duration: float = 0.0

    @property
    def passed(self) -> bool:
        return self.completed > 0


class PracticeProgressStore:
    """Stores per-level practice results. Persists to disk across app restarts.
    File: ~/.typist/practice.json."""

    def __init__(self, file_path: Optional[Path] = None) -> None:
        self._file_path = Path(file_path) if file_path is not None else app_dir() / "practice.json"
        self._progress = self._load()

    def get_level_progress(self, level_key: str) -> LevelProgress:
        return self._progress.get(level_key, LevelProgress())

    def record_result(
        self,
        level_key: str,
        wpm: float,
        accuracy: float,
        duration: float,
    ) -> bool:
        """Record a finished practice run. Returns True if the run passed the level."""
        current = self._progress.get(level_key, LevelProgress())
        passed = accuracy >= PASS_ACCURACY
        if passed:
            current.completed += 1
        if wpm > current.best_wpm:
            current.best_wpm = wpm
            current.best_duration = duration
        current.best_accuracy = max(current.best_accuracy, accuracy)
        self._progress[level_key] = current
        self._save()
        return passed

    def first_not_done(self, level_keys: Iterable[str]) -> int:
        """Index of the first level not yet passed; the last index once all are."""
        keys = list(level_keys)
        for i, key in enumerate(keys):
            if not self.get_level_progress(key).passed:
                return i
        return max(0, len(keys) - 1)

    def starting_level(self, level_keys: Iterable[str], selected_level: int, practice: bool) -> int:
        """Level a new app run opens on: the first not passed in practice mode,
        otherwise the saved selection if it still exists."""
        keys = list(level_keys)
        if practice:
            return self.first_not_done(keys)
        if not 0 <= selected_level < len(keys):
            logger.warning("Practice level %d does not exist, starting at level 1", selected_level + 1)
            return 0
        return selected_level

    def reset_level(self, level_key: str) -> None:
        self._progress[level_key] = LevelProgress()
        self._save()

    def reset(self) -> None:
        self._progress = {}
        self._save()

    def _load(self) -> Dict[str, LevelProgress]:
        progress: Dict[str, LevelProgress] = {}
        if not self._file_path.exists():
            return progress
        try:
            payload = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load practice progress from %s: %s", self._file_path, e)
            return progress
        if not isinstance(payload, dict):
            logger.warning("Practice progress in %s is not a mapping, ignoring it", self._file_path)
            return progress

        levels = payload.get("levels", {})
        if not isinstance(levels, dict):
            logger.warning("Practice progress in %s has no 'levels' mapping, ignoring it", self._file_path)
            return progress
        for key, value in levels.items():
            if not isinstance(value, dict):
                continue
            try:
                progress[key] = LevelProgress(
                    completed=int(value.get("completed", 0)),
                    best_wpm=float(value.get("best_wpm", 0.0)),
                    best_accuracy=float(value.get("best_accuracy", 0.0)),
                    best_duration=float(value.get("best_duration", 0.0)),
                )
            except (TypeError, ValueError) as e:
                logger.warning("Skipping malformed progress for %s: %s", key, e)
        return progress

    def _save(self) -> None:
        payload = {"levels": {key: asdict(value) for key, value in self._progress.items()}}
        try:
            atomic_write_text(self._file_path, json.dumps(payload, indent=2))
        except OSError as e:
            logger.warning("Could not save practice progress to %s: %s", self._file_path, e)
