from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

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

MODES = ("time", "words", "quote", "wiki", "practice")
TEST_TIMES = (15.0, 30.0, 60.0, 120.0)
WORD_NUMBERS = (10, 25, 50, 100)
BATCH_SIZES = (10, 25, 50, 100)
TOP_WORDS = (100, 200, 500, 1000)


class Language(Enum):
    ENGLISH = "english"
    INDONESIAN = "indonesian"
    ITALIAN = "italian"


@dataclass
class AppConfig:
    """Settings handed to a session when it is (re)initialized."""

    punctuation: bool = False
    numbers: bool = False
    mode: str = "time"
    test_time: float = 30.0
    word_number: int = 50
    batch_size: int = 50
    top_words: int = 500
    language: Language = Language.ENGLISH
    color_scheme: str = "Default"
    selected_level: int = 0

    def mode_variant(self) -> Mode:
        if self.mode == "words":
            return WordCountMode(word_count=self.word_number)
        if self.mode == "quote":
            return QuoteMode()
        if self.mode == "wiki":
            return WikiMode()
        if self.mode == "practice":
            return PracticeMode(level=self.selected_level)
        return TimedMode(test_time=self.test_time)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["language"] = self.language.value
        return data

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AppConfig":
        """Build a config from loose YAML data; bad values fall back to defaults."""
        config = cls()
        known = {f.name for f in fields(cls)}
        for key, value in raw.items():
            if key not in known:
                logger.warning("Ignoring unknown config key %r", key)
                continue
            try:
                setattr(config, key, _coerce(key, value))
            except (TypeError, ValueError) as e:
                logger.warning("Invalid config value for %r (%r): %s", key, value, e)
        return config


def _coerce(key: str, value: Any) -> Any:
    if key in ("punctuation", "numbers"):
        if not isinstance(value, bool):
            raise TypeError("expected true or false")
        return value
    if key == "mode":
        if value not in MODES:
            raise ValueError(f"expected one of {', '.join(MODES)}")
        return value
    if key == "language":
        return Language(value)
    if key == "color_scheme":
        return str(value)
    if key == "test_time":
        seconds = float(value)
        if seconds <= 0:
            raise ValueError("must be positive")
        return seconds
    number = int(value)
    if key == "selected_level":
        if number < 0:
            raise ValueError("must not be negative")
    elif number <= 0:
        raise ValueError("must be positive")
    return number


class ConfigStore:
    """Loads and saves ``AppConfig`` as YAML. File: ~/.typist/config.yaml."""

    def __init__(self, file_path: Optional[Path] = None) -> None:
        self._file_path = Path(file_path) if file_path is not None else app_dir() / "config.yaml"

    @property
    def file_path(self) -> Path:
        return self._file_path

    def load(self) -> AppConfig:
        if not self._file_path.exists():
            return AppConfig()
        try:
            raw = yaml.safe_load(self._file_path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as e:
            logger.warning("Could not load config from %s: %s", self._file_path, e)
            return AppConfig()
        if raw is None:
            return AppConfig()
        if not isinstance(raw, dict):
            logger.warning("Config file %s is not a mapping, using defaults", self._file_path)
            return AppConfig()
        return AppConfig.from_dict(raw)

    def save(self, config: AppConfig) -> None:
        text = yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True)
        try:
            atomic_write_text(self._file_path, text)
        except OSError as e:
            logger.warning("Could not save config to %s: %s", self._file_path, e)
