from __future__ import annotations

import logging
import random
import re
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Protocol

import requests
import yaml

from typist.core.config import AppConfig, Language
from typist.core.levels import DATA_DIR, LevelRepository

logger = logging.getLogger(__name__)

WIKI_RANDOM_SUMMARY_URL = "https://en.wikipedia.org/api/rest_v1/page/random/summary"

PUNCTUATION = (",", ".", ";", ":", "?", "!")


class ReferenceSource(Protocol):
    """Anything that can hand a session text to type."""

    def next_batch(self, word_count: int) -> str: ...

    def quote(self) -> str: ...

    def external_summary(self) -> str: ...

    def practice_text(self, level: int, word_count: int) -> str: ...


def clean_text(text: str) -> str:
    text = re.sub(r"\[\d+\]", "", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text


def fetch_wiki_summary(min_chars: int = 300, max_chars: int = 900, tries: int = 3) -> str:
    """Fetch a random Wikipedia summary, trimmed to a whole word under ``max_chars``.

    Raises ``requests.RequestException`` on network failure and ``ValueError``
    when no usable summary came back.
    """
    last_text = ""
    for _ in range(tries):
        response = requests.get(
            WIKI_RANDOM_SUMMARY_URL,
            timeout=8,
            headers={
                "User-Agent": "typist/0.1 (typing trainer; python requests)",
                "Accept": "application/json",
            },
        )
        response.raise_for_status()
        text = clean_text(response.json().get("extract") or "")
        if not text:
            continue
        if len(text) > max_chars:
            text = text[:max_chars].rsplit(" ", 1)[0]
        last_text = text
        if len(text) >= min_chars:
            return text
    if not last_text:
        raise ValueError("Wikipedia returned no usable summary")
    return last_text


@lru_cache(maxsize=None)
def load_word_list(language: Language, data_dir: Path = DATA_DIR) -> tuple[str, ...]:
    path = data_dir / "words" / f"{language.value}.yaml"
    if not path.exists():
        raise FileNotFoundError(f"Word list not found: {path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    words = raw.get("words") if isinstance(raw, dict) else None
    if not isinstance(words, list) or not words:
        raise ValueError(f"{path.name}: expected a non-empty 'words' list")
    return tuple(str(w).strip() for w in words if str(w).strip())


@lru_cache(maxsize=None)
def load_quotes(data_dir: Path = DATA_DIR) -> tuple[str, ...]:
    path = data_dir / "quotes.yaml"
    if not path.exists():
        raise FileNotFoundError(f"Quotes file not found: {path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    quotes = raw.get("quotes") if isinstance(raw, dict) else None
    if not isinstance(quotes, list) or not quotes:
        raise ValueError(f"{path.name}: expected a non-empty 'quotes' list")
    return tuple(clean_text(str(q)) for q in quotes if str(q).strip())


class LocalReferenceSource:
    """Reference text built from the bundled word lists, quotes and practice levels.

    Settings are read from ``config`` on every call, so a changed language or
    punctuation flag applies to the next batch.
    """

    def __init__(
        self,
        config: AppConfig,
        levels: Optional[LevelRepository] = None,
        rng: Optional[random.Random] = None,
        data_dir: Path = DATA_DIR,
        fetch_summary=fetch_wiki_summary,
    ) -> None:
        self._config = config
        self._levels = levels
        self._rng = rng or random.Random()
        self._data_dir = data_dir
        self._fetch_summary = fetch_summary

    @property
    def levels(self) -> LevelRepository:
        if self._levels is None:
            self._levels = LevelRepository(self._data_dir / "levels")
        return self._levels

    def next_batch(self, word_count: int) -> str:
        pool = load_word_list(self._config.language, self._data_dir)[: self._config.top_words]
        words = [self._rng.choice(pool) for _ in range(max(1, word_count))]
        if self._config.numbers:
            words = [str(self._rng.randint(0, 9999)) if self._rng.random() < 0.1 else w for w in words]
        if self._config.punctuation:
            words = self._punctuate(words)
        return " ".join(words)

    def quote(self) -> str:
        return self._rng.choice(load_quotes(self._data_dir))

    def external_summary(self) -> str:
        try:
            return self._fetch_summary()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Could not fetch a Wikipedia summary, using a quote instead: %s", e)
            return self.quote()

    def practice_text(self, level: int, word_count: int) -> str:
        keys = self.levels.by_index(level).keys
        words = []
        for _ in range(max(1, word_count)):
            length = self._rng.randint(2, 5)
            words.append("".join(self._rng.choice(keys) for _ in range(length)))
        return " ".join(words)

    def _punctuate(self, words: List[str]) -> List[str]:
        result = []
        capitalize = True
        for word in words:
            if capitalize:
                word = word[:1].upper() + word[1:]
                capitalize = False
            if self._rng.random() < 0.15:
                mark = self._rng.choice(PUNCTUATION)
                word += mark
                capitalize = mark in ".?!"
            result.append(word)
        if result and result[-1][-1] not in PUNCTUATION:
            result[-1] += "."
        return result
