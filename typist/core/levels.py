from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True)
class Level:
    """A practice level: the keys its drill words are built from."""

    key: str
    name: str
    keys: str


class LevelRepository:
    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir if base_dir is not None else DATA_DIR / "levels"
        self._levels = self._load_levels()

    def all(self) -> List[Level]:
        return list(self._levels.values())

    def get(self, key: str) -> Level:
        return self._levels[key]

    def by_index(self, index: int) -> Level:
        """Level at ``index`` in display order, clamped to the available range."""
        levels = self.all()
        return levels[max(0, min(index, len(levels) - 1))]

    def __len__(self) -> int:
        return len(self._levels)

    def _load_levels(self) -> Dict[str, Level]:
        base_dir = self._base_dir
        if not base_dir.exists():
            raise FileNotFoundError(f"Levels directory not found: {base_dir}")

        levels: Dict[str, Level] = {}

        def _sort_key(p: Path) -> tuple[int, str]:
            m = re.match(r"^level(\d+)$", p.stem)
            if m:
                return (int(m.group(1)), p.stem)
            return (10**9, p.stem)

        for level_path in sorted(base_dir.glob("level*.yaml"), key=_sort_key):
            raw = yaml.safe_load(level_path.read_text(encoding="utf-8"))
            if not raw or not isinstance(raw, dict):
                raise ValueError(f"{level_path.name}: expected YAML with 'title' and 'keys'")
            title = raw.get("title")
            keys = raw.get("keys")
            if not title or not isinstance(title, str):
                raise ValueError(f"{level_path.name}: missing or invalid 'title'")
            if keys is None:
                raise ValueError(f"{level_path.name}: missing 'keys'")
            if isinstance(keys, list):
                keys = "".join(str(k) for k in keys)
            # whitespace in the key set would split drill words apart
            keys = "".join(dict.fromkeys(str(keys).replace(" ", "").replace("\n", "")))
            if not keys:
                raise ValueError(f"{level_path.name}: 'keys' is empty")
            levels[level_path.stem] = Level(key=level_path.stem, name=title.strip(), keys=keys)

        if not levels:
            raise ValueError("No level files (level*.yaml) found in data/levels")
        return levels
