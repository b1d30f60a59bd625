"""Helpers for the files Typist keeps under ``~/.typist``."""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path


def app_dir() -> Path:
    return Path.home() / ".typist"


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to a temp file beside ``path``, fsync it, then rename over ``path``.

    A crash mid-write leaves either the old file or the new one, never a
    truncated mix. Raises ``OSError`` on failure.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        with contextlib.suppress(FileNotFoundError):
            os.remove(tmp_path)
