from __future__ import annotations

import time
from typing import Optional


class SessionClock:
    """Monotonic session timer.

    The start instant is read once; elapsed time is always ``now - start``.
    ``stop`` freezes the reading so a finished session keeps its duration.
    Every method takes an optional caller-supplied instant so drivers and tests
    control time explicitly.
    """

    def __init__(self) -> None:
        self._start: Optional[float] = None
        self._stop: Optional[float] = None

    @staticmethod
    def now() -> float:
        return time.monotonic()

    @property
    def started(self) -> bool:
        return self._start is not None

    @property
    def start_time(self) -> Optional[float]:
        return self._start

    def start(self, now: Optional[float] = None) -> float:
        if self._start is None:
            self._start = self.now() if now is None else now
        return self._start

    def stop(self, now: Optional[float] = None) -> float:
        if self._start is not None and self._stop is None:
            self._stop = self.now() if now is None else now
        return self.elapsed()

    def elapsed(self, now: Optional[float] = None) -> float:
        """Seconds since start (0.0 before start, frozen after stop)."""
        if self._start is None:
            return 0.0
        if self._stop is not None:
            end = self._stop
        else:
            end = self.now() if now is None else now
        return max(0.0, end - self._start)
