"""Typing screen widgets: the colored reference text and the per-second speed chart."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QColor, QFont, QFontDatabase, QFontMetrics, QPainter, QPen
from PySide6.QtWidgets import QWidget

from typist.core.matching import CharVerdict
from typist.ui.colors import ColorScheme, blend_hex, get_scheme

VISIBLE_LINES = 3


def wrap_indices(reference: str, max_chars: int) -> List[Tuple[int, int]]:
    """Split ``reference`` into (start, end) line spans no wider than ``max_chars``, breaking after spaces."""
    lines: List[Tuple[int, int]] = []
    start = 0
    n = len(reference)
    max_chars = max(1, max_chars)
    while start < n:
        end = min(n, start + max_chars)
        if end < n:
            cut = reference.rfind(" ", start, end)
            if cut >= start:
                end = cut + 1
        lines.append((start, end))
        start = end
    return lines


class ReferenceTextWidget(QWidget):
    """Reference text colored by verdict, with the cursor line kept in view."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._reference = ""
        self._verdicts: Sequence[CharVerdict] = ()
        self._position = 0
        self._scheme: ColorScheme = get_scheme("Default")
        font = QFontDatabase.systemFont(QFontDatabase.FixedFont)
        font.setPointSize(22)
        self.setFont(font)
        self.setMinimumHeight(180)
        self.setFocusPolicy(Qt.NoFocus)

    def set_scheme(self, scheme: ColorScheme) -> None:
        self._scheme = scheme
        self.update()

    def set_state(self, reference: str, verdicts: Sequence[CharVerdict], position: int) -> None:
        self._reference = reference
        self._verdicts = verdicts
        self._position = max(0, min(position, len(reference)))
        self.update()

    def paintEvent(self, event) -> None:
        super().paintEvent(event)
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(self._scheme.bg))
        if not self._reference:
            return

        metrics = QFontMetrics(self.font())
        char_w = max(1, metrics.horizontalAdvance("M"))
        line_h = int(metrics.height() * 1.5)
        lines = wrap_indices(self._reference, (self.width() - 40) // char_w)

        cursor_line = 0
        for i, (start, end) in enumerate(lines):
            if start <= self._position < end or (self._position == end and i == len(lines) - 1):
                cursor_line = i
                break
        first = max(0, cursor_line - 1)
        shown = lines[first:first + VISIBLE_LINES]

        top = max(0, (self.height() - line_h * len(shown)) // 2)
        cursor_bg = QColor(blend_hex(self._scheme.bg, self._scheme.main, 0.35))
        painter.setFont(self.font())
        for row, (start, end) in enumerate(shown):
            y = top + row * line_h
            for offset, idx in enumerate(range(start, end)):
                x = 20 + offset * char_w
                if idx == self._position:
                    painter.fillRect(x, y, char_w, metrics.height(), cursor_bg)
                ch = self._reference[idx]
                verdict = self._verdicts[idx] if idx < len(self._verdicts) else CharVerdict.UNTOUCHED
                if verdict is CharVerdict.INCORRECT and ch == " ":
                    ch = "_"
                painter.setPen(QColor(self._scheme.verdict_color(verdict)))
                painter.drawText(x, y, char_w, metrics.height(), Qt.AlignCenter, ch)
            if self._position == end and end == len(self._reference):
                x = 20 + (end - start) * char_w
                painter.fillRect(x, y, 2, metrics.height(), QColor(self._scheme.main))


class SpeedChartWidget(QWidget):
    """Line chart of per-second CPM with error markers, shown after a session."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._speed: List[float] = []
        self._errors: List[float] = []
        self._scheme: ColorScheme = get_scheme("Default")
        self.setMinimumHeight(140)
        self.setFocusPolicy(Qt.NoFocus)

    def set_scheme(self, scheme: ColorScheme) -> None:
        self._scheme = scheme
        self.update()

    def set_series(self, speed: Sequence[float], errors: Sequence[float]) -> None:
        self._speed = list(speed)
        self._errors = list(errors)
        self.update()

    def paintEvent(self, event) -> None:
        super().paintEvent(event)
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)
        painter.fillRect(self.rect(), QColor(self._scheme.bg))
        if not self._speed:
            return

        margin = 16
        w = self.width() - 2 * margin
        h = self.height() - 2 * margin
        peak = max(max(self._speed), 60.0)
        step = w / max(1, len(self._speed) - 1)

        def point(i: int, value: float) -> QPointF:
            return QPointF(margin + i * step, margin + h - (value / peak) * h)

        painter.setPen(QPen(QColor(self._scheme.chart), 2))
        for i in range(1, len(self._speed)):
            painter.drawLine(point(i - 1, self._speed[i - 1]), point(i, self._speed[i]))

        painter.setPen(Qt.NoPen)
        painter.setBrush(QColor(self._scheme.incorrect))
        for i, errors in enumerate(self._errors):
            if errors > 0:
                painter.drawEllipse(point(i, self._speed[i]), 3 + min(errors, 5), 3 + min(errors, 5))

        painter.setPen(QColor(self._scheme.text))
        small = QFont(painter.font())
        small.setPointSize(9)
        painter.setFont(small)
        painter.drawText(margin, margin - 2, f"{peak:.0f} cpm")
