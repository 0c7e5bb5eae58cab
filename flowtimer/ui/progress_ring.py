"""Circular countdown ring for the Timer tab.

The arc fills clockwise from 12 o'clock as the run progresses.  Short
radial ticks across the track mark where one timer segment of the flow
hands over to the next, so a looped flow reads as a row of laps.  The
ring colour follows the engine phase, and a completed run washes the
ring in the success colour for a moment.
"""

from __future__ import annotations

from typing import Sequence

from PyQt6.QtCore import Qt, QPointF, QRectF, QVariantAnimation, QEasingCurve
from PyQt6.QtGui import QColor, QFont, QPainter, QPen
from PyQt6.QtWidgets import QWidget

from ..timer.engine import Phase
from .styles import PHASE_COLORS, PALETTE


def _blend(base: QColor, over: QColor, t: float) -> QColor:
    t = max(0.0, min(1.0, t))
    return QColor(
        round(base.red() + (over.red() - base.red()) * t),
        round(base.green() + (over.green() - base.green()) * t),
        round(base.blue() + (over.blue() - base.blue()) * t),
    )


class ProgressRing(QWidget):
    """Painted countdown ring with segment marks."""

    TRACK_WIDTH = 14
    MARGIN = 20
    MARK_OVERHANG = 5

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setMinimumSize(200, 200)

        self._percent = 0.0
        self._shown_percent = 0.0
        self._time_text = "00:00"
        self._state_label = "READY"
        self._subtitle = ""
        self._marks: tuple[float, ...] = ()
        self._flash = 0.0

        self._arc_color = QColor(PHASE_COLORS[Phase.IDLE][0])
        self._mark_color = QColor(PHASE_COLORS[Phase.IDLE][1])
        self._text_color = QColor(PALETTE["text"])
        self._muted_color = QColor(PALETTE["text_muted"])
        self._success_color = QColor(PALETTE["success"])

        # Eases the arc between one-second ticks
        self._arc_anim = QVariantAnimation(self)
        self._arc_anim.setDuration(300)
        self._arc_anim.setEasingCurve(QEasingCurve.Type.OutCubic)
        self._arc_anim.valueChanged.connect(self._on_arc_value)

        self._flash_anim = QVariantAnimation(self)
        self._flash_anim.setDuration(1200)
        self._flash_anim.setStartValue(1.0)
        self._flash_anim.setEndValue(0.0)
        self._flash_anim.setEasingCurve(QEasingCurve.Type.InQuad)
        self._flash_anim.valueChanged.connect(self._on_flash_value)

    # ── public API ────────────────────────────────────────────────────────

    @property
    def percent(self) -> float:
        return self._percent

    @property
    def time_text(self) -> str:
        return self._time_text

    @property
    def state_label(self) -> str:
        return self._state_label

    @property
    def marks(self) -> tuple[float, ...]:
        return self._marks

    def set_percent(self, pct: float) -> None:
        pct = max(0.0, min(1.0, pct))
        self._percent = pct
        self._arc_anim.stop()
        if pct < self._shown_percent:
            # Jump back on a new run rather than unwinding the arc
            self._on_arc_value(pct)
            return
        self._arc_anim.setStartValue(self._shown_percent)
        self._arc_anim.setEndValue(pct)
        self._arc_anim.start()

    def set_time_text(self, text: str) -> None:
        self._time_text = text
        self.update()

    def set_state_label(self, text: str) -> None:
        self._state_label = text
        self.update()

    def set_subtitle(self, text: str) -> None:
        self._subtitle = text
        self.update()

    def set_marks(self, marks: Sequence[float]) -> None:
        """Segment boundaries as fractions of the whole run."""
        self._marks = tuple(m for m in marks if 0.0 < m < 1.0)
        self.update()

    def apply_phase(self, phase: Phase) -> None:
        primary, secondary = PHASE_COLORS[phase]
        self._arc_color = QColor(primary)
        self._mark_color = QColor(secondary)
        self.update()

    def flash_complete(self) -> None:
        self._flash_anim.stop()
        self._flash_anim.start()

    # ── animation slots ───────────────────────────────────────────────────

    def _on_arc_value(self, value: object) -> None:
        self._shown_percent = float(value)  # type: ignore[arg-type]
        self.update()

    def _on_flash_value(self, value: object) -> None:
        self._flash = float(value)  # type: ignore[arg-type]
        self.update()

    # ── painting ──────────────────────────────────────────────────────────

    def paintEvent(self, event) -> None:  # type: ignore[override]
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        side = max(100, min(self.width(), self.height()) - 2 * self.MARGIN)
        centre = QPointF(self.width() / 2, self.height() / 2)
        rect = QRectF(centre.x() - side / 2, centre.y() - side / 2, side, side)
        arc_color = _blend(self._arc_color, self._success_color, self._flash)

        track = QColor(arc_color)
        track.setAlpha(40)
        painter.setPen(QPen(track, self.TRACK_WIDTH))
        painter.drawEllipse(rect)

        if self._shown_percent > 0.001:
            pen = QPen(arc_color, self.TRACK_WIDTH)
            pen.setCapStyle(Qt.PenCapStyle.RoundCap)
            painter.setPen(pen)
            # Qt angles are 1/16 degree, counter-clockwise from 3 o'clock
            painter.drawArc(rect, 90 * 16, -round(self._shown_percent * 360 * 16))

        self._paint_marks(painter, centre, side / 2)
        self._paint_labels(painter, rect)
        painter.end()

    def _paint_marks(self, painter: QPainter, centre: QPointF, radius: float) -> None:
        if not self._marks:
            return
        half = self.TRACK_WIDTH / 2 + self.MARK_OVERHANG
        painter.setPen(QPen(self._mark_color, 2))
        for mark in self._marks:
            painter.save()
            painter.translate(centre)
            painter.rotate(mark * 360)
            painter.drawLine(QPointF(0, -radius - half), QPointF(0, -radius + half))
            painter.restore()

    def _paint_labels(self, painter: QPainter, rect: QRectF) -> None:
        font = QFont()
        font.setPixelSize(max(24, round(rect.height() / 5.5)))
        font.setWeight(QFont.Weight.Bold)
        painter.setFont(font)
        painter.setPen(self._text_color)
        painter.drawText(rect.translated(0, -14), Qt.AlignmentFlag.AlignCenter, self._time_text)

        font = QFont()
        font.setPixelSize(13)
        font.setWeight(QFont.Weight.DemiBold)
        font.setLetterSpacing(QFont.SpacingType.AbsoluteSpacing, 3)
        painter.setFont(font)
        painter.setPen(self._arc_color)
        painter.drawText(rect.translated(0, 30), Qt.AlignmentFlag.AlignCenter, self._state_label)

        if self._subtitle:
            font = QFont()
            font.setPixelSize(11)
            painter.setFont(font)
            painter.setPen(self._muted_color)
            painter.drawText(rect.translated(0, 54), Qt.AlignmentFlag.AlignCenter, self._subtitle)
