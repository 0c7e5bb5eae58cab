"""Run panel — the Timer tab.

Layout (top → bottom):
    - Task picker (optional; "No task" keeps time unattributed)
    - ProgressRing (large, centred)
    - Control row: Reset · Start/Pause/Resume · Stop
"""

from __future__ import annotations

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QPushButton, QComboBox, QFrame, QSizePolicy,
)

from ..database.store import Task
from ..flow.duration import segment_marks, total_seconds
from ..flow.model import Preset
from ..formatting import format_clock, format_tracked
from ..timer.engine import FlowTimerEngine, Phase
from .progress_ring import ProgressRing


PHASE_LABELS: dict[Phase, str] = {
    Phase.IDLE:    "READY",
    Phase.RUNNING: "RUNNING",
    Phase.PAUSED:  "PAUSED",
}

NO_TASK_LABEL = "No task"


class TimerWidget(QWidget):
    """Runs the selected preset and shows the countdown."""

    task_selected = pyqtSignal(object)  # task id or None

    def __init__(self, engine: FlowTimerEngine, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._engine = engine
        self._preset: Preset | None = None
        self._build_ui()
        self._connect_signals()
        self._on_phase_changed(engine.phase)

    # ── build ─────────────────────────────────────────────────────────────

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)

        card = QFrame(self)
        card.setObjectName("card")
        root.addWidget(card)

        layout = QVBoxLayout(card)
        layout.setContentsMargins(28, 20, 28, 24)
        layout.setSpacing(12)

        self._title = QLabel("Timer", card)
        self._title.setObjectName("sectionTitle")
        layout.addWidget(self._title)

        # ── task picker ──────────────────────────────────────────────
        task_label = QLabel("Task (optional)", card)
        task_label.setObjectName("mutedLabel")
        layout.addWidget(task_label)

        self._task_combo = QComboBox(card)
        self._task_combo.addItem(NO_TASK_LABEL, None)
        layout.addWidget(self._task_combo)

        # ── progress ring ────────────────────────────────────────────
        ring_row = QHBoxLayout()
        ring_row.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._ring = ProgressRing(card)
        self._ring.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        self._ring.setFixedSize(300, 300)
        ring_row.addWidget(self._ring)
        layout.addLayout(ring_row)

        # ── controls ─────────────────────────────────────────────────
        btn_row = QHBoxLayout()
        btn_row.setSpacing(12)
        btn_row.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self._reset_btn = QPushButton("Reset", card)
        self._start_pause_btn = QPushButton("Start", card)
        self._start_pause_btn.setObjectName("primaryButton")
        self._stop_btn = QPushButton("Stop", card)
        self._stop_btn.setObjectName("dangerButton")

        btn_row.addWidget(self._reset_btn)
        btn_row.addWidget(self._start_pause_btn)
        btn_row.addWidget(self._stop_btn)
        layout.addLayout(btn_row)
        layout.addStretch()

    # ── signals ───────────────────────────────────────────────────────────

    def _connect_signals(self) -> None:
        self._start_pause_btn.clicked.connect(self._on_start_pause)
        self._reset_btn.clicked.connect(self._engine.reset)
        self._stop_btn.clicked.connect(self._engine.stop)
        self._task_combo.currentIndexChanged.connect(self._on_task_index_changed)

        self._engine.tick.connect(self._refresh_display)
        self._engine.phase_changed.connect(self._on_phase_changed)
        self._engine.run_completed.connect(lambda _data: self._ring.flash_complete())

    # ── public API ────────────────────────────────────────────────────────

    def set_preset(self, preset: Preset | None) -> None:
        """Show *preset* as the flow to run next."""
        self._preset = preset
        self._title.setText(preset.name if preset else "Timer")
        self._ring.set_subtitle(preset.name if preset else "")
        self._update_controls(self._engine.phase)
        if self._engine.phase is Phase.IDLE:
            self._refresh_display(self._engine.remaining_seconds)
            self._refresh_marks()

    def set_tasks(self, tasks: list[Task], selected_id: str | None = None) -> None:
        """Repopulate the task picker, keeping *selected_id* selected."""
        self._task_combo.blockSignals(True)
        self._task_combo.clear()
        self._task_combo.addItem(NO_TASK_LABEL, None)
        for task in tasks:
            self._task_combo.addItem(
                f"{task.name} ({format_tracked(task.tracked_seconds)})", task.id,
            )
        index = self._task_combo.findData(selected_id) if selected_id else 0
        self._task_combo.setCurrentIndex(max(index, 0))
        self._task_combo.blockSignals(False)
        self._apply_task_selection()

    def selected_task_id(self) -> str | None:
        return self._task_combo.currentData()

    # ── slots ─────────────────────────────────────────────────────────────

    def _on_start_pause(self) -> None:
        phase = self._engine.phase
        if phase is Phase.RUNNING:
            self._engine.pause()
        elif phase is Phase.PAUSED:
            self._engine.resume()
        elif self._preset is not None:
            self._engine.start(self._preset.flow, self.selected_task_id())

    def _on_task_index_changed(self, _index: int) -> None:
        self._apply_task_selection()

    def _apply_task_selection(self) -> None:
        task_id = self.selected_task_id()
        self._engine.task_id = task_id
        self.task_selected.emit(task_id)

    def _on_phase_changed(self, phase: Phase) -> None:
        self._ring.set_state_label(PHASE_LABELS[phase])
        self._ring.apply_phase(phase)
        self._refresh_marks()
        self._update_controls(phase)
        self._refresh_display(self._engine.remaining_seconds)

    def _update_controls(self, phase: Phase) -> None:
        """Button labels and enabled/visible states for *phase*."""
        if phase is Phase.RUNNING:
            self._start_pause_btn.setText("Pause")
            self._start_pause_btn.setObjectName("pauseButton")
            self._start_pause_btn.setEnabled(True)
        elif phase is Phase.PAUSED:
            self._start_pause_btn.setText("Resume")
            self._start_pause_btn.setObjectName("primaryButton")
            self._start_pause_btn.setEnabled(True)
        else:
            self._start_pause_btn.setText("Start")
            self._start_pause_btn.setObjectName("primaryButton")
            self._start_pause_btn.setEnabled(
                self._preset is not None
                and self._engine.can_start(self._preset.flow)
            )
        # Re-polish so the objectName-based QSS rule applies
        self._start_pause_btn.style().unpolish(self._start_pause_btn)
        self._start_pause_btn.style().polish(self._start_pause_btn)

        self._reset_btn.setEnabled(phase is not Phase.RUNNING)
        self._stop_btn.setVisible(phase is not Phase.IDLE)

    def _refresh_marks(self) -> None:
        if self._engine.phase is not Phase.IDLE:
            flow = self._engine.flow
        else:
            flow = self._preset.flow if self._preset is not None else ()
        self._ring.set_marks(segment_marks(flow))

    def _refresh_display(self, remaining: int) -> None:
        if self._engine.phase is Phase.IDLE and self._preset is not None and remaining == 0:
            # Idle: preview the selected flow's length
            preview = total_seconds(self._preset.flow)
            self._ring.set_time_text(format_clock(preview))
        else:
            self._ring.set_time_text(format_clock(remaining))
        self._ring.set_percent(self._engine.percent_complete)
