"""Main application window for FlowTimer."""

from __future__ import annotations

import json
import logging
import time

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QColor, QIcon, QImage, QKeySequence, QPainter, QPen, QPixmap
from PyQt6.QtWidgets import (
    QApplication, QFileDialog, QMainWindow, QMenu, QMessageBox,
    QStatusBar, QSystemTrayIcon, QTabWidget, QVBoxLayout, QWidget,
)
from sqlalchemy.exc import SQLAlchemyError

from .audio.sounds import SoundManager
from .database.store import (
    PresetStore, RunLog, TaskStore, export_snapshot, import_snapshot,
)
from .flow.model import Preset
from .formatting import format_clock, format_tracked
from .notifications import TrayNotifier
from .settings import Settings, load_settings, save_settings
from .timer.attribution import AttributionPolicy, TimeAttributor
from .timer.engine import FlowTimerEngine, Phase
from .ui.flow_editor import FlowEditor
from .ui.styles import build_stylesheet
from .ui.task_panel import TaskPanel
from .ui.timer_widget import TimerWidget


logger = logging.getLogger(__name__)


# ── tray‑icon image generation ────────────────────────────────────────────


def _make_tray_icon(phase: Phase) -> QIcon:
    """32×32 template icon: outline when idle, filled while running,
    two bars while paused."""
    size = 64  # draw at 2× for Retina
    img = QImage(size, size, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(Qt.GlobalColor.transparent)
    p = QPainter(img)
    p.setRenderHint(QPainter.RenderHint.Antialiasing)
    colour = QColor(0, 0, 0, 220)
    cx, cy, r = size // 2, size // 2, size // 2 - 4

    if phase is Phase.RUNNING:
        p.setPen(Qt.PenStyle.NoPen)
        p.setBrush(colour)
        p.drawEllipse(cx - r, cy - r, r * 2, r * 2)
    elif phase is Phase.PAUSED:
        p.setPen(Qt.PenStyle.NoPen)
        p.setBrush(colour)
        bar_w, bar_h, gap = 8, 28, 6
        y = cy - bar_h // 2
        p.drawRoundedRect(cx - gap - bar_w, y, bar_w, bar_h, 3, 3)
        p.drawRoundedRect(cx + gap, y, bar_w, bar_h, 3, 3)
    else:
        p.setPen(QPen(colour, 4))
        p.setBrush(Qt.BrushStyle.NoBrush)
        p.drawEllipse(cx - r, cy - r, r * 2, r * 2)

    p.end()
    img.setDevicePixelRatio(2.0)
    return QIcon(QPixmap.fromImage(img))


class FlowTimerApp(QMainWindow):
    """Main application window."""

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__()
        self.setWindowTitle("FlowTimer")
        self.setMinimumSize(720, 520)

        # ── settings ──────────────────────────────────────────────────
        self._settings: Settings = settings if settings is not None else load_settings()

        # ── stores ────────────────────────────────────────────────────
        self._preset_store = PresetStore()
        self._task_store = TaskStore()
        self._run_log = RunLog()

        # ── sound manager ─────────────────────────────────────────────
        self._sound_manager = SoundManager(parent=self)
        self._sound_manager.set_volume(self._settings.sound_volume)
        self._sound_manager.set_enabled(self._settings.sound_enabled)

        # ── system tray icon ──────────────────────────────────────────
        self._tray_icon = QSystemTrayIcon(self)
        self._tray_icon.setIcon(_make_tray_icon(Phase.IDLE))
        self._tray_icon.setToolTip("FlowTimer — Ready")
        self._tray_icon.activated.connect(self._on_tray_activated)
        self._notifier = TrayNotifier(
            self._tray_icon, enabled=self._settings.notifications_enabled,
        )

        # ── engine ────────────────────────────────────────────────────
        self._attributor = TimeAttributor(
            self._task_store,
            policy=AttributionPolicy.from_setting(self._settings.attribution_policy),
            notification_sink=self._notifier,
            audible_sink=self._sound_manager,
        )
        self._engine = FlowTimerEngine(
            self,
            attributor=self._attributor,
            clock=time.monotonic if self._settings.drift_correction else None,
        )
        self._running_preset_id: str | None = None

        self.setStyleSheet(build_stylesheet())

        # ── central widget ────────────────────────────────────────────
        central = QWidget()
        self.setCentralWidget(central)
        root_layout = QVBoxLayout(central)
        root_layout.setContentsMargins(16, 12, 16, 12)

        self._tabs = QTabWidget(central)
        root_layout.addWidget(self._tabs)

        self._flow_editor = FlowEditor(
            self._preset_store,
            self._tabs,
            default_minutes=self._settings.default_timer_minutes,
            default_loop_count=self._settings.default_loop_count,
            default_notification=self._settings.default_notification,
        )
        self._tabs.addTab(self._flow_editor, "Flow")

        self._timer_widget = TimerWidget(self._engine, self._tabs)
        self._tabs.addTab(self._timer_widget, "Timer")

        self._task_panel = TaskPanel(self._task_store, self._tabs)
        self._tabs.addTab(self._task_panel, "Tasks")

        self._status_bar = QStatusBar(self)
        self.setStatusBar(self._status_bar)
        self._status_bar.showMessage("Ready")

        self._build_tray_menu()
        self._tray_icon.show()
        self._build_menu_bar()

        # ── wire signals ──────────────────────────────────────────────
        self._flow_editor.preset_changed.connect(self._on_preset_changed)
        self._timer_widget.task_selected.connect(self._on_task_selected)
        self._task_panel.task_selected.connect(self._on_task_selected)
        self._task_panel.tasks_changed.connect(self._refresh_tasks)

        self._engine.phase_changed.connect(self._on_phase_changed)
        self._engine.tick.connect(self._on_tick)
        self._engine.run_started.connect(self._on_run_started)
        self._engine.run_completed.connect(self._on_run_completed)
        self._engine.run_stopped.connect(self._on_run_stopped)

        # ── restore last selection ────────────────────────────────────
        self._flow_editor.reload_presets(select_id=self._settings.last_preset_id)
        self._timer_widget.set_preset(self._flow_editor.current_preset)
        self._select_task(self._settings.last_task_id)

        self.resize(self._settings.window_width, self._settings.window_height)

    # ── accessors (used by tests) ─────────────────────────────────────

    @property
    def engine(self) -> FlowTimerEngine:
        return self._engine

    @property
    def flow_editor(self) -> FlowEditor:
        return self._flow_editor

    @property
    def timer_widget(self) -> TimerWidget:
        return self._timer_widget

    @property
    def task_panel(self) -> TaskPanel:
        return self._task_panel

    # ══════════════════════════════════════════════════════════════════
    #  SYSTEM TRAY
    # ══════════════════════════════════════════════════════════════════

    def _build_tray_menu(self) -> None:
        menu = QMenu(self)

        self._tray_start_action = menu.addAction("Start")
        self._tray_start_action.triggered.connect(self._tray_toggle_start)

        self._tray_stop_action = menu.addAction("Stop")
        self._tray_stop_action.triggered.connect(self._engine.stop)
        self._tray_stop_action.setEnabled(False)

        menu.addSeparator()
        show_action = menu.addAction("Show FlowTimer")
        show_action.triggered.connect(self._show_window)

        menu.addSeparator()
        quit_action = menu.addAction("Quit")
        quit_action.triggered.connect(self._quit_app)

        self._tray_icon.setContextMenu(menu)

    def _tray_toggle_start(self) -> None:
        """Start, pause, or resume based on current phase."""
        phase = self._engine.phase
        if phase is Phase.RUNNING:
            self._engine.pause()
        elif phase is Phase.PAUSED:
            self._engine.resume()
        else:
            preset = self._flow_editor.current_preset
            if preset is not None:
                self._engine.start(preset.flow, self._timer_widget.selected_task_id())

    def _on_tray_activated(self, reason: QSystemTrayIcon.ActivationReason) -> None:
        if reason == QSystemTrayIcon.ActivationReason.Trigger:
            self._show_window()

    def _show_window(self) -> None:
        self.show()
        self.raise_()
        self.activateWindow()

    def _quit_app(self) -> None:
        self._save_state()
        self._tray_icon.hide()
        QApplication.instance().quit()

    def _update_tray_state(self, phase: Phase) -> None:
        self._tray_icon.setIcon(_make_tray_icon(phase))
        if phase is Phase.RUNNING:
            self._tray_start_action.setText("Pause")
        elif phase is Phase.PAUSED:
            self._tray_start_action.setText("Resume")
        else:
            self._tray_start_action.setText("Start")
            self._tray_icon.setToolTip("FlowTimer — Ready")
        self._tray_stop_action.setEnabled(phase is not Phase.IDLE)

    # ══════════════════════════════════════════════════════════════════
    #  MENU BAR
    # ══════════════════════════════════════════════════════════════════

    def _build_menu_bar(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("File")

        import_action = QAction("Import…", self)
        import_action.setShortcut(QKeySequence("Ctrl+O"))
        import_action.triggered.connect(self._import_snapshot)
        file_menu.addAction(import_action)

        export_action = QAction("Export…", self)
        export_action.setShortcut(QKeySequence("Ctrl+E"))
        export_action.triggered.connect(self._export_snapshot)
        file_menu.addAction(export_action)

        file_menu.addSeparator()

        quit_action = QAction("Quit FlowTimer", self)
        quit_action.setMenuRole(QAction.MenuRole.QuitRole)
        quit_action.setShortcut(QKeySequence("Ctrl+Q"))
        quit_action.triggered.connect(self._quit_app)
        file_menu.addAction(quit_action)

        help_menu = menu_bar.addMenu("Help")
        about_action = QAction("About FlowTimer", self)
        about_action.setMenuRole(QAction.MenuRole.AboutRole)
        about_action.triggered.connect(self._show_about)
        help_menu.addAction(about_action)

    def _show_about(self) -> None:
        QMessageBox.about(
            self,
            "About FlowTimer",
            "<h3>FlowTimer</h3>"
            "<p>Build flows of timers, loops and notifications, run them, "
            "and track the time you spend on each task.</p>",
        )

    # ══════════════════════════════════════════════════════════════════
    #  IMPORT / EXPORT
    # ══════════════════════════════════════════════════════════════════

    def _export_snapshot(self) -> None:
        path, _ = QFileDialog.getSaveFileName(
            self, "Export presets and tasks", "flowtimer.json", "JSON (*.json)",
        )
        if path:
            self.export_to(path)

    def _import_snapshot(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Import presets and tasks", "", "JSON (*.json)",
        )
        if path:
            self.import_from(path)

    def export_to(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(export_snapshot(), fh, indent=2)
        logger.info("Exported snapshot to %s", path)
        self._status_bar.showMessage(f"Exported to {path}", 5000)

    def import_from(self, path: str) -> bool:
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
            if not isinstance(data, dict):
                raise ValueError("snapshot must be a JSON object")
            presets, tasks = import_snapshot(data)
        except (OSError, ValueError) as exc:
            logger.warning("Could not import %s: %s", path, exc)
            QMessageBox.warning(self, "Import failed", f"Could not import {path}:\n{exc}")
            return False
        logger.info("Imported %d presets and %d tasks from %s", presets, tasks, path)
        self._flow_editor.reload_presets(select_id=self._settings.last_preset_id)
        self._refresh_tasks()
        self._status_bar.showMessage(
            f"Imported {presets} presets and {tasks} tasks", 5000,
        )
        return True

    # ══════════════════════════════════════════════════════════════════
    #  SELECTION
    # ══════════════════════════════════════════════════════════════════

    def _on_preset_changed(self, preset: Preset | None) -> None:
        self._timer_widget.set_preset(preset)
        self._settings.last_preset_id = preset.id if preset else None

    def _on_task_selected(self, task_id: str | None) -> None:
        if task_id == self._settings.last_task_id:
            return
        self._select_task(task_id)

    def _select_task(self, task_id: str | None) -> None:
        if task_id is not None and self._task_store.get(task_id) is None:
            task_id = None
        self._settings.last_task_id = task_id
        self._task_panel.blockSignals(True)
        self._task_panel.select_task(task_id)
        self._task_panel.blockSignals(False)
        self._timer_widget.blockSignals(True)
        self._timer_widget.set_tasks(self._task_store.list_tasks(), task_id)
        self._timer_widget.blockSignals(False)

    def _refresh_tasks(self) -> None:
        task_id = self._task_panel.selected_task_id()
        self._task_panel.refresh(select_id=task_id)
        self._select_task(task_id)

    # ══════════════════════════════════════════════════════════════════
    #  TIMER SIGNALS
    # ══════════════════════════════════════════════════════════════════

    def _on_phase_changed(self, phase: Phase) -> None:
        messages = {
            Phase.RUNNING: "Running…",
            Phase.PAUSED:  "Paused",
            Phase.IDLE:    "Ready",
        }
        self._status_bar.showMessage(messages[phase])
        self._update_tray_state(phase)

    def _on_tick(self, remaining: int) -> None:
        if self._engine.phase is not Phase.IDLE:
            self._tray_icon.setToolTip(f"FlowTimer — {format_clock(remaining)}")

    def _on_run_started(self, _data: dict) -> None:
        preset = self._flow_editor.current_preset
        self._running_preset_id = preset.id if preset else None
        self._sound_manager.play("flow_start")
        self._tabs.setCurrentWidget(self._timer_widget)

    def _on_run_completed(self, data: dict) -> None:
        self._record_run(data, completed=True)

    def _on_run_stopped(self, data: dict) -> None:
        self._record_run(data, completed=False)

    def _record_run(self, data: dict, *, completed: bool) -> None:
        preset_id, self._running_preset_id = self._running_preset_id, None
        try:
            self._run_log.record(data, preset_id=preset_id, completed=completed)
        except SQLAlchemyError:
            logger.exception("Could not write run history")
            self._status_bar.showMessage("Run history could not be saved", 5000)
            return
        self._refresh_tasks()
        recorded = data.get("recorded_seconds", 0)
        if recorded:
            self._status_bar.showMessage(
                f"Recorded {format_tracked(recorded)}", 5000,
            )

    # ══════════════════════════════════════════════════════════════════
    #  WINDOW STATE
    # ══════════════════════════════════════════════════════════════════

    def _save_state(self) -> None:
        size = self.size()
        self._settings.window_width = size.width()
        self._settings.window_height = size.height()
        self._settings.last_task_id = self._task_panel.selected_task_id()
        save_settings(self._settings)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        """Minimize to tray while a flow is running."""
        self._save_state()
        if self._engine.phase is not Phase.IDLE and self._tray_icon.isVisible():
            event.ignore()
            self.hide()
            return
        self._tray_icon.hide()
        event.accept()
