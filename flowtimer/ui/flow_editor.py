"""Flow editor — the Flow tab.

Pick or create a preset, then build its flow as a tree:

    ⏱ Timer       25 min
    ⟳ Loop        × 4
        ⏱ Timer   25 min
        🔔 Notify  sound
        ⏱ Timer   5 min

New steps go into the selected loop, or at the end of the flow when
anything else (or nothing) is selected.  Every edit is saved through the
preset store immediately.
"""

from __future__ import annotations

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QComboBox,
    QSpinBox, QTreeWidget, QTreeWidgetItem, QInputDialog, QFrame,
)

from ..database.store import PresetStore
from ..flow.duration import total_seconds
from ..flow.model import (
    Flow, LoopStep, NotificationKind, NotificationStep, Preset, Step,
    StepPath, TimerStep, append_step, delete_step, find_path, get_step,
    make_step, move_step, update_step,
)
from ..formatting import format_duration


STEP_ICONS = {"timer": "⏱", "loop": "⟳", "notification": "🔔"}
STEP_TITLES = {"timer": "Timer", "loop": "Loop", "notification": "Notify"}

MAX_MINUTES = 999
MAX_LOOP_COUNT = 99


def _step_value_text(step: Step) -> str:
    if isinstance(step, TimerStep):
        return f"{step.minutes} min"
    if isinstance(step, LoopStep):
        return f"× {step.count}"
    return step.notification.value


class FlowEditor(QWidget):
    """Preset picker plus a tree editor for the preset's flow.

    Signals
    -------
    preset_changed(preset: Preset | None)
        Emitted when the selected preset changes or is edited.
    """

    preset_changed = pyqtSignal(object)

    def __init__(
        self,
        store: PresetStore,
        parent: QWidget | None = None,
        *,
        default_minutes: int = 25,
        default_loop_count: int = 2,
        default_notification: str = "sound",
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._defaults = {
            "minutes": default_minutes,
            "count": default_loop_count,
            "notification": default_notification,
        }
        self._preset: Preset | None = None
        self._build_ui()
        self._connect_signals()
        self.reload_presets()

    # ── build ─────────────────────────────────────────────────────────────

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)

        card = QFrame(self)
        card.setObjectName("card")
        root.addWidget(card)

        layout = QVBoxLayout(card)
        layout.setContentsMargins(20, 16, 20, 16)
        layout.setSpacing(10)

        title = QLabel("Flows", card)
        title.setObjectName("sectionTitle")
        layout.addWidget(title)

        # ── preset row ───────────────────────────────────────────────
        preset_row = QHBoxLayout()
        self._preset_combo = QComboBox(card)
        self._new_btn = QPushButton("New", card)
        self._rename_btn = QPushButton("Rename", card)
        self._delete_preset_btn = QPushButton("Delete", card)
        self._delete_preset_btn.setObjectName("dangerButton")
        preset_row.addWidget(self._preset_combo, 1)
        preset_row.addWidget(self._new_btn)
        preset_row.addWidget(self._rename_btn)
        preset_row.addWidget(self._delete_preset_btn)
        layout.addLayout(preset_row)

        # ── palette ──────────────────────────────────────────────────
        palette_row = QHBoxLayout()
        self._add_timer_btn = QPushButton("+ Timer", card)
        self._add_loop_btn = QPushButton("+ Loop", card)
        self._add_notify_btn = QPushButton("+ Notification", card)
        for btn in (self._add_timer_btn, self._add_loop_btn, self._add_notify_btn):
            btn.setObjectName("paletteButton")
            palette_row.addWidget(btn)
        palette_row.addStretch()
        layout.addLayout(palette_row)

        # ── tree ─────────────────────────────────────────────────────
        self._tree = QTreeWidget(card)
        self._tree.setColumnCount(3)
        self._tree.setHeaderLabels(["Step", "Value", "Duration"])
        self._tree.setRootIsDecorated(True)
        layout.addWidget(self._tree, 1)

        self._empty_hint = QLabel("Add a timer, loop or notification to build this flow.", card)
        self._empty_hint.setObjectName("mutedLabel")
        layout.addWidget(self._empty_hint)

        # ── step editor row ──────────────────────────────────────────
        edit_row = QHBoxLayout()
        self._value_spin = QSpinBox(card)
        self._value_spin.setRange(0, MAX_MINUTES)
        self._kind_combo = QComboBox(card)
        for kind in NotificationKind:
            self._kind_combo.addItem(kind.value, kind.value)
        self._up_btn = QPushButton("▲", card)
        self._down_btn = QPushButton("▼", card)
        self._delete_step_btn = QPushButton("Remove", card)
        self._delete_step_btn.setObjectName("dangerButton")
        edit_row.addWidget(self._value_spin)
        edit_row.addWidget(self._kind_combo)
        edit_row.addStretch()
        edit_row.addWidget(self._up_btn)
        edit_row.addWidget(self._down_btn)
        edit_row.addWidget(self._delete_step_btn)
        layout.addLayout(edit_row)

        self._total_label = QLabel("Total: 0m", card)
        layout.addWidget(self._total_label)

    def _connect_signals(self) -> None:
        self._preset_combo.currentIndexChanged.connect(self._on_preset_index_changed)
        self._new_btn.clicked.connect(lambda: self.create_preset())
        self._rename_btn.clicked.connect(self._prompt_rename)
        self._delete_preset_btn.clicked.connect(self.delete_current_preset)

        self._add_timer_btn.clicked.connect(lambda: self.add_step("timer"))
        self._add_loop_btn.clicked.connect(lambda: self.add_step("loop"))
        self._add_notify_btn.clicked.connect(lambda: self.add_step("notification"))

        self._tree.currentItemChanged.connect(lambda *_: self._sync_step_controls())
        self._value_spin.valueChanged.connect(self._on_value_changed)
        self._kind_combo.currentIndexChanged.connect(self._on_kind_changed)
        self._up_btn.clicked.connect(lambda: self.move_selected(-1))
        self._down_btn.clicked.connect(lambda: self.move_selected(1))
        self._delete_step_btn.clicked.connect(self.delete_selected)

    # ══════════════════════════════════════════════════════════════════
    #  PRESETS
    # ══════════════════════════════════════════════════════════════════

    @property
    def current_preset(self) -> Preset | None:
        return self._preset

    def reload_presets(self, select_id: str | None = None) -> None:
        """Refill the picker from the store."""
        if select_id is None and self._preset is not None:
            select_id = self._preset.id
        presets = self._store.list_presets()

        self._preset_combo.blockSignals(True)
        self._preset_combo.clear()
        for preset in presets:
            self._preset_combo.addItem(preset.name, preset.id)
        index = self._preset_combo.findData(select_id) if select_id else -1
        if index < 0 and presets:
            index = 0
        self._preset_combo.setCurrentIndex(index)
        self._preset_combo.blockSignals(False)

        self._select_preset(self._preset_combo.currentData())

    def select_preset(self, preset_id: str | None) -> None:
        index = self._preset_combo.findData(preset_id)
        if index >= 0:
            self._preset_combo.setCurrentIndex(index)

    def create_preset(self, name: str | None = None) -> Preset:
        preset = self._store.create(name)
        self.reload_presets(select_id=preset.id)
        return preset

    def rename_current(self, name: str) -> None:
        name = name.strip()
        if self._preset is None or not name:
            return
        self._store.rename(self._preset.id, name)
        self.reload_presets(select_id=self._preset.id)

    def delete_current_preset(self) -> None:
        if self._preset is None:
            return
        self._store.delete(self._preset.id)
        self._preset = None
        self.reload_presets()

    def _prompt_rename(self) -> None:
        if self._preset is None:
            return
        name, ok = QInputDialog.getText(self, "Rename flow", "Name:", text=self._preset.name)
        if ok:
            self.rename_current(name)

    def _on_preset_index_changed(self, _index: int) -> None:
        self._select_preset(self._preset_combo.currentData())

    def _select_preset(self, preset_id: str | None) -> None:
        self._preset = self._store.get(preset_id) if preset_id else None
        has_preset = self._preset is not None
        for widget in (
            self._rename_btn, self._delete_preset_btn, self._add_timer_btn,
            self._add_loop_btn, self._add_notify_btn, self._tree,
        ):
            widget.setEnabled(has_preset)
        self._rebuild_tree()
        self.preset_changed.emit(self._preset)

    # ══════════════════════════════════════════════════════════════════
    #  STEP EDITING
    # ══════════════════════════════════════════════════════════════════

    def selected_path(self) -> StepPath | None:
        item = self._tree.currentItem()
        if item is None or self._preset is None:
            return None
        return find_path(self._preset.flow, item.data(0, Qt.ItemDataRole.UserRole))

    def select_path(self, path: StepPath) -> None:
        item = self._tree.topLevelItem(path[0])
        for index in path[1:]:
            if item is None:
                return
            item = item.child(index)
        if item is not None:
            self._tree.setCurrentItem(item)

    def add_step(self, kind: str) -> None:
        """Append a new *kind* step to the selected loop, or to the root."""
        if self._preset is None:
            return
        step = make_step(kind, **self._defaults)
        flow = self._preset.flow
        parent: StepPath = ()
        path = self.selected_path()
        if path is not None and isinstance(get_step(flow, path), LoopStep):
            parent = path
        self._save_flow(append_step(flow, step, parent), select_id=step.id)

    def delete_selected(self) -> None:
        path = self.selected_path()
        if path is None:
            return
        self._save_flow(delete_step(self._preset.flow, path))

    def move_selected(self, offset: int) -> None:
        path = self.selected_path()
        if path is None:
            return
        step = get_step(self._preset.flow, path)
        self._save_flow(move_step(self._preset.flow, path, path[-1] + offset), select_id=step.id)

    def set_selected_value(self, value: int) -> None:
        """Set minutes (timer) or count (loop) of the selected step."""
        path = self.selected_path()
        if path is None:
            return
        step = get_step(self._preset.flow, path)
        if isinstance(step, TimerStep) and step.minutes != value:
            flow = update_step(self._preset.flow, path, minutes=value)
        elif isinstance(step, LoopStep) and step.count != value:
            flow = update_step(self._preset.flow, path, count=value)
        else:
            return
        self._save_flow(flow, select_id=step.id)

    def _on_value_changed(self, value: int) -> None:
        self.set_selected_value(value)

    def _on_kind_changed(self, _index: int) -> None:
        path = self.selected_path()
        if path is None:
            return
        step = get_step(self._preset.flow, path)
        kind = self._kind_combo.currentData()
        if isinstance(step, NotificationStep) and kind is not None and step.notification.value != kind:
            self._save_flow(
                update_step(self._preset.flow, path, notification=kind), select_id=step.id,
            )

    def _save_flow(self, flow: Flow, select_id: str | None = None) -> None:
        preset = self._store.save_flow(self._preset.id, flow)
        if preset is None:
            return
        self._preset = preset
        self._rebuild_tree(select_id=select_id)
        self.preset_changed.emit(self._preset)

    # ══════════════════════════════════════════════════════════════════
    #  TREE RENDERING
    # ══════════════════════════════════════════════════════════════════

    def _rebuild_tree(self, select_id: str | None = None) -> None:
        self._tree.blockSignals(True)
        self._tree.clear()
        flow = self._preset.flow if self._preset else ()
        selected: QTreeWidgetItem | None = None
        for step in flow:
            item = self._make_item(step)
            self._tree.addTopLevelItem(item)
            if selected is None:
                selected = self._find_item(item, select_id)
        self._tree.expandAll()
        if selected is not None:
            self._tree.setCurrentItem(selected)
        self._tree.blockSignals(False)

        self._empty_hint.setVisible(self._preset is not None and not flow)
        self._total_label.setText(f"Total: {format_duration(total_seconds(flow))}")
        self._sync_step_controls()

    def _make_item(self, step: Step) -> QTreeWidgetItem:
        item = QTreeWidgetItem([
            f"{STEP_ICONS[step.kind]} {STEP_TITLES[step.kind]}",
            _step_value_text(step),
            format_duration(total_seconds((step,))) if step.kind != "notification" else "",
        ])
        item.setData(0, Qt.ItemDataRole.UserRole, step.id)
        if isinstance(step, LoopStep):
            for child in step.children:
                item.addChild(self._make_item(child))
        return item

    def _find_item(self, item: QTreeWidgetItem, step_id: str | None) -> QTreeWidgetItem | None:
        if step_id is None:
            return None
        if item.data(0, Qt.ItemDataRole.UserRole) == step_id:
            return item
        for i in range(item.childCount()):
            found = self._find_item(item.child(i), step_id)
            if found is not None:
                return found
        return None

    def _sync_step_controls(self) -> None:
        """Show the editor controls that fit the selected step."""
        path = self.selected_path()
        step = get_step(self._preset.flow, path) if path is not None else None

        self._value_spin.blockSignals(True)
        self._kind_combo.blockSignals(True)
        if isinstance(step, TimerStep):
            self._value_spin.setRange(0, MAX_MINUTES)
            self._value_spin.setSuffix(" min")
            self._value_spin.setPrefix("")
            self._value_spin.setValue(step.minutes)
        elif isinstance(step, LoopStep):
            self._value_spin.setRange(0, MAX_LOOP_COUNT)
            self._value_spin.setSuffix("")
            self._value_spin.setPrefix("× ")
            self._value_spin.setValue(step.count)
        elif isinstance(step, NotificationStep):
            self._kind_combo.setCurrentIndex(self._kind_combo.findData(step.notification.value))
        self._value_spin.blockSignals(False)
        self._kind_combo.blockSignals(False)

        self._value_spin.setVisible(isinstance(step, (TimerStep, LoopStep)))
        self._kind_combo.setVisible(isinstance(step, NotificationStep))
        for btn in (self._up_btn, self._down_btn, self._delete_step_btn):
            btn.setEnabled(step is not None)
