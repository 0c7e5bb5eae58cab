"""Task list — the Tasks tab."""

from __future__ import annotations

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QListWidget, QListWidgetItem, QInputDialog, QFrame,
)

from ..database.store import Task, TaskStore
from ..formatting import format_tracked


class TaskPanel(QWidget):
    """Lists tasks with their tracked time.

    Signals
    -------
    task_selected(task_id: str | None)
        Emitted when the user picks a task in the list.
    tasks_changed()
        Emitted after a task is added, renamed or deleted.
    """

    task_selected = pyqtSignal(object)
    tasks_changed = pyqtSignal()

    def __init__(self, store: TaskStore, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._store = store
        self._build_ui()
        self._connect_signals()
        self.refresh()

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)

        card = QFrame(self)
        card.setObjectName("card")
        root.addWidget(card)

        layout = QVBoxLayout(card)
        layout.setContentsMargins(20, 16, 20, 16)
        layout.setSpacing(10)

        title = QLabel("Tasks", card)
        title.setObjectName("sectionTitle")
        layout.addWidget(title)

        self._selected_label = QLabel("", card)
        self._selected_label.setObjectName("mutedLabel")
        layout.addWidget(self._selected_label)

        btn_row = QHBoxLayout()
        self._add_btn = QPushButton("New task", card)
        self._rename_btn = QPushButton("Rename", card)
        self._delete_btn = QPushButton("Delete", card)
        self._delete_btn.setObjectName("dangerButton")
        btn_row.addWidget(self._add_btn)
        btn_row.addStretch()
        btn_row.addWidget(self._rename_btn)
        btn_row.addWidget(self._delete_btn)
        layout.addLayout(btn_row)

        self._list = QListWidget(card)
        layout.addWidget(self._list, 1)

    def _connect_signals(self) -> None:
        self._add_btn.clicked.connect(lambda: self.add_task())
        self._rename_btn.clicked.connect(self._prompt_rename)
        self._delete_btn.clicked.connect(self.delete_selected)
        self._list.currentItemChanged.connect(self._on_current_changed)

    # ── public API ────────────────────────────────────────────────────────

    def refresh(self, select_id: str | None = None) -> None:
        """Reload tasks from the store (e.g. after time was attributed)."""
        if select_id is None:
            select_id = self.selected_task_id()
        self._list.blockSignals(True)
        self._list.clear()
        for task in self._store.list_tasks():
            item = QListWidgetItem(self._item_text(task))
            item.setData(Qt.ItemDataRole.UserRole, task.id)
            self._list.addItem(item)
            if task.id == select_id:
                self._list.setCurrentItem(item)
        self._list.blockSignals(False)
        self._update_selected_label()

    def selected_task_id(self) -> str | None:
        item = self._list.currentItem()
        return item.data(Qt.ItemDataRole.UserRole) if item is not None else None

    def select_task(self, task_id: str | None) -> None:
        for row in range(self._list.count()):
            item = self._list.item(row)
            if item.data(Qt.ItemDataRole.UserRole) == task_id:
                self._list.setCurrentItem(item)
                return
        self._list.setCurrentItem(None)

    def add_task(self, name: str | None = None) -> Task:
        task = self._store.create(name) if name else self._store.create()
        self.refresh(select_id=task.id)
        self.tasks_changed.emit()
        self.task_selected.emit(task.id)
        return task

    def rename_selected(self, name: str) -> None:
        task_id = self.selected_task_id()
        name = name.strip()
        if task_id is None or not name:
            return
        self._store.rename(task_id, name)
        self.refresh(select_id=task_id)
        self.tasks_changed.emit()

    def delete_selected(self) -> None:
        task_id = self.selected_task_id()
        if task_id is None:
            return
        self._store.delete(task_id)
        self._list.setCurrentItem(None)
        self.refresh()
        self.tasks_changed.emit()
        self.task_selected.emit(None)

    # ── internal ──────────────────────────────────────────────────────────

    @staticmethod
    def _item_text(task: Task) -> str:
        return f"{task.name}    {format_tracked(task.tracked_seconds)}"

    def _prompt_rename(self) -> None:
        task_id = self.selected_task_id()
        if task_id is None:
            return
        task = self._store.get(task_id)
        name, ok = QInputDialog.getText(
            self, "Rename task", "Name:", text=task.name if task else "",
        )
        if ok:
            self.rename_selected(name)

    def _on_current_changed(self, *_args) -> None:
        self._update_selected_label()
        self.task_selected.emit(self.selected_task_id())

    def _update_selected_label(self) -> None:
        task_id = self.selected_task_id()
        task = self._store.get(task_id) if task_id else None
        has_task = task is not None
        self._rename_btn.setEnabled(has_task)
        self._delete_btn.setEnabled(has_task)
        if task is None:
            self._selected_label.setText("No task selected")
        else:
            self._selected_label.setText(
                f"Selected: {task.name} — {format_tracked(task.tracked_seconds)}"
            )
