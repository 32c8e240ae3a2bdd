from __future__ import annotations

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QVBoxLayout,
    QWidget,
)


class ProfilePickerDialog(QDialog):
    """Pick a profile key; the editor wraps it as ``{key}``."""

    selected = Signal(str)

    def __init__(self, profiles: list[str], *, title: str = "Insert Variable", parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle(title)
        self.resize(360, 320)

        root = QVBoxLayout(self)
        root.setContentsMargins(14, 14, 14, 14)
        root.setSpacing(10)

        hint = QLabel("Choose a profile variable, or type a new key.")
        hint.setWordWrap(True)
        root.addWidget(hint)

        self.key_edit = QLineEdit(self)
        self.key_edit.setPlaceholderText("profile_key")
        self.key_edit.returnPressed.connect(self._accept_current)
        self.key_edit.textChanged.connect(self._refresh_ok_enabled)
        root.addWidget(self.key_edit)

        self.profile_list = QListWidget(self)
        for key in profiles:
            self.profile_list.addItem(QListWidgetItem(str(key)))
        self.profile_list.currentItemChanged.connect(self._on_current_item_changed)
        self.profile_list.itemDoubleClicked.connect(lambda _item: self._accept_current())
        root.addWidget(self.profile_list, 1)

        self._buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel, parent=self)
        self._buttons.accepted.connect(self._accept_current)
        self._buttons.rejected.connect(self.reject)
        root.addWidget(self._buttons)

        if self.profile_list.count():
            self.profile_list.setCurrentRow(0)
        self._refresh_ok_enabled()
        self.key_edit.setFocus(Qt.OtherFocusReason)

    def profile_key(self) -> str:
        return str(self.key_edit.text() or "").strip()

    def _on_current_item_changed(self, current: QListWidgetItem | None, _previous) -> None:
        if current is not None:
            self.key_edit.setText(current.text())

    def _refresh_ok_enabled(self) -> None:
        ok = self._buttons.button(QDialogButtonBox.Ok)
        if ok is not None:
            ok.setEnabled(bool(self.profile_key()))

    def _accept_current(self) -> None:
        key = self.profile_key()
        if not key:
            return
        self.selected.emit(key)
        self.accept()
