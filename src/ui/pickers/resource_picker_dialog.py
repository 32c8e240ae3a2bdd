from __future__ import annotations

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QLabel,
    QLineEdit,
    QVBoxLayout,
    QWidget,
)

from TagPyside.widgets.tag_editor.grammar import TokenKind

_RESOURCE_COPY = {
    TokenKind.IMAGE: ("Insert Image", "Paste the image URL.", "https://"),
    TokenKind.VIDEO: ("Insert Video", "Paste the video URL.", "https://www.bilibili.com/video/"),
}


class ResourcePickerDialog(QDialog):
    """URL entry for image and video links; inserted with surrounding spaces."""

    selected = Signal(str)

    def __init__(self, kind: TokenKind, *, initial_url: str = "", parent: QWidget | None = None) -> None:
        super().__init__(parent)
        title, prompt, placeholder = _RESOURCE_COPY.get(kind, _RESOURCE_COPY[TokenKind.IMAGE])
        self.kind = kind
        self.setWindowTitle(title)
        self.resize(520, 150)

        root = QVBoxLayout(self)
        root.setContentsMargins(14, 14, 14, 14)
        root.setSpacing(10)

        hint = QLabel(prompt)
        hint.setWordWrap(True)
        root.addWidget(hint)

        self.url_edit = QLineEdit(self)
        self.url_edit.setPlaceholderText(placeholder)
        self.url_edit.setText(str(initial_url or ""))
        self.url_edit.returnPressed.connect(self._accept_current)
        root.addWidget(self.url_edit)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel, parent=self)
        buttons.accepted.connect(self._accept_current)
        buttons.rejected.connect(self.reject)
        root.addWidget(buttons)
        self.url_edit.setFocus(Qt.OtherFocusReason)

    def resource_url(self) -> str:
        return str(self.url_edit.text() or "").strip()

    def _accept_current(self) -> None:
        # An empty URL is still a valid choice; the editor inserts it verbatim.
        self.selected.emit(self.resource_url())
        self.accept()
