from __future__ import annotations

import logging

from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QLabel,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

from TagPyside.widgets.tag_editor import (
    DISPLAY_NAME_KEYS,
    EditorContext,
    PickerHost,
    SelectionState,
    TagEditor,
    TokenKind,
)
from src.settings_manager import SettingsManager
from src.ui.pickers import ProfilePickerDialog, ResourcePickerDialog

LOGGER = logging.getLogger("PyTagEdit.Window")


class TagEditorWindow(QWidget):
    """One tag editor with its pickers and a raw-content preview."""

    def __init__(self, settings: SettingsManager, *, content: str = "", parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.settings = settings
        self.setWindowTitle("PyTagEdit")
        self.resize(720, 420)

        self.context = EditorContext(
            selection=SelectionState(self),
            profile_list=settings.profiles(),
            display_names=settings.display_names(),
        )
        self.editor = TagEditor(
            self,
            content=content,
            context=self.context,
            grammar=settings.grammar(),
            trigger_char=settings.trigger_char(),
            options=settings.editor_options(),
        )
        self.editor.set_tag_styles(settings.tag_styles())
        self.picker_host = PickerHost(
            self.editor.controller,
            {
                TokenKind.PROFILE: self._make_profile_picker,
                TokenKind.IMAGE: self._make_resource_picker,
                TokenKind.VIDEO: self._make_resource_picker,
            },
            parent=self,
        )

        self.edit_toggle = QCheckBox("Edit", self)
        self.edit_toggle.setChecked(True)
        self.edit_toggle.toggled.connect(self.editor.set_edit_mode)

        self.raw_view = QPlainTextEdit(self)
        self.raw_view.setReadOnly(True)
        self.raw_view.setFont(QFont("Courier New", 10))
        self.raw_view.setPlainText(self.editor.content())
        self.editor.contentChanged.connect(self._on_content_changed)

        root = QVBoxLayout(self)
        root.setContentsMargins(12, 12, 12, 12)
        root.setSpacing(8)
        root.addWidget(self.edit_toggle)
        root.addWidget(self.editor)
        root.addWidget(QLabel("Raw content", self))
        root.addWidget(self.raw_view, 1)

    def _make_profile_picker(self, _kind: TokenKind) -> QDialog:
        dialog = ProfilePickerDialog(
            list(self.context.profile_list),
            title=self.context.display_names(DISPLAY_NAME_KEYS[TokenKind.PROFILE]),
            parent=self,
        )
        dialog.selected.connect(self._remember_profile)
        return dialog

    def _make_resource_picker(self, kind: TokenKind) -> QDialog:
        dialog = ResourcePickerDialog(kind, parent=self)
        dialog.setWindowTitle(self.context.display_names(DISPLAY_NAME_KEYS[kind]))
        return dialog

    def _remember_profile(self, key: str) -> None:
        if key in self.context.profile_list:
            return
        self.context.set_profile_list([*self.context.profile_list, key])
        self.settings.set("profiles", list(self.context.profile_list))
        LOGGER.debug("remembered profile key %s", key)

    def _on_content_changed(self, text: str, _is_edit: bool) -> None:
        self.raw_view.setPlainText(text)
