"""Shows the picker named by a ``SelectionState`` and routes its result."""

from __future__ import annotations

import logging
from typing import Callable, Mapping

from PySide6.QtCore import QObject
from PySide6.QtWidgets import QDialog

from .grammar import TokenKind
from .insertion import InsertionController, SelectionState

LOGGER = logging.getLogger("PyTagEdit.PickerHost")

# A picker is a QDialog with a ``selected = Signal(str)``; rejecting it cancels.
PickerFactory = Callable[[TokenKind], QDialog]


class PickerHost(QObject):
    def __init__(
            self,
            controller: InsertionController,
            factories: Mapping[TokenKind, PickerFactory],
            parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._controller = controller
        self._factories = dict(factories)
        self._selection: SelectionState = controller.context.selection
        self._dialog: QDialog | None = None
        self._dialog_kind: TokenKind | None = None
        self._selection.changed.connect(self._on_selection_changed)

    @property
    def current_dialog(self) -> QDialog | None:
        return self._dialog

    def _on_selection_changed(self, state: SelectionState) -> None:
        if not state.dialog_open or state.active_kind is None:
            self._dismiss()
            return
        if self._dialog is not None and self._dialog_kind is state.active_kind:
            return
        self._dismiss()
        self._show(state.active_kind)

    def _show(self, kind: TokenKind) -> None:
        factory = self._factories.get(kind)
        if factory is None:
            LOGGER.warning("No picker registered for %s; cancelling", kind.name)
            self._controller.cancel()
            return
        dialog = factory(kind)
        dialog.selected.connect(self._controller.choose_payload)
        dialog.rejected.connect(self._controller.cancel)
        self._dialog = dialog
        self._dialog_kind = kind
        dialog.open()

    def _dismiss(self) -> None:
        dialog = self._dialog
        self._dialog = None
        self._dialog_kind = None
        if dialog is None:
            return
        # Closing a dialog rejects it; detach first so that is not a cancel.
        for signal, slot in (
                (dialog.selected, self._controller.choose_payload),
                (dialog.rejected, self._controller.cancel),
        ):
            try:
                signal.disconnect(slot)
            except (RuntimeError, TypeError):
                pass
        dialog.close()
        dialog.deleteLater()


__all__ = ["PickerFactory", "PickerHost"]
