"""Reusable PySide widgets for tag-aware text editing."""

from .tag_editor import EditorContext, PickerHost, SelectionState, TagEditor

__all__ = ["EditorContext", "PickerHost", "SelectionState", "TagEditor"]
