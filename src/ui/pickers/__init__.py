"""Picker dialogs that supply tag payloads to the editor."""

from .profile_picker_dialog import ProfilePickerDialog
from .resource_picker_dialog import ResourcePickerDialog

__all__ = ["ProfilePickerDialog", "ResourcePickerDialog"]
