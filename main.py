import argparse
import logging
import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication

from src.settings_manager import SettingsManager
from src.settings_store import SettingsStoreError
from src.ui.tag_editor_window import TagEditorWindow

APP_NAME = "PyTagEdit"


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=APP_NAME, description="Text editor with atomic profile, image and video tags.")
    parser.add_argument("file", nargs="?", help="Text file to open as the initial content.")
    parser.add_argument("--settings", help="Path to the settings JSON file.")
    parser.add_argument("--preview", action="store_true", help="Start in read-only preview mode.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for the PyTagEdit loggers.",
    )
    return parser.parse_args(argv)


def _read_initial_content(path_value: str | None) -> str:
    text = str(path_value or "").strip()
    if not text:
        return ""
    path = Path(text).expanduser()
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logging.getLogger(APP_NAME).warning("Could not read %s: %s", path, exc)
        return ""


def _save_settings(manager: SettingsManager) -> None:
    try:
        manager.save_all(only_dirty=True)
    except SettingsStoreError as exc:
        logging.getLogger(APP_NAME).error("%s", exc)


if __name__ == "__main__":
    args = _parse_args(sys.argv[1:])
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    manager = SettingsManager(args.settings)
    manager.load_all()

    app = QApplication([sys.argv[0]])
    app.setStyle("Fusion")
    app.setApplicationName(APP_NAME)
    app.aboutToQuit.connect(lambda: _save_settings(manager))

    window = TagEditorWindow(manager, content=_read_initial_content(args.file))
    if args.preview:
        window.edit_toggle.setChecked(False)
    window.show()
    sys.exit(app.exec())
