from __future__ import annotations

import pytest
from PySide6.QtCore import QPoint, Qt
from PySide6.QtGui import QTextCursor
from PySide6.QtTest import QTest
from PySide6.QtWidgets import QPlainTextEdit

from conftest import drain_events
from TagPyside.widgets.tag_editor import (
    ControllerState,
    EditorContext,
    SelectionState,
    TagEditor,
    TokenKind,
)


@pytest.fixture
def make_editor(qapp, bridge):
    created: list[TagEditor] = []

    def factory(content: str = "", **kwargs) -> TagEditor:
        context = EditorContext(selection=SelectionState(), display_names=lambda key: key.title())
        editor = TagEditor(content=content, context=context, bridge=bridge, **kwargs)
        editor.resize(480, 240)
        editor.show()
        created.append(editor)
        return editor

    yield factory
    for editor in created:
        editor.close()
        editor.deleteLater()
    drain_events()


def _tag_format_spans(editor: TagEditor) -> list[tuple[int, int]]:
    spans: list[tuple[int, int]] = []
    block = editor.document().firstBlock()
    while block.isValid():
        for fmt in block.layout().formats():
            start = block.position() + fmt.start
            spans.append((start, start + fmt.length))
        block = block.next()
    return spans


def _move_caret(editor: TagEditor, pos: int) -> int:
    cursor = editor.textCursor()
    cursor.setPosition(pos)
    editor.setTextCursor(cursor)
    return editor.textCursor().position()


def test_initial_content_is_recognized(make_editor) -> None:
    editor = make_editor("Hello {name}\nhttps://www.bilibili.com/video/BV1")
    assert [r.label for r in editor.overlay.layer(TokenKind.PROFILE)] == ["{name}"]
    assert len(editor.overlay.layer(TokenKind.VIDEO)) == 1
    spans = _tag_format_spans(editor)
    assert len(spans) == 2
    assert spans[0] == (6, 12)
    assert spans[1][0] == 13


def test_typing_builds_tags_incrementally(make_editor) -> None:
    editor = make_editor()
    QTest.keyClicks(editor, "Hi {name} there")
    assert editor.content() == "Hi {name} there"
    layer = editor.overlay.layer(TokenKind.PROFILE)
    assert [(r.start, r.end) for r in layer] == [(3, 9)]


def test_caret_never_rests_inside_a_tag(make_editor) -> None:
    editor = make_editor("Hi {name} there")
    _move_caret(editor, 1)
    assert _move_caret(editor, 5) == 9
    assert _move_caret(editor, 5) == 3


def test_selection_covers_whole_tags(make_editor) -> None:
    editor = make_editor("Hi {name} there")
    cursor = editor.textCursor()
    cursor.setPosition(0)
    cursor.setPosition(5, QTextCursor.KeepAnchor)
    editor.setTextCursor(cursor)
    result = editor.textCursor()
    assert (result.anchor(), result.position()) == (0, 9)


def test_backspace_and_delete_remove_whole_tags(make_editor) -> None:
    editor = make_editor("Hi {name} there {b}")
    _move_caret(editor, 9)
    QTest.keyClick(editor, Qt.Key_Backspace)
    assert editor.content() == "Hi  there {b}"
    _move_caret(editor, 10)
    QTest.keyClick(editor, Qt.Key_Delete)
    assert editor.content() == "Hi  there "
    assert all(len(layer) == 0 for layer in editor.overlay.layers())


def test_tag_formed_around_a_still_caret_pushes_it_out(make_editor) -> None:
    editor = make_editor("{na e}")
    _move_caret(editor, 3)
    QTest.keyClick(editor, Qt.Key_Delete)
    assert editor.content() == "{nae}"
    assert editor.textCursor().position() == 5

    QTest.keyClick(editor, Qt.Key_Backspace)
    assert editor.content() == ""


def test_programmatic_edit_that_forms_a_tag_snaps_caret(make_editor) -> None:
    editor = make_editor("{ab cd}")
    _move_caret(editor, 3)
    editor.text_buffer.apply_edit(3, 4, "")
    drain_events()
    assert editor.content() == "{abcd}"
    assert editor.textCursor().position() == 0


def test_word_delete_backward_takes_the_whole_tag(make_editor) -> None:
    editor = make_editor("Hi {name}")
    _move_caret(editor, 9)
    QTest.keyClick(editor, Qt.Key_Backspace, Qt.ControlModifier)
    assert editor.content() == "Hi "
    assert len(editor.overlay.layer(TokenKind.PROFILE)) == 0


def test_word_delete_forward_takes_the_whole_tag(make_editor) -> None:
    editor = make_editor("{name} x")
    _move_caret(editor, 0)
    QTest.keyClick(editor, Qt.Key_Delete, Qt.ControlModifier)
    assert editor.content().lstrip() == "x"


def test_word_delete_outside_tags_is_plain(make_editor) -> None:
    editor = make_editor("alpha beta")
    _move_caret(editor, 10)
    QTest.keyClick(editor, Qt.Key_Backspace, Qt.ControlModifier)
    assert editor.content() == "alpha "


def test_trigger_palette_flow(make_editor) -> None:
    editor = make_editor()
    QTest.keyClicks(editor, "Hello /im")
    assert editor.is_palette_popup_visible()
    assert editor._palette_popup.count() == 3

    QTest.keyClick(editor, Qt.Key_Down)
    QTest.keyClick(editor, Qt.Key_Return)

    assert not editor.is_palette_popup_visible()
    assert editor.content() == "Hello "
    assert editor.controller.state is ControllerState.PICKER_OPEN
    assert editor.context.selection.snapshot() == (TokenKind.IMAGE, True)

    editor.controller.choose_payload("https://avtar.agiclass.cn/a.png")
    assert editor.content() == "Hello  https://avtar.agiclass.cn/a.png "
    assert len(editor.overlay.layer(TokenKind.IMAGE)) == 1
    assert editor.context.selection.snapshot() == (None, False)


def test_palette_rows_are_colored_by_kind(make_editor) -> None:
    editor = make_editor()
    QTest.keyClicks(editor, "/")
    popup = editor._palette_popup
    rows = [popup.item(row) for row in range(popup.count())]
    assert [item.text() for item in rows] == ["Variable", "Image", "Video"]
    assert [item.foreground().color().name() for item in rows] == ["#9cdcfe", "#4ec9b0", "#c586c0"]


def test_escape_closes_palette_without_edits(make_editor) -> None:
    editor = make_editor()
    QTest.keyClicks(editor, "a /")
    assert editor.is_palette_popup_visible()
    QTest.keyClick(editor, Qt.Key_Escape)
    assert not editor.is_palette_popup_visible()
    assert editor.content() == "a /"
    assert editor.controller.state is ControllerState.IDLE


def test_space_after_trigger_word_hides_palette(make_editor) -> None:
    editor = make_editor()
    QTest.keyClicks(editor, "/vi")
    assert editor.is_palette_popup_visible()
    QTest.keyClicks(editor, " ")
    assert not editor.is_palette_popup_visible()


def test_clicking_a_tag_requests_its_picker(make_editor) -> None:
    editor = make_editor("Hi {name} there")
    cursor = editor.textCursor()
    cursor.setPosition(5)
    rect = editor.cursorRect(cursor)
    QTest.mouseClick(editor.viewport(), Qt.LeftButton, Qt.NoModifier, QPoint(rect.x() + 2, rect.center().y()))
    drain_events()

    assert editor.textCursor().position() == 9
    assert editor.controller.state is ControllerState.PICKER_OPEN
    assert editor.controller.request.kind is TokenKind.PROFILE
    assert editor.content() == "Hi {name} there"

    editor.controller.choose_payload("city")
    assert editor.content() == "Hi {name}{city} there"


def test_click_below_the_last_line_does_not_activate(make_editor) -> None:
    editor = make_editor("{name}")
    rect = editor.cursorRect()
    below = QPoint(rect.x() + 2, rect.bottom() + 4 * editor.fontMetrics().lineSpacing())
    assert editor.viewport().rect().contains(below)
    QTest.mouseClick(editor.viewport(), Qt.LeftButton, Qt.NoModifier, below)
    drain_events()

    assert editor.controller.state is ControllerState.IDLE
    assert editor.context.selection.snapshot() == (None, False)


def test_preview_mode_is_read_only_and_untagged(make_editor) -> None:
    editor = make_editor("Hi {name} there")
    seen: list[tuple[str, bool]] = []
    editor.contentChanged.connect(lambda text, is_edit: seen.append((text, is_edit)))

    editor.set_edit_mode(False)
    assert editor.isReadOnly()
    assert _tag_format_spans(editor) == []
    assert _move_caret(editor, 5) == 5

    editor.set_content("plain")
    assert seen[-1] == ("plain", False)

    editor.set_edit_mode(True)
    assert not editor.isReadOnly()
    editor.set_content("{x}")
    assert seen[-1] == ("{x}", True)
    assert _tag_format_spans(editor) == [(0, 3)]


def test_leaving_edit_mode_cancels_open_picker(make_editor) -> None:
    editor = make_editor("abc")
    editor.controller.on_palette_select(TokenKind.VIDEO)
    editor.set_edit_mode(False)
    assert editor.controller.state is ControllerState.IDLE


def test_editors_do_not_answer_each_others_tags(make_editor) -> None:
    first = make_editor("{a}")
    second = make_editor("{b}")
    assert first.editor_id != second.editor_id
    second.overlay.activate_at(1)
    drain_events()
    assert first.controller.state is ControllerState.IDLE
    assert second.controller.state is ControllerState.PICKER_OPEN


def test_options_apply_placeholder_and_wrap(make_editor) -> None:
    editor = make_editor(options={"placeholder": "Say something", "word_wrap": False, "visible_lines": 3})
    assert editor.placeholderText() == "Say something"
    assert editor.lineWrapMode() == QPlainTextEdit.LineWrapMode.NoWrap
    taller = make_editor(options={"visible_lines": 6})
    assert taller.height() > editor.height()
