from __future__ import annotations

import pytest

from TagPyside.widgets.tag_editor.command_palette import CommandPalette
from TagPyside.widgets.tag_editor.grammar import TokenKind
from TagPyside.widgets.tag_editor.insertion import (
    ControllerState,
    EditorContext,
    InsertionController,
    RequestOrigin,
    SelectionState,
    format_payload,
)
from TagPyside.widgets.tag_editor.text_buffer import StringBuffer


def _names(key: str) -> str:
    return key.title()


@pytest.fixture
def context(qapp) -> EditorContext:
    return EditorContext(selection=SelectionState(), display_names=_names)


def _wired(text: str, caret: int, context: EditorContext):
    buffer = StringBuffer(text, caret=caret)
    controller = InsertionController("ed-1", buffer, context)
    palette = CommandPalette(display_names=_names, on_select=controller.on_palette_select)
    return buffer, controller, palette


def test_image_flow_from_trigger_to_payload(context: EditorContext) -> None:
    buffer, controller, palette = _wired("Hello /im", 9, context)
    palette.select(palette.open_at(buffer), TokenKind.IMAGE, buffer)

    assert buffer.current_text() == "Hello "
    assert controller.state is ControllerState.PICKER_OPEN
    assert controller.request.kind is TokenKind.IMAGE
    assert (controller.request.trigger_start, controller.request.trigger_end) == (6, 9)
    assert context.selection.snapshot() == (TokenKind.IMAGE, True)

    assert controller.choose_payload("http://x/a.png") is True
    assert buffer.current_text() == "Hello  http://x/a.png "
    assert buffer.caret_offset() == len(buffer.current_text())
    assert controller.state is ControllerState.IDLE
    assert context.selection.snapshot() == (None, False)


def test_profile_payload_is_wrapped_in_braces(context: EditorContext) -> None:
    buffer, controller, palette = _wired("Dear /", 6, context)
    palette.select(palette.open_at(buffer), TokenKind.PROFILE, buffer)
    controller.choose_payload("name")
    assert buffer.current_text() == "Dear {name}"


def test_cancel_leaves_text_as_it_was_after_trigger_removal(context: EditorContext) -> None:
    buffer, controller, palette = _wired("a /v b", 4, context)
    palette.select(palette.open_at(buffer), TokenKind.VIDEO, buffer)
    before = buffer.current_text()
    assert controller.cancel() is True
    assert buffer.current_text() == before == "a  b"
    assert controller.state is ControllerState.IDLE
    assert context.selection.active_kind is None


def test_idle_controller_ignores_choose_and_cancel(context: EditorContext) -> None:
    buffer, controller, _palette = _wired("text", 4, context)
    assert controller.choose_payload("x") is False
    assert controller.cancel() is False
    assert buffer.current_text() == "text"


def test_latest_request_replaces_pending_one(context: EditorContext) -> None:
    buffer, controller, _palette = _wired("abc", 3, context)
    changes: list[tuple] = []
    context.selection.changed.connect(lambda s: changes.append(s.snapshot()))
    controller.on_palette_select(TokenKind.IMAGE)
    controller.on_palette_select(TokenKind.PROFILE)
    assert controller.request.kind is TokenKind.PROFILE
    assert changes == [(TokenKind.IMAGE, True), (TokenKind.PROFILE, True)]
    controller.choose_payload("who")
    assert buffer.current_text() == "abc{who}"


def test_empty_payload_is_still_inserted(context: EditorContext) -> None:
    buffer, controller, _palette = _wired("x", 1, context)
    controller.on_palette_select(TokenKind.VIDEO)
    controller.choose_payload("")
    assert buffer.current_text() == "x  "


def test_signals_follow_transitions(context: EditorContext) -> None:
    _buffer, controller, _palette = _wired("", 0, context)
    events: list[object] = []
    controller.pickerRequested.connect(lambda r: events.append(r.origin))
    controller.pickerClosed.connect(lambda: events.append("closed"))
    controller.payloadInserted.connect(events.append)
    controller.on_palette_select(TokenKind.PROFILE)
    controller.choose_payload("k")
    assert events == [RequestOrigin.PALETTE, "closed", "{k}"]


def test_format_payload() -> None:
    assert format_payload(TokenKind.PROFILE, "id") == "{id}"
    assert format_payload(TokenKind.IMAGE, "u") == " u "
    assert format_payload(TokenKind.VIDEO, "") == "  "


def test_context_profile_list_is_deduplicated(context: EditorContext) -> None:
    context.set_profile_list(["a", " a ", "", "b", None])
    assert context.profile_list == ["a", "b"]


def test_selection_state_only_signals_real_changes(qapp) -> None:
    selection = SelectionState()
    seen: list[tuple] = []
    selection.changed.connect(lambda state: seen.append(state.snapshot()))
    selection.set_state(TokenKind.VIDEO, True)
    selection.set_state(TokenKind.VIDEO, True)
    selection.set_state(None, False)
    assert seen == [(TokenKind.VIDEO, True), (None, False)]
