from __future__ import annotations

from conftest import drain_events
from TagPyside.widgets.tag_editor.click_bridge import TagNotice, next_editor_id, tag_click_bridge
from TagPyside.widgets.tag_editor.grammar import TokenKind
from TagPyside.widgets.tag_editor.insertion import (
    ControllerState,
    EditorContext,
    InsertionController,
    RequestOrigin,
    SelectionState,
)
from TagPyside.widgets.tag_editor.overlay import TagOverlay
from TagPyside.widgets.tag_editor.text_buffer import StringBuffer


def _controller(editor_id: str, buffer: StringBuffer, bridge) -> InsertionController:
    context = EditorContext(selection=SelectionState(), display_names=str)
    return InsertionController(editor_id, buffer, context, bridge=bridge)


def test_delivery_waits_for_the_event_loop(bridge) -> None:
    received: list[TagNotice] = []
    bridge.tagActivated.connect(received.append)
    notice = TagNotice("ed-1", TokenKind.PROFILE, "{a}")
    bridge.emit(notice)
    assert received == []
    drain_events()
    assert received == [notice]


def test_notices_only_reach_their_own_controller(bridge) -> None:
    first = _controller("ed-1", StringBuffer("x"), bridge)
    second = _controller("ed-2", StringBuffer("y"), bridge)
    bridge.emit(TagNotice("ed-2", TokenKind.IMAGE, "http://x"))
    drain_events()
    assert first.state is ControllerState.IDLE
    assert second.state is ControllerState.PICKER_OPEN
    assert second.request.origin is RequestOrigin.TAG
    assert second.request.label == "http://x"


def test_video_tag_click_opens_video_picker_and_keeps_tag(bridge) -> None:
    text = "watch https://www.bilibili.com/video/BV1xy now"
    buffer = StringBuffer(text)
    overlay = TagOverlay("ed-7", bridge=bridge)
    overlay.attach(buffer)
    controller = _controller("ed-7", buffer, bridge)
    tag = overlay.layer(TokenKind.VIDEO).ranges[0]
    buffer.set_caret(tag.end)

    assert overlay.activate_at(tag.start + 3) is True
    drain_events()

    assert controller.state is ControllerState.PICKER_OPEN
    assert controller.request.kind is TokenKind.VIDEO
    assert controller.context.selection.snapshot() == (TokenKind.VIDEO, True)
    assert buffer.current_text() == text
    assert overlay.layer(TokenKind.VIDEO).ranges == (tag,)

    controller.choose_payload("https://www.bilibili.com/video/BV2")
    assert buffer.current_text().startswith("watch https://www.bilibili.com/video/BV1xy https://")
    assert len(overlay.layer(TokenKind.VIDEO)) == 2


def test_unsubscribed_controller_stops_listening(bridge) -> None:
    controller = _controller("ed-1", StringBuffer(""), bridge)
    controller.unsubscribe()
    bridge.emit(TagNotice("ed-1", TokenKind.PROFILE, "{a}"))
    drain_events()
    assert controller.state is ControllerState.IDLE


def test_shared_channel_and_fresh_ids(qapp) -> None:
    assert tag_click_bridge() is tag_click_bridge()
    assert next_editor_id() != next_editor_id()
