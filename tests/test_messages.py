"""Tests for host <-> view message parsing and the in-memory channel."""

import asyncio

import pytest

from trace_viewer.messages import (
    ErrorMessage,
    LoadTraceMessage,
    LoadTracePayload,
    RestoreStateMessage,
    SaveStateMessage,
    ShowWarningMessage,
    dump_message,
    parse_host_message,
    parse_view_message,
)
from trace_viewer.models import WebviewState, default_webview_state
from trace_viewer.transport import MessageChannel

from conftest import make_trace


class TestWebviewState:
    """Tests for the persisted view state."""

    def test_default_wire_format(self):
        assert default_webview_state().to_wire() == {
            "expandedSpans": [],
            "scrollPosition": 0,
            "selectedSpanId": None,
        }

    def test_default_is_fresh_instance(self):
        first = default_webview_state()
        first.expanded_spans.append("x")

        assert default_webview_state().expanded_spans == []

    def test_parses_wire_format(self):
        state = WebviewState.model_validate(
            {"expandedSpans": ["a"], "scrollPosition": 120, "selectedSpanId": "a"}
        )

        assert state.expanded_spans == ["a"]
        assert state.scroll_position == 120
        assert state.selected_span_id == "a"

    def test_rejects_negative_scroll(self):
        with pytest.raises(ValueError):
            WebviewState(scroll_position=-1)


class TestParseViewMessage:
    """Tests for parse_view_message."""

    def test_parses_save_state(self):
        message = parse_view_message({
            "type": "saveState",
            "payload": {"expandedSpans": ["s1"], "scrollPosition": 10, "selectedSpanId": None},
        })

        assert isinstance(message, SaveStateMessage)
        assert message.payload.expanded_spans == ["s1"]

    def test_parses_show_warning(self):
        message = parse_view_message({"type": "showWarning", "payload": {"message": "careful"}})

        assert isinstance(message, ShowWarningMessage)
        assert message.payload.message == "careful"

    @pytest.mark.parametrize("raw", [
        {"type": "selfDestruct"},
        {"payload": {}},
        "ready",
        None,
        ["ready"],
    ])
    def test_unknown_or_non_object_is_none(self, raw):
        assert parse_view_message(raw) is None

    def test_malformed_payload_is_none(self):
        assert parse_view_message({"type": "saveState", "payload": {"scrollPosition": -5}}) is None

    def test_host_types_are_not_view_messages(self):
        assert parse_view_message({"type": "loading", "payload": {"message": "x"}}) is None


class TestParseHostMessage:
    """Tests for parse_host_message."""

    def test_parses_load_trace(self):
        trace = make_trace("t1", {"span_id": "s1"})
        raw = dump_message(LoadTraceMessage(payload=LoadTracePayload(trace=trace, selected_span_id="s1")))

        message = parse_host_message(raw)

        assert isinstance(message, LoadTraceMessage)
        assert message.payload.selected_span_id == "s1"
        assert message.payload.trace.get_spans()[0].span_id == "s1"

    def test_parses_restore_state(self):
        message = parse_host_message({"type": "restoreState", "payload": {"expandedSpans": ["x"]}})

        assert isinstance(message, RestoreStateMessage)
        assert message.payload.expanded_spans == ["x"]

    def test_unknown_type_is_none(self):
        assert parse_host_message({"type": "ready"}) is None


class TestDumpMessage:
    """Tests for the camelCase wire encoding."""

    def test_load_trace_uses_camel_case(self):
        trace = make_trace("t1", {"span_id": "s1", "parent_span_id": None})
        wire = dump_message(LoadTraceMessage(payload=LoadTracePayload(trace=trace, selected_span_id="s1")))

        assert wire["type"] == "loadTrace"
        assert wire["payload"]["selectedSpanId"] == "s1"
        span = wire["payload"]["trace"]["spans"][0]
        assert span["spanId"] == "s1"
        assert span["startedAt"] == "2025-01-01T00:00:00Z"

    def test_error_message(self):
        assert dump_message(ErrorMessage(payload={"message": "boom"})) == {
            "type": "error",
            "payload": {"message": "boom"},
        }


class TestMessageChannel:
    """Tests for MessageChannel."""

    @pytest.mark.asyncio
    async def test_delivers_in_order(self):
        channel = MessageChannel("test")
        for i in range(3):
            channel.post({"type": "n", "i": i})

        received = [await channel.receive() for _ in range(3)]

        assert [m["i"] for m in received] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_messages_are_copies(self):
        channel = MessageChannel("test")
        original = {"type": "saveState", "payload": {"expandedSpans": ["a"]}}
        channel.post(original)
        original["payload"]["expandedSpans"].append("b")

        received = await channel.receive()

        assert received["payload"]["expandedSpans"] == ["a"]

    @pytest.mark.asyncio
    async def test_close_ends_iteration(self):
        channel = MessageChannel("test")
        channel.post({"type": "ready"})
        channel.close()

        received = [m async for m in channel]

        assert received == [{"type": "ready"}]
        assert await channel.receive() is None

    @pytest.mark.asyncio
    async def test_post_after_close_is_dropped(self):
        channel = MessageChannel("test")
        channel.close()

        assert channel.post({"type": "ready"}) is False
        assert await asyncio.wait_for(channel.receive(), timeout=1) is None
