"""Tests for viewer state logic.

Tests the pure Python helpers in ViewerState without requiring the Reflex
runtime: row building, ancestor expansion and trace summaries.
"""

import pytest

from trace_viewer.formatters import PLACEHOLDER, SPAN_STYLES
from trace_viewer.state import SPAN_LIST_ID, ViewerState

from conftest import make_trace


@pytest.fixture
def span_dicts(nested_trace):
    return [span.model_dump(mode="json") for span in nested_trace.get_spans()]


def row_ids(rows):
    return [row["span_id"] for row in rows]


class TestSpans:
    """Tests for _spans, rebuilding models from state dicts."""

    def test_round_trips_dumped_spans(self, span_dicts):
        spans = ViewerState._spans(span_dicts)

        assert [s.span_id for s in spans] == ["root", "a", "b", "a1"]

    def test_skips_invalid_dicts(self, span_dicts):
        spans = ViewerState._spans(span_dicts + [{"span_id": "broken"}])

        assert len(spans) == 4


class TestExpandAncestors:
    """Tests for _expand_ancestors."""

    def test_adds_missing_ancestors(self, span_dicts):
        assert ViewerState._expand_ancestors(span_dicts, [], "a1") == ["root", "a"]

    def test_keeps_existing_order(self, span_dicts):
        assert ViewerState._expand_ancestors(span_dicts, ["a", "x"], "a1") == ["a", "x", "root"]

    def test_unknown_span_leaves_expansion(self, span_dicts):
        assert ViewerState._expand_ancestors(span_dicts, ["x"], "missing") == ["x"]


class TestBuildRows:
    """Tests for _build_rows."""

    def build(self, span_dicts, expanded=(), results=(), current="", selected="", query=""):
        return ViewerState._build_rows(span_dicts, list(expanded), list(results), current, selected, query)

    def test_empty(self):
        assert self.build([]) == []

    def test_collapsed_shows_roots_only(self, span_dicts):
        rows = self.build(span_dicts)

        assert row_ids(rows) == ["root"]
        assert rows[0]["has_children"] is True
        assert rows[0]["is_expanded"] is False
        assert rows[0]["margin_left_style"] == "0"

    def test_expanded_rows_in_display_order(self, span_dicts):
        rows = self.build(span_dicts, expanded=["root", "a"])

        assert row_ids(rows) == ["root", "a", "a1", "b"]
        assert [r["depth"] for r in rows] == [0, 1, 2, 1]
        assert rows[2]["margin_left_style"] == "calc(2 * 1.25rem)"

    def test_style_from_span_type(self, span_dicts):
        root = self.build(span_dicts)[0]

        assert root["style_color"] == SPAN_STYLES["agent_run"]["color"]
        assert root["style_icon"] == SPAN_STYLES["agent_run"]["icon"]
        assert root["border_left_style"] == f"3px solid {SPAN_STYLES['agent_run']['color']}"

    def test_running_span_duration(self, span_dicts):
        assert self.build(span_dicts)[0]["duration_formatted"] == "running"

    def test_hidden_matches_on_collapsed_row(self, span_dicts):
        root = self.build(span_dicts, results=["a1"], current="a1")[0]

        assert root["hidden_matches"] == 1
        assert root["has_hidden_matches"] is True

    def test_match_flags(self, span_dicts):
        rows = self.build(span_dicts, expanded=["root", "a"], results=["a", "a1"], current="a1", selected="a1")
        by_id = {r["span_id"]: r for r in rows}

        assert by_id["a"]["is_match"] and not by_id["a"]["is_current_match"]
        assert by_id["a1"]["is_current_match"] and by_id["a1"]["is_selected"]
        assert not by_id["b"]["is_match"]
        assert by_id["root"]["hidden_matches"] == 0

    def test_name_segments_highlight_query(self, span_dicts):
        root = self.build(span_dicts, query="OO")[0]

        assert root["name_segments"] == [
            {"text": "r", "match": False},
            {"text": "oo", "match": True},
            {"text": "t", "match": False},
        ]


class TestSpanDetail:
    """Tests for _span_detail."""

    def test_flags_and_formatting(self, span_dicts):
        detail = ViewerState._span_detail(span_dicts[3])

        assert detail["span_id"] == "a1"
        assert detail["has_input"] is True
        assert detail["has_output"] is False
        assert detail["has_error"] is False
        assert detail["duration_formatted"] == "running"
        assert detail["ended_at_formatted"] == PLACEHOLDER


class TestSummarizeTrace:
    """Tests for _summarize_trace."""

    def test_summary_fields(self, nested_trace):
        summary = ViewerState._summarize_trace(nested_trace)

        assert summary["trace_id"] == "trace-1"
        assert summary["short_id"] == "trace-1"
        assert summary["name"] == "root"
        assert summary["span_count"] == 4
        assert summary["span_count_display"] == "4 spans"
        assert summary["detail_url"] == "/trace/trace-1"
        assert summary["status"] == "unknown"
        assert summary["timestamp_iso"] == "2025-01-01T00:00:00+00:00"

    def test_single_span_and_error_status(self):
        trace = make_trace("abcdef0123456789", {"span_id": "s", "status": "error"})

        summary = ViewerState._summarize_trace(trace)

        assert summary["short_id"] == "abcdef01"
        assert summary["span_count_display"] == "1 span"
        assert summary["has_error"] is True

    def test_long_name_is_truncated(self):
        trace = make_trace("t1", {"span_id": "s", "name": "x" * 100})

        assert ViewerState._summarize_trace(trace)["name"].endswith("…")

    def test_no_timestamp(self):
        trace = make_trace("t1", {"span_id": "s", "started_at": None})

        summary = ViewerState._summarize_trace(trace)

        assert summary["timestamp_display"] == PLACEHOLDER
        assert summary["timestamp_iso"] == ""


class TestSavedViews:
    """Tests for keeping per-trace view state across trace switches."""

    def test_reopened_trace_gets_scroll_back(self):
        saved = {"t1": ViewerState._saved_view_entry(["root"], 240.0, "a")}

        state = ViewerState._view_for(saved, "t1")

        assert state.scroll_position == 240
        assert state.expanded_spans == ["root"]
        assert state.selected_span_id == "a"

    def test_entry_uses_wire_format(self):
        assert ViewerState._saved_view_entry([], 0, "") == {
            "expandedSpans": [],
            "scrollPosition": 0,
            "selectedSpanId": None,
        }

    def test_unknown_trace_gets_default(self):
        state = ViewerState._view_for({}, "t1")

        assert state.scroll_position == 0
        assert state.expanded_spans == []

    def test_scroll_script_targets_span_list(self):
        script = ViewerState._scroll_script(240.0)

        assert f"getElementById('{SPAN_LIST_ID}')" in script
        assert "scrollTop = 240" in script


class TestSearchView:
    """Tests for _search_view and _step_match."""

    def test_reveals_first_match(self, span_dicts):
        view = ViewerState._search_view(span_dicts, "typescript", [], "")

        assert view["results"] == ["a1"]
        assert view["index"] == 0
        assert view["expanded"] == ["root", "a"]
        assert view["selected"] == "a1"

    def test_keeps_restored_selection(self, span_dicts):
        view = ViewerState._search_view(span_dicts, "typescript", ["root"], "b", reveal=False)

        assert view["results"] == ["a1"]
        assert view["expanded"] == ["root"]
        assert view["selected"] == "b"

    def test_blank_query(self, span_dicts):
        view = ViewerState._search_view(span_dicts, "   ", ["root"], "b")

        assert view["results"] == []
        assert view["index"] == -1
        assert view["selected"] == "b"

    @pytest.mark.parametrize("index, forward, expected", [
        (0, True, 1),
        (2, True, 0),
        (0, False, 2),
        (1, False, 0),
    ])
    def test_step_match_wraps(self, index, forward, expected):
        assert ViewerState._step_match(["a", "b", "c"], index, forward) == expected
