"""Reactive state for the trace viewer web app.

This module contains the Reflex state class. It wraps the trace repository
(pagination, cache, full-trace refetch) and pre-computes everything components
render: trace summaries, visible span rows with search highlights, and the
selected span details.

The state is organized into logical sections:
    - Base State Variables: trace list, open trace, view state, search
    - Data Loading Methods: async methods that go through the repository
    - Computed Vars by Component: pre-computed values for each UI component
    - Event Handlers: user interaction handlers
    - Helper Methods: pure functions, testable without a Reflex runtime

Note
----
Reflex components cannot use Python methods like `.get()`, `len()`, or f-strings
on rx.Var objects at runtime. All such operations must be pre-computed in state
as computed vars (decorated with @rx.var).
"""

import logging
from typing import Any, Dict, List, Optional

import reflex as rx
from pydantic import ValidationError

from . import config
from .api import TraceApiClient
from .flatten import flatten_visible_nodes
from .formatters import (
    PLACEHOLDER,
    format_duration,
    format_iso_timestamp,
    format_trace_timestamp,
    get_span_style,
    truncate_string,
)
from .models import Span, Trace, WebviewState
from .repository import TraceRepository
from .search import SearchState, count_hidden_matches, create_results_set, search_spans, split_highlights
from .tree import SpanTreeNode, build_tree, collect_expandable_ids, find_path

logger = logging.getLogger(__name__)

_repository: Optional[TraceRepository] = None

# DOM id of the scrollable span list, read and written by scroll scripts
SPAN_LIST_ID = "span-tree-rows"


def get_repository() -> TraceRepository:
    """Repository for the configured endpoint, created on first use."""
    global _repository
    if _repository is None:
        _repository = TraceRepository(TraceApiClient(config.get_endpoint()))
    return _repository


# =============================================================================
# VIEWER STATE
# =============================================================================

class ViewerState(rx.State):
    """Reactive state for the trace viewer.

    Attributes
    ----------
    traces : List[Dict[str, Any]]
        Summaries of the listed traces, newest first.
    has_more : bool
        Whether the server has another page of spans.
    selected_trace_id : str
        Trace currently open on the detail page.
    selected_spans : List[Dict[str, Any]]
        Spans of the open trace (snake_case dicts).
    expanded_spans : List[str]
        Span ids expanded in the tree.
    selected_span_id : str
        Span shown in the detail pane ("" for none).
    saved_views : Dict[str, Dict[str, Any]]
        Per-trace view state (wire format), restored when a trace is reopened.
    search_query : str
        Current search text.
    search_results : List[str]
        Matching span ids, in span order.
    search_index : int
        Cursor into search_results (-1 when empty).
    """

    # -------------------------------------------------------------------------
    # Base State Variables: Trace List (with pagination)
    # -------------------------------------------------------------------------

    traces: List[Dict[str, Any]] = []
    has_more: bool = False
    total: int = 0

    # -------------------------------------------------------------------------
    # Base State Variables: Open Trace
    # -------------------------------------------------------------------------

    selected_trace_id: str = ""
    selected_spans: List[Dict[str, Any]] = []

    # -------------------------------------------------------------------------
    # Base State Variables: UI State
    # -------------------------------------------------------------------------

    loading: bool = False
    loading_more: bool = False
    healthy: bool = True
    error_message: str = ""

    # -------------------------------------------------------------------------
    # Base State Variables: Span Tree View State
    # -------------------------------------------------------------------------

    expanded_spans: List[str] = []
    selected_span_id: str = ""
    scroll_position: float = 0
    saved_views: Dict[str, Dict[str, Any]] = {}

    # -------------------------------------------------------------------------
    # Base State Variables: Search
    # -------------------------------------------------------------------------

    search_query: str = ""
    search_results: List[str] = []
    search_index: int = -1

    # =========================================================================
    # DATA LOADING METHODS
    # =========================================================================

    async def check_health(self) -> None:
        """Check if the trace server is reachable and update state."""
        try:
            self.healthy = await get_repository().api_client.check_health()
        except Exception as e:
            self.healthy = False
            self.error_message = getattr(e, "message", str(e))

    async def refresh(self) -> None:
        """Reload the trace list from the first page.

        Used as on_mount handler for the index page.
        """
        self.loading = True
        try:
            await self.check_health()
            repository = get_repository()
            await repository.refresh()
            self._sync_list(repository)
        except Exception as e:
            self.traces = []
            self.has_more = False
            self.error_message = getattr(e, "message", str(e))
        finally:
            self.loading = False

    async def load_more(self) -> None:
        """Append the next page of traces."""
        self.loading_more = True
        try:
            repository = get_repository()
            await repository.load_more()
            self._sync_list(repository)
        except Exception as e:
            self.error_message = getattr(e, "message", str(e))
        finally:
            self.loading_more = False

    def _sync_list(self, repository: TraceRepository) -> None:
        self.traces = [self._summarize_trace(t) for t in repository.sorted_traces()]
        self.has_more = repository.has_more
        self.total = repository.pagination.total if repository.pagination else len(self.traces)

    async def load_trace_detail(self, trace_id: str) -> None:
        """Load a single trace with all its spans.

        The view state of the previously open trace is kept in saved_views and
        the saved state of trace_id, if any, is restored.

        Parameters
        ----------
        trace_id : str
            The unique identifier of the trace to load.
        """
        self._save_current_view()
        self.loading = True
        try:
            trace = await get_repository().get_full_trace(trace_id)
            if trace is None:
                raise LookupError("Trace not found")
            self.selected_trace_id = trace_id
            self.selected_spans = [s.model_dump(mode="json") for s in trace.get_spans()]
            self._restore_view(trace_id)
            # a restored selection wins over the first search match
            self._apply_search(reveal=not self.selected_span_id)
        except Exception as e:
            self.error_message = getattr(e, "message", None) or str(e)
        finally:
            self.loading = False

    async def load_current_trace(self):
        """Load trace detail based on current route parameters.

        Used as on_load handler for the trace detail page; scrolls the span
        list back to the saved offset once loaded.
        """
        trace_id = self.router.page.params.get("trace_id", "")
        if trace_id:
            await self.load_trace_detail(trace_id)
            return rx.call_script(self._scroll_script(self.scroll_position))

    def _save_current_view(self) -> None:
        if not self.selected_trace_id:
            return
        entry = self._saved_view_entry(self.expanded_spans, self.scroll_position, self.selected_span_id)
        self.saved_views = {**self.saved_views, self.selected_trace_id: entry}

    def _restore_view(self, trace_id: str) -> None:
        state = self._view_for(self.saved_views, trace_id)
        self.expanded_spans = list(state.expanded_spans)
        self.scroll_position = state.scroll_position
        self.selected_span_id = state.selected_span_id or ""

    # =========================================================================
    # COMPUTED VARS: Trace List Component
    # =========================================================================

    @rx.var(cache=True)
    def has_traces(self) -> bool:
        return len(self.traces) > 0

    @rx.var(cache=True)
    def trace_count_text(self) -> str:
        """Shown above the list, e.g. "12 traces"."""
        count = len(self.traces)
        return f"{count} trace{'s' if count != 1 else ''}"

    # =========================================================================
    # COMPUTED VARS: Trace Detail Component
    # =========================================================================

    @rx.var(cache=True)
    def has_selected_spans(self) -> bool:
        return len(self.selected_spans) > 0

    @rx.var(cache=True)
    def trace_span_count(self) -> int:
        return len(self.selected_spans)

    @rx.var(cache=True)
    def trace_title(self) -> str:
        """Root span name of the open trace, or its id."""
        for span in self.selected_spans:
            if not span.get("parent_span_id"):
                return span.get("name") or self.selected_trace_id
        return self.selected_trace_id or "Loading..."

    @rx.var(cache=True)
    def visible_rows(self) -> List[Dict[str, Any]]:
        """Visible span rows with styling, highlights and hidden-match counts."""
        results = self.search_results
        index = self.search_index
        current = results[index] if 0 <= index < len(results) else ""
        return self._build_rows(
            self.selected_spans,
            self.expanded_spans,
            results,
            current,
            self.selected_span_id,
            self.search_query,
        )

    @rx.var(cache=True)
    def selected_span(self) -> Dict[str, Any]:
        """Detail pane content for the selected span (empty dict if none)."""
        for span in self.selected_spans:
            if span.get("span_id") == self.selected_span_id:
                return self._span_detail(span)
        return {}

    @rx.var(cache=True)
    def has_selected_span(self) -> bool:
        return bool(self.selected_span_id)

    # =========================================================================
    # COMPUTED VARS: Search Bar Component
    # =========================================================================

    @rx.var(cache=True)
    def has_search_results(self) -> bool:
        return len(self.search_results) > 0

    @rx.var(cache=True)
    def search_position_text(self) -> str:
        """E.g. "2 of 5", "No results", or "" when not searching."""
        if not self.search_query.strip():
            return ""
        if not self.search_results:
            return "No results"
        return f"{self.search_index + 1} of {len(self.search_results)}"

    # =========================================================================
    # COMPUTED VARS: Navbar Component
    # =========================================================================

    @rx.var(cache=True)
    def health_status_text(self) -> str:
        return "Connected" if self.healthy else "Offline"

    @rx.var(cache=True)
    def health_status_color(self) -> str:
        return "green" if self.healthy else "red"

    @rx.var
    def current_trace_id(self) -> str:
        """Get trace_id from current route parameters."""
        return self.router.page.params.get("trace_id", "")

    # =========================================================================
    # EVENT HANDLERS
    # =========================================================================

    def toggle_span(self, span_id: str) -> None:
        """Toggle expansion state of a span in the tree."""
        if span_id in self.expanded_spans:
            self.expanded_spans = [s for s in self.expanded_spans if s != span_id]
        else:
            self.expanded_spans = self.expanded_spans + [span_id]

    def expand_all_spans(self) -> None:
        """Expand every span that has children."""
        self.expanded_spans = collect_expandable_ids(self._tree(self.selected_spans))

    def collapse_all_spans(self) -> None:
        self.expanded_spans = []

    def select_span(self, span_id: str) -> None:
        self.selected_span_id = span_id

    def set_scroll_position(self, position: float) -> None:
        self.scroll_position = max(0.0, float(position or 0))

    def capture_scroll_position(self):
        """Read the span list's scroll offset in the browser and store it."""
        return rx.call_script(
            f"document.getElementById('{SPAN_LIST_ID}')?.scrollTop ?? 0",
            callback=ViewerState.set_scroll_position,
        )

    def set_search_query(self, query: str) -> None:
        """Search the open trace and reveal the first match."""
        self.search_query = query
        self._apply_search()

    def next_match(self) -> None:
        if not self.search_results:
            return
        self.search_index = self._step_match(self.search_results, self.search_index, forward=True)
        self._reveal(self._current_match())

    def prev_match(self) -> None:
        if not self.search_results:
            return
        self.search_index = self._step_match(self.search_results, self.search_index, forward=False)
        self._reveal(self._current_match())

    def clear_search(self) -> None:
        self.search_query = ""
        self.search_results = []
        self.search_index = -1

    def clear_error(self) -> None:
        """Clear the current error message."""
        self.error_message = ""

    def clear_selection(self) -> None:
        """Close the open trace, keeping its view state for later."""
        self._save_current_view()
        self.selected_trace_id = ""
        self.selected_spans = []
        self.expanded_spans = []
        self.selected_span_id = ""
        self.scroll_position = 0
        self.clear_search()

    def _apply_search(self, reveal: bool = True) -> None:
        view = self._search_view(
            self.selected_spans,
            self.search_query,
            self.expanded_spans,
            self.selected_span_id,
            reveal,
        )
        self.search_results = view["results"]
        self.search_index = view["index"]
        self.expanded_spans = view["expanded"]
        self.selected_span_id = view["selected"]

    def _current_match(self) -> str:
        if 0 <= self.search_index < len(self.search_results):
            return self.search_results[self.search_index]
        return ""

    def _reveal(self, span_id: str) -> None:
        """Expand the ancestors of span_id and select it."""
        if not span_id:
            return
        self.expanded_spans = self._expand_ancestors(self.selected_spans, self.expanded_spans, span_id)
        self.selected_span_id = span_id

    # =========================================================================
    # HELPER METHODS (Private)
    # =========================================================================

    @staticmethod
    def _spans(span_dicts: List[Dict[str, Any]]) -> List[Span]:
        """Rebuild Span models from state dicts, skipping any that no longer validate."""
        spans: List[Span] = []
        for data in span_dicts:
            try:
                spans.append(Span.model_validate(data))
            except ValidationError:
                logger.warning(f"Skipping invalid span in state: {data.get('span_id')}")
        return spans

    @staticmethod
    def _tree(span_dicts: List[Dict[str, Any]]) -> List[SpanTreeNode]:
        return build_tree(ViewerState._spans(span_dicts))

    @staticmethod
    def _expand_ancestors(
        span_dicts: List[Dict[str, Any]],
        expanded: List[str],
        span_id: str,
    ) -> List[str]:
        """Expanded ids plus every ancestor of span_id, order preserved."""
        path = find_path(ViewerState._tree(span_dicts), span_id)
        if not path:
            return list(expanded)
        result = list(expanded)
        for ancestor_id in path[:-1]:
            if ancestor_id not in result:
                result.append(ancestor_id)
        return result

    @staticmethod
    def _search_view(
        span_dicts: List[Dict[str, Any]],
        query: str,
        expanded: List[str],
        selected_span_id: str,
        reveal: bool = True,
    ) -> Dict[str, Any]:
        """Search results and cursor, plus the expansion and selection that follow.

        With reveal, the first match is selected and its ancestors expanded;
        otherwise expansion and selection are returned unchanged.
        """
        search = SearchState()
        search.set_query(query)
        search.set_results(search_spans(query, ViewerState._spans(span_dicts)))
        expanded = list(expanded)
        current = search.current_span_id()
        if reveal and current is not None:
            expanded = ViewerState._expand_ancestors(span_dicts, expanded, current)
            selected_span_id = current
        return {
            "results": search.results,
            "index": search.current_index,
            "expanded": expanded,
            "selected": selected_span_id,
        }

    @staticmethod
    def _step_match(results: List[str], index: int, forward: bool) -> int:
        """Cursor after one step through results, wrapping at either end."""
        search = SearchState()
        search.results = list(results)
        search.current_index = index
        if forward:
            search.next_result()
        else:
            search.prev_result()
        return search.current_index

    @staticmethod
    def _saved_view_entry(expanded: List[str], scroll_position: float, selected_span_id: str) -> Dict[str, Any]:
        """Wire-format view state kept in saved_views."""
        return WebviewState(
            expanded_spans=list(expanded),
            scroll_position=max(0.0, scroll_position),
            selected_span_id=selected_span_id or None,
        ).to_wire()

    @staticmethod
    def _view_for(saved_views: Dict[str, Dict[str, Any]], trace_id: str) -> WebviewState:
        """Saved view state of trace_id, or the default for a trace never opened."""
        saved = saved_views.get(trace_id)
        return WebviewState.model_validate(saved) if saved else WebviewState()

    @staticmethod
    def _scroll_script(position: float) -> str:
        """Script that scrolls the span list to position once it has rendered."""
        return (
            f"requestAnimationFrame(() => {{ const el = document.getElementById('{SPAN_LIST_ID}'); "
            f"if (el) el.scrollTop = {int(position)}; }})"
        )

    @staticmethod
    def _build_rows(
        span_dicts: List[Dict[str, Any]],
        expanded: List[str],
        search_results: List[str],
        current_match: str,
        selected_span_id: str,
        query: str,
    ) -> List[Dict[str, Any]]:
        """Flatten the span tree into render-ready row dicts.

        Each row carries:
            - span_id, name, span_type, status, depth
            - margin_left_style: indentation CSS
            - style_color, style_bg, style_icon, border_left_style
            - duration_formatted
            - has_children, is_expanded, is_selected, is_match, is_current_match
            - hidden_matches: matches inside a collapsed subtree
            - name_segments: [{"text": ..., "match": bool}] for highlighting
        """
        if not span_dicts:
            return []

        roots = ViewerState._tree(span_dicts)
        matches = create_results_set(search_results)
        rows: List[Dict[str, Any]] = []

        for item in flatten_visible_nodes(roots, set(expanded)):
            node = item.node
            style = get_span_style(node.span_type)
            hidden = 0
            if item.has_children and not item.is_expanded:
                hidden = count_hidden_matches(node.children, matches)

            rows.append({
                "span_id": node.span_id,
                "name": node.name,
                "span_type": node.span_type,
                "status": node.status or "",
                "depth": item.depth,
                "margin_left_style": f"calc({item.depth} * 1.25rem)" if item.depth > 0 else "0",
                "style_color": style["color"],
                "style_bg": style["bg"],
                "style_icon": style["icon"],
                "border_left_style": f"3px solid {style['color']}",
                "duration_formatted": format_duration(node.started_at, node.ended_at),
                "has_children": item.has_children,
                "is_expanded": item.is_expanded,
                "is_selected": node.span_id == selected_span_id,
                "is_match": node.span_id in matches,
                "is_current_match": node.span_id == current_match,
                "hidden_matches": hidden,
                "has_hidden_matches": hidden > 0,
                "has_error": node.original_span.error is not None,
                "name_segments": [
                    {"text": text, "match": is_match}
                    for text, is_match in split_highlights(node.name, query)
                ],
            })
        return rows

    @staticmethod
    def _span_detail(span: Dict[str, Any]) -> Dict[str, Any]:
        """Pre-formatted values for the span detail pane."""
        return {
            **span,
            "duration_formatted": format_duration(span.get("started_at"), span.get("ended_at")),
            "started_at_formatted": format_iso_timestamp(span.get("started_at")),
            "ended_at_formatted": format_iso_timestamp(span.get("ended_at")),
            "has_input": span.get("input") is not None,
            "has_output": span.get("output") is not None,
            "has_error": span.get("error") is not None,
            "has_attributes": bool(span.get("attributes")),
            "has_metadata": bool(span.get("metadata")),
        }

    @staticmethod
    def _summarize_trace(trace: Trace) -> Dict[str, Any]:
        """Trace list row values."""
        root = trace.root_span
        timestamp = trace.timestamp
        status = trace.status
        name = root.name if root is not None else trace.trace_id
        span_count = trace.span_count
        return {
            "trace_id": trace.trace_id,
            "short_id": trace.trace_id[:8],
            "name": truncate_string(name),
            "status": status,
            "has_error": status == "error",
            "span_count": span_count,
            "span_count_display": f"{span_count} span{'s' if span_count != 1 else ''}",
            "timestamp_display": format_trace_timestamp(timestamp) if timestamp else PLACEHOLDER,
            "timestamp_iso": format_iso_timestamp(timestamp) if timestamp else "",
            "detail_url": f"/trace/{trace.trace_id}",
        }
