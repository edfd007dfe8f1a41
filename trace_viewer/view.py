"""View-side controller: everything a rendered trace view keeps in memory.

A TraceView receives host messages, owns the UI state of one trace (expansion,
selection, scroll, search) and pushes that state back to the host through a
StateSynchronizer so it survives a reload.
"""

import logging
from typing import Any, Callable, Dict, KeysView, List, Optional, Set

from . import config
from .flatten import FlatSpanItem, flatten_visible_nodes
from .messages import (
    ErrorMessage,
    LoadingMessage,
    LoadTraceMessage,
    ReadyMessage,
    RestoreStateMessage,
    RetryMessage,
    ShowWarningMessage,
    TextPayload,
    dump_message,
    parse_host_message,
)
from .models import Span, Trace, WebviewState
from .search import SearchState, count_hidden_matches, create_results_set, search_spans
from .state_sync import StateSynchronizer
from .timing import log_performance
from .transport import MessageChannel
from .tree import SpanTreeNode, build_tree, collect_expandable_ids, find_path

logger = logging.getLogger(__name__)


class TraceView:
    """In-memory model of one trace view.

    Parameters
    ----------
    send : Callable[[Dict[str, Any]], Any]
        Posts a wire message to the host.
    debounce_delay : float
        Quiet period before a debounced state save is sent.
    save_interval : float
        Period of the background state save.
    """

    def __init__(
        self,
        send: Callable[[Dict[str, Any]], Any],
        debounce_delay: float = config.SAVE_DEBOUNCE_SECONDS,
        save_interval: float = config.SAVE_INTERVAL_SECONDS,
    ):
        self._send = send
        self.trace: Optional[Trace] = None
        self._roots: Optional[List[SpanTreeNode]] = None
        # dict keeps expansion order stable in saved state
        self._expanded: Dict[str, None] = {}
        self.scroll_position: float = 0
        self.selected_span_id: Optional[str] = None
        self.focused_span_id: Optional[str] = None
        self.loading = True
        self.loading_message = "Loading trace..."
        self.error_message: Optional[str] = None
        self.search_state = SearchState()
        self.sync = StateSynchronizer(
            self.get_state,
            send,
            debounce_delay=debounce_delay,
            save_interval=save_interval,
        )

    # -------------------------------------------------------------------------
    # Derived data
    # -------------------------------------------------------------------------

    @property
    def spans(self) -> List[Span]:
        return self.trace.get_spans() if self.trace is not None else []

    @property
    def roots(self) -> List[SpanTreeNode]:
        """Span forest of the loaded trace, built on first access."""
        if self._roots is None:
            spans = self.spans
            self._roots = log_performance(
                f"Build tree ({len(spans)} spans)", lambda: build_tree(spans)
            )
        return self._roots

    @property
    def expanded_spans(self) -> KeysView:
        return self._expanded.keys()

    def is_expanded(self, span_id: str) -> bool:
        return span_id in self._expanded

    def get_visible_rows(self) -> List[FlatSpanItem]:
        """Rows to render, in display order."""
        if self.trace is None:
            return []
        roots = self.roots
        return log_performance(
            "Flatten tree", lambda: flatten_visible_nodes(roots, self._expanded.keys())
        )

    def get_match_set(self) -> Set[str]:
        return create_results_set(self.search_state.results)

    def hidden_match_count(self, item: FlatSpanItem) -> int:
        """Matches hidden under a collapsed row; 0 for expanded rows and leaves."""
        if item.is_expanded or not item.has_children:
            return 0
        return count_hidden_matches(item.node.children, self.get_match_set())

    # -------------------------------------------------------------------------
    # Host messages
    # -------------------------------------------------------------------------

    def handle_message(self, raw: Any) -> None:
        """Apply one message received from the host; unusable messages are ignored."""
        message = parse_host_message(raw)
        if message is None:
            return

        if isinstance(message, LoadTraceMessage):
            self._load_trace(message.payload.trace, message.payload.selected_span_id)
        elif isinstance(message, RestoreStateMessage):
            self.restore_state(message.payload)
        elif isinstance(message, LoadingMessage):
            self.loading = True
            self.loading_message = message.payload.message
            self.error_message = None
        elif isinstance(message, ErrorMessage):
            self.loading = False
            self.error_message = message.payload.message

    def _load_trace(self, trace: Trace, selected_span_id: Optional[str]) -> None:
        self.trace = trace
        self._roots = None
        self.loading = False
        self.error_message = None

        if self.search_state.query:
            self.search_state.set_results(search_spans(self.search_state.query, self.spans))

        if selected_span_id and not self.reveal_span(selected_span_id):
            logger.debug(f"Selected span {selected_span_id} not found in trace {trace.trace_id}")

    async def serve(self, inbox: MessageChannel) -> None:
        """Apply host messages until the channel closes."""
        async for raw in inbox:
            self.handle_message(raw)

    # -------------------------------------------------------------------------
    # View -> host
    # -------------------------------------------------------------------------

    def ready(self) -> None:
        """Announce the view is ready and start the background state save."""
        self.sync.start()
        self._send(dump_message(ReadyMessage()))

    def retry(self) -> None:
        self.error_message = None
        self._send(dump_message(RetryMessage()))

    def show_warning(self, message: str) -> None:
        self._send(dump_message(ShowWarningMessage(payload=TextPayload(message=message))))

    # -------------------------------------------------------------------------
    # UI state
    # -------------------------------------------------------------------------

    def toggle_expand(self, span_id: str) -> None:
        if span_id in self._expanded:
            del self._expanded[span_id]
        else:
            self._expanded[span_id] = None
        self.sync.trigger_state_save()

    def expand_all(self) -> None:
        self._expanded = dict.fromkeys(collect_expandable_ids(self.roots))
        self.sync.trigger_state_save()

    def collapse_all(self) -> None:
        self._expanded = {}
        self.sync.trigger_state_save()

    def select_span(self, span_id: Optional[str]) -> None:
        self.selected_span_id = span_id
        if span_id is not None:
            self.focused_span_id = span_id
        self.sync.trigger_state_save()

    def set_focused_span(self, span_id: Optional[str]) -> None:
        self.focused_span_id = span_id

    def set_scroll_position(self, position: float) -> None:
        self.scroll_position = max(0, position)
        self.sync.trigger_state_save()

    def reveal_span(self, span_id: str) -> bool:
        """Expand the ancestors of span_id and select it.

        Returns
        -------
        bool
            False if the span is not part of the loaded trace.
        """
        path = find_path(self.roots, span_id)
        if path is None:
            return False
        for ancestor_id in path[:-1]:
            self._expanded[ancestor_id] = None
        self.select_span(span_id)
        return True

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def search(self, query: str) -> int:
        """Run a search over the loaded trace and reveal the first match.

        Returns
        -------
        int
            Number of matching spans.
        """
        self.search_state.set_query(query)
        self.search_state.set_results(search_spans(query, self.spans))
        self._reveal_current_match()
        return self.search_state.result_count

    def next_match(self) -> bool:
        """Step to the next match; True if the cursor wrapped to the first one."""
        wrapped = self.search_state.next_result()
        self._reveal_current_match()
        return wrapped

    def prev_match(self) -> bool:
        """Step to the previous match; True if the cursor wrapped to the last one."""
        wrapped = self.search_state.prev_result()
        self._reveal_current_match()
        return wrapped

    def clear_search(self) -> None:
        self.search_state.clear()

    def _reveal_current_match(self) -> None:
        span_id = self.search_state.current_span_id()
        if span_id is not None:
            self.reveal_span(span_id)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def get_state(self) -> WebviewState:
        return WebviewState(
            expanded_spans=list(self._expanded),
            scroll_position=self.scroll_position,
            selected_span_id=self.selected_span_id,
        )

    def restore_state(self, state: WebviewState) -> None:
        self._expanded = dict.fromkeys(state.expanded_spans)
        self.scroll_position = state.scroll_position
        self.selected_span_id = state.selected_span_id

    def on_visibility_change(self, hidden: bool) -> None:
        self.sync.on_visibility_change(hidden)

    def close(self) -> None:
        """Save state one last time and stop all timers."""
        self.sync.on_before_unload()
        self.sync.stop()
