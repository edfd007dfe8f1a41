"""Data models for traces, spans and persisted view state.

The trace server speaks camelCase JSON (`spanId`, `parentSpanId`, ...), while
Python code uses snake_case attributes. All models accept both spellings on
input (`populate_by_name=True`) and dump camelCase with `by_alias=True`.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


Timestamp = Union[datetime, str]


def parse_timestamp(value: Any) -> Any:
    """Parse an ISO timestamp string to datetime, keeping unparseable input as-is.

    Input like "2025-12-13T01:04:27Z" is rewritten to "+00:00" since the trailing Z
    is shorthand for UTC. Invalid strings are returned untouched so that one bad
    span never fails a whole page; ordering code treats them as invalid.
    """
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value


class Span(BaseModel):
    """A single named, timed unit of work within a trace.

    Immutable once received from the fetch layer. Unknown keys sent by the
    server (runId, sessionId, ...) are preserved so that exported traces
    round-trip without loss.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )

    trace_id: str
    span_id: str
    parent_span_id: Optional[str] = None
    name: str
    span_type: str  # 'agent_run', 'processor_run', 'tool_streaming', 'llm_call', 'custom', ...
    started_at: Optional[Timestamp] = None
    ended_at: Optional[Timestamp] = None
    input: Any = None
    output: Any = None
    error: Any = None
    attributes: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    status: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("started_at", "ended_at", mode="before")
    @classmethod
    def parse_datetime(cls, v):
        """Parse datetime from string if needed."""
        return parse_timestamp(v)


class TraceBody(BaseModel):
    """Legacy nested shape: `{"trace": {"traceId": ..., "spans": [...]}}`."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    trace_id: str
    spans: List[Span] = Field(default_factory=list)


class Trace(BaseModel):
    """All spans sharing one trace identifier.

    Spans are either direct (`spans`) or nested under `trace.spans` for
    exported legacy files. Use `get_spans()` rather than reading either field.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    trace_id: str
    exported_at: Optional[str] = None
    base_url: Optional[str] = None
    trace: Optional[TraceBody] = None
    spans: Optional[List[Span]] = None

    def get_spans(self) -> List[Span]:
        """Extract spans array (handles both direct and nested structures)."""
        if self.spans is not None:
            return self.spans
        if self.trace is not None:
            return self.trace.spans
        return []

    @property
    def span_count(self) -> int:
        return len(self.get_spans())

    @property
    def root_span(self) -> Optional[Span]:
        """First span without a parent, if any."""
        for span in self.get_spans():
            if not span.parent_span_id:
                return span
        return None

    @property
    def status(self) -> str:
        root = self.root_span
        return (root.status if root and root.status else None) or "unknown"

    @property
    def timestamp(self) -> Optional[Timestamp]:
        """Root span start time, falling back to the export time."""
        root = self.root_span
        if root and root.started_at:
            return root.started_at
        return self.exported_at

    def looks_complete(self) -> bool:
        """Heuristic: list pages often carry only the root span of a trace."""
        return self.span_count > 1


class PaginationInfo(BaseModel):
    """Pagination information returned with each page of spans."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int = 0
    page: int = 0
    per_page: Union[int, bool] = 50  # the server sends `false` when paging is disabled
    has_more: bool = False


class TracesPage(BaseModel):
    """One page of traces, grouped from a page of spans."""

    traces: List[Trace] = Field(default_factory=list)
    pagination: PaginationInfo = Field(default_factory=PaginationInfo)


class WebviewState(BaseModel):
    """Per-trace view state persisted across view reloads and navigation.

    Wire format (stable): `{"expandedSpans": [...], "scrollPosition": 0, "selectedSpanId": null}`.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    expanded_spans: List[str] = Field(default_factory=list)
    scroll_position: float = Field(default=0, ge=0)
    selected_span_id: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire dict."""
        return self.model_dump(mode="json", by_alias=True)


def default_webview_state() -> WebviewState:
    """Default state for a newly opened trace view."""
    return WebviewState()
