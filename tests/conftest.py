"""Pytest configuration and fixtures for trace viewer tests."""

from typing import Any, Dict, Optional

import pytest
import respx

from trace_viewer.models import Span, Trace

ENDPOINT = "http://localhost:4111"
TRACES_URL = f"{ENDPOINT}/api/observability/traces"


@pytest.fixture
def respx_mock():
    """Fixture that provides a respx mock router.

    Configuration:
        - assert_all_mocked=False: Allows unmocked requests to pass through.
        - assert_all_called=True: Ensures every mock defined is actually used.
          Catches typos in mock URLs and dead mocks.
    """
    with respx.mock(assert_all_mocked=False, assert_all_called=True) as mock:
        yield mock


def raw_span(
    span_id: str,
    trace_id: str = "trace-1",
    parent_span_id: Optional[str] = None,
    name: Optional[str] = None,
    span_type: str = "custom",
    started_at: Optional[str] = "2025-01-01T00:00:00Z",
    **extra: Any,
) -> Dict[str, Any]:
    """Span record as the trace server sends it (camelCase)."""
    data: Dict[str, Any] = {
        "traceId": trace_id,
        "spanId": span_id,
        "parentSpanId": parent_span_id,
        "name": name or span_id,
        "spanType": span_type,
        "startedAt": started_at,
    }
    data.update(extra)
    return data


def make_span(span_id: str, **kwargs: Any) -> Span:
    return Span.model_validate(raw_span(span_id, **kwargs))


def make_trace(trace_id: str = "trace-1", *span_specs: Dict[str, Any]) -> Trace:
    """Trace whose spans are built from dicts of make_span keyword arguments."""
    spans = [make_span(trace_id=trace_id, **spec) for spec in span_specs]
    return Trace(trace_id=trace_id, spans=spans)


@pytest.fixture
def nested_trace() -> Trace:
    """root -> (a -> a1, b), with a1 holding nested input."""
    return make_trace(
        "trace-1",
        {"span_id": "root", "started_at": "2025-01-01T00:00:00Z", "span_type": "agent_run"},
        {"span_id": "a", "parent_span_id": "root", "started_at": "2025-01-01T00:00:01Z"},
        {"span_id": "b", "parent_span_id": "root", "started_at": "2025-01-01T00:00:02Z"},
        {
            "span_id": "a1",
            "parent_span_id": "a",
            "started_at": "2025-01-01T00:00:03Z",
            "span_type": "llm_call",
            "input": {"messages": [{"role": "user", "content": "Tell me about TypeScript"}]},
        },
    )
