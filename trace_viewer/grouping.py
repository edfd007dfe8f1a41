"""Validation and grouping of raw span pages into Trace objects.

The trace server lists spans, not traces: one page may contain spans from many
traces, interleaved. This module is the ingestion boundary. Anything that does
not validate as a Span is rejected here, so downstream tree code only ever sees
well-typed data.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from .errors import ErrorCode, TraceApiError
from .models import PaginationInfo, Span, Trace, TracesPage

logger = logging.getLogger(__name__)


def validate_spans(raw_spans: Any, context: str = "response") -> List[Span]:
    """Validate a list of raw span records.

    Parameters
    ----------
    raw_spans : Any
        Value of the `spans` key of an API response.
    context : str
        Short description used in error messages (e.g. "trace abc").

    Returns
    -------
    List[Span]
        Validated spans, in input order.

    Raises
    ------
    TraceApiError
        With code INVALID_DATA if `raw_spans` is not a list or any record is
        missing a required field.
    """
    if not isinstance(raw_spans, list):
        raise TraceApiError(
            f"Invalid span data in {context} - expected array",
            ErrorCode.INVALID_DATA,
            details=raw_spans,
        )

    spans: List[Span] = []
    for raw in raw_spans:
        if isinstance(raw, Span):
            spans.append(raw)
            continue
        try:
            spans.append(Span.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Rejected invalid span in {context}: {e.error_count()} error(s)")
            raise TraceApiError(
                f"Invalid span object in {context}",
                ErrorCode.INVALID_DATA,
                details=raw,
            ) from e
    return spans


def group_spans_into_traces(spans: Sequence[Span]) -> List[Trace]:
    """Group spans by trace_id to create Trace objects.

    Traces appear in first-occurrence order of their trace_id; spans keep their
    relative input order within a trace.
    """
    grouped: Dict[str, List[Span]] = {}
    for span in spans:
        grouped.setdefault(span.trace_id, []).append(span)

    return [
        Trace(trace_id=trace_id, spans=trace_spans)
        for trace_id, trace_spans in grouped.items()
    ]


def default_pagination(
    spans: Sequence[Span],
    page: int = 0,
    per_page: int = 50,
) -> PaginationInfo:
    """Conservative pagination used when the server sends none."""
    return PaginationInfo(
        total=len(spans),
        page=page,
        per_page=per_page,
        has_more=False,
    )


def build_traces_page(
    response: Any,
    page: int = 0,
    per_page: int = 50,
) -> TracesPage:
    """Turn one list-traces response into a page of grouped traces.

    Parameters
    ----------
    response : Any
        Decoded JSON body, expected shape `{"spans": [...], "pagination": {...}}`.
    page : int
        Requested page, used for the default pagination.
    per_page : int
        Requested page size, used for the default pagination.

    Returns
    -------
    TracesPage
        Grouped traces with merged pagination metadata.
    """
    if not isinstance(response, Mapping):
        raise TraceApiError(
            "Invalid trace data format - expected object",
            ErrorCode.INVALID_DATA,
            details=response,
        )

    spans = validate_spans(response.get("spans") or [], context="response")

    raw_pagination: Optional[Any] = response.get("pagination")
    if raw_pagination:
        try:
            pagination = PaginationInfo.model_validate(raw_pagination)
        except ValidationError as e:
            raise TraceApiError(
                "Invalid pagination object in response",
                ErrorCode.INVALID_DATA,
                details=raw_pagination,
            ) from e
    else:
        pagination = default_pagination(spans, page, per_page)

    return TracesPage(
        traces=group_spans_into_traces(spans),
        pagination=pagination,
    )


def build_trace(trace_id: str, response: Any) -> Trace:
    """Turn a get-trace response into a single Trace.

    Raises
    ------
    TraceApiError
        With code INVALID_DATA if the response is not an object with a
        `spans` array, or contains an invalid span.
    """
    if not isinstance(response, Mapping):
        raise TraceApiError(
            f"Trace {trace_id} not found or invalid response",
            ErrorCode.INVALID_DATA,
        )

    if not isinstance(response.get("spans"), list):
        raise TraceApiError(
            f"Invalid trace structure for {trace_id} - missing spans",
            ErrorCode.INVALID_DATA,
            details=response,
        )

    spans = validate_spans(response["spans"], context=f"trace {trace_id}")
    return Trace(trace_id=trace_id, spans=spans)
