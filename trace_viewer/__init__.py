"""Trace Viewer - explore agent traces as searchable span trees"""

from .api import TraceApiClient
from .cache import TraceCache
from .errors import ErrorCode, TraceApiError
from .flatten import FlatSpanItem, flatten_visible_nodes
from .models import Span, Trace, WebviewState
from .panel import PanelRegistry, PanelStatus, TraceViewerPanel
from .repository import CancellationToken, TraceRepository
from .search import search_spans
from .session import TraceSession
from .tree import SpanTreeNode, build_tree
from .view import TraceView

__all__ = [
    "TraceApiClient",
    "TraceCache",
    "ErrorCode",
    "TraceApiError",
    "FlatSpanItem",
    "flatten_visible_nodes",
    "Span",
    "Trace",
    "WebviewState",
    "PanelRegistry",
    "PanelStatus",
    "TraceViewerPanel",
    "CancellationToken",
    "TraceRepository",
    "search_spans",
    "TraceSession",
    "SpanTreeNode",
    "build_tree",
    "TraceView",
]

__version__ = "0.1.0"
