"""Full-text search across spans and helpers for highlighting the results.

Matching is a case-insensitive substring search over a span's name, type,
input, output and attributes. Structured values are serialized to compact JSON
first, so a query can find a value nested anywhere inside a tool input or a
model output.
"""

import json
import logging
import re
from typing import Any, Iterable, List, Optional, Sequence, Set, Tuple

from .models import Span
from .tree import SpanTreeNode

logger = logging.getLogger(__name__)

_REGEX_SPECIAL_CHARS = re.compile(r"[.*+?^${}()|\[\]\\]")


def search_spans(query: str, spans: Sequence[Span]) -> List[str]:
    """Search spans for matching query text.

    Parameters
    ----------
    query : str
        Search query. Surrounding whitespace is ignored.
    spans : Sequence[Span]
        Flat span array of the loaded trace.

    Returns
    -------
    List[str]
        span_id of every matching span, in input order. An empty or
        whitespace-only query matches nothing.
    """
    needle = (query or "").strip().lower()
    if not needle:
        return []

    return [span.span_id for span in spans if _span_matches(span, needle)]


def _span_matches(span: Span, needle: str) -> bool:
    """Check fields in order, stopping at the first match."""
    if span.name and needle in span.name.lower():
        return True
    if span.span_type and needle in span.span_type.lower():
        return True
    if span.input is not None and _stringify_and_search(span.input, needle):
        return True
    if span.output is not None and _stringify_and_search(span.output, needle):
        return True
    if span.attributes and _stringify_and_search(span.attributes, needle):
        return True
    return False


def _stringify_and_search(value: Any, needle: str) -> bool:
    if isinstance(value, str):
        return needle in value.lower()
    try:
        text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    except (TypeError, ValueError, RecursionError):
        # e.g. circular references; treated as "no match" for this field
        return False
    return needle in text.lower()


def create_results_set(results: Iterable[str]) -> Set[str]:
    """Create a set from search results for O(1) membership tests."""
    return set(results)


def is_span_match(span_id: str, results_set: Set[str]) -> bool:
    return span_id in results_set


def count_hidden_matches(
    children: Sequence[SpanTreeNode],
    search_results: Iterable[str],
) -> int:
    """Count search matches hidden inside a collapsed node.

    When a node is collapsed all of its descendants are hidden; this counts how
    many of them match the search, for a "N hidden matches" badge.

    Parameters
    ----------
    children : Sequence[SpanTreeNode]
        Direct children of the collapsed node.
    search_results : Iterable[str]
        Matching span ids; duplicates are counted once.

    Returns
    -------
    int
        Number of distinct matching spans anywhere in the subtrees.
    """
    if not children:
        return 0
    results_set = search_results if isinstance(search_results, (set, frozenset)) else set(search_results)
    if not results_set:
        return 0

    counted: Set[str] = set()
    stack = list(children)
    while stack:
        node = stack.pop()
        if node.span_id in results_set:
            counted.add(node.span_id)
        stack.extend(node.children)
    return len(counted)


def escape_regex_chars(text: str) -> str:
    """Escape special regex characters so text can be embedded in a pattern."""
    return _REGEX_SPECIAL_CHARS.sub(lambda m: "\\" + m.group(0), text)


def split_highlights(text: str, query: str) -> List[Tuple[str, bool]]:
    """Split text into (segment, is_match) pairs for rendering highlights.

    Examples
    --------
        >>> split_highlights("User Authentication", "auth")
        [('User ', False), ('Auth', True), ('entication', False)]
    """
    needle = (query or "").strip()
    if not text:
        return []
    if not needle:
        return [(text, False)]

    pattern = re.compile(escape_regex_chars(needle), re.IGNORECASE)
    segments: List[Tuple[str, bool]] = []
    position = 0
    for match in pattern.finditer(text):
        if match.start() > position:
            segments.append((text[position:match.start()], False))
        segments.append((match.group(0), True))
        position = match.end()
    if position < len(text):
        segments.append((text[position:], False))
    return segments


class SearchState:
    """Search query, results, and the cursor used to step through them.

    `current_index` is -1 whenever there are no results.
    """

    def __init__(self):
        self.query: str = ""
        self.results: List[str] = []
        self.current_index: int = -1

    def set_query(self, query: str) -> None:
        self.query = query

    def set_results(self, results: List[str]) -> None:
        """Set the search results and reset the cursor to the first one."""
        self.results = list(results)
        self.current_index = 0 if self.results else -1

    def clear(self) -> None:
        self.query = ""
        self.results = []
        self.current_index = -1

    @property
    def has_results(self) -> bool:
        return len(self.results) > 0

    @property
    def result_count(self) -> int:
        return len(self.results)

    def next_result(self) -> bool:
        """Move to the next result, wrapping around.

        Returns
        -------
        bool
            True if the cursor wrapped back to the first result.
        """
        if not self.results:
            return False
        following = self.current_index + 1
        if following >= len(self.results):
            self.current_index = 0
            return True
        self.current_index = following
        return False

    def prev_result(self) -> bool:
        """Move to the previous result, wrapping around.

        Returns
        -------
        bool
            True if the cursor wrapped to the last result.
        """
        if not self.results:
            return False
        previous = self.current_index - 1
        if previous < 0:
            self.current_index = len(self.results) - 1
            return True
        self.current_index = previous
        return False

    def current_span_id(self) -> Optional[str]:
        """Span id under the cursor, or None."""
        if 0 <= self.current_index < len(self.results):
            return self.results[self.current_index]
        return None
