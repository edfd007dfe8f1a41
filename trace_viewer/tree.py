"""Span tree builder.

Converts the flat span array of one trace into a forest of SpanTreeNodes based
on parent_span_id. Spans whose parent is missing are kept as extra roots rather
than dropped. All traversals use an explicit stack, since agent traces can nest
deeper than is comfortable for recursion.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from .models import Span, Timestamp


@dataclass(eq=False)
class SpanTreeNode:
    """A span in the hierarchical tree, with its children and depth.

    Nodes are rebuilt on every materialization and never patched afterwards.
    """

    span_id: str
    parent_span_id: Optional[str]
    name: str
    span_type: str
    started_at: Optional[Timestamp]
    ended_at: Optional[Timestamp]
    input: Any
    output: Any
    attributes: Optional[Dict[str, Any]]
    status: Optional[str]
    original_span: Span
    children: List["SpanTreeNode"] = field(default_factory=list)
    depth: int = 0

    @classmethod
    def from_span(cls, span: Span) -> "SpanTreeNode":
        return cls(
            span_id=span.span_id,
            parent_span_id=span.parent_span_id,
            name=span.name,
            span_type=span.span_type,
            started_at=span.started_at,
            ended_at=span.ended_at,
            input=span.input,
            output=span.output,
            attributes=span.attributes,
            status=span.status,
            original_span=span,
        )

    @property
    def has_children(self) -> bool:
        return len(self.children) > 0


def start_time_key(node: SpanTreeNode) -> Tuple[int, float]:
    """Sort key for sibling ordering.

    Valid timestamps sort ascending; missing or unparseable ones sort after all
    valid ones and keep their relative order (the sort is stable).
    """
    value = node.started_at
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (0, value.timestamp())
    return (1, 0.0)


def build_tree(spans: Optional[Sequence[Span]]) -> List[SpanTreeNode]:
    """Build a hierarchical forest from a flat array of spans.

    Parameters
    ----------
    spans : Optional[Sequence[Span]]
        All spans of a single trace, in any order.

    Returns
    -------
    List[SpanTreeNode]
        Root nodes sorted by start time, each with nested, sorted children.

    Notes
    -----
    - A span whose parent_span_id is null, unknown, or equal to its own
      span_id becomes a root.
    - Spans caught in a parent cycle (a -> b -> a) are unreachable from any
      root; the cycle member that comes first in input order is promoted to
      a root, which breaks the cycle without dropping any span.
    - A repeated span_id replaces the earlier record in place.
    """
    if not spans:
        return []

    # First pass: node map for O(1) parent lookups
    node_map: Dict[str, SpanTreeNode] = {}
    for span in spans:
        node_map[span.span_id] = SpanTreeNode.from_span(span)

    # Second pass: link children to parents and identify roots
    roots: List[SpanTreeNode] = []
    parents: Dict[str, SpanTreeNode] = {}
    for node in node_map.values():
        parent_id = node.parent_span_id
        if parent_id and parent_id != node.span_id and parent_id in node_map:
            parent = node_map[parent_id]
            parent.children.append(node)
            parents[node.span_id] = parent
        else:
            roots.append(node)

    reached = _assign_depths(roots, set())
    if len(reached) < len(node_map):
        order = {span_id: index for index, span_id in enumerate(node_map)}
        for node in node_map.values():
            if node.span_id in reached:
                continue
            member = _earliest_cycle_member(node, parents, order)
            parents.pop(member.span_id).children.remove(member)
            roots.append(member)
            _assign_depths([member], reached)

    _sort_by_start_time(roots)
    return roots


def _earliest_cycle_member(
    node: SpanTreeNode,
    parents: Dict[str, SpanTreeNode],
    order: Dict[str, int],
) -> SpanTreeNode:
    """Walk up from an unreachable node to its parent cycle; pick the member seen first in input."""
    seen: Set[str] = set()
    while node.span_id not in seen:
        seen.add(node.span_id)
        node = parents[node.span_id]

    cycle = [node]
    current = parents[node.span_id]
    while current is not node:
        cycle.append(current)
        current = parents[current.span_id]
    return min(cycle, key=lambda n: order[n.span_id])


def _assign_depths(roots: List[SpanTreeNode], reached: Set[str]) -> Set[str]:
    """Set depth on every node reachable from roots; returns the reached ids."""
    stack: List[Tuple[SpanTreeNode, int]] = [(root, 0) for root in roots]
    while stack:
        node, depth = stack.pop()
        if node.span_id in reached:
            continue
        reached.add(node.span_id)
        node.depth = depth
        for child in node.children:
            stack.append((child, depth + 1))
    return reached


def _sort_by_start_time(roots: List[SpanTreeNode]) -> None:
    roots.sort(key=start_time_key)
    stack = list(roots)
    while stack:
        node = stack.pop()
        if node.children:
            node.children.sort(key=start_time_key)
            stack.extend(node.children)


def iter_nodes(roots: Sequence[SpanTreeNode]) -> Iterator[SpanTreeNode]:
    """Yield every node in depth-first pre-order."""
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def count_nodes(roots: Sequence[SpanTreeNode]) -> int:
    """Get the total count of nodes in a tree (including nested)."""
    return sum(1 for _ in iter_nodes(roots))


def collect_expandable_ids(roots: Sequence[SpanTreeNode]) -> List[str]:
    """Ids of all nodes that have children, in pre-order."""
    return [node.span_id for node in iter_nodes(roots) if node.children]


def find_path(roots: Sequence[SpanTreeNode], span_id: str) -> Optional[List[str]]:
    """Find the span ids from a root down to span_id (inclusive).

    Returns
    -------
    Optional[List[str]]
        The path, or None if the span is not in the forest.
    """
    stack: List[Tuple[SpanTreeNode, List[str]]] = [
        (root, [root.span_id]) for root in reversed(roots)
    ]
    while stack:
        node, path = stack.pop()
        if node.span_id == span_id:
            return path
        for child in reversed(node.children):
            stack.append((child, path + [child.span_id]))
    return None
