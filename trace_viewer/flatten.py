"""Flatten a span tree into the list of currently visible rows.

Only nodes whose ancestors are all expanded are included, in depth-first,
sibling order. The output feeds a virtualized list, so the walk never enters
collapsed subtrees.
"""

import time
from dataclasses import dataclass
from typing import AbstractSet, List, Sequence, Tuple

from . import config
from .timing import measure_flatten
from .tree import SpanTreeNode, count_nodes


@dataclass(frozen=True)
class FlatSpanItem:
    """A visible row for the virtualized span list.

    Attributes
    ----------
    node : SpanTreeNode
        The span tree node shown on this row.
    depth : int
        Depth level in the tree (0 for roots).
    is_expanded : bool
        Whether this node is currently expanded.
    has_children : bool
        Whether this node has children (i.e. shows a chevron).
    path : Tuple[str, ...]
        Span ids from the root to this node, inclusive.
    """

    node: SpanTreeNode
    depth: int
    is_expanded: bool
    has_children: bool
    path: Tuple[str, ...]

    @property
    def span_id(self) -> str:
        return self.node.span_id


def flatten_visible_nodes(
    roots: Sequence[SpanTreeNode],
    expanded_ids: AbstractSet[str],
) -> List[FlatSpanItem]:
    """Flatten a span forest into display order.

    Parameters
    ----------
    roots : Sequence[SpanTreeNode]
        Root nodes of the tree, already sorted.
    expanded_ids : AbstractSet[str]
        Span ids that are currently expanded.

    Returns
    -------
    List[FlatSpanItem]
        Visible rows in pre-order.
    """
    start = time.perf_counter()
    result: List[FlatSpanItem] = []

    stack: List[Tuple[SpanTreeNode, int, Tuple[str, ...]]] = [
        (root, 0, ()) for root in reversed(roots)
    ]
    while stack:
        node, depth, parent_path = stack.pop()
        has_children = len(node.children) > 0
        is_expanded = node.span_id in expanded_ids
        path = parent_path + (node.span_id,)

        result.append(
            FlatSpanItem(
                node=node,
                depth=depth,
                is_expanded=is_expanded,
                has_children=has_children,
                path=path,
            )
        )

        # Only descend into expanded nodes
        if is_expanded and has_children:
            for child in reversed(node.children):
                stack.append((child, depth + 1, path))

    if config.DEV_MODE:
        measure_flatten(count_nodes(roots), len(result), (time.perf_counter() - start) * 1000)
    return result
