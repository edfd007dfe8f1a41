"""Tests for flattening the span tree into visible rows."""

from trace_viewer.flatten import flatten_visible_nodes
from trace_viewer.tree import build_tree, iter_nodes


class TestFlattenVisibleNodes:
    """Tests for flatten_visible_nodes."""

    def test_collapsed_tree_shows_only_roots(self, nested_trace):
        roots = build_tree(nested_trace.get_spans())

        rows = flatten_visible_nodes(roots, set())

        assert [r.span_id for r in rows] == ["root"]
        assert rows[0].has_children is True
        assert rows[0].is_expanded is False
        assert rows[0].depth == 0

    def test_fully_expanded_tree_shows_every_node(self, nested_trace):
        roots = build_tree(nested_trace.get_spans())
        all_ids = {n.span_id for n in iter_nodes(roots)}

        rows = flatten_visible_nodes(roots, all_ids)

        assert [r.span_id for r in rows] == ["root", "a", "a1", "b"]
        assert [r.depth for r in rows] == [r.node.depth for r in rows]

    def test_only_expanded_subtrees_are_entered(self, nested_trace):
        roots = build_tree(nested_trace.get_spans())

        rows = flatten_visible_nodes(roots, {"root"})

        assert [r.span_id for r in rows] == ["root", "a", "b"]
        assert rows[1].has_children is True
        assert rows[1].is_expanded is False

    def test_expanded_child_of_collapsed_parent_stays_hidden(self, nested_trace):
        roots = build_tree(nested_trace.get_spans())

        rows = flatten_visible_nodes(roots, {"a"})

        assert [r.span_id for r in rows] == ["root"]

    def test_leaf_in_expanded_set_has_no_children(self, nested_trace):
        roots = build_tree(nested_trace.get_spans())

        rows = flatten_visible_nodes(roots, {"root", "b"})

        b_row = next(r for r in rows if r.span_id == "b")
        assert b_row.is_expanded is True
        assert b_row.has_children is False

    def test_paths(self, nested_trace):
        roots = build_tree(nested_trace.get_spans())

        rows = flatten_visible_nodes(roots, {"root", "a"})

        paths = {r.span_id: r.path for r in rows}
        assert paths["a1"] == ("root", "a", "a1")
        assert paths["b"] == ("root", "b")

    def test_every_row_has_expanded_ancestors(self, nested_trace):
        roots = build_tree(nested_trace.get_spans())
        expanded = {"root", "a"}

        for row in flatten_visible_nodes(roots, expanded):
            assert all(ancestor in expanded for ancestor in row.path[:-1])

    def test_empty_forest(self):
        assert flatten_visible_nodes([], {"x"}) == []
