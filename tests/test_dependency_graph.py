"""Tests for DependencyGraph and graph algorithms."""

import pytest

from effectgraph import CycleError
from effectgraph._graph import DependencyGraph, topological_sort


class TestTopologicalSort:
    """Tests for the topological_sort algorithm."""

    def test_empty_graph(self) -> None:
        result = topological_sort({})
        assert result == []

    def test_single_node(self) -> None:
        result = topological_sort({"a": []})
        assert result == ["a"]

    def test_linear_chain(self) -> None:
        # c depends on b, b depends on a
        result = topological_sort({"c": ["b"], "b": ["a"], "a": []})
        assert result == ["a", "b", "c"]

    def test_diamond_dependency(self) -> None:
        # d depends on b and c, both depend on a
        result = topological_sort({"a": [], "b": ["a"], "c": ["a"], "d": ["b", "c"]})
        assert result == ["a", "b", "c", "d"]

    def test_dependencies_visited_in_given_order(self) -> None:
        result = topological_sort({"d": ["c", "b"], "b": [], "c": []})
        assert result == ["c", "b", "d"]

    def test_nodes_only_named_as_dependencies(self) -> None:
        result = topological_sort({"b": ["a"]})
        assert result == ["a", "b"]

    def test_roots_restrict_the_order(self) -> None:
        result = topological_sort({"a": [], "b": ["a"], "c": ["b"], "x": []}, roots=["b"])
        assert result == ["a", "b"]

    def test_two_node_cycle(self) -> None:
        with pytest.raises(CycleError) as exc_info:
            topological_sort({"a": ["b"], "b": ["a"]})
        assert exc_info.value.instances == ("a", "b")

    def test_self_loop(self) -> None:
        with pytest.raises(CycleError) as exc_info:
            topological_sort({"a": ["a"]})
        assert exc_info.value.instances == ("a",)

    def test_cycle_excludes_nodes_leading_into_it(self) -> None:
        # x reaches the cycle b -> c -> d -> b but is not part of it
        with pytest.raises(CycleError) as exc_info:
            topological_sort({"x": ["b"], "b": ["c"], "c": ["d"], "d": ["b"]})
        assert exc_info.value.instances == ("b", "c", "d")

    def test_cycle_message(self) -> None:
        with pytest.raises(CycleError, match="a -> b -> a"):
            topological_sort({"a": ["b"], "b": ["a"]})

    def test_unreachable_cycle_is_ignored_with_roots(self) -> None:
        result = topological_sort({"a": [], "x": ["y"], "y": ["x"]}, roots=["a"])
        assert result == ["a"]

    def test_long_chain_does_not_recurse(self) -> None:
        n = 5000
        dependencies = {i: [i - 1] if i else [] for i in reversed(range(n))}
        assert topological_sort(dependencies) == list(range(n))

    def test_works_with_tuples(self) -> None:
        result = topological_sort({("b", 2): [("a", 1)], ("a", 1): []})
        assert result == [("a", 1), ("b", 2)]


class TestDependencyGraphConstruction:
    """Tests for DependencyGraph construction."""

    def test_empty_graph(self) -> None:
        graph = DependencyGraph.from_edges([])
        assert graph.nodes == ()
        assert len(graph) == 0

    def test_single_edge(self) -> None:
        graph = DependencyGraph.from_edges([("a", "b")])
        assert graph.nodes == ("a", "b")
        assert len(graph) == 2

    def test_duplicate_edges_collapse(self) -> None:
        graph = DependencyGraph.from_edges([("a", "b"), ("a", "b")])
        assert graph.predecessors("b") == ("a",)

    def test_isolated_nodes(self) -> None:
        graph = DependencyGraph.from_edges([("a", "b")], nodes=["z", "a"])
        assert graph.nodes == ("z", "a", "b")
        assert graph.predecessors("z") == ()

    def test_contains(self) -> None:
        graph = DependencyGraph.from_edges([("a", "b")])
        assert "a" in graph
        assert "b" in graph
        assert "c" not in graph


class TestDependencyGraphQueries:
    """Tests for direct neighbour queries."""

    def test_predecessors_and_successors(self) -> None:
        graph = DependencyGraph.from_edges([("a", "c"), ("b", "c")])
        assert graph.predecessors("c") == ("a", "b")
        assert graph.successors("a") == ("c",)

    def test_unknown_node_has_no_neighbours(self) -> None:
        graph = DependencyGraph.from_edges([("a", "b")])
        assert graph.predecessors("x") == ()
        assert graph.successors("x") == ()

    def test_roots_and_leaves(self) -> None:
        graph = DependencyGraph.from_edges([("a", "c"), ("b", "c"), ("c", "d")])
        assert graph.roots() == ("a", "b")
        assert graph.leaves() == ("d",)


class TestDependencyGraphTransitiveQueries:
    """Tests for ancestors, descendants and closures."""

    @pytest.fixture
    def diamond(self) -> DependencyGraph[str]:
        return DependencyGraph.from_edges([("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")])

    def test_ancestors(self, diamond: DependencyGraph[str]) -> None:
        assert diamond.ancestors("d") == frozenset({"a", "b", "c"})
        assert diamond.ancestors("a") == frozenset()

    def test_descendants(self, diamond: DependencyGraph[str]) -> None:
        assert diamond.descendants("a") == frozenset({"b", "c", "d"})
        assert diamond.descendants("d") == frozenset()

    def test_closure_includes_start_nodes(self, diamond: DependencyGraph[str]) -> None:
        assert diamond.closure(["b"]) == frozenset({"a", "b"})
        assert diamond.closure(["b", "c"]) == frozenset({"a", "b", "c"})


class TestDependencyGraphTopologicalOrder:
    """Tests for topological ordering and cycle detection."""

    def test_topological_order(self) -> None:
        graph = DependencyGraph.from_edges([("a", "b"), ("b", "c")])
        assert graph.topological_order() == ["a", "b", "c"]

    def test_topological_order_with_roots(self) -> None:
        graph = DependencyGraph.from_edges([("a", "b"), ("b", "c"), ("x", "c")])
        assert graph.topological_order(roots=["b"]) == ["a", "b"]

    def test_has_cycle(self) -> None:
        assert not DependencyGraph.from_edges([("a", "b")]).has_cycle()
        assert DependencyGraph.from_edges([("a", "b"), ("b", "a")]).has_cycle()


class TestDependencyGraphSubgraph:
    """Tests for subgraph extraction."""

    def test_subgraph_keeps_internal_edges(self) -> None:
        graph = DependencyGraph.from_edges([("a", "b"), ("b", "c")])
        sub = graph.subgraph(["a", "b"])
        assert sub.nodes == ("a", "b")
        assert sub.successors("b") == ()
        assert sub.predecessors("b") == ("a",)

    def test_subgraph_empty(self) -> None:
        graph = DependencyGraph.from_edges([("a", "b")])
        assert len(graph.subgraph([])) == 0
