"""Generic dependency graph abstraction."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from effectgraph._errors import CycleError

from ._algorithms import topological_sort


@dataclass(frozen=True, slots=True)
class DependencyGraph[T]:
    """A directed graph representing dependencies between nodes.

    This is an immutable data structure with query methods. It is generic
    over the node type T (instance ids, arena indices, ...). Nodes and
    adjacency lists keep insertion order, so every traversal is deterministic.

    The graph represents "depends on" relationships:
    - predecessors[b] = (a,) means "b depends on a"
    - successors[a] = (b,) means "a is depended on by b"

    Attributes:
        _predecessors: Mapping from node to its direct dependencies.
        _successors: Mapping from node to nodes that depend on it.

    """

    _predecessors: dict[T, tuple[T, ...]] = field(default_factory=dict)
    _successors: dict[T, tuple[T, ...]] = field(default_factory=dict)

    @classmethod
    def from_edges(cls, edges: Iterable[tuple[T, T]], nodes: Iterable[T] = ()) -> DependencyGraph[T]:
        """Build a graph from (source, target) edges.

        An edge (a, b) means "b depends on a". Duplicate edges are collapsed.

        Args:
            edges: (source, target) pairs.
            nodes: Nodes to include even if no edge touches them. Listing
                nodes here also fixes their order in `nodes`.

        Example:
            >>> graph = DependencyGraph.from_edges([("a", "b"), ("b", "c")])
            >>> graph.predecessors("b")
            ('a',)

        """
        predecessors: dict[T, dict[T, None]] = {node: {} for node in nodes}
        successors: dict[T, dict[T, None]] = {node: {} for node in nodes}

        for src, dst in edges:
            predecessors.setdefault(src, {})
            predecessors.setdefault(dst, {})[src] = None
            successors.setdefault(dst, {})
            successors.setdefault(src, {})[dst] = None

        return cls(
            _predecessors={k: tuple(v) for k, v in predecessors.items()},
            _successors={k: tuple(v) for k, v in successors.items()},
        )

    @property
    def nodes(self) -> tuple[T, ...]:
        """All nodes in the graph, in insertion order."""
        return tuple(self._predecessors)

    def predecessors(self, node: T) -> tuple[T, ...]:
        """Direct dependencies of a node."""
        return self._predecessors.get(node, ())

    def successors(self, node: T) -> tuple[T, ...]:
        """Direct dependents of a node."""
        return self._successors.get(node, ())

    def roots(self) -> tuple[T, ...]:
        """Nodes with no dependencies."""
        return tuple(n for n in self.nodes if not self._predecessors[n])

    def leaves(self) -> tuple[T, ...]:
        """Nodes nothing depends on."""
        return tuple(n for n in self.nodes if not self._successors.get(n))

    def ancestors(self, node: T) -> frozenset[T]:
        """All transitive dependencies of a node (excluding the node itself)."""
        return self._walk(self.predecessors(node), self.predecessors)

    def descendants(self, node: T) -> frozenset[T]:
        """All transitive dependents of a node (excluding the node itself)."""
        return self._walk(self.successors(node), self.successors)

    def closure(self, nodes: Iterable[T]) -> frozenset[T]:
        """The given nodes together with all their transitive dependencies."""
        start = tuple(nodes)
        return frozenset(start) | self._walk(
            tuple(dep for n in start for dep in self.predecessors(n)),
            self.predecessors,
        )

    @staticmethod
    def _walk(start: tuple[T, ...], step: Callable[[T], tuple[T, ...]]) -> frozenset[T]:
        visited: set[T] = set()
        stack = list(start)
        while stack:
            current = stack.pop()
            if current not in visited:
                visited.add(current)
                stack.extend(step(current))
        return frozenset(visited)

    def topological_order(self, roots: Iterable[T] | None = None) -> list[T]:
        """Nodes in topological order (dependencies before dependents).

        Args:
            roots: Restrict the order to these nodes and their dependencies.

        Raises:
            CycleError: If the graph contains a cycle.

        """
        return topological_sort(self._predecessors, roots)

    def has_cycle(self) -> bool:
        """Check if the graph contains a cycle."""
        try:
            self.topological_order()
        except CycleError:
            return True
        return False

    def subgraph(self, nodes: Iterable[T]) -> DependencyGraph[T]:
        """Create a subgraph containing only the specified nodes.

        Edges are kept only if both endpoints are in the node set.
        """
        keep = frozenset(nodes)
        return DependencyGraph(
            _predecessors={
                n: tuple(p for p in deps if p in keep) for n, deps in self._predecessors.items() if n in keep
            },
            _successors={n: tuple(s for s in deps if s in keep) for n, deps in self._successors.items() if n in keep},
        )

    def __len__(self) -> int:
        """Return the number of nodes in the graph."""
        return len(self._predecessors)

    def __contains__(self, node: object) -> bool:
        """Check if a node is in the graph."""
        return node in self._predecessors
