"""Graph algorithms for dependency graph operations."""

from collections.abc import Hashable, Iterable, Mapping, Sequence
from enum import Enum, auto

from effectgraph._errors import CycleError


class _Mark(Enum):
    UNVISITED = auto()
    IN_PROGRESS = auto()
    DONE = auto()


def topological_sort[T: Hashable](
    dependencies: Mapping[T, Sequence[T]],
    roots: Iterable[T] | None = None,
) -> list[T]:
    """Sort a graph topologically (dependencies before dependents).

    Uses an iterative depth-first traversal with three-colour marking.
    Meeting a node that is still in progress means the traversal has walked
    back into its own path, so the nodes on the path from that node onward
    form a cycle.

    The result is deterministic: roots are visited in iteration order and each
    node's dependencies in the order given.

    Args:
        dependencies: Mapping from node to the nodes it depends on.
            Nodes that only appear as dependencies are treated as having none.
        roots: Nodes to start from. Only these and their transitive
            dependencies are sorted. Defaults to every key of `dependencies`.

    Returns:
        List of nodes in topological order.

    Raises:
        CycleError: If a cycle is reachable from the roots. Its `instances`
            are the nodes on the cycle, in traversal order.

    Example:
        >>> # c depends on b, b depends on a
        >>> topological_sort({"a": [], "b": ["a"], "c": ["b"]})
        ['a', 'b', 'c']
        >>> topological_sort({"a": [], "b": ["a"], "c": ["b"]}, roots=["b"])
        ['a', 'b']

    """
    marks: dict[T, _Mark] = {}
    order: list[T] = []

    for root in dependencies if roots is None else roots:
        if marks.get(root, _Mark.UNVISITED) is not _Mark.UNVISITED:
            continue

        marks[root] = _Mark.IN_PROGRESS
        path: list[T] = [root]
        pending = [iter(dependencies.get(root, ()))]

        while pending:
            for dep in pending[-1]:
                mark = marks.get(dep, _Mark.UNVISITED)
                if mark is _Mark.IN_PROGRESS:
                    raise CycleError(path[path.index(dep) :])
                if mark is _Mark.UNVISITED:
                    marks[dep] = _Mark.IN_PROGRESS
                    path.append(dep)
                    pending.append(iter(dependencies.get(dep, ())))
                    break
            else:
                # All dependencies done
                pending.pop()
                node = path.pop()
                marks[node] = _Mark.DONE
                order.append(node)

    return order
