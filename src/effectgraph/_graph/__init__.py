"""Graph module providing dependency graph abstractions.

This module contains:
- DependencyGraph[T]: A generic, immutable, insertion-ordered dependency graph
- topological_sort: Three-colour depth-first ordering with cycle reporting
"""

from ._algorithms import topological_sort
from ._dependency_graph import DependencyGraph

__all__ = ["DependencyGraph", "topological_sort"]
