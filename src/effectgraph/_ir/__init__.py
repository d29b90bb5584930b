"""Intermediate Representation (IR) module for effectgraph.

This module provides the validated, immutable snapshot of a graph that the
evaluator works on. The IR serves as a bridge between:
- The mutable `Graph` builder (instances, edges, external bindings)
- The evaluation engine and the push-style propagator

Key types:
- InstanceSpec: Arena entry for a single node instance with resolved sources
- GraphSpec: Arena of InstanceSpecs, adjacency lists and topological order
- build_graph_spec: Function validating a Graph and building its GraphSpec
"""

from ._builder import build_graph_spec
from ._graph_spec import GraphSpec
from ._instance_spec import InstanceSpec

__all__ = ["GraphSpec", "InstanceSpec", "build_graph_spec"]
