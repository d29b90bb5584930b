"""Evaluation engine module for effectgraph.

This module provides the functions that evaluate validated graphs. The
evaluation engine takes a Graph (or its GraphSpec snapshot) and external
input values, and produces the requested output values.

Key types:
- EvaluationResult: Structured result containing computed values or the error
- evaluate: Pull-based evaluation raising on failure
- evaluate_graph: Same pass, returning an EvaluationResult
- Propagator: Push-based live view re-evaluating on slot updates
"""

from ._engine import EvaluationResult, evaluate, evaluate_graph
from ._propagation import Propagator

__all__ = [
    "EvaluationResult",
    "Propagator",
    "evaluate",
    "evaluate_graph",
]
