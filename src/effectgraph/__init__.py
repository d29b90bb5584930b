"""Typed node graphs for composing effect primitives."""

__all__ = [
    "ANY",
    "BOOL",
    "DIRECTION",
    "FLOAT",
    "INT",
    "POSITION",
    "STRING",
    "CycleError",
    "DefinitionError",
    "DependencyGraph",
    "Direction",
    "DuplicateDefinitionError",
    "DuplicateInstanceError",
    "Edge",
    "EngineError",
    "EvaluationError",
    "EvaluationResult",
    "ExternalSlot",
    "Graph",
    "GraphConstructionError",
    "GraphSpec",
    "GraphValidationError",
    "In",
    "InputFileError",
    "InstanceSpec",
    "InvalidConfigError",
    "InvalidDefinitionError",
    "InvalidPortReferenceError",
    "MissingExternalInputError",
    "NodeDefinition",
    "NodeFailure",
    "NodeInstance",
    "NodeRegistry",
    "Out",
    "OutputContractError",
    "PortAlreadyBound",
    "PortDescriptor",
    "PortRef",
    "Propagator",
    "TypeMismatch",
    "UnboundInputError",
    "UnknownDefinitionError",
    "UnknownInstanceError",
    "UnknownPort",
    "ValueType",
    "ValueTypeError",
    "WiringError",
    "build_chain_graph",
    "compatible",
    "contains",
    "definition_from_function",
    "enumerate_chains",
    "evaluate",
    "evaluate_graph",
    "export_results_to_toml",
    "load_external_inputs",
    "node",
    "type_multiset",
]

from ._composition import Edge, Graph, NodeInstance
from ._errors import (
    CycleError,
    DefinitionError,
    DuplicateDefinitionError,
    DuplicateInstanceError,
    EngineError,
    EvaluationError,
    GraphConstructionError,
    GraphValidationError,
    InputFileError,
    InvalidConfigError,
    InvalidDefinitionError,
    InvalidPortReferenceError,
    MissingExternalInputError,
    NodeFailure,
    OutputContractError,
    PortAlreadyBound,
    TypeMismatch,
    UnboundInputError,
    UnknownDefinitionError,
    UnknownInstanceError,
    UnknownPort,
    ValueTypeError,
    WiringError,
)
from ._eval_engine import EvaluationResult, Propagator, evaluate, evaluate_graph
from ._graph import DependencyGraph
from ._io import export_results_to_toml, load_external_inputs
from ._ir import GraphSpec, InstanceSpec
from ._node import NodeDefinition, NodeRegistry, definition_from_function, node
from ._ports import Direction, ExternalSlot, In, Out, PortDescriptor, PortRef, compatible
from ._synthesis import build_chain_graph, contains, enumerate_chains, type_multiset
from ._types import ANY, BOOL, DIRECTION, FLOAT, INT, POSITION, STRING, ValueType
