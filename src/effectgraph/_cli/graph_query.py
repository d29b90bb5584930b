"""Graph query functions for CLI commands.

This module provides pure functions for querying graphs and registries.
These are the functional core - no I/O, no Rich rendering.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from effectgraph._ports import ExternalSlot, PortLike, PortRef, as_port_ref
from effectgraph._synthesis import enumerate_chains

if TYPE_CHECKING:
    from collections.abc import Iterable

    from effectgraph._ir import GraphSpec
    from effectgraph._node import NodeDefinition
    from effectgraph._types import ValueType


@dataclass(frozen=True, slots=True)
class InstanceInfo:
    """Basic information about an instance for listing."""

    position: int
    id: str
    definition_id: str
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]
    dependency_count: int


@dataclass(frozen=True, slots=True)
class DefinitionInfo:
    """Basic information about a node definition for listing."""

    id: str
    signature: str
    parameters: tuple[str, ...]
    pure: bool
    description: str


@dataclass(slots=True)
class TreeNode:
    """A node in a dependency tree for rendering.

    Attributes:
        source: The output port or external slot supplying the value.
        via: Name of the consumer's input port fed by `source`; None for the root.
        children: The sources feeding the instance owning `source`.

    """

    source: PortRef | ExternalSlot
    via: str | None
    children: list[TreeNode]


def list_instances(spec: GraphSpec) -> list[InstanceInfo]:
    """List the instances of a validated graph in evaluation order.

    Args:
        spec: The GraphSpec to analyze.

    Returns:
        One InstanceInfo per instance. Inputs are rendered as
        `port <- source` and outputs as `port: Type`.

    """
    infos: list[InstanceInfo] = []
    for position, idx in enumerate(spec.order, start=1):
        instance = spec.instances[idx]
        infos.append(
            InstanceInfo(
                position=position,
                id=instance.id,
                definition_id=instance.definition.id,
                inputs=tuple(f"{name} <- {source}" for name, source in instance.sources.items()),
                outputs=tuple(str(port) for port in instance.definition.outputs),
                dependency_count=len(spec.dependencies[idx]),
            ),
        )
    return infos


def list_definitions(definitions: Iterable[NodeDefinition]) -> list[DefinitionInfo]:
    """List node definitions sorted by id."""
    return [
        DefinitionInfo(
            id=definition.id,
            signature=_signature(definition),
            parameters=definition.parameters,
            pure=definition.pure,
            description=definition.description,
        )
        for definition in sorted(definitions, key=lambda d: d.id)
    ]


def _signature(definition: NodeDefinition) -> str:
    inputs = ", ".join(str(port.type) for port in definition.inputs)
    outputs = ", ".join(str(port.type) for port in definition.outputs)
    return f"({inputs}) -> ({outputs})"


def get_dependency_tree(spec: GraphSpec, target: PortLike, *, max_depth: int | None = None) -> TreeNode:
    """Build the tree of sources an output port depends on.

    Args:
        spec: The validated graph.
        target: The output port at the root of the tree.
        max_depth: Maximum depth to traverse (None for unlimited).

    Returns:
        TreeNode representing the dependency tree. Each instance is expanded
        only once; later occurrences are leaves.

    Raises:
        InvalidPortReferenceError: If `target` is not a valid port reference string.
        UnknownInstanceError: If the target instance does not exist.
        UnknownPort: If the instance has no such output port.

    """
    root = as_port_ref(target)
    spec.output_type(root)

    def build_tree(source: PortRef | ExternalSlot, via: str | None, depth: int, visited: set[str]) -> TreeNode:
        children: list[TreeNode] = []
        if isinstance(source, ExternalSlot):
            return TreeNode(source=source, via=via, children=children)
        if max_depth is not None and depth >= max_depth:
            return TreeNode(source=source, via=via, children=children)

        instance = spec.get_instance(source.instance)
        for port_name, upstream in instance.sources.items():
            if isinstance(upstream, PortRef) and upstream.instance in visited:
                children.append(TreeNode(source=upstream, via=port_name, children=[]))
                continue
            if isinstance(upstream, PortRef):
                visited.add(upstream.instance)
            children.append(build_tree(upstream, port_name, depth + 1, visited))

        return TreeNode(source=source, via=via, children=children)

    return build_tree(root, None, 0, {root.instance})


def value_types_by_name(definitions: Iterable[NodeDefinition]) -> dict[str, ValueType]:
    """Collect the value types used by a set of definitions, keyed by name."""
    types: dict[str, ValueType] = {}
    for definition in definitions:
        for port in (*definition.inputs, *definition.outputs):
            types.setdefault(port.type.name, port.type)
    return types


def suggest_chains(
    definitions: Iterable[NodeDefinition],
    produces: Iterable[str],
    available: Iterable[str] = (),
    max_length: int = 4,
) -> list[tuple[NodeDefinition, ...]]:
    """Suggest chains of definitions by value type names.

    Args:
        definitions: Candidate definitions.
        produces: Names of the value types the chain must produce.
        available: Names of value types supplied externally.
        max_length: Maximum number of definitions per chain.

    Returns:
        Chains in discovery order (shortest first).

    Raises:
        KeyError: If a type name is not used by any definition.

    """
    definitions = list(definitions)
    types = value_types_by_name(definitions)

    def resolve(names: Iterable[str]) -> list[ValueType]:
        resolved: list[ValueType] = []
        for name in names:
            if name not in types:
                msg = f"Unknown value type '{name}'. Known: {', '.join(sorted(types)) or 'none'}"
                raise KeyError(msg)
            resolved.append(types[name])
        return resolved

    return enumerate_chains(definitions, resolve(produces), resolve(available), max_length)
