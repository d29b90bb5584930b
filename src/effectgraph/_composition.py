"""Graph builder: node instances and the edges wiring them together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ._errors import (
    DuplicateInstanceError,
    GraphConstructionError,
    InvalidConfigError,
    PortAlreadyBound,
    TypeMismatch,
    UnknownDefinitionError,
    UnknownInstanceError,
    UnknownPort,
)
from ._ir import build_graph_spec
from ._ports import Direction, ExternalSlot, PortRef, compatible

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._ir import GraphSpec
    from ._node import NodeDefinition, NodeRegistry
    from ._ports import PortDescriptor
    from ._types import ValueType

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, eq=False)
class NodeInstance:
    """A placement of a node definition inside a graph.

    Attributes:
        id: Instance identifier, unique within the graph.
        definition: The shared definition (held by reference).
        config: Baked-in configuration passed to every evaluation.

    """

    id: str
    definition: NodeDefinition
    config: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class Edge:
    """A wiring connection from an output port or external slot to an input port."""

    source: PortRef | ExternalSlot
    target: PortRef

    @property
    def is_external(self) -> bool:
        return isinstance(self.source, ExternalSlot)

    def __str__(self) -> str:
        return f"{self.source} -> {self.target}"


class Graph:
    """Builder for a graph of node instances.

    A graph under construction belongs to a single builder; it is not safe to
    mutate from several threads. Every mutation bumps `revision`, and the
    validated snapshot used for evaluation is rebuilt only when the revision
    changed since the last validation.

    Example:
        >>> graph = Graph("blast")
        >>> graph.add_instance(const, "radius", value=5.0)
        >>> graph.add_instance(double, "doubled")
        >>> graph.connect("radius", "v", "doubled", "in")
        >>> graph.validate()

    """

    def __init__(self, name: str = "graph", registry: NodeRegistry | None = None) -> None:
        self.name = name
        self.registry = registry
        self._instances: dict[str, NodeInstance] = {}
        self._edges: dict[PortRef, Edge] = {}
        self._revision = 0
        self._spec: GraphSpec | None = None

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def add_instance(
        self,
        definition: NodeDefinition | str,
        instance_id: str,
        **config: Any,
    ) -> NodeInstance:
        """Place a node definition in the graph.

        Args:
            definition: The definition, or its id when the graph has a registry.
            instance_id: Unique id for the instance. Must not contain '.'.
            **config: Configuration baked into this instance.

        Raises:
            DuplicateInstanceError: If `instance_id` is already used.
            InvalidConfigError: If `config` does not match the definition's parameters.
            UnknownDefinitionError: If `definition` is an id the registry does not know.

        """
        if isinstance(definition, str):
            if self.registry is None:
                raise UnknownDefinitionError(definition)
            definition = self.registry.get(definition)

        if not instance_id or PortRef.SEPARATOR in instance_id:
            msg = f"Invalid instance id {instance_id!r}: must be non-empty and must not contain '{PortRef.SEPARATOR}'"
            raise GraphConstructionError(msg)
        if instance_id in self._instances:
            raise DuplicateInstanceError(instance_id)

        unexpected = set(config) - set(definition.parameters)
        missing = definition.required_parameters - set(config)
        if unexpected or missing:
            raise InvalidConfigError(instance_id, missing=missing, unexpected=unexpected)

        instance = NodeInstance(
            id=instance_id,
            definition=definition,
            config=MappingProxyType({**definition.defaults, **config}),
        )
        self._instances[instance_id] = instance
        self._touch()
        logger.debug("Added instance '%s' of %r", instance_id, definition)
        return instance

    def connect(self, from_instance: str, from_port: str, to_instance: str, to_port: str) -> Edge:
        """Wire an output port of one instance to an input port of another.

        Raises:
            UnknownInstanceError: If either instance does not exist.
            UnknownPort: If either port does not exist on its instance.
            TypeMismatch: If the ports carry different value types.
            PortAlreadyBound: If the input port already has an incoming edge.

        """
        output = self._port(from_instance, from_port, Direction.OUTPUT)
        input_ = self._port(to_instance, to_port, Direction.INPUT)
        source = PortRef(from_instance, from_port)
        target = PortRef(to_instance, to_port)

        if not compatible(output, input_):
            raise TypeMismatch(source, target, output.type, input_.type)
        self._check_unbound(target)

        return self._add_edge(Edge(source=source, target=target))

    def bind_external(self, slot_name: str, to_instance: str, to_port: str) -> Edge:
        """Feed an input port from an external slot supplied at evaluation time.

        A slot may feed several input ports as long as they share one value type.

        Raises:
            UnknownInstanceError: If the instance does not exist.
            UnknownPort: If the port does not exist on the instance.
            TypeMismatch: If the slot already feeds ports of a different value type.
            PortAlreadyBound: If the input port already has an incoming edge.

        """
        if not slot_name:
            msg = "External slot name must not be empty"
            raise GraphConstructionError(msg)

        input_ = self._port(to_instance, to_port, Direction.INPUT)
        slot = ExternalSlot(slot_name)
        target = PortRef(to_instance, to_port)

        slot_type = self.external_slots.get(slot_name)
        if slot_type is not None and slot_type != input_.type:
            raise TypeMismatch(slot, target, slot_type, input_.type)
        self._check_unbound(target)

        return self._add_edge(Edge(source=slot, target=target))

    def disconnect(self, to_instance: str, to_port: str) -> Edge | None:
        """Remove the edge feeding an input port. Returns the removed edge, if any."""
        self._port(to_instance, to_port, Direction.INPUT)
        edge = self._edges.pop(PortRef(to_instance, to_port), None)
        if edge is not None:
            self._touch()
            logger.debug("Removed edge %s", edge)
        return edge

    def remove_instance(self, instance_id: str) -> NodeInstance:
        """Remove an instance together with every edge touching it."""
        instance = self._instances.pop(instance_id, None)
        if instance is None:
            raise UnknownInstanceError(instance_id)
        self._edges = {
            target: edge
            for target, edge in self._edges.items()
            if target.instance != instance_id
            and not (isinstance(edge.source, PortRef) and edge.source.instance == instance_id)
        }
        self._touch()
        logger.debug("Removed instance '%s'", instance_id)
        return instance

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def instances(self) -> tuple[NodeInstance, ...]:
        """Instances in declaration order."""
        return tuple(self._instances.values())

    @property
    def edges(self) -> tuple[Edge, ...]:
        """Edges in the order they were added."""
        return tuple(self._edges.values())

    @property
    def external_slots(self) -> dict[str, ValueType]:
        """External slot names mapped to the value type they carry."""
        slots: dict[str, ValueType] = {}
        for edge in self._edges.values():
            if isinstance(edge.source, ExternalSlot) and edge.source.name not in slots:
                slots[edge.source.name] = self._port(
                    edge.target.instance,
                    edge.target.port,
                    Direction.INPUT,
                ).type
        return slots

    @property
    def revision(self) -> int:
        """Counter bumped by every mutation."""
        return self._revision

    def get_instance(self, instance_id: str) -> NodeInstance:
        try:
            return self._instances[instance_id]
        except KeyError:
            raise UnknownInstanceError(instance_id) from None

    def incoming(self, instance_id: str, port: str) -> Edge | None:
        """The edge feeding an input port, or None if it is unbound."""
        return self._edges.get(PortRef(instance_id, port))

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> None:
        """Check the graph can be evaluated.

        Raises:
            CycleError: If instances depend on each other cyclically.
            UnboundInputError: If an input port has no edge and no external binding.

        """
        self.snapshot()

    def snapshot(self) -> GraphSpec:
        """Return the validated, immutable snapshot of the current revision.

        The snapshot is cached and rebuilt only after the graph was mutated.
        """
        if self._spec is None or self._spec.revision != self._revision:
            self._spec = build_graph_spec(self)
        return self._spec

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _port(self, instance_id: str, port: str, direction: Direction) -> PortDescriptor:
        definition = self.get_instance(instance_id).definition
        descriptor = definition.input_port(port) if direction is Direction.INPUT else definition.output_port(port)
        if descriptor is None:
            raise UnknownPort(instance_id, port, direction)
        return descriptor

    def _check_unbound(self, target: PortRef) -> None:
        existing = self._edges.get(target)
        if existing is not None:
            raise PortAlreadyBound(target, existing.source)

    def _add_edge(self, edge: Edge) -> Edge:
        self._edges[edge.target] = edge
        self._touch()
        logger.debug("Added edge %s", edge)
        return edge

    def _touch(self) -> None:
        self._revision += 1

    def __contains__(self, instance_id: object) -> bool:
        return instance_id in self._instances

    def __len__(self) -> int:
        return len(self._instances)

    def __repr__(self) -> str:
        return f"Graph({self.name!r}, instances={len(self._instances)}, edges={len(self._edges)})"
