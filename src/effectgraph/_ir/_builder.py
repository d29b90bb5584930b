"""Builder function to validate a Graph and construct its IR."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING

from effectgraph._errors import CycleError, UnboundInputError
from effectgraph._graph import topological_sort
from effectgraph._ports import ExternalSlot, PortRef

from ._graph_spec import GraphSpec
from ._instance_spec import InstanceSpec

if TYPE_CHECKING:
    from effectgraph._composition import Graph

logger = logging.getLogger(__name__)


def build_graph_spec(graph: Graph) -> GraphSpec:
    """Validate a Graph and build its immutable GraphSpec.

    The function:
    1. Places every instance in an arena, in declaration order
    2. Resolves the source of every input port and flags unbound ports
    3. Builds adjacency lists of arena indices from edges between instances
    4. Orders the arena topologically, failing on the first cycle found

    Cycles are reported before unbound inputs.

    Args:
        graph: The Graph builder.

    Returns:
        A GraphSpec for the graph's current revision.

    Raises:
        CycleError: Naming exactly the instances on the detected cycle.
        UnboundInputError: Naming the first unbound input port; `ports`
            lists all of them.

    """
    instances = graph.instances
    index = {instance.id: idx for idx, instance in enumerate(instances)}

    specs: list[InstanceSpec] = []
    dependencies: list[tuple[int, ...]] = []
    unbound: list[PortRef] = []

    for idx, instance in enumerate(instances):
        sources: dict[str, PortRef | ExternalSlot] = {}
        deps: dict[int, None] = {}
        for port in instance.definition.inputs:
            edge = graph.incoming(instance.id, port.name)
            if edge is None:
                unbound.append(PortRef(instance.id, port.name))
                continue
            sources[port.name] = edge.source
            if isinstance(edge.source, PortRef):
                deps[index[edge.source.instance]] = None

        specs.append(
            InstanceSpec(
                index=idx,
                id=instance.id,
                definition=instance.definition,
                config=instance.config,
                sources=MappingProxyType(sources),
            ),
        )
        dependencies.append(tuple(deps))

    try:
        order = topological_sort(dict(enumerate(dependencies)))
    except CycleError as e:
        cycle = [instances[idx].id for idx in e.instances]
        logger.debug("Graph '%s' has a cycle: %s", graph.name, cycle)
        raise CycleError(cycle) from None

    if unbound:
        logger.debug("Graph '%s' has %d unbound input(s)", graph.name, len(unbound))
        raise UnboundInputError(unbound[0], unbound)

    spec = GraphSpec(
        name=graph.name,
        instances=tuple(specs),
        index=index,
        dependencies=tuple(dependencies),
        order=tuple(order),
        external_slots=graph.external_slots,
        revision=graph.revision,
    )
    logger.debug(
        "Validated graph '%s': %d instances, %d edges, %d external slots",
        graph.name,
        len(specs),
        len(graph.edges),
        len(spec.external_slots),
    )
    return spec
