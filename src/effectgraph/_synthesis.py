"""Type-driven suggestions of node chains.

Given a set of node definitions, find sequences of them that turn a multiset
of available value types into a wanted multiset, consuming every
intermediate value on the way. A chain is a topologically sorted candidate
graph; `build_chain_graph` turns it into a wired `Graph`.

For example, with

    const:      () -> Float
    double:     Float -> Float
    to_radius:  Float -> Radius

asking for `Radius` from nothing yields `[const, to_radius]`,
`[const, double, to_radius]`, and so on up to `max_length`.
"""

import logging
from collections import Counter, defaultdict, deque
from collections.abc import Iterable, Sequence

from ._composition import Graph
from ._node import NodeDefinition
from ._ports import PortDescriptor, PortRef
from ._types import ValueType

logger = logging.getLogger(__name__)

type TypeMultiset = Counter[ValueType]


def type_multiset(ports: Iterable[PortDescriptor | ValueType]) -> TypeMultiset:
    """Count value types over ports (or bare value types)."""
    return Counter(p.type if isinstance(p, PortDescriptor) else p for p in ports)


def contains(haystack: TypeMultiset, needle: TypeMultiset) -> bool:
    """Check that `haystack` holds at least as many of every type as `needle`.

    Example:
        >>> contains(Counter({FLOAT: 2}), Counter({FLOAT: 1}))
        True
        >>> contains(Counter({FLOAT: 1}), Counter({FLOAT: 2}))
        False

    """
    return all(haystack.get(value_type, 0) >= count for value_type, count in needle.items() if count > 0)


def enumerate_chains(
    definitions: Iterable[NodeDefinition],
    produces: Iterable[ValueType],
    available: Iterable[ValueType] = (),
    max_length: int = 4,
) -> list[tuple[NodeDefinition, ...]]:
    """Enumerate chains of definitions producing exactly `produces`.

    Breadth-first search over sequences of definitions. A definition may be
    appended when the pool of values produced so far (seeded with
    `available`) holds all of its input types; it consumes those and adds
    its outputs. A chain is reported when the pool equals `produces`, i.e.
    every available and intermediate value was consumed.

    Args:
        definitions: Candidate node definitions. Definitions may repeat in a chain.
        produces: Value types the chain must end up with.
        available: Value types supplied from outside (external slots).
        max_length: Maximum number of definitions in a chain.

    Returns:
        Chains in discovery order (shortest first).

    """
    if max_length < 1:
        msg = f"max_length must be at least 1, got {max_length}"
        raise ValueError(msg)

    candidates = [(d, type_multiset(d.inputs), type_multiset(d.outputs)) for d in definitions]
    target = type_multiset(produces)

    queue: deque[tuple[TypeMultiset, tuple[NodeDefinition, ...]]] = deque([(type_multiset(available), ())])
    results: list[tuple[NodeDefinition, ...]] = []

    while queue:
        pool, chain = queue.popleft()
        for definition, needs, makes in candidates:
            if not contains(pool, needs):
                continue
            next_pool = (pool - needs) + makes
            next_chain = (*chain, definition)
            if next_pool == target:
                results.append(next_chain)
            if len(next_chain) < max_length:
                queue.append((next_pool, next_chain))

    logger.debug("Found %d chain(s) of up to %d definitions", len(results), max_length)
    return results


def build_chain_graph(chain: Sequence[NodeDefinition], name: str = "chain") -> Graph:
    """Instantiate a chain and wire it by value type.

    Instances are named `<definition id>_<n>`. Each input is wired to the
    oldest not-yet-consumed output of the same value type produced earlier
    in the chain; inputs with no such output are bound to a new external
    slot named after the value type (`position`, `position_2`, ...).

    Raises:
        InvalidConfigError: If a definition needs configuration parameters.

    """
    graph = Graph(name)
    unconsumed: defaultdict[ValueType, deque[PortRef]] = defaultdict(deque)
    instance_counts: Counter[str] = Counter()
    slot_counts: Counter[str] = Counter()

    for definition in chain:
        instance_counts[definition.id] += 1
        instance_id = f"{definition.id}_{instance_counts[definition.id]}"
        graph.add_instance(definition, instance_id)

        for port in definition.inputs:
            producers = unconsumed[port.type]
            if producers:
                source = producers.popleft()
                graph.connect(source.instance, source.port, instance_id, port.name)
            else:
                base = port.type.name.lower()
                slot_counts[base] += 1
                slot = base if slot_counts[base] == 1 else f"{base}_{slot_counts[base]}"
                graph.bind_external(slot, instance_id, port.name)

        for port in definition.outputs:
            unconsumed[port.type].append(PortRef(instance_id, port.name))

    return graph
