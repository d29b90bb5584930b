"""Push-style propagation of external slot updates through a graph.

Where `evaluate` pulls requested outputs for one set of inputs, a
`Propagator` keeps the latest value of every slot and output port and pushes
slot updates downstream, re-evaluating only the instances affected by the
change and notifying subscribers of the ports that changed.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from effectgraph._errors import EvaluationError, ValueTypeError
from effectgraph._ports import PortLike, PortRef, as_port_ref

from ._engine import _resolve_spec
from ._resolution import assemble_inputs, collect_outputs, inputs_available

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from effectgraph._composition import Graph
    from effectgraph._ir import GraphSpec

logger = logging.getLogger(__name__)


class Propagator:
    """Live view of a graph that re-evaluates on external slot updates.

    The propagator works on the snapshot taken at construction time; later
    changes to the Graph builder are not picked up.

    An instance is (re-)evaluated when one of its transitive inputs changed
    and all of its inputs are available. Instances waiting for slots that
    were never supplied stay pending and are retried on every update.
    Updates are all-or-nothing: if a node fails, the previous state is kept
    and the EvaluationError propagates.

    Example:
        >>> live = Propagator(graph)
        >>> unsubscribe = live.subscribe("blast.entity", print)
        >>> live.update(origin=(0.0, 0.0), heading=(1.0, 0.0))

    """

    def __init__(self, graph: Graph | GraphSpec) -> None:
        self._spec = _resolve_spec(graph)
        self._dependency_graph = self._spec.dependency_graph
        self._slots: dict[str, Any] = {}
        self._values: dict[PortRef, Any] = {}
        self._subscribers: defaultdict[PortRef, list[Callable[[Any], None]]] = defaultdict(list)

    @property
    def spec(self) -> GraphSpec:
        return self._spec

    @property
    def values(self) -> Mapping[PortRef, Any]:
        """Latest value of every computed output port."""
        return MappingProxyType(self._values)

    @property
    def slots(self) -> Mapping[str, Any]:
        """Latest value of every supplied external slot."""
        return MappingProxyType(self._slots)

    @property
    def pending(self) -> tuple[str, ...]:
        """Ids of instances whose outputs are not available yet."""
        return tuple(
            instance.id
            for instance in self._spec.instances
            if any(ref not in self._values for ref in instance.output_refs)
        )

    def latest(self, ref: PortLike) -> Any:
        """Latest value of an output port.

        Raises:
            UnknownInstanceError: If the instance does not exist.
            UnknownPort: If the instance has no such output.
            KeyError: If the port has not been computed yet.

        """
        port_ref = as_port_ref(ref)
        self._spec.output_type(port_ref)
        return self._values[port_ref]

    def subscribe(self, ref: PortLike, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Call `callback(value)` whenever the output port gets a new value.

        Returns:
            A function removing the subscription.

        """
        port_ref = as_port_ref(ref)
        self._spec.output_type(port_ref)
        self._subscribers[port_ref].append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(port_ref, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def update(self, **values: Any) -> dict[PortRef, Any]:
        """Set external slot values and propagate. See `update_many`."""
        return self.update_many(values)

    def update_many(self, values: Mapping[str, Any]) -> dict[PortRef, Any]:
        """Set external slot values and push them downstream.

        Args:
            values: New slot values, keyed by slot name.

        Returns:
            The output ports recomputed by this update, with their new values.

        Raises:
            KeyError: If a slot is not declared by the graph.
            ValueTypeError: If a value does not match the slot's type.
            EvaluationError: If a node fails; the previous state is kept.

        """
        for slot, value in values.items():
            slot_type = self._spec.external_slots.get(slot)
            if slot_type is None:
                msg = f"Graph '{self._spec.name}' has no external slot '{slot}'"
                raise KeyError(msg)
            if not slot_type.accepts(value):
                raise ValueTypeError(slot_type, value, f"external slot '{slot}'")

        slots = {**self._slots, **values}
        affected = self._affected_by(values)
        computed = dict(self._values)
        changed: dict[PortRef, Any] = {}

        for idx in self._spec.order:
            if idx not in affected:
                continue
            instance = self._spec.instances[idx]
            if not inputs_available(instance, computed, slots):
                # Drop stale outputs so dependents wait as well
                for ref in instance.output_refs:
                    computed.pop(ref, None)
                continue

            inputs = assemble_inputs(instance, computed, slots)
            logger.debug("Propagating into %s", instance.id)
            try:
                result = instance.definition.evaluate(MappingProxyType(inputs), **instance.config)
            except Exception as e:
                raise EvaluationError(instance.id, e, changed) from e

            outputs = collect_outputs(instance, result, changed)
            computed.update(outputs)
            changed.update(outputs)

        self._slots = slots
        self._values = computed
        logger.debug("Update of %s recomputed %d output(s)", sorted(values), len(changed))

        for ref, value in changed.items():
            for callback in list(self._subscribers.get(ref, ())):
                callback(value)
        return changed

    def _affected_by(self, slots: Mapping[str, Any]) -> set[int]:
        # Pending instances are retried on every update; sources without inputs start here
        affected = {self._spec.index[instance_id] for instance_id in self.pending}
        for slot in slots:
            for consumer in self._spec.consumers_of_slot(slot):
                idx = self._spec.index[consumer.instance]
                affected.add(idx)
                affected |= self._dependency_graph.descendants(idx)
        return affected
