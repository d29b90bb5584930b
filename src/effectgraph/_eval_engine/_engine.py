"""Core evaluation engine for node graphs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from effectgraph._errors import EngineError, EvaluationError, InvalidPortReferenceError
from effectgraph._ir import GraphSpec
from effectgraph._ports import PortLike, PortRef, as_port_ref

from ._resolution import assemble_inputs, collect_outputs

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from effectgraph._composition import Graph

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EvaluationResult:
    """Result of one evaluation pass.

    Evaluation is all-or-nothing: either `values` holds every requested
    output and `error` is None, or `values` is empty and `error` says why.

    Attributes:
        values: Mapping from requested output port to its value.
        error: The error that aborted the pass, if any.
        evaluated: Ids of the instances invoked, in invocation order.

    """

    values: dict[PortRef, Any] = field(default_factory=dict)
    error: EngineError | None = None
    evaluated: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        """Check if evaluation completed without errors."""
        return self.error is None

    def get_value(self, ref: PortLike) -> Any:
        """Get a computed value by port reference.

        Args:
            ref: A PortRef, an (instance, port) tuple or an "instance.port" string.

        Raises:
            KeyError: If no value exists for the port.

        """
        return self.values[as_port_ref(ref)]

    def raise_for_error(self) -> None:
        """Re-raise the error that aborted the pass, if any."""
        if self.error is not None:
            raise self.error


def _resolve_spec(graph: Graph | GraphSpec) -> GraphSpec:
    if isinstance(graph, GraphSpec):
        return graph
    return graph.snapshot()


def _resolve_wanted(spec: GraphSpec, wanted_outputs: Iterable[PortLike] | None) -> list[PortRef]:
    if wanted_outputs is None:
        return list(spec.all_outputs())
    refs: dict[PortRef, None] = {}
    for wanted in wanted_outputs:
        try:
            refs[as_port_ref(wanted)] = None
        except TypeError as e:
            raise InvalidPortReferenceError(wanted) from e
    for ref in refs:
        # Raises for unknown instances or ports
        spec.output_type(ref)
    return list(refs)


def run_pass(
    spec: GraphSpec,
    external_inputs: Mapping[str, Any],
    wanted: list[PortRef],
    evaluated: list[str] | None = None,
) -> dict[PortRef, Any]:
    """Evaluate the dependency closure of `wanted` on a validated snapshot.

    Instances are invoked once each, in the snapshot's topological order;
    their outputs are memoised for the rest of the pass so fan-out consumers
    share a single invocation. Instances outside the closure are never
    invoked.

    Args:
        spec: The validated snapshot.
        external_inputs: Values for external slots.
        wanted: Output ports to return.
        evaluated: If given, receives the ids of invoked instances in order.

    Returns:
        Mapping from each wanted port to its value.

    Raises:
        UnboundInputError: If an input cannot be resolved.
        ValueTypeError: If an external value has the wrong type.
        EvaluationError: If a node fails or breaks its output contract.

    """
    for slot in external_inputs:
        if slot not in spec.external_slots:
            logger.debug("Ignoring value for unknown external slot '%s'", slot)

    order = spec.order_for(spec.index[ref.instance] for ref in wanted)
    logger.debug("Starting evaluation of %d/%d instances", len(order), len(spec))

    computed: dict[PortRef, Any] = {}
    for idx in order:
        instance = spec.instances[idx]
        inputs = assemble_inputs(instance, computed, external_inputs)

        logger.debug("Evaluating %s", instance.id)
        if evaluated is not None:
            evaluated.append(instance.id)
        try:
            result = instance.definition.evaluate(MappingProxyType(inputs), **instance.config)
        except Exception as e:
            logger.debug("Instance %s failed: %s", instance.id, e)
            raise EvaluationError(instance.id, e, computed) from e

        outputs = collect_outputs(instance, result, computed)
        for ref, value in outputs.items():
            logger.debug("  Set %s = %r", ref, value)
        computed.update(outputs)

    return {ref: computed[ref] for ref in wanted}


def evaluate(
    graph: Graph | GraphSpec,
    external_inputs: Mapping[str, Any] | None = None,
    wanted_outputs: Iterable[PortLike] | None = None,
) -> dict[PortRef, Any]:
    """Evaluate a graph and return the requested output values.

    The graph is validated first (re-validated only if it changed since the
    last validation). Only the transitive dependencies of `wanted_outputs`
    are evaluated.

    Args:
        graph: A Graph builder or a GraphSpec snapshot.
        external_inputs: Values for external slots, keyed by slot name.
        wanted_outputs: Output ports to compute, as PortRefs, (instance, port)
            tuples or "instance.port" strings. None means every output.

    Returns:
        Mapping from each requested PortRef to its value.

    Raises:
        EngineError: Any validation, type or evaluation error. No partial
            results are returned.

    Example:
        >>> evaluate(graph, {}, ["doubled.out"])
        {PortRef(instance='doubled', port='out'): 10.0}

    """
    spec = _resolve_spec(graph)
    wanted = _resolve_wanted(spec, wanted_outputs)
    return run_pass(spec, external_inputs or {}, wanted)


def evaluate_graph(
    graph: Graph | GraphSpec,
    external_inputs: Mapping[str, Any] | None = None,
    wanted_outputs: Iterable[PortLike] | None = None,
) -> EvaluationResult:
    """Evaluate a graph, returning errors as part of the result.

    Same pass as `evaluate`, but any EngineError is captured in
    `EvaluationResult.error` instead of being raised.

    Example:
        >>> result = evaluate_graph(graph, {}, ["doubled.out"])
        >>> if result.success:
        ...     print(result.get_value("doubled.out"))

    """
    evaluated: list[str] = []
    try:
        spec = _resolve_spec(graph)
        wanted = _resolve_wanted(spec, wanted_outputs)
        values = run_pass(spec, external_inputs or {}, wanted, evaluated)
    except EngineError as e:
        return EvaluationResult(error=e, evaluated=tuple(evaluated))
    return EvaluationResult(values=values, evaluated=tuple(evaluated))
