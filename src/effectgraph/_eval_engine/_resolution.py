"""Input assembly and output checking for a single node invocation."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from effectgraph._errors import MissingExternalInputError, OutputContractError, UnboundInputError, ValueTypeError
from effectgraph._ports import ExternalSlot, PortRef

if TYPE_CHECKING:
    from effectgraph._ir import InstanceSpec


def inputs_available(
    instance: InstanceSpec,
    computed: Mapping[PortRef, Any],
    external_inputs: Mapping[str, Any],
) -> bool:
    """Check whether every input of an instance can be resolved right now."""
    for port in instance.definition.inputs:
        match instance.sources.get(port.name):
            case ExternalSlot(name=slot):
                if slot not in external_inputs:
                    return False
            case PortRef() as source:
                if source not in computed:
                    return False
            case _:
                return False
    return True


def assemble_inputs(
    instance: InstanceSpec,
    computed: Mapping[PortRef, Any],
    external_inputs: Mapping[str, Any],
) -> dict[str, Any]:
    """Collect the input values for one node invocation.

    Every declared input must be present and must match its port's value
    type; the node is never called otherwise.

    Args:
        instance: The instance about to be evaluated.
        computed: Output values memoised so far in this pass.
        external_inputs: Values supplied by the caller, keyed by slot name.

    Returns:
        Mapping from input port name to value, in declaration order.

    Raises:
        UnboundInputError: If an input has no source or its upstream value
            was not computed.
        MissingExternalInputError: If a bound slot has no supplied value.
        ValueTypeError: If a value does not match the port's value type.

    """
    inputs: dict[str, Any] = {}

    for port in instance.definition.inputs:
        target = PortRef(instance.id, port.name)
        match instance.sources.get(port.name):
            case None:
                raise UnboundInputError(target)
            case ExternalSlot(name=slot):
                if slot not in external_inputs:
                    raise MissingExternalInputError(slot, target)
                value = external_inputs[slot]
                where = f"external slot '{slot}' (feeds {target})"
            case PortRef() as source:
                if source not in computed:
                    msg = f"Upstream value {source} for {target} has not been computed"
                    raise UnboundInputError(target, message=msg)
                value = computed[source]
                where = f"{source} -> {target}"

        if not port.type.accepts(value):
            raise ValueTypeError(port.type, value, where)
        inputs[port.name] = value

    return inputs


def collect_outputs(
    instance: InstanceSpec,
    result: object,
    discarded: Mapping[PortRef, Any],
) -> dict[PortRef, Any]:
    """Check a node's return value against its declared outputs.

    Args:
        instance: The instance that produced `result`.
        result: Whatever the definition's evaluate function returned.
        discarded: Values computed so far, attached to the error on failure.

    Returns:
        Mapping from output PortRef to value.

    Raises:
        OutputContractError: If `result` is not a mapping, misses or adds
            ports, or carries a value of the wrong type.

    """
    if not isinstance(result, Mapping):
        cause = TypeError(f"expected a mapping of output values, got {type(result).__name__}")
        raise OutputContractError(instance.id, cause, discarded)

    declared = [port.name for port in instance.definition.outputs]
    missing = [name for name in declared if name not in result]
    unexpected = [str(name) for name in result if name not in declared]
    if missing or unexpected:
        problems = []
        if missing:
            problems.append(f"missing outputs {missing}")
        if unexpected:
            problems.append(f"unexpected outputs {unexpected}")
        raise OutputContractError(instance.id, TypeError("; ".join(problems)), discarded)

    outputs: dict[PortRef, Any] = {}
    for port in instance.definition.outputs:
        ref = PortRef(instance.id, port.name)
        value = result[port.name]
        if not port.type.accepts(value):
            raise OutputContractError(instance.id, ValueTypeError(port.type, value, f"output {ref}"), discarded)
        outputs[ref] = value
    return outputs
