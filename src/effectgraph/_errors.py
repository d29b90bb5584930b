"""Exception hierarchy for graph construction, validation and evaluation.

Every failure the engine reports is an `EngineError`. Node implementations
signal their own failures by raising (optionally `NodeFailure`); the evaluator
wraps whatever they raise in an `EvaluationError` tagged with the instance id.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ._ports import Direction, PortRef
    from ._types import ValueType


class EngineError(Exception):
    """Base class for all errors raised by effectgraph."""


class NodeFailure(Exception):  # noqa: N818
    """Raised by node implementations to report a domain failure.

    Example: an explosion node finding no entity inside its radius.
    """


# =============================================================================
# Node definitions
# =============================================================================


class DefinitionError(EngineError):
    """Error in a node definition or a node registry."""


class InvalidDefinitionError(DefinitionError):
    """A node definition is malformed (duplicate port names, no outputs, ...)."""


class DuplicateDefinitionError(DefinitionError):
    """A definition with the same id is already registered."""

    def __init__(self, definition_id: str) -> None:
        self.definition_id = definition_id
        super().__init__(f"Node definition '{definition_id}' is already registered")


class UnknownDefinitionError(DefinitionError, KeyError):
    """No definition with the requested id is registered."""

    def __init__(self, definition_id: str) -> None:
        self.definition_id = definition_id
        super().__init__(f"Unknown node definition '{definition_id}'")

    def __str__(self) -> str:
        return str(self.args[0])


# =============================================================================
# Graph construction
# =============================================================================


class GraphConstructionError(EngineError):
    """The call would produce a malformed graph. The graph is left unchanged."""


class DuplicateInstanceError(GraphConstructionError):
    """An instance with the same id already exists in the graph."""

    def __init__(self, instance: str) -> None:
        self.instance = instance
        super().__init__(f"Instance '{instance}' already exists in the graph")


class InvalidConfigError(GraphConstructionError):
    """Configuration keywords do not match the definition's parameters."""

    def __init__(
        self,
        instance: str,
        *,
        missing: Iterable[str] = (),
        unexpected: Iterable[str] = (),
        reason: str | None = None,
    ) -> None:
        self.instance = instance
        self.missing = tuple(sorted(missing))
        self.unexpected = tuple(sorted(unexpected))
        problems: list[str] = []
        if self.missing:
            problems.append(f"missing {', '.join(self.missing)}")
        if self.unexpected:
            problems.append(f"unexpected {', '.join(self.unexpected)}")
        if reason:
            problems.append(reason)
        super().__init__(f"Invalid configuration for instance '{instance}': {'; '.join(problems)}")


class WiringError(GraphConstructionError):
    """An edge could not be added."""


class UnknownInstanceError(WiringError):
    """The named instance does not exist in the graph."""

    def __init__(self, instance: str) -> None:
        self.instance = instance
        super().__init__(f"Unknown instance '{instance}'")


class UnknownPort(WiringError):  # noqa: N818
    """The named port does not exist on the instance."""

    def __init__(self, instance: str, port: str, direction: Direction) -> None:
        self.instance = instance
        self.port = port
        self.direction = direction
        super().__init__(f"Instance '{instance}' has no {direction} port '{port}'")


class InvalidPortReferenceError(WiringError, ValueError):
    """A port reference is not a PortRef, an (instance, port) pair or an 'instance.port' string."""

    def __init__(self, ref: object) -> None:
        self.ref = ref
        super().__init__(f"Invalid port reference {ref!r}: expected 'instance.port'")


class TypeMismatch(WiringError):  # noqa: N818
    """Source and target ports carry different value types."""

    def __init__(
        self,
        source: object,
        target: PortRef,
        source_type: ValueType,
        target_type: ValueType,
    ) -> None:
        self.source = source
        self.target = target
        self.source_type = source_type
        self.target_type = target_type
        super().__init__(
            f"Cannot wire {source} ({source_type}) to {target} ({target_type}): value types differ",
        )


class PortAlreadyBound(WiringError):  # noqa: N818
    """The target input port already has an incoming edge."""

    def __init__(self, target: PortRef, existing_source: object) -> None:
        self.target = target
        self.existing_source = existing_source
        super().__init__(f"Input port {target} is already fed by {existing_source}")


# =============================================================================
# Validation
# =============================================================================


class GraphValidationError(EngineError):
    """The graph cannot be evaluated as it stands."""


class CycleError(GraphValidationError):
    """The dependency relation between instances contains a cycle."""

    def __init__(self, instances: Iterable[Any]) -> None:
        self.instances = tuple(instances)
        chain = " -> ".join(str(i) for i in (*self.instances, *self.instances[:1]))
        super().__init__(f"Cycle detected between instances: {chain}")


class UnboundInputError(GraphValidationError):
    """An input port has neither an incoming edge nor an external binding."""

    def __init__(self, port: PortRef, ports: Iterable[PortRef] = (), *, message: str | None = None) -> None:
        self.port = port
        self.ports = tuple(ports) or (port,)
        if message is None:
            if len(self.ports) == 1:
                message = f"Input port {port} is not bound"
            else:
                message = f"{len(self.ports)} input ports are not bound: {', '.join(str(p) for p in self.ports)}"
        super().__init__(message)


class MissingExternalInputError(UnboundInputError):
    """An input port is bound to an external slot for which no value was supplied."""

    def __init__(self, slot: str, port: PortRef) -> None:
        self.slot = slot
        super().__init__(port, message=f"No value supplied for external slot '{slot}' (feeds {port})")


# =============================================================================
# Values and evaluation
# =============================================================================


class ValueTypeError(EngineError, TypeError):
    """A runtime value does not match its declared value type."""

    def __init__(self, value_type: ValueType, value: object, where: str | None = None) -> None:
        self.value_type = value_type
        self.value = value
        self.where = where
        location = f" for {where}" if where else ""
        super().__init__(f"Expected {value_type}{location}, got {type(value).__name__}: {value!r}")


class EvaluationError(EngineError):
    """A node instance failed during an evaluation pass.

    Attributes:
        instance: Id of the failing instance.
        cause: The exception raised by (or on behalf of) the node.
        discarded: Values computed earlier in the pass, dropped with the failure.

    """

    def __init__(
        self,
        instance: str,
        cause: BaseException,
        discarded: Mapping[PortRef, Any] | None = None,
    ) -> None:
        self.instance = instance
        self.cause = cause
        self.discarded = dict(discarded or {})
        super().__init__(f"Evaluation of instance '{instance}' failed: {cause}")


class OutputContractError(EvaluationError):
    """A node returned outputs that do not match its declared output ports."""


class InputFileError(EngineError):
    """An external inputs file could not be read or names an undeclared slot."""
