import inspect
import keyword
import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Annotated, Any, get_args, get_origin

from ._errors import DuplicateDefinitionError, InvalidDefinitionError, UnknownDefinitionError
from ._ports import Direction, In, Out, PortDescriptor
from ._types import ValueType

logger = logging.getLogger(__name__)

type EvaluateFn = Callable[..., Mapping[str, Any]]


def _check_unique(ports: tuple[PortDescriptor, ...], definition_id: str, kind: str) -> None:
    seen: set[str] = set()
    for port in ports:
        if port.name in seen:
            msg = f"Node definition '{definition_id}' declares {kind} port '{port.name}' more than once"
            raise InvalidDefinitionError(msg)
        seen.add(port.name)


@dataclass(frozen=True, slots=True, eq=False)
class NodeDefinition:
    """A reusable unit of computation with typed input and output ports.

    Definitions are shared by reference between instances and graphs. The
    evaluation function receives a mapping of every declared input plus the
    instance's baked-in configuration as keyword arguments, and returns a
    mapping of every declared output.

    Attributes:
        id: Definition identifier, unique within a registry.
        inputs: Ordered input port descriptors (may be empty).
        outputs: Ordered output port descriptors (at least one).
        evaluate: `evaluate(inputs, **config) -> outputs`.
        parameters: Names of configuration keywords supplied at instantiation.
        defaults: Parameters that may be omitted at instantiation.
        pure: False if evaluation has externally visible side effects.
        description: One-line description for listings.

    """

    id: str
    inputs: tuple[PortDescriptor, ...]
    outputs: tuple[PortDescriptor, ...]
    evaluate: EvaluateFn
    parameters: tuple[str, ...] = ()
    defaults: Mapping[str, Any] = field(default_factory=dict)
    pure: bool = True
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "outputs", tuple(self.outputs))
        object.__setattr__(self, "parameters", tuple(self.parameters))
        object.__setattr__(self, "defaults", MappingProxyType(dict(self.defaults)))

        if not self.id:
            msg = "Node definition id must not be empty"
            raise InvalidDefinitionError(msg)
        if not self.outputs:
            msg = f"Node definition '{self.id}' must declare at least one output port"
            raise InvalidDefinitionError(msg)
        for port in self.inputs:
            if port.direction is not Direction.INPUT:
                msg = f"Node definition '{self.id}': '{port.name}' is listed as input but is an {port.direction} port"
                raise InvalidDefinitionError(msg)
        for port in self.outputs:
            if port.direction is not Direction.OUTPUT:
                msg = f"Node definition '{self.id}': '{port.name}' is listed as output but is an {port.direction} port"
                raise InvalidDefinitionError(msg)
        _check_unique(self.inputs, self.id, "input")
        _check_unique(self.outputs, self.id, "output")
        unknown_defaults = set(self.defaults) - set(self.parameters)
        if unknown_defaults:
            msg = f"Node definition '{self.id}' has defaults for undeclared parameters: {sorted(unknown_defaults)}"
            raise InvalidDefinitionError(msg)

    def input_port(self, name: str) -> PortDescriptor | None:
        return next((p for p in self.inputs if p.name == name), None)

    def output_port(self, name: str) -> PortDescriptor | None:
        return next((p for p in self.outputs if p.name == name), None)

    @property
    def required_parameters(self) -> frozenset[str]:
        return frozenset(self.parameters) - frozenset(self.defaults)

    def __repr__(self) -> str:
        ins = ", ".join(str(p) for p in self.inputs)
        outs = ", ".join(str(p) for p in self.outputs)
        return f"NodeDefinition({self.id}: ({ins}) -> ({outs}))"


# =============================================================================
# Building definitions from annotated functions
# =============================================================================


def _port_name_for(param_name: str) -> str:
    """Strip the trailing underscore used to dodge keywords (`in_` -> `in`)."""
    stripped = param_name.removesuffix("_")
    if stripped and param_name.endswith("_") and keyword.iskeyword(stripped):
        return stripped
    return param_name


def _value_type_from_annotation(annotation: Any) -> ValueType | None:
    if get_origin(annotation) is not Annotated:
        return None
    return next((arg for arg in get_args(annotation)[1:] if isinstance(arg, ValueType)), None)


def definition_from_function(  # noqa: C901
    func: Callable[..., Any],
    *,
    id: str | None = None,  # noqa: A002
    outputs: Mapping[str, ValueType] | None = None,
    output_name: str = "out",
    pure: bool = True,
    description: str | None = None,
) -> NodeDefinition:
    """Build a `NodeDefinition` from an annotated function.

    Positional-or-keyword parameters become input ports and must be annotated
    as `Annotated[T, <ValueType>]`. Keyword-only parameters become
    configuration parameters baked in at instantiation.

    Outputs are either given explicitly with `outputs` (the function then
    returns a mapping of port name to value) or derived from an
    `Annotated[T, <ValueType>]` return annotation (the function returns the
    bare value for the single output port `output_name`).

    Raises:
        InvalidDefinitionError: If the signature cannot be mapped to ports.

    """
    definition_id = id or func.__name__
    sig = inspect.signature(func, eval_str=True)

    inputs: list[PortDescriptor] = []
    param_for_port: dict[str, str] = {}
    parameters: list[str] = []
    defaults: dict[str, Any] = {}

    for param in sig.parameters.values():
        match param.kind:
            case inspect.Parameter.KEYWORD_ONLY:
                parameters.append(param.name)
                if param.default is not inspect.Parameter.empty:
                    defaults[param.name] = param.default
            case inspect.Parameter.POSITIONAL_OR_KEYWORD:
                value_type = _value_type_from_annotation(param.annotation)
                if value_type is None:
                    msg = (
                        f"Parameter '{param.name}' of node '{definition_id}' must be annotated "
                        "with Annotated[T, <ValueType>] (or be keyword-only to act as configuration)."
                    )
                    raise InvalidDefinitionError(msg)
                port_name = _port_name_for(param.name)
                inputs.append(In(port_name, value_type))
                param_for_port[port_name] = param.name
            case _:
                msg = f"Parameter '{param.name}' of node '{definition_id}' has unsupported kind {param.kind.description}"
                raise InvalidDefinitionError(msg)

    single_output: str | None = None
    if outputs is not None:
        output_ports = tuple(Out(name, value_type) for name, value_type in outputs.items())
    else:
        value_type = _value_type_from_annotation(sig.return_annotation)
        if value_type is None:
            msg = (
                f"Node '{definition_id}' must declare outputs, either with outputs={{...}} "
                "or with an Annotated[T, <ValueType>] return annotation."
            )
            raise InvalidDefinitionError(msg)
        output_ports = (Out(output_name, value_type),)
        single_output = output_name

    def evaluate(inputs: Mapping[str, Any], **config: Any) -> Mapping[str, Any]:
        kwargs = {param_for_port[name]: value for name, value in inputs.items()}
        result = func(**kwargs, **config)
        if single_output is not None:
            return {single_output: result}
        return result

    if description is None:
        doc = inspect.getdoc(func) or ""
        description = doc.splitlines()[0] if doc else ""

    return NodeDefinition(
        id=definition_id,
        inputs=tuple(inputs),
        outputs=output_ports,
        evaluate=evaluate,
        parameters=tuple(parameters),
        defaults=defaults,
        pure=pure,
        description=description,
    )


def node(
    id: str | None = None,  # noqa: A002
    *,
    outputs: Mapping[str, ValueType] | None = None,
    output_name: str = "out",
    pure: bool = True,
    description: str | None = None,
) -> Callable[[Callable[..., Any]], NodeDefinition]:
    """Decorator turning an annotated function into a `NodeDefinition`.

    Example:
        @eg.node()
        def double(in_: Annotated[float, eg.FLOAT]) -> Annotated[float, eg.FLOAT]:
            return in_ * 2

    """

    def decorator(func: Callable[..., Any]) -> NodeDefinition:
        return definition_from_function(
            func,
            id=id,
            outputs=outputs,
            output_name=output_name,
            pure=pure,
            description=description,
        )

    return decorator


class NodeRegistry:
    """Process-wide collection of node definitions, keyed by id."""

    def __init__(self) -> None:
        self._definitions: dict[str, NodeDefinition] = {}

    def register(self, definition: NodeDefinition) -> NodeDefinition:
        """Register a definition.

        Raises:
            DuplicateDefinitionError: If a definition with the same id exists.

        """
        if definition.id in self._definitions:
            raise DuplicateDefinitionError(definition.id)
        self._definitions[definition.id] = definition
        logger.debug("Registered node definition %r", definition)
        return definition

    def get(self, definition_id: str) -> NodeDefinition:
        try:
            return self._definitions[definition_id]
        except KeyError:
            raise UnknownDefinitionError(definition_id) from None

    def node(
        self,
        id: str | None = None,  # noqa: A002
        *,
        outputs: Mapping[str, ValueType] | None = None,
        output_name: str = "out",
        pure: bool = True,
        description: str | None = None,
    ) -> Callable[[Callable[..., Any]], NodeDefinition]:
        """Like `node`, but also registers the resulting definition."""
        build = node(id, outputs=outputs, output_name=output_name, pure=pure, description=description)

        def decorator(func: Callable[..., Any]) -> NodeDefinition:
            return self.register(build(func))

        return decorator

    @property
    def definitions(self) -> tuple[NodeDefinition, ...]:
        return tuple(self._definitions.values())

    def __contains__(self, definition_id: object) -> bool:
        return definition_id in self._definitions

    def __iter__(self) -> Iterator[NodeDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)
