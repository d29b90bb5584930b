"""Port descriptors, port addresses and wiring compatibility."""

from dataclasses import dataclass
from enum import StrEnum, auto
from typing import ClassVar, Self

from ._errors import InvalidPortReferenceError
from ._types import ValueType


class Direction(StrEnum):
    """Whether a port consumes or produces a value."""

    INPUT = auto()  # Consumes a value from an edge or an external slot
    OUTPUT = auto()  # Produces a value when the node is evaluated


@dataclass(frozen=True, slots=True)
class PortDescriptor:
    """A named, typed input or output slot on a node definition."""

    name: str
    type: ValueType
    direction: Direction

    def __post_init__(self) -> None:
        if not self.name or PortRef.SEPARATOR in self.name:
            msg = f"Invalid port name {self.name!r}: must be non-empty and must not contain '{PortRef.SEPARATOR}'"
            raise ValueError(msg)
        if not isinstance(self.type, ValueType):
            msg = f"Port '{self.name}' must be typed with a ValueType, got {self.type!r}"
            raise TypeError(msg)

    def __str__(self) -> str:
        return f"{self.name}: {self.type}"


def In(name: str, value_type: ValueType) -> PortDescriptor:  # noqa: N802
    """Create an input port descriptor."""
    return PortDescriptor(name=name, type=value_type, direction=Direction.INPUT)


def Out(name: str, value_type: ValueType) -> PortDescriptor:  # noqa: N802
    """Create an output port descriptor."""
    return PortDescriptor(name=name, type=value_type, direction=Direction.OUTPUT)


def compatible(output: PortDescriptor, input: PortDescriptor) -> bool:  # noqa: A002
    """Check whether `output` may be wired into `input`.

    True iff the first port is an output, the second an input, and their value
    types are equal. There are no implicit conversions; model them as adapter
    nodes instead.

    Example:
        >>> compatible(Out("v", FLOAT), In("x", FLOAT))
        True
        >>> compatible(Out("p", POSITION), In("d", DIRECTION))
        False

    """
    return (
        output.direction is Direction.OUTPUT
        and input.direction is Direction.INPUT
        and output.type == input.type
    )


@dataclass(frozen=True, slots=True)
class PortRef:
    """Address of a port on a node instance, rendered as `instance.port`."""

    instance: str
    port: str

    SEPARATOR: ClassVar[str] = "."

    def __str__(self) -> str:
        return f"{self.instance}{self.SEPARATOR}{self.port}"

    @classmethod
    def parse(cls, ref_str: str) -> Self:
        """Parse `instance.port`.

        Raises:
            InvalidPortReferenceError: If either part is missing.

        """
        instance, sep, port = ref_str.strip().partition(cls.SEPARATOR)
        if not sep or not instance or not port:
            raise InvalidPortReferenceError(ref_str)
        return cls(instance=instance, port=port)


@dataclass(frozen=True, slots=True)
class ExternalSlot:
    """A named value supplied by the caller at evaluation time."""

    name: str

    PREFIX: ClassVar[str] = "$"

    def __str__(self) -> str:
        return f"{self.PREFIX}{self.name}"


type PortLike = PortRef | tuple[str, str] | str


def as_port_ref(ref: PortLike) -> PortRef:
    """Normalize a `PortRef`, an `(instance, port)` tuple or an `instance.port` string."""
    match ref:
        case PortRef():
            return ref
        case (str() as instance, str() as port):
            return PortRef(instance=instance, port=port)
        case str():
            return PortRef.parse(ref)
        case _:
            msg = f"Cannot interpret {ref!r} as a port reference"
            raise TypeError(msg)
