"""Value type tags carried by ports."""

from dataclasses import dataclass
from functools import cache
from typing import Any, get_origin

from pydantic import ConfigDict, PydanticUserError, TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError

from ._errors import ValueTypeError

# PEP 484 numeric promotion: an int is acceptable where a float is expected.
_PROMOTIONS: dict[type, tuple[type, ...]] = {float: (int,)}


@cache
def _type_adapter(annotation: Any) -> TypeAdapter[Any]:
    try:
        return TypeAdapter(annotation)
    except PydanticSchemaGenerationError:
        # Collaborator classes without a pydantic schema are checked with isinstance
        return TypeAdapter(annotation, config=ConfigDict(arbitrary_types_allowed=True))


def _is_plain_class(annotation: Any) -> bool:
    return isinstance(annotation, type) and get_origin(annotation) is None


@dataclass(frozen=True, slots=True)
class ValueType:
    """Tag identifying the semantic kind of value flowing on a port.

    Two ports are wire-compatible only when their tags are equal. The tag name
    carries the semantics and the annotation the runtime representation, so
    `Position` and `Direction` can share `tuple[float, float]` and still be
    kept apart at wiring time.

    Attributes:
        name: Human-readable tag name (e.g. "Position").
        annotation: Python type used to check runtime values. `object` (the
            default) accepts anything.

    Example:
        >>> ENTITY = ValueType("Entity", int)
        >>> ENTITY.accepts(3)
        True
        >>> ENTITY == ValueType("Entity", int)
        True

    """

    name: str
    annotation: Any = object

    def __post_init__(self) -> None:
        if not self.name:
            msg = "ValueType name must not be empty"
            raise ValueError(msg)
        if self.annotation is object or self.annotation is Any:
            return
        try:
            _type_adapter(self.annotation)
        except (PydanticUserError, TypeError) as e:
            msg = f"ValueType '{self.name}' cannot check values of {self.annotation!r}: {e}"
            raise ValueError(msg) from e

    def __str__(self) -> str:
        return self.name

    def accepts(self, value: object) -> bool:
        """Check whether a runtime value matches this type without conversion.

        Plain classes are checked with `isinstance` (an int is accepted for
        float). Generic aliases, unions, literals and constrained `Annotated`
        types are validated by pydantic in strict mode.
        """
        annotation = self.annotation
        if annotation is object or annotation is Any:
            return True
        if _is_plain_class(annotation):
            if isinstance(value, bool) and annotation is not bool:
                return False
            return isinstance(value, (annotation, *_PROMOTIONS.get(annotation, ())))
        try:
            _type_adapter(annotation).validate_python(value, strict=True)
        except ValidationError:
            return False
        return True

    def coerce(self, value: object, where: str | None = None) -> Any:
        """Convert a loosely typed value (e.g. parsed from TOML) to this type.

        Args:
            value: The raw value.
            where: Optional description of the destination, used in errors.

        Returns:
            The value itself when it already matches, else the converted value.

        Raises:
            ValueTypeError: If the value cannot be converted.

        """
        if self.accepts(value):
            return value
        try:
            return _type_adapter(self.annotation).validate_python(value)
        except ValidationError as e:
            raise ValueTypeError(self, value, where) from e


Vec2 = tuple[float, float]

ANY = ValueType("Any")
FLOAT = ValueType("Float", float)
INT = ValueType("Int", int)
BOOL = ValueType("Bool", bool)
STRING = ValueType("String", str)
POSITION = ValueType("Position", Vec2)
DIRECTION = ValueType("Direction", Vec2)
