from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomli_w
from pydantic import BaseModel

from ._errors import InputFileError

if TYPE_CHECKING:
    from ._ports import PortRef
    from ._types import ValueType

logger = logging.getLogger(__name__)


def load_external_inputs(path: Path, slots: Mapping[str, ValueType]) -> dict[str, Any]:
    """Load external slot values from a TOML file.

    The file is a flat table of slot name to value. Values are converted to
    the slot's value type, so `origin = [1.0, 2.0]` becomes a
    `tuple[float, float]` for a Position slot.

    Args:
        path: The TOML file.
        slots: The graph's external slots and their value types.

    Returns:
        Mapping from slot name to converted value.

    Raises:
        InputFileError: If the file cannot be read or parsed, or names a
            slot the graph does not declare.
        ValueTypeError: If a value cannot be converted to its slot's type.

    """
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise InputFileError(msg) from e
    except OSError as e:
        msg = f"Cannot read inputs file {path}: {e}"
        raise InputFileError(msg) from e

    unknown = [name for name in data if name not in slots]
    if unknown:
        msg = f"{path} sets undeclared external slot(s): {', '.join(unknown)}. Declared: {', '.join(slots) or 'none'}"
        raise InputFileError(msg)

    values = {name: slots[name].coerce(value, where=f"external slot '{name}'") for name, value in data.items()}
    logger.debug("Loaded %d external input(s) from %s", len(values), path)
    return values


def _serialize_value(value: Any) -> Any:
    """Recursively convert a value into something TOML can represent.

    Handles:
    - Pydantic BaseModel: Converts to dict via model_dump()
    - dict: Recursively serializes values, stringifying keys
    - list/tuple: Recursively serializes items
    - None and other objects: Rendered with str()
    """
    if isinstance(value, BaseModel):
        return _serialize_value(value.model_dump(mode="python"))
    if isinstance(value, Mapping):
        return {str(k): _serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    if isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def export_results_to_toml(values: Mapping[PortRef, Any], path: Path) -> None:
    """Write evaluation results as a TOML table per instance.

    Example output:

        [doubled]
        out = 10.0

    """
    data: dict[str, dict[str, Any]] = {}
    for ref, value in values.items():
        data.setdefault(ref.instance, {})[ref.port] = _serialize_value(value)

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(data, f)
    logger.debug("Exported %d value(s) to %s", len(values), path)


def format_value(value: Any) -> str:
    """Render a value compactly for display."""
    if isinstance(value, float):
        return f"{value:g}"
    if isinstance(value, tuple):
        return "(" + ", ".join(format_value(v) for v in value) + ")"
    return repr(value)
