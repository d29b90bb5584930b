"""Utilities to discover graphs and registries in Python modules.

This module was adapted from `fastapi_cli.discover` of package `fastapi-cli` version 0.0.8 (77e6d1f).
"""

from __future__ import annotations

import importlib
import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from effectgraph._composition import Graph
from effectgraph._node import NodeRegistry

from .config import ModuleSource, ScriptSource

if TYPE_CHECKING:
    from pathlib import Path

    from .config import ObjectSource

logger = logging.getLogger(__name__)


@dataclass
class ModuleData:
    """Module data for a Python module."""

    module_import_str: str
    extra_sys_path: Path
    module_paths: list[Path]


def get_module_data_from_path(path: Path) -> ModuleData:
    """Get module data from a file path.

    Args:
        path: Path to a Python file or package

    Returns:
        ModuleData containing module import information

    """
    use_path = path.resolve()
    module_path = use_path
    if use_path.is_file() and use_path.stem == "__init__":
        module_path = use_path.parent
    module_paths = [module_path]
    extra_sys_path = module_path.parent
    for parent in module_path.parents:
        init_path = parent / "__init__.py"
        if init_path.is_file():
            module_paths.insert(0, parent)
            extra_sys_path = parent.parent
        else:
            break

    module_str = ".".join(p.stem for p in module_paths)
    return ModuleData(
        module_import_str=module_str,
        extra_sys_path=extra_sys_path.resolve(),
        module_paths=module_paths,
    )


def load_object_from_script[T](script_path: Path, kind: type[T], name: str | None = None) -> T:
    """Load an object of the given type from a Python script path.

    Args:
        script_path: Path to the Python script
        kind: Expected type of the object (Graph or NodeRegistry)
        name: Name of the variable. If None, the first matching object in the module is used

    Returns:
        The loaded object

    Raises:
        ImportError: If the module cannot be imported
        ValueError: If no object is found or the named variable doesn't exist
        TypeError: If the named variable is not of the expected type

    """
    module_data = get_module_data_from_path(script_path)
    sys.path.insert(0, str(module_data.extra_sys_path))

    try:
        module = importlib.import_module(module_data.module_import_str)
    except (ImportError, ValueError):
        logger.exception("Import error")
        logger.warning("Ensure all the package directories have an __init__.py file")
        raise

    if name:
        if not hasattr(module, name):
            msg = f"Could not find '{name}' in {module_data.module_import_str}"
            raise ValueError(msg)
        obj = getattr(module, name)
        if not isinstance(obj, kind):
            msg = f"'{name}' in {module_data.module_import_str} is not a {kind.__name__} instance"
            raise TypeError(msg)
        return obj

    # Infer from module
    for attr in dir(module):
        obj = getattr(module, attr)
        if isinstance(obj, kind):
            logger.debug("Found %s: %s", kind.__name__, attr)
            return obj

    msg = f"Could not find a {kind.__name__} in {module_data.module_import_str}, try naming it explicitly"
    raise ValueError(msg)


def load_object_from_module_path[T](module_path: str, kind: type[T]) -> T:
    """Load an object from a module path (e.g., 'examples.effects:blast').

    Args:
        module_path: Module path in format 'module.path:variable_name'
        kind: Expected type of the object

    Returns:
        The loaded object

    Raises:
        ValueError: If module path format is invalid
        TypeError: If the specified variable is not of the expected type

    """
    if ":" not in module_path:
        msg = "Module path must be in format 'module.path:variable_name'"
        raise ValueError(msg)

    module_name, var_name = module_path.split(":", 1)
    module = importlib.import_module(module_name)
    obj = getattr(module, var_name)

    if not isinstance(obj, kind):
        msg = f"'{var_name}' in module '{module_name}' is not a {kind.__name__} instance"
        raise TypeError(msg)

    return obj


def load_from_source[T](source: ObjectSource, kind: type[T]) -> T:
    """Load an object from an ObjectSource (script or module)."""
    match source:
        case ScriptSource(script=script, name=name):
            return load_object_from_script(script, kind, name)
        case ModuleSource(module_path=module_path):
            return load_object_from_module_path(module_path, kind)


def load_graph(source: ObjectSource) -> Graph:
    return load_from_source(source, Graph)


def load_registry(source: ObjectSource) -> NodeRegistry:
    return load_from_source(source, NodeRegistry)
