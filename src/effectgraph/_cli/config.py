"""Configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import cast


class ConfigError(Exception):
    """Error in effectgraph configuration."""


@dataclass(slots=True, frozen=True)
class ScriptSource:
    """Script path with optional variable name."""

    script: Path
    name: str | None = None


@dataclass(slots=True, frozen=True)
class ModuleSource:
    """Module path with variable name (e.g., 'examples.effects:blast')."""

    module_path: str


type ObjectSource = ScriptSource | ModuleSource


@dataclass(slots=True, frozen=True)
class EffectgraphConfig:
    """Configuration loaded from pyproject.toml.

    All relative paths are resolved from the project root (directory containing pyproject.toml).
    """

    graph: ObjectSource | None = None
    registry: ObjectSource | None = None
    inputs: Path | None = None
    output: Path | None = None
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def parse_source(value: object, key: str, project_root: Path | None = None) -> ObjectSource:
    """Parse a graph or registry source.

    Accepts either a module path string (`"package.module:variable"`), a
    script path string (`"path/to/script.py"`), or, in configuration files, a
    table `{ script = "path.py", name = "variable" }`.

    Args:
        value: The raw value (string, or dict from TOML).
        key: Name of the setting, used in error messages.
        project_root: Directory that relative script paths are resolved from.
            None leaves them relative to the working directory.

    Returns:
        Parsed ObjectSource

    Raises:
        ConfigError: If the value format is invalid

    """
    if isinstance(value, str):
        if value.endswith(".py"):
            script_path = Path(value)
            if project_root is not None and not script_path.is_absolute():
                script_path = project_root / script_path
            return ScriptSource(script=script_path)
        if ":" not in value:
            msg = f"Invalid module path '{value}'. Expected format: 'module.path:variable_name' or a path to a .py script"
            raise ConfigError(msg)
        return ModuleSource(module_path=value)

    if isinstance(value, dict):
        value_dict = cast("dict[str, object]", value)
        if "script" not in value_dict:
            msg = f"Invalid [tool.effectgraph].{key} configuration. Expected string or table with 'script' key."
            raise ConfigError(msg)

        script_value = value_dict["script"]
        if not isinstance(script_value, str):
            msg = f"Invalid [tool.effectgraph].{key}.script: expected string path"
            raise ConfigError(msg)
        script_path = Path(script_value)
        if project_root is not None and not script_path.is_absolute():
            script_path = project_root / script_path

        name = value_dict.get("name")
        if name is not None and not isinstance(name, str):
            msg = f"Invalid [tool.effectgraph].{key}.name: expected string"
            raise ConfigError(msg)

        return ScriptSource(script=script_path, name=name)

    msg = f"Invalid [tool.effectgraph].{key} configuration. Expected string or table with 'script' key."
    raise ConfigError(msg)


def _parse_path(section: dict[str, object], key: str, project_root: Path) -> Path | None:
    if key not in section:
        return None
    value = section[key]
    if not isinstance(value, str):
        msg = f"Invalid [tool.effectgraph].{key}: expected string path"
        raise ConfigError(msg)
    path = Path(value)
    if not path.is_absolute():
        path = project_root / path
    return path


def load_config(pyproject_path: Path) -> EffectgraphConfig:
    """Load and validate [tool.effectgraph] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed EffectgraphConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("effectgraph", {})
    if not section:
        return EffectgraphConfig(project_root=project_root)
    if not isinstance(section, dict):
        msg = "Invalid [tool.effectgraph]: expected a table"
        raise ConfigError(msg)

    graph = parse_source(section["graph"], "graph", project_root) if "graph" in section else None
    registry = parse_source(section["registry"], "registry", project_root) if "registry" in section else None

    return EffectgraphConfig(
        graph=graph,
        registry=registry,
        inputs=_parse_path(section, "inputs", project_root),
        output=_parse_path(section, "output", project_root),
        project_root=project_root,
    )


def get_config() -> EffectgraphConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        EffectgraphConfig (may be empty if no pyproject.toml or no [tool.effectgraph] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return EffectgraphConfig()
    return load_config(pyproject_path)
