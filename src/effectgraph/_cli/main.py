import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from effectgraph._composition import Graph
from effectgraph._errors import EngineError
from effectgraph._eval_engine import evaluate
from effectgraph._io import export_results_to_toml, load_external_inputs
from effectgraph._node import NodeRegistry

from .config import ConfigError, EffectgraphConfig, ObjectSource, ScriptSource, get_config, parse_source
from .discover import load_graph, load_registry
from .graph_query import get_dependency_tree, list_definitions, list_instances, suggest_chains
from .graph_render import (
    render_chains,
    render_definition_table,
    render_instance_table,
    render_slot_table,
    render_tree,
    render_values_table,
)

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()

PathArgument = Annotated[
    str | None,
    typer.Argument(help="Path to Python script or module path (e.g., examples.effects:blast)"),
]


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Effectgraph CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]✗ {escape(message)}[/red]")
    err_console.print()
    return typer.Exit(code=1)


def _load_config() -> EffectgraphConfig:
    try:
        return get_config()
    except ConfigError as e:
        raise _fail(str(e)) from e


def _resolve_source(
    path: str | None,
    var_name: str | None,
    configured: ObjectSource | None,
    key: str,
) -> ObjectSource:
    """Pick the source named on the command line, falling back to configuration."""
    if path is None:
        if configured is None:
            msg = f"No {key} given and no [tool.effectgraph].{key} configured"
            raise _fail(msg)
        return configured

    try:
        source = parse_source(path, key)
    except ConfigError as e:
        raise _fail(str(e)) from e
    if var_name is not None and isinstance(source, ScriptSource):
        source = ScriptSource(script=source.script, name=var_name)
    logger.debug("Resolved %s source: %s", key, source)
    return source


def _describe(source: ObjectSource) -> str:
    if isinstance(source, ScriptSource):
        return f"script {source.script}"
    return f"module {source.module_path}"


def _load_graph(path: str | None, graph_var: str | None, config: EffectgraphConfig) -> Graph:
    source = _resolve_source(path, graph_var, config.graph, "graph")
    err_console.print(f"[cyan]Loading graph from {escape(_describe(source))}[/cyan]")
    graph = load_graph(source)
    err_console.print(f"[cyan]Graph:[/cyan] [bold]{escape(graph.name)}[/bold]")
    err_console.print()
    return graph


def _load_registry(path: str | None, registry_var: str | None, config: EffectgraphConfig) -> NodeRegistry:
    source = _resolve_source(path, registry_var, config.registry, "registry")
    err_console.print(f"[cyan]Loading registry from {escape(_describe(source))}[/cyan]")
    registry = load_registry(source)
    err_console.print(f"[cyan]Definitions:[/cyan] {len(registry)}")
    err_console.print()
    return registry


@app.command()
def check(
    path: PathArgument = None,
    *,
    graph_var: Annotated[
        str | None,
        typer.Option("--graph", help="Name of the graph variable (for script paths only)"),
    ] = None,
) -> None:
    """Validate a graph and show its instances in evaluation order."""
    err_console.print()
    config = _load_config()
    graph = _load_graph(path, graph_var, config)

    err_console.print("[cyan]Validating graph...[/cyan]")
    try:
        spec = graph.snapshot()
    except EngineError as e:
        raise _fail(str(e)) from e
    err_console.print()

    render_instance_table(list_instances(spec), err_console)
    render_slot_table(spec.external_slots, err_console)

    err_console.print()
    err_console.print("[green]✓ Graph is valid[/green]")
    err_console.print()


@app.command("eval")
def eval_(  # noqa: PLR0913
    path: PathArgument = None,
    *,
    inputs: Annotated[
        Path | None,
        typer.Option("-i", "--inputs", help="Path to TOML file with external slot values"),
    ] = None,
    want: Annotated[
        list[str] | None,
        typer.Option("-w", "--want", help="Output port to compute as instance.port (repeatable; default: all)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to output TOML file"),
    ] = None,
    graph_var: Annotated[
        str | None,
        typer.Option("--graph", help="Name of the graph variable (for script paths only)"),
    ] = None,
) -> None:
    """Evaluate a graph and print the requested output values."""
    err_console.print()
    config = _load_config()
    graph = _load_graph(path, graph_var, config)

    inputs = inputs or config.inputs
    output = output or config.output

    try:
        spec = graph.snapshot()
        external_inputs = {}
        if inputs is not None:
            err_console.print(f"[cyan]Loading inputs from:[/cyan] {inputs}")
            external_inputs = load_external_inputs(inputs, spec.external_slots)

        err_console.print("[cyan]Evaluating graph...[/cyan]")
        values = evaluate(spec, external_inputs, want)
    except EngineError as e:
        raise _fail(str(e)) from e
    err_console.print()

    err_console.print(Panel.fit("[bold]Results[/bold]", border_style="cyan"))
    render_values_table(values, out_console)

    if output is not None:
        err_console.print()
        err_console.print(f"[cyan]Exporting results to:[/cyan] {output}")
        export_results_to_toml(values, output)

    err_console.print()
    err_console.print("[green]✓ Evaluation complete[/green]")
    err_console.print()


@app.command()
def tree(
    target: Annotated[
        str,
        typer.Argument(help="Output port at the root of the tree, as instance.port"),
    ],
    path: PathArgument = None,
    *,
    graph_var: Annotated[
        str | None,
        typer.Option("--graph", help="Name of the graph variable (for script paths only)"),
    ] = None,
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", help="Maximum depth to show"),
    ] = None,
) -> None:
    """Show the sources an output port depends on."""
    err_console.print()
    config = _load_config()
    graph = _load_graph(path, graph_var, config)

    try:
        tree_node = get_dependency_tree(graph.snapshot(), target, max_depth=max_depth)
    except EngineError as e:
        raise _fail(str(e)) from e

    render_tree(tree_node, out_console)
    err_console.print()


@app.command()
def nodes(
    path: PathArgument = None,
    *,
    registry_var: Annotated[
        str | None,
        typer.Option("--registry", help="Name of the registry variable (for script paths only)"),
    ] = None,
) -> None:
    """List the node definitions of a registry."""
    err_console.print()
    config = _load_config()
    registry = _load_registry(path, registry_var, config)

    render_definition_table(list_definitions(registry), out_console)
    err_console.print()


@app.command()
def chains(  # noqa: PLR0913
    path: PathArgument = None,
    *,
    produces: Annotated[
        list[str],
        typer.Option("-p", "--produces", help="Value type the chain must produce (repeatable)"),
    ],
    available: Annotated[
        list[str] | None,
        typer.Option("-a", "--available", help="Value type supplied externally (repeatable)"),
    ] = None,
    max_length: Annotated[
        int,
        typer.Option("--max-length", min=1, help="Maximum number of nodes per chain"),
    ] = 4,
    registry_var: Annotated[
        str | None,
        typer.Option("--registry", help="Name of the registry variable (for script paths only)"),
    ] = None,
) -> None:
    """Suggest chains of registered nodes that produce the given value types."""
    err_console.print()
    config = _load_config()
    registry = _load_registry(path, registry_var, config)

    try:
        found = suggest_chains(registry, produces, available or (), max_length)
    except KeyError as e:
        raise _fail(e.args[0]) from e

    render_chains(found, out_console)
    err_console.print()


def main() -> None:
    app()
