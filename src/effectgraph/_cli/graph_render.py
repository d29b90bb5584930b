"""Rich rendering utilities for graph query commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from effectgraph._io import format_value
from effectgraph._ports import ExternalSlot

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from rich.console import Console

    from effectgraph._node import NodeDefinition
    from effectgraph._ports import PortRef

    from .graph_query import DefinitionInfo, InstanceInfo, TreeNode


def render_instance_table(instances: list[InstanceInfo], console: Console) -> None:
    """Render instances as a Rich table, in evaluation order.

    Args:
        instances: List of InstanceInfo to render.
        console: Rich Console to output to.

    """
    if not instances:
        console.print("[dim]Graph has no instances[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Instance", style="bold")
    table.add_column("Node", style="green")
    table.add_column("Inputs")
    table.add_column("Outputs", style="yellow")

    for info in instances:
        table.add_row(
            str(info.position),
            escape(info.id),
            escape(info.definition_id),
            escape("\n".join(info.inputs)) or "[dim]-[/dim]",
            escape("\n".join(info.outputs)),
        )

    console.print(table)


def render_slot_table(slots: Mapping[str, Any], console: Console) -> None:
    """Render external slots and their value types."""
    if not slots:
        return

    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("External slot", style="magenta")
    table.add_column("Type")
    for name, value_type in slots.items():
        table.add_row(escape(str(ExternalSlot(name))), escape(str(value_type)))
    console.print(table)


def render_values_table(values: Mapping[PortRef, Any], console: Console) -> None:
    """Render evaluated output values.

    Args:
        values: Mapping from output port to value.
        console: Rich Console to output to.

    """
    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Port", style="dim")
    table.add_column("Value")

    for ref, value in values.items():
        table.add_row(escape(str(ref)), escape(format_value(value)))

    console.print(table)


def render_definition_table(definitions: list[DefinitionInfo], console: Console) -> None:
    if not definitions:
        console.print("[dim]Registry has no definitions[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Node", style="bold")
    table.add_column("Signature")
    table.add_column("Parameters", style="dim")
    table.add_column("Description")

    for info in definitions:
        node_id = escape(info.id) if info.pure else f"{escape(info.id)} [yellow](impure)[/yellow]"
        table.add_row(node_id, escape(info.signature), escape(", ".join(info.parameters)), escape(info.description))

    console.print(table)


def render_chains(chains: Sequence[Sequence[NodeDefinition]], console: Console) -> None:
    """Render suggested chains as a numbered list.

    Args:
        chains: Chains of definitions, in the order they were found.
        console: Rich Console to output to.

    """
    if not chains:
        console.print("[dim]No chains produce the requested types[/dim]")
        return

    for number, chain in enumerate(chains, start=1):
        steps = " [dim]->[/dim] ".join(escape(definition.id) for definition in chain)
        console.print(f"[dim]{number:>3}.[/dim] {steps}")

    console.print(f"\n[dim]Total: {len(chains)} chains[/dim]")


def render_tree(tree_node: TreeNode, console: Console) -> None:
    """Render a dependency tree using Rich Tree.

    Args:
        tree_node: TreeNode root to render.
        console: Rich Console to output to.

    """
    rich_tree = Tree(f"[bold]{escape(str(tree_node.source))}[/bold]")
    _add_tree_children(rich_tree, tree_node.children)
    console.print(rich_tree)


def _add_tree_children(parent: Tree, children: list[TreeNode]) -> None:
    """Recursively add children to a Rich Tree.

    Args:
        parent: Parent Tree node to add children to.
        children: List of TreeNode children.

    """
    for child in children:
        style = "magenta" if isinstance(child.source, ExternalSlot) else "green"
        label = f"[dim]{escape(child.via or '')} <-[/dim] [{style}]{escape(str(child.source))}[/{style}]"
        child_tree = parent.add(label)
        _add_tree_children(child_tree, child.children)
