"""prov CLI - typer application for inspecting exported provenance data."""

from __future__ import annotations

import atexit
import json
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree

from provenance_core.codec import extract
from provenance_core.config import ConfigError, ProvenanceConfig, load_config
from provenance_core.graph.errors import ProvenanceError
from provenance_core.graph.nodes import ProvenanceGraph, StateNode
from provenance_core.observability import close_file_logging, configure_logging, get_logger

# Load environment variables (PROVENANCE_LOCATION, PROVENANCE_DELIMITER) from .env
load_dotenv()

app = typer.Typer(
    name="prov",
    help="Provenance: inspect exported states and history graphs.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

# Global state set by the callback, used by commands
_config: ProvenanceConfig | None = None


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log",
            help="Directory receiving provenance.jsonl debug logs.",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="YAML file with provenance settings.",
            envvar="PROVENANCE_CONFIG",
        ),
    ] = None,
) -> None:
    """Provenance: inspect exported states and history graphs."""
    global _config

    configure_logging(verbosity=verbose, log_dir=log_dir)
    if log_dir is not None:
        atexit.register(close_file_logging)

    _config = None
    if config is not None:
        try:
            _config = load_config(config)
        except ConfigError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from e


def _get_config() -> ProvenanceConfig:
    return _config or ProvenanceConfig()


def _load_graph(path: Path) -> ProvenanceGraph:
    """Read and parse an exported graph file.

    Raises:
        typer.Exit: If the file is missing or not a graph.
    """
    if not path.exists():
        console.print(f"[red]Error:[/red] File '{path}' not found")
        raise typer.Exit(1)

    from pydantic import ValidationError

    try:
        return ProvenanceGraph.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"[red]Error:[/red] '{path}' is not a provenance graph")
        console.print(f"[dim]{e.error_count()} validation error(s)[/dim]")
        raise typer.Exit(1) from e


def _build_tree(graph: ProvenanceGraph, tree: Tree) -> None:
    """Add every node below the root to ``tree``.

    A run of single children stays on one level; only branch points indent,
    so tree depth follows the number of forks rather than the history length.
    """
    seen = {graph.root}
    # (node id, the node's own branch, the branch its single child continues on)
    stack: list[tuple[str, Tree, Tree]] = [(graph.root, tree, tree)]
    while stack:
        node_id, own, line = stack.pop()
        children = graph.nodes[node_id].children
        for child_id in children:
            parent_branch = line if len(children) == 1 else own
            if child_id not in graph.nodes:
                parent_branch.add(f"[red]missing node {child_id}[/red]")
                continue
            if child_id in seen:
                parent_branch.add(f"[red]cycle back to {child_id}[/red]")
                continue
            seen.add(child_id)
            child_branch = parent_branch.add(_node_label(graph, child_id))
            child_line = line if len(children) == 1 else child_branch
            stack.append((child_id, child_branch, child_line))


def _node_label(graph: ProvenanceGraph, node_id: str) -> str:
    node = graph.nodes[node_id]
    label = f"{escape(node.label)} [dim]{node_id[:8]}[/dim]"
    if isinstance(node, StateNode):
        changes = len(node.artifacts.diffs)
        label += f" [cyan]{changes} change(s)[/cyan]"
        if node.artifacts.extra:
            label += f" [magenta]{len(node.artifacts.extra)} note(s)[/magenta]"
    if node_id == graph.current:
        label = f"[bold green]{label} <- current[/bold green]"
    return label


@app.command()
def version() -> None:
    """Show version information."""
    from provenance_core import __version__

    console.print(f"provenance-core v{__version__}")


@app.command()
def decode(
    exported: Annotated[
        str,
        typer.Argument(help="Exported state, or a URL carrying one."),
    ],
) -> None:
    """Decode an exported state and print it as JSON."""
    from provenance_core.codec import decode_state

    delimiter = _get_config().delimiter
    payload = extract(exported, delimiter) or exported
    try:
        state = decode_state(payload)
    except ProvenanceError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    log.debug("state_decoded", size=len(payload))
    console.print(Syntax(json.dumps(state, indent=2, ensure_ascii=False), "json"))


@app.command()
def inspect(
    graph_file: Annotated[Path, typer.Argument(help="Exported provenance graph (JSON).")],
) -> None:
    """Show the history tree of an exported graph."""
    graph = _load_graph(graph_file)
    if graph.root not in graph.nodes:
        console.print(f"[red]Error:[/red] Root '{graph.root}' missing from graph")
        raise typer.Exit(1)

    tree = Tree(_node_label(graph, graph.root))
    _build_tree(graph, tree)

    console.print(tree)

    table = Table(show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Nodes", str(len(graph.nodes)))
    table.add_row("Branch points", str(sum(len(n.children) > 1 for n in graph.nodes.values())))
    table.add_row("Current", graph.current)
    console.print()
    console.print(table)


@app.command()
def validate(
    graph_file: Annotated[Path, typer.Argument(help="Exported provenance graph (JSON).")],
) -> None:
    """Check an exported graph against the tree invariants."""
    graph = _load_graph(graph_file)
    violations = graph.validate_invariants()

    if violations:
        console.print(f"[red]✗[/red] {len(violations)} violation(s) found:")
        for violation in violations:
            console.print(f"  - {violation}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Graph is valid ({len(graph.nodes)} nodes)")
