from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from adapters.elk.backend import LayoutBackendError
from adapters.elk.result import read_backend_layout
from adapters.filesystem.graph_repository import (
    FileSystemGraphRepository,
    FileSystemLayoutRepository,
)
from adapters.filesystem.json_utils import dump_json_bytes
from app.config import AppSettings, load_settings
from app.layout_wiring import build_diagram_service, build_elk_backend, build_elk_converter
from domain.models import InfraGraph
from domain.services.classify_roles import summarize_layers

app = typer.Typer(no_args_is_help=True)
console = Console()
err_console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class LayoutModeOption(str, Enum):
    semantic = "semantic"
    layered = "layered"


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level."),
) -> None:
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)


def _settings(config_path: Optional[Path]) -> AppSettings:
    try:
        return load_settings(config_path)
    except (FileNotFoundError, ValidationError) as exc:
        err_console.print(f"[red]Invalid configuration:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _load_graph(input_path: Path) -> InfraGraph:
    if not input_path.exists():
        err_console.print(f"[red]File not found:[/] {input_path}")
        raise typer.Exit(code=1)
    try:
        return FileSystemGraphRepository().load(input_path)
    except (ValidationError, ValueError) as exc:
        err_console.print(f"[red]Invalid graph:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _emit(payload: Any, output: Optional[Path]) -> None:
    if output is None:
        typer.echo(dump_json_bytes(payload).decode("utf-8"))
        return
    FileSystemLayoutRepository().save(payload, output)
    err_console.print(f"[green]Wrote[/] {output}")


@app.command("layout")
def layout(
    input_path: Path = typer.Argument(..., help="Infrastructure graph JSON file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON here."),
    mode: Optional[LayoutModeOption] = typer.Option(None, help="Layout engine to use."),
    group: Optional[bool] = typer.Option(
        None, "--group/--no-group", help="Collapse services sharing dependencies."
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML settings file."),
) -> None:
    settings = _settings(config)
    graph = _load_graph(input_path)
    service = build_diagram_service(settings, mode.value if mode else None)
    result = service.build(
        graph,
        group=settings.grouping.enabled if group is None else group,
        min_group_size=settings.grouping.min_group_size,
        exclude_types=settings.grouping.exclude_types,
    )
    if result.cycle_broken:
        err_console.print("[yellow]Dependency cycle detected; some layers were forced.[/]")
    _emit(result, output)


@app.command("elk-graph")
def elk_graph(
    input_path: Path = typer.Argument(..., help="Infrastructure graph JSON file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON here."),
    show_layers: bool = typer.Option(False, "--show-layers", help="Print layer summary."),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML settings file."),
) -> None:
    settings = _settings(config)
    graph = _load_graph(input_path)
    conversion = build_elk_converter(settings).convert(graph)
    if show_layers:
        table = Table(title="Semantic layers")
        table.add_column("Layer")
        table.add_column("Nodes")
        for layer, node_ids in summarize_layers(conversion.layer_assignments).items():
            table.add_row(layer, ", ".join(node_ids))
        err_console.print(table)
    _emit(conversion.graph.to_payload(), output)


@app.command("elk-layout")
def elk_layout(
    input_path: Path = typer.Argument(..., help="Infrastructure graph JSON file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON here."),
    padding: float = typer.Option(0.0, help="Offset added to every coordinate."),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML settings file."),
) -> None:
    settings = _settings(config)
    graph = _load_graph(input_path)
    conversion = build_elk_converter(settings).convert(graph)
    try:
        positioned = build_elk_backend(settings).layout(conversion.graph)
    except LayoutBackendError as exc:
        err_console.print(f"[red]Layout backend failed:[/] {exc}")
        raise typer.Exit(code=1) from exc
    _emit(read_backend_layout(positioned, padding=padding), output)


@app.command("validate")
def validate(
    input_path: Path = typer.Argument(..., help="Infrastructure graph JSON file."),
) -> None:
    graph = _load_graph(input_path)
    console.print(
        f"[green]Valid graph:[/] {input_path} "
        f"({len(graph.nodes)} nodes, {len(graph.edges)} edges)"
    )


if __name__ == "__main__":
    app()
