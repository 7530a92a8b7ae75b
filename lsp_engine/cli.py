"""CLI interface for LSP Engine."""

import csv
import json
import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from lsp_engine.consts import DEFAULT_DATA_DIR
from lsp_engine.errors import LSPError
from lsp_engine.models.model_eval import AlternativeResult, format_degree
from lsp_engine.models.model_storage import ProjectFile, ResultsFile
from lsp_engine.models.model_tree import Connection
from lsp_engine.pipeline import resolve_project, run_evaluation_pipeline, validate_project
from lsp_engine.storage.file_manager import FileManager

app = typer.Typer(
    name="lsp",
    help="LSP Engine - Evaluate alternatives with Logic Scoring of Preferences",
)

console = Console()

_LOAD_ERRORS = (LSPError, ValidationError, FileNotFoundError, json.JSONDecodeError)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _get_score_color(score: float | None) -> str:
    """Get color for score display."""
    if score is None:
        return "dim"
    if score >= 70:
        return "green"
    elif score >= 50:
        return "yellow"
    else:
        return "red"


def _truncate(text: str, max_len: int = 40) -> str:
    """Truncate text with ellipsis."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _load(project: str, data_dir: Path | None) -> ProjectFile:
    try:
        return resolve_project(project, data_dir)
    except _LOAD_ERRORS as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _ranking_table(project_name: str, ranking: list[AlternativeResult]) -> Table:
    table = Table(title=f"Ranking for {project_name}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Alternative", style="cyan")
    table.add_column("Cost", justify="right")
    table.add_column("Suitability", justify="right")
    table.add_column("", width=20)

    for rank, result in enumerate(ranking, 1):
        suitability = result.suitability
        color = _get_score_color(suitability)
        bar = "█" * int(round((suitability or 0.0) / 5))
        table.add_row(
            str(rank) if suitability is not None else "-",
            _truncate(result.alternative_name or result.alternative_id),
            f"{result.cost:g}" if result.cost is not None else "",
            f"[{color}]{format_degree(result.degree(result.root_id))}[/{color}]",
            f"[{color}]{bar}[/{color}]",
        )
    return table


def _details_table(project: ProjectFile, ranking: list[AlternativeResult]) -> Table:
    table = Table(title="Node degrees")
    table.add_column("Node", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Connection")
    table.add_column("Imp.", justify="right", style="magenta")
    for result in ranking:
        table.add_column(_truncate(result.alternative_name, 16), justify="right")

    numbers = project.tree.node_numbers()
    for node in project.tree.iter_preorder():
        indent = "  " * project.tree.depth(node.id)
        table.add_row(
            numbers[node.id],
            f"{indent}{_truncate(node.name)}",
            node.connection.value if node.connection else "",
            str(node.importance) if node.importance is not None else "",
            *(format_degree(result.degree(node.id)) for result in ranking),
        )
    return table


@app.command()
def evaluate(
    project: str = typer.Argument(..., help="Project JSON file or stored project name"),
    output: Path = typer.Option(None, "--output", "-o", help="Write results JSON to this path"),
    workers: int = typer.Option(None, "--workers", "-w", min=1, help="Threads for batch evaluation"),
    details: bool = typer.Option(False, "--details", "-d", help="Show degrees for every node"),
    save: bool = typer.Option(False, "--save", help="Store results under the data directory"),
    data_dir: Path = typer.Option(None, "--data-dir", help="Data directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Evaluate and rank every alternative of a project."""
    _configure_logging(verbose)
    project_file = _load(project, data_dir)

    try:
        with console.status(f"Evaluating {len(project_file.alternatives)} alternatives..."):
            results_file, ranking = run_evaluation_pipeline(
                project_file,
                data_dir=data_dir,
                output=output,
                workers=workers,
                save=save,
            )
    except LSPError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not ranking:
        console.print("[yellow]Project has no alternatives to evaluate.[/yellow]")
        return

    console.print(_ranking_table(project_file.name, ranking))

    if details:
        console.print()
        console.print(_details_table(project_file, ranking))

    issues = [(r, node_id, msg) for r in ranking for node_id, msg in r.issues.items()]
    if issues:
        console.print(f"\n[yellow]Unscored leaf values ({len(issues)}):[/yellow]")
        for result, node_id, message in issues[:10]:
            number = results_file.node_numbers.get(node_id, node_id)
            console.print(f"  [dim]{result.alternative_name} / {number}:[/dim] {message}")
        if len(issues) > 10:
            console.print(f"  [dim]... and {len(issues) - 10} more[/dim]")

    if output:
        console.print(f"\n[green]Results written to {output}[/green]")


@app.command()
def tree(
    project: str = typer.Argument(..., help="Project JSON file or stored project name"),
    data_dir: Path = typer.Option(None, "--data-dir", help="Data directory"),
) -> None:
    """Show the criterion tree with operators and elementary criteria."""
    project_file = _load(project, data_dir)
    criterion_tree = project_file.tree
    numbers = criterion_tree.node_numbers()

    def label(node_id: str) -> str:
        node = criterion_tree.node(node_id)
        text = f"[bold]{numbers[node_id]}[/bold] {node.name}"
        if node.connection is not None:
            text += f" [cyan]{node.connection.value} ({node.connection.label})[/cyan]"
            if node.connection == Connection.CPA and node.penalty_reward is not None:
                pr = node.penalty_reward
                text += f" [dim]P={pr.penalty:g} R={pr.reward:g}[/dim]"
        if node.importance is not None:
            text += f" [magenta]importance {node.importance}[/magenta]"
        if node.partial_absorption is not None:
            text += f" [yellow]{node.partial_absorption.value}[/yellow]"
        spec = project_file.query_specs.get(node_id)
        if spec is not None:
            text += f" [dim]{spec.describe()}[/dim]"
        return text

    root = Tree(label(criterion_tree.root_id))
    stack = [(root, criterion_tree.root_id)]
    while stack:
        branch, node_id = stack.pop()
        for child_id in criterion_tree.node(node_id).children:
            stack.append((branch.add(label(child_id)), child_id))

    console.print(root)


@app.command()
def validate(
    project: str = typer.Argument(..., help="Project JSON file or stored project name"),
    data_dir: Path = typer.Option(None, "--data-dir", help="Data directory"),
) -> None:
    """Check a project for structural problems and malformed criteria."""
    project_file = _load(project, data_dir)
    problems = validate_project(project_file)

    if not problems:
        console.print(f"[green]Project '{project_file.name}' is valid.[/green]")
        return

    console.print(f"[red]Found {len(problems)} problem(s) in '{project_file.name}':[/red]")
    for problem in problems:
        console.print(f"  - {problem}")
    raise typer.Exit(1)


@app.command()
def export(
    project: str = typer.Argument(..., help="Project JSON file or stored project name"),
    format: str = typer.Option("json", "--format", "-f", help="Export format (json, csv)"),
    output: str = typer.Option("results.json", "--output", "-o", help="Output file path"),
    data_dir: Path = typer.Option(None, "--data-dir", help="Data directory"),
) -> None:
    """Export every node degree for every alternative."""
    if format not in ("json", "csv"):
        console.print(f"[red]Error:[/red] Unsupported format '{format}'. Use 'json' or 'csv'.")
        raise typer.Exit(1)

    project_file = _load(project, data_dir)
    try:
        results_file, _ = run_evaluation_pipeline(project_file, data_dir=data_dir)
    except LSPError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    output_path = Path(output)
    if format == "json":
        output_path.write_text(results_file.model_dump_json(indent=2), encoding="utf-8")
    else:
        _write_csv(results_file, output_path)

    console.print(
        f"[green]Exported {len(results_file.results)} alternatives to {output_path}[/green]"
    )


def _write_csv(results_file: ResultsFile, output_path: Path) -> None:
    """Flatten results to one row per (alternative, node)."""
    with output_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow([
            "alternative_id",
            "alternative_name",
            "node_number",
            "node_id",
            "node_name",
            "degree",
            "issue",
        ])
        for alternative_id in results_file.ranking:
            result = results_file.results[alternative_id]
            for node_id, degree in result.degrees.items():
                writer.writerow([
                    result.alternative_id,
                    result.alternative_name,
                    results_file.node_numbers.get(node_id, ""),
                    node_id,
                    results_file.node_names.get(node_id, ""),
                    "" if degree is None else f"{degree:.6f}",
                    result.issues.get(node_id, ""),
                ])


@app.command()
def projects(
    data_dir: Path = typer.Option(None, "--data-dir", help="Data directory"),
) -> None:
    """List projects stored in the data directory."""
    file_manager = FileManager(data_dir or DEFAULT_DATA_DIR)
    names = file_manager.list_projects()
    if not names:
        console.print("[yellow]No stored projects.[/yellow]")
        return

    table = Table(title="Stored projects")
    table.add_column("Project", style="cyan")
    table.add_column("Runs", justify="right", style="magenta")
    for name in names:
        table.add_row(name, str(len(file_manager.list_results(name))))
    console.print(table)


if __name__ == "__main__":
    app()
