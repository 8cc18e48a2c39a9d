"""
Music Grading CLI Application.

Provides a command-line interface for validating grading method
definitions and rating items with them from JSON files.
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.tree import Tree

from music_grading.config import get_settings
from music_grading.errors import GradingError, MalformedTree
from music_grading.grading import encode_rating
from music_grading.logging_config import setup_logging_from_settings
from music_grading.models import (
    BlockComponent,
    GradableComponent,
    GradedBlock,
    GradedComponent,
    GradeInput,
    GradingMethodDefinition,
)
from music_grading.service import GradingService
from music_grading.storage import InMemoryGradingMethodStorage, InMemoryRatingStorage

# Create Typer app
app = typer.Typer(
    name="music-grading",
    help="Build hierarchical grading methods and rate music with them",
    add_completion=False,
)

console = Console()

LOCAL_USER = "local"


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    setup_logging_from_settings(get_settings())


def _load_json(path: Path) -> Any:
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/red] {path} is not valid JSON: {escape(str(e))}")
        raise typer.Exit(1)


def _load_definition(path: Path) -> GradingMethodDefinition:
    """Decode a grading method submission, wrapping pydantic errors."""
    try:
        return GradingMethodDefinition.model_validate(_load_json(path))
    except ValidationError as e:
        details = _error_details(e)
        raise MalformedTree(f"Invalid grading method file {path}", details) from e


def _load_inputs(path: Path) -> list[GradeInput]:
    try:
        return TypeAdapter(list[GradeInput]).validate_python(_load_json(path))
    except ValidationError as e:
        details = _error_details(e)
        raise MalformedTree(f"Invalid grade input file {path}", details) from e


def _error_details(error: ValidationError) -> list[str]:
    return [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in error.errors()]


def _fmt(value: float | None) -> str:
    return "-" if value is None else f"{value:g}"


def _bounded_tree(node: GradableComponent, tree: Tree | None = None) -> Tree:
    label = (
        f"[bold cyan]{escape(node.name)}[/bold cyan] "
        f"[dim][{_fmt(node.min_possible_grade)} – {_fmt(node.max_possible_grade)}][/dim]"
    )
    if not isinstance(node, BlockComponent):
        label += f" [dim]step {_fmt(node.step_amount)}[/dim]"

    branch = Tree(label) if tree is None else tree.add(label)
    if isinstance(node, BlockComponent):
        for child in node.components:
            _bounded_tree(child, branch)
    return branch


def _graded_tree(node: GradedComponent, tree: Tree | None = None) -> Tree:
    grade = node.current_grade
    color = "green" if grade is not None else "yellow"
    label = (
        f"[bold cyan]{escape(node.name)}[/bold cyan] "
        f"[{color}]{_fmt(grade)}[/{color}] / {_fmt(node.max_possible_grade)}"
    )

    branch = Tree(label) if tree is None else tree.add(label)
    if isinstance(node, GradedBlock):
        for child in node.components:
            _graded_tree(child, branch)
    return branch


def _service() -> GradingService:
    settings = get_settings()
    return GradingService(
        InMemoryGradingMethodStorage(settings.step_tolerance_ratio),
        InMemoryRatingStorage(settings.step_tolerance_ratio),
        settings,
    )


@app.command()
def validate(
    definition_file: Annotated[Path, typer.Argument(help="Path to the grading method JSON file")],
) -> None:
    """
    Validate a grading method definition and show its derived bounds.
    """
    try:
        definition = _load_definition(definition_file)
        method = _service().build_method(definition, LOCAL_USER)

        console.print(_bounded_tree(method.root))
        console.print(
            f"\n[bold]Possible grades:[/bold] "
            f"{_fmt(method.min_possible_grade)} – {_fmt(method.max_possible_grade)}"
        )
        console.print("\n[green]✓ Grading method is valid[/green]")

    except GradingError as e:
        console.print(f"[red]Invalid grading method:[/red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def show(
    definition_file: Annotated[Path, typer.Argument(help="Path to the grading method JSON file")],
) -> None:
    """
    Print the show document of a grading method, as served to raters.
    """
    try:
        definition = _load_definition(definition_file)
        service = _service()
        method = service.create_method(definition, LOCAL_USER)
        console.print_json(data=service.show(method.id))

    except GradingError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def rate(
    definition_file: Annotated[Path, typer.Argument(help="Path to the grading method JSON file")],
    inputs_file: Annotated[Path, typer.Argument(help="Path to the grade inputs JSON file")],
    item_id: Annotated[str, typer.Option("--item", "-i", help="Rated item id")] = "item",
    item_type: Annotated[str, typer.Option("--type", "-t", help="Rated item type")] = "track",
    draft: Annotated[
        bool,
        typer.Option("--draft", help="Accept a rating with missing grades"),
    ] = False,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the rating document instead of a summary"),
    ] = False,
) -> None:
    """
    Rate an item with a grading method.

    The inputs file holds a list of {"componentPath": ..., "value": ...}
    objects, applied in order.
    """
    try:
        definition = _load_definition(definition_file)
        inputs = _load_inputs(inputs_file)

        service = _service()
        method = service.create_method(definition, LOCAL_USER)
        rating = service.rate(method.id, inputs, item_id, item_type, LOCAL_USER, draft=draft)

        if as_json:
            console.print_json(data=encode_rating(rating))
            return

        console.print(_graded_tree(rating.grade))

        if rating.is_complete:
            display = service.display_grade(rating)
            console.print(
                Panel(
                    f"[bold]{_fmt(rating.overall_grade)} / {_fmt(rating.max_possible_grade)}[/bold]"
                    f"  normalized {service.normalized_grade(rating):.4f}"
                    f"  ({_fmt(display)} / {_fmt(get_settings().display_scale_max)})",
                    title="Overall Grade",
                )
            )
        else:
            console.print("[yellow]⚠ Draft rating: some grades are still missing[/yellow]")

    except GradingError as e:
        console.print(f"[red]Grading Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
