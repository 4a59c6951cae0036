"""CLI for the Joi to Zod compiler."""

import json
import logging
from pathlib import Path
from typing import Optional
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from .compiler import SchemaCompiler, load_description
from .core.types import CompilerOptions, DiagnosticLevel, NodeType, Presence
from .errors import SchemaCompileError
from .rules.registry import default_rule_table

app = typer.Typer(
    name="joi-zod",
    help="Compile Joi describe() output into Zod schema code",
)
console = Console()
err_console = Console(stderr=True)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def build_options(options_file: Path | None, overrides: dict) -> CompilerOptions:
    """Options file first, then any flag given on the command line."""
    data = {}
    if options_file:
        with open(options_file) as f:
            data = json.load(f)
    data.update({key: value for key, value in overrides.items() if value is not None})
    return CompilerOptions.model_validate(data)


@app.command("compile")
def compile_command(
    schema_file: Path = typer.Argument(..., help="JSON file holding describe() output"),
    out: Path = typer.Option(None, "--out", "-o", help="Write the generated code to this file"),
    module: Optional[bool] = typer.Option(None, "--module/--expression", help="Emit a module with the zod import"),
    type_aliases: Optional[bool] = typer.Option(None, "--type-aliases/--no-type-aliases", help="Export z.infer type aliases"),
    default_presence: Optional[Presence] = typer.Option(None, "--default-presence", help="Presence of properties without one"),
    refinements: Optional[bool] = typer.Option(None, "--refinements/--no-refinements", help="Allow refine()/superRefine()"),
    strip: Optional[bool] = typer.Option(None, "--strip/--no-strip", help="Allow stripped values"),
    strict_objects: Optional[bool] = typer.Option(None, "--strict-objects/--no-strict-objects", help="Reject unknown keys"),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", help="Maximum nesting depth"),
    options_file: Path = typer.Option(None, "--options", help="JSON file with compiler options"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log compiler progress"),
):
    """Compile a describe() JSON file to Zod code."""
    configure_logging(verbose)

    if not schema_file.exists():
        console.print(f"[red]Error: File {schema_file} not found.[/red]")
        raise typer.Exit(1)

    try:
        options = build_options(options_file, {
            "module": module,
            "type_aliases": type_aliases,
            "default_presence": default_presence,
            "refinements": refinements,
            "strip": strip,
            "strict_objects": strict_objects,
            "max_depth": max_depth,
        })
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Invalid options: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    try:
        description = load_description(schema_file)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: {schema_file} is not valid JSON: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    compiler = SchemaCompiler(options)
    try:
        result = compiler.compile_result(description)
    except SchemaCompileError as e:
        console.print(f"[red]Compilation error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if out:
        out.parent.mkdir(parents=True, exist_ok=True)
        with open(out, "w") as f:
            f.write(result.code + "\n")
        console.print(f"[green]Compiled to {out}[/green]")
    elif console.is_terminal:
        console.print(Syntax(result.code, "typescript"))
    else:
        typer.echo(result.code)

    for diagnostic in result.diagnostics:
        style = "yellow" if diagnostic.level == DiagnosticLevel.WARNING else "dim"
        err_console.print(f"[{style}]{escape(diagnostic.render())}[/{style}]", highlight=False)


@app.command("rules")
def rules_command(
    node_type: Optional[NodeType] = typer.Option(None, "--type", "-t", help="Only list rules for this type"),
):
    """List the supported rules."""
    table = Table(title="Supported Rules")
    table.add_column("Type", style="cyan")
    table.add_column("Rule", style="green")

    for rule_type, name in default_rule_table().list_rules(node_type):
        table.add_row(rule_type.value, name)

    console.print(table)


if __name__ == "__main__":
    app()
