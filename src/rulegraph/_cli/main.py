import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from rulegraph._builder import RuleSet
from rulegraph._config import RuleGraphConfig, get_config
from rulegraph._engine import Engine
from rulegraph._errors import ConfigError, CycleError, RuleGraphError

from .discover import load_rules_from_module_path, load_rules_from_script, load_rules_from_source
from .render import render_dependency_tree, render_snapshot

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()

SourceArgument = Annotated[
    str | None,
    typer.Argument(
        help="Path to Python script or module path (e.g., examples.totals:rules). "
        "Defaults to the rules entry of tool.rulegraph in pyproject.toml",
    ),
]
RulesOption = Annotated[
    str | None,
    typer.Option("--rules", help="Name of the RuleSet variable (for script paths only)"),
]


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Rulegraph CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

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


def _load_config() -> RuleGraphConfig:
    try:
        return get_config()
    except ConfigError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _load_rules(source: str | None, rules_var: str | None, config: RuleGraphConfig) -> RuleSet:
    try:
        if source is None:
            if config.rules is None:
                err_console.print("[red]Error: No rule set given and no \\[tool.rulegraph].rules configured[/red]")
                raise typer.Exit(code=1)
            err_console.print(f"[cyan]Loading rules from config:[/cyan] {escape(str(config.rules))}")
            return load_rules_from_source(config.rules)
        if ":" in source:
            err_console.print(f"[cyan]Loading rules from module:[/cyan] {escape(source)}")
            return load_rules_from_module_path(source)
        err_console.print(f"[cyan]Loading rules from script:[/cyan] {escape(source)}")
        return load_rules_from_script(Path(source), rules_var)
    except (ImportError, OSError, ValueError, TypeError) as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _build(rules: RuleSet, config: RuleGraphConfig) -> Engine:
    err_console.print(f"[cyan]Rule set:[/cyan] [bold]{escape(rules.name)}[/bold] ({len(rules)} rules)")
    try:
        return rules.build(config.options)
    except (RuleGraphError, TypeError, ValueError) as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def parse_assignment(assignment: str) -> tuple[str, Any]:
    """Parse a ``key=value`` override.

    The value is decoded as JSON when possible, so ``n=3`` sets an int and
    ``flag=true`` a bool; anything else is kept as the raw string.

    Raises:
        typer.BadParameter: If there is no ``=`` or the key is empty.

    """
    key, sep, raw = assignment.partition("=")
    key = key.strip()
    if not sep or not key:
        msg = f"Expected key=value, got '{assignment}'"
        raise typer.BadParameter(msg)
    try:
        return key, json.loads(raw)
    except json.JSONDecodeError:
        return key, raw


@app.command()
def snapshot(
    source: SourceArgument = None,
    *,
    rules_var: RulesOption = None,
    assignments: Annotated[
        list[str] | None,
        typer.Option("--set", "-s", help="Override a rule value (key=value, value parsed as JSON)"),
    ] = None,
    watch: Annotated[
        list[str] | None,
        typer.Option("--watch", "-w", help="Report every change of this rule while overrides propagate"),
    ] = None,
) -> None:
    """Evaluate a rule set, apply overrides and print the resulting values."""
    err_console.print()
    config = _load_config()
    overrides = [parse_assignment(a) for a in assignments or []]
    engine = _build(_load_rules(source, rules_var, config), config)

    try:
        for key in watch or []:
            engine.on_change(
                key,
                lambda value, key=key: err_console.print(
                    f"  [magenta]{escape(key)}[/magenta] -> {escape(repr(value))}",
                ),
            )

        for key, value in overrides:
            err_console.print(f"[cyan]Setting[/cyan] {escape(key)} = {escape(repr(value))}")
            engine.set(key, value)
    except RuleGraphError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    err_console.print()
    render_snapshot(engine.snapshot(), engine.overrides, out_console)


@app.command()
def graph(
    source: SourceArgument = None,
    *,
    rules_var: RulesOption = None,
) -> None:
    """Show the dependencies discovered while evaluating a rule set."""
    err_console.print()
    config = _load_config()
    engine = _build(_load_rules(source, rules_var, config), config)

    dependency_graph = engine.graph
    render_dependency_tree(dependency_graph, out_console)

    try:
        order = dependency_graph.topological_order()
    except CycleError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    out_console.print(f"[cyan]Evaluation order:[/cyan] {escape(' -> '.join(order))}")
