"""flowrecover CLI.

Main entry point for the flowrecover command.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import get_config, get_config_path
from .observability.db import HistoryDB
from .observability.history import LogLevel
from .recovery.analysis import analyze_error
from .recovery.classifier import ClassifiableError
from .utils.errors import handle_exception, set_debug_mode

console = Console()

LEVEL_STYLES = {
    LogLevel.DEBUG: "dim",
    LogLevel.INFO: "cyan",
    LogLevel.WARN: "yellow",
    LogLevel.ERROR: "red",
}


@click.group(invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="Show version and exit")
@click.option("--debug", "-d", is_flag=True, help="Enable debug mode with verbose error output")
@click.pass_context
def main(ctx: click.Context, version: bool, debug: bool) -> None:
    """flowrecover - failure analysis and recovery for workflow executions.

    Use --debug for verbose error output with stack traces.
    """
    if debug:
        set_debug_mode(True)
        logging.basicConfig(level=logging.DEBUG)

    if version:
        console.print(f"flowrecover version {__version__}")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# =============================================================================
# Analysis
# =============================================================================


@main.command()
@click.option("--code", "-c", type=str, help="Error code (e.g. ECONNREFUSED)")
@click.option("--status", "-s", type=int, help="HTTP status of the failed call")
@click.option("--message", "-m", type=str, default="", help="Error message")
@click.option("--node-id", "-n", type=str, help="Failed node id")
@click.option("--json", "-j", "as_json", is_flag=True, help="Output as JSON")
def analyze(
    code: str | None,
    status: int | None,
    message: str,
    node_id: str | None,
    as_json: bool,
) -> None:
    """Analyse an error and show the suggested recovery.

    Classification only: no execution store is read or modified.

    \\b
    Examples:
        flowrecover analyze --code ECONNREFUSED --node-id n1
        flowrecover analyze --status 429
        flowrecover analyze --status 500 --message "upstream timeout" --json
    """
    try:
        error = ClassifiableError(code=code, status=status, message=message)
        analysis = analyze_error(error, node_id=node_id, policy=get_config().retry.to_policy())
    except Exception as e:
        handle_exception(console, e, "error analysis")
        return

    if as_json:
        click.echo(json.dumps(analysis.to_dict(), indent=2, default=str))
        return

    retryable = "[green]yes[/green]" if analysis.is_retryable else "[red]no[/red]"
    strategy = analysis.suggested_strategy

    console.print("[bold cyan]Failure analysis[/bold cyan]")
    console.print()
    console.print(f"[bold]Error type:[/bold] {analysis.error_type}")
    console.print(f"[bold]Category:[/bold]   {analysis.category.value}")
    console.print(f"[bold]Retryable:[/bold]  {retryable}")
    console.print(f"[bold]Confidence:[/bold] {analysis.confidence:.0%}")
    console.print()
    console.print(f"[bold]Suggested strategy:[/bold] {strategy.strategy_type.value}")
    for key, value in strategy.to_dict().items():
        if key != "type":
            console.print(f"[dim]  {key}: {value}[/dim]")
    console.print()
    console.print("[bold]Recommendations:[/bold]")
    for recommendation in analysis.recommendations:
        console.print(f"  • {recommendation}")


# =============================================================================
# History
# =============================================================================


@main.command()
@click.argument("execution_id")
@click.option(
    "--level",
    "-l",
    type=click.Choice([level.value for level in LogLevel]),
    help="Only show entries of this level",
)
@click.option("--limit", type=int, help="Maximum number of entries")
@click.option("--db", "db_path", type=click.Path(path_type=Path), help="History database path")
@click.option("--json", "-j", "as_json", is_flag=True, help="Output as JSON")
def history(
    execution_id: str,
    level: str | None,
    limit: int | None,
    db_path: Path | None,
    as_json: bool,
) -> None:
    """Show the recovery history of an execution.

    \\b
    Examples:
        flowrecover history exec-123
        flowrecover history exec-123 --level warn
        flowrecover history exec-123 --json
    """
    path = db_path or Path(get_config().history.db_path)

    if not path.exists():
        console.print(f"[yellow]No history database at {path}[/yellow]")
        return

    db = HistoryDB(path)
    try:
        entries = db.get_logs(execution_id, level=level, limit=limit)
    except Exception as e:
        handle_exception(console, e, "history query")
        return
    finally:
        db.close()

    if as_json:
        click.echo(json.dumps([entry.to_dict() for entry in entries], indent=2, default=str))
        return

    if not entries:
        console.print(f"[yellow]No history entries for execution {execution_id}[/yellow]")
        return

    table = Table(title=f"History for {execution_id}")
    table.add_column("Time", style="dim")
    table.add_column("Level")
    table.add_column("Node")
    table.add_column("Message")

    for entry in entries:
        style = LEVEL_STYLES.get(entry.level, "")
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            f"[{style}]{entry.level.value}[/{style}]" if style else entry.level.value,
            entry.node_id or "-",
            entry.message,
        )

    console.print(table)


# =============================================================================
# Config Commands
# =============================================================================


@main.group()
def config() -> None:
    """View flowrecover configuration.

    Configuration priority:
    1. Environment variables (highest)
    2. Config file (~/.flowrecover/config.toml or $FLOWRECOVER_CONFIG)
    3. Defaults (lowest)
    """
    pass


@config.command("show")
@click.option("--json", "-j", "as_json", is_flag=True, help="Output as JSON")
@click.option("--section", type=str, help="Show only a specific section")
def config_show(as_json: bool, section: str | None) -> None:
    """Show current configuration.

    \\b
    Examples:
        flowrecover config show
        flowrecover config show --json
        flowrecover config show --section retry
    """
    cfg = get_config()
    data = cfg.to_dict()

    if section:
        if section not in data:
            console.print(f"[red]Unknown section: {section}[/red]")
            console.print(f"[dim]Available: {', '.join(data)}[/dim]")
            return
        data = {section: data[section]}

    if as_json:
        click.echo(json.dumps(data, indent=2, default=str))
        return

    if not section:
        console.print(f"[dim]Config file: {cfg.config_path}[/dim]")
        console.print()

    for name, values in data.items():
        console.print(f"[bold]{escape(f'[{name}]')}[/bold]")
        for key, value in values.items():
            console.print(f"  {key} = {value}")
        console.print()


@config.command("path")
def config_path_cmd() -> None:
    """Show the configuration file path."""
    path = get_config_path()
    console.print(str(path))
    if not path.exists():
        console.print("[dim](file does not exist, defaults are used)[/dim]")


if __name__ == "__main__":
    main()
