"""CLI entry point using typer."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cqllens import __version__
from cqllens.config import (
    CONFIG_FILE,
    LOG_FILE,
    AppConfig,
    TargetConfig,
    load_config,
    save_config,
)
from cqllens.console import ConsolePresenter, render_statements
from cqllens.errors import ExecutionError, TargetNotFoundError
from cqllens.parsing.directives import find_directives
from cqllens.parsing.segmenter import segment
from cqllens.services.cassandra import CassandraRunner
from cqllens.services.orchestrator import Orchestrator
from cqllens.storage.database import close_db, get_recent_executions, init_db, save_run
from cqllens.storage.history import ExecutionHistory
from cqllens.storage.models import Document, ExecutionRecord, RunOutcome, RunStatus, Selection
from cqllens.utils.formatting import MESSAGE_FORMATS, format_lines, format_record, preview
from cqllens.utils.system import check_driver, check_query_file

app = typer.Typer(
    name="cqllens",
    help="Split and run CQL files against Cassandra clusters.",
    add_completion=False,
)
console = Console()


def _setup_logging(config: AppConfig) -> None:
    log_path = Path(config.logging.file).expanduser().resolve()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.FileHandler(str(log_path))],
    )


def _read_document(file: Path) -> Document:
    valid, resolved = check_query_file(str(file))
    if not valid:
        console.print(f"[red]{resolved}[/red]")
        raise typer.Exit(1)
    path = Path(resolved)
    return Document(uri=path.as_uri(), text=path.read_text(encoding="utf-8"))


def parse_line_range(value: str) -> Selection:
    """Parse ``START:END`` (1-based, inclusive) into a zero-based selection."""
    start_str, sep, end_str = value.partition(":")
    try:
        start = int(start_str)
        end = int(end_str) if sep else start
    except ValueError:
        raise typer.BadParameter("Use START:END with line numbers, e.g. 3:10") from None
    if start < 1 or end < start:
        raise typer.BadParameter("Line range must satisfy 1 <= START <= END")
    return Selection(start_line=start - 1, end_line=end - 1)


def _confirm_switch(target: str, current: str | None) -> bool:
    return typer.confirm(
        f"This statement uses target '{target}' but you're connected to '{current or 'no target'}'. Switch and run?",
        default=False,
    )


async def _execute_document(
    config: AppConfig,
    document: Document,
    target_name: str,
    selection: Selection | None,
    statement_line: int | None,
    assume_yes: bool,
) -> RunOutcome:
    runner = CassandraRunner(config, confirm=None if assume_yes else _confirm_switch)
    orchestrator = Orchestrator(
        executor=runner,
        history=ExecutionHistory(config.history.max_entries, config.history.evict_count),
        switcher=runner,
        presenter=ConsolePresenter(console, config.query.completion_message_format),
        directive_window=config.editor.directive_window,
    )

    if config.storage.enabled:
        await init_db(config.storage.db_path)
    try:
        await runner.connect(target_name)
        if statement_line is None:
            outcome = await orchestrator.run(document, selection)
        else:
            outcome = await _run_statement_at_line(orchestrator, document, statement_line)
        if config.storage.enabled:
            await save_run(outcome)
        return outcome
    finally:
        await runner.close()
        if config.storage.enabled:
            await close_db()


async def _run_statement_at_line(orchestrator: Orchestrator, document: Document, line: int) -> RunOutcome:
    for statement in segment(document.text):
        if statement.start_line <= line <= statement.end_line:
            return await orchestrator.run_statement_at(document, statement.start_line, statement.end_line)
    return await orchestrator.run_statement_at(document, line, line)


@app.command()
def init() -> None:
    """Interactive setup wizard."""
    console.print(f"\n[bold]cqllens v{__version__}[/bold]")
    console.print("Interactive Setup\n")

    installed, version_info = check_driver()
    if installed:
        console.print(f"  cassandra-driver: [green]{version_info}[/green]")
    else:
        console.print(f"  [yellow]Warning: {version_info}[/yellow]")

    config = load_config() if CONFIG_FILE.exists() else AppConfig()

    console.print("\n[bold]Step 1:[/bold] Target name")
    console.print("  Statements select it with a '-- @conn <name>' comment.")
    name = typer.prompt("  Name", default="local")
    if not name.replace("_", "").replace("-", "").isalnum():
        console.print("[red]Target names may only contain letters, digits, '_' and '-'.[/red]")
        raise typer.Exit(1)

    console.print("\n[bold]Step 2:[/bold] Cluster")
    contact_points_str = typer.prompt("  Contact points (comma separated)", default="127.0.0.1")
    contact_points = [point.strip() for point in contact_points_str.split(",") if point.strip()]
    if not contact_points:
        console.print("[red]At least one contact point is required.[/red]")
        raise typer.Exit(1)
    port = typer.prompt("  Port", default=9042, type=int)
    datacenter = typer.prompt("  Local datacenter", default="datacenter1")
    keyspace = typer.prompt("  Default keyspace", default="", show_default=False)

    console.print("\n[bold]Step 3:[/bold] Authentication (leave empty for none)")
    username = typer.prompt("  Username", default="", show_default=False)
    password = ""
    if username:
        password = typer.prompt("  Password", default="", show_default=False, hide_input=True)

    target = TargetConfig(
        name=name,
        contact_points=contact_points,
        port=port,
        local_datacenter=datacenter,
        keyspace=keyspace,
        username=username,
        password=password,
    )
    config.targets = [t for t in config.targets if t.name != name] + [target]
    if not config.default_target:
        config.default_target = name
    save_config(config)

    console.print(f"\n[green]Configuration saved to {CONFIG_FILE}[/green]")
    console.print("\nNext steps:")
    console.print("  [bold]cqllens split queries.cql[/bold]  Preview statements")
    console.print("  [bold]cqllens run queries.cql[/bold]    Execute them\n")


@app.command()
def run(
    file: Path = typer.Argument(..., help="CQL file to execute"),
    lines: str = typer.Option(None, "--lines", "-l", help="Only run statements in START:END (1-based)"),
    statement: int = typer.Option(None, "--statement", "-s", help="Run the single statement on this line"),
    target: str = typer.Option(None, "--target", "-t", help="Target to connect to first"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Switch targets without asking"),
) -> None:
    """Execute the statements in a CQL file."""
    if not CONFIG_FILE.exists():
        console.print("[red]Configuration not found.[/red]")
        console.print("Run [bold]cqllens init[/bold] first.")
        raise typer.Exit(1)

    config = load_config()
    target_name = target or config.default_target or (config.targets[0].name if config.targets else "")
    if not target_name:
        console.print("[red]No target configured.[/red]")
        console.print("Run [bold]cqllens init[/bold] to add one.")
        raise typer.Exit(1)

    selection = parse_line_range(lines) if lines else None
    statement_line = statement - 1 if statement is not None else None
    document = _read_document(file)
    _setup_logging(config)

    try:
        outcome = asyncio.run(_execute_document(config, document, target_name, selection, statement_line, yes))
    except (ExecutionError, TargetNotFoundError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        raise typer.Exit(130)

    if outcome.status is RunStatus.FAILED:
        raise typer.Exit(1)


@app.command()
def split(
    file: Path = typer.Argument(..., help="CQL file to segment"),
) -> None:
    """Show how a CQL file splits into statements."""
    document = _read_document(file)
    config = load_config()
    statements = segment(document.text)
    if not statements:
        console.print("[yellow]No valid statements found.[/yellow]")
        return

    console.print(render_statements(statements, document.lines, config.editor.directive_window))

    targets = find_directives(document.text)
    if len(targets) > 1:
        console.print(
            f"[yellow]This file uses {len(targets)} targets: {', '.join(targets)}. "
            "Statements will prompt before switching.[/yellow]"
        )


@app.command()
def targets() -> None:
    """List configured targets."""
    config = load_config()
    if not config.targets:
        console.print("[dim]No targets configured. Run 'cqllens init'.[/dim]")
        return

    table = Table(title="Targets")
    table.add_column("Name", style="cyan")
    table.add_column("Contact points", style="green")
    table.add_column("Datacenter")
    table.add_column("Keyspace")
    for t in config.targets:
        marker = " (default)" if t.name == config.default_target else ""
        table.add_row(
            t.name + marker,
            ", ".join(f"{point}:{t.port}" for point in t.contact_points),
            t.local_datacenter,
            t.keyspace or "-",
        )
    console.print(table)


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of entries"),
    file: Path = typer.Option(None, "--file", "-f", help="Only entries for this CQL file"),
) -> None:
    """Show recently executed statements from the journal."""
    config = load_config()
    db_path = Path(config.storage.db_path).expanduser().resolve()
    if not db_path.exists():
        console.print("[dim]No execution history yet.[/dim]")
        return

    document = file.expanduser().resolve().as_uri() if file is not None else None

    async def _fetch() -> list[dict]:
        await init_db(str(db_path))
        try:
            return await get_recent_executions(limit=limit, document=document)
        finally:
            await close_db()

    entries = asyncio.run(_fetch())
    if not entries:
        console.print("[dim]No execution history yet.[/dim]")
        return

    table = Table(title="Recent executions")
    table.add_column("When", style="dim")
    table.add_column("Target", style="magenta")
    table.add_column("Lines", style="cyan")
    table.add_column("Result")
    table.add_column("Statement", style="green")
    for entry in entries:
        record = ExecutionRecord(
            elapsed_ms=entry["execution_time_ms"],
            row_count=entry["row_count"],
            succeeded=bool(entry["succeeded"]),
        )
        colour = "green" if record.succeeded else "red"
        result = f"[{colour}]{format_record(record)}[/{colour}]"
        table.add_row(
            str(entry["created_at"]),
            entry["target"] or "-",
            format_lines(entry["start_line"], entry["end_line"]),
            result,
            preview(entry["statement"], 50),
        )
    console.print(table)


SETTABLE_KEYS = (
    "editor.warn_on_target_switch",
    "editor.directive_window",
    "query.timeout",
    "query.completion_message_format",
    "history.max_entries",
    "history.evict_count",
    "storage.db_path",
    "storage.enabled",
    "logging.level",
    "logging.file",
)


def _settings(cfg: AppConfig) -> dict[str, object]:
    sections = {
        "editor": cfg.editor,
        "query": cfg.query,
        "history": cfg.history,
        "storage": cfg.storage,
        "logging": cfg.logging,
    }
    settings: dict[str, object] = {}
    for key in SETTABLE_KEYS:
        section, attr = key.split(".")
        settings[key] = getattr(sections[section], attr)
    return settings


def _coerce(current: object, raw: str) -> object:
    if isinstance(current, bool):
        if raw.lower() in ("true", "1", "yes", "on"):
            return True
        if raw.lower() in ("false", "0", "no", "off"):
            return False
        raise ValueError(raw)
    if isinstance(current, int):
        number = int(raw)
        if number < 1:
            raise ValueError(raw)
        return number
    return raw


@app.command()
def config(
    key: str = typer.Argument(None, help="Config key (e.g., query.timeout)"),
    value: str = typer.Argument(None, help="New value"),
) -> None:
    """View or modify configuration."""
    if not CONFIG_FILE.exists():
        console.print("[red]Not configured. Run 'cqllens init'.[/red]")
        raise typer.Exit(1)

    cfg = load_config()
    settings = _settings(cfg)

    if key is None:
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("default_target", cfg.default_target or "(not set)")
        table.add_row("targets", ", ".join(t.name for t in cfg.targets) or "(none)")
        for name, current in settings.items():
            table.add_row(name, str(current))
        console.print(table)
        return

    if value is None:
        console.print("[red]Usage: cqllens config <key> <value>[/red]")
        raise typer.Exit(1)

    if key == "default_target":
        if cfg.find_target(value) is None:
            console.print(f"[red]Unknown target: {value}[/red]")
            raise typer.Exit(1)
        cfg.default_target = value
        save_config(cfg)
        console.print(f"[green]{key} = {value}[/green]")
        return

    if key not in settings:
        console.print(f"[red]Unknown key: {key}[/red]")
        console.print(f"Known keys: default_target, {', '.join(SETTABLE_KEYS)}")
        raise typer.Exit(1)

    try:
        new_value = _coerce(settings[key], value)
    except ValueError:
        console.print(f"[red]Invalid value for {key}: {value}[/red]")
        raise typer.Exit(1)

    if key == "query.completion_message_format" and new_value not in MESSAGE_FORMATS:
        console.print(f"[red]Format must be one of: {', '.join(MESSAGE_FORMATS)}[/red]")
        raise typer.Exit(1)

    section, attr = key.split(".")
    setattr(getattr(cfg, section), attr, new_value)
    if cfg.history.evict_count > cfg.history.max_entries:
        console.print("[red]history.evict_count cannot exceed history.max_entries[/red]")
        raise typer.Exit(1)

    save_config(cfg)
    console.print(f"[green]{key} = {new_value}[/green]")


@app.command()
def logs(
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines"),
) -> None:
    """View the log file."""
    log_path = Path(LOG_FILE).expanduser().resolve()
    if not log_path.exists():
        console.print("[dim]No log file found.[/dim]")
        return

    content = log_path.read_text()
    log_lines = content.strip().split("\n")
    for line in log_lines[-lines:]:
        console.print(line, markup=False)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"cqllens v{__version__}")

    installed, version_info = check_driver()
    if installed:
        console.print(f"cassandra-driver: {version_info}")
    else:
        console.print("cassandra-driver: [yellow]not installed[/yellow]")

    console.print(f"Python: {sys.version.split()[0]}")
    console.print(f"Config: {CONFIG_FILE}")


if __name__ == "__main__":
    app()
