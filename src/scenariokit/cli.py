"""ScenarioKit CLI - typer application entry point."""

from __future__ import annotations

import asyncio
import atexit
import contextlib
import signal
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, TypeVar

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from scenariokit.api import AdminApiClient
from scenariokit.config import ENV_VARS, ClientConfig, resolve_config, with_overrides
from scenariokit.errors import ApiError, ConfigError, ScenarioKitError
from scenariokit.export import (
    JsonExporter,
    build_document,
    dangling_keys,
    import_document,
    read_document,
)
from scenariokit.graph import ExitFields, MoveDirection, ScenarioEditor
from scenariokit.ingest import (
    CancelToken,
    GameOverrides,
    ImportJobClient,
    ImportOutcome,
    ImportState,
    upload_files,
)
from scenariokit.inspection import build_flow
from scenariokit.models import ExitType
from scenariokit.observability import close_file_logging, configure_logging, get_logger
from scenariokit.visualization import build_scenario_graph, render_dot, render_mermaid

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from scenariokit.graph import WriteResult

# Load environment variables from .env file
load_dotenv()

log = get_logger(__name__)

app = typer.Typer(
    name="skit",
    help="ScenarioKit: edit and import narrative game scenarios.",
    no_args_is_help=True,
)
console = Console()

DEFAULT_LOG_DIR = Path("logs")
GRAPH_FORMATS = ("dot", "mermaid")

T = TypeVar("T")

# Global state for CLI flags (set by callback, used by commands)
_api_url: str | None = None


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
    log: Annotated[
        bool,
        typer.Option("--log", help="Enable file logging to ./logs/scenariokit.jsonl."),
    ] = False,
    api_url: Annotated[
        str | None,
        typer.Option(
            "--api-url",
            help="Admin API base URL (default: SCENARIOKIT_API_URL or user config).",
        ),
    ] = None,
) -> None:
    """ScenarioKit: edit and import narrative game scenarios."""
    global _api_url
    _api_url = api_url

    if log:
        configure_logging(verbosity=verbose, log_to_file=True, log_dir=DEFAULT_LOG_DIR)
        atexit.register(close_file_logging)
    else:
        configure_logging(verbosity=verbose)


# =============================================================================
# Helpers
# =============================================================================


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {escape(message)}")
    return typer.Exit(1)


def _notify(message: str) -> None:
    console.print(f"[red]✗[/red] {escape(message)}")


def _client_config() -> ClientConfig:
    # --api-url wins over the environment and the user config file
    try:
        return with_overrides(resolve_config(), api_url=_api_url)
    except ConfigError as e:
        raise _fail(str(e)) from e


def _make_client(config: ClientConfig) -> AdminApiClient:
    return AdminApiClient(config)


def _run(work: Callable[[AdminApiClient], Awaitable[T]]) -> T:
    """Run *work* with a fresh client, turning library errors into exit code 1."""
    config = _client_config()

    async def runner() -> T:
        async with _make_client(config) as client:
            return await work(client)

    try:
        return asyncio.run(runner())
    except ScenarioKitError as e:
        log.debug("command_failed", error=str(e))
        raise _fail(str(e)) from e


async def _load_editor(client: AdminApiClient, game_id: str) -> ScenarioEditor:
    editor = ScenarioEditor(client, game_id, notify=_notify)
    await editor.load()
    return editor


def _check_write(result: WriteResult) -> None:
    # The notifier already printed the failure
    if not result.ok:
        raise typer.Exit(1)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from scenariokit import __version__

    console.print(f"ScenarioKit v{__version__}")


@app.command()
def show(
    game_id: Annotated[str, typer.Argument(help="Game id.")],
) -> None:
    """Show the flow overview: each location with its exits and targets."""

    async def work(client: AdminApiClient) -> ScenarioEditor:
        return await _load_editor(client, game_id)

    editor = _run(work)
    overview = build_flow(editor.store, editor.last_source)

    console.print()
    console.print(
        f"[bold]{escape(overview.title or overview.game_id)}[/bold] "
        f"[dim]({overview.game_id}, exits from {overview.source or 'n/a'})[/dim]"
    )

    table = Table(title="Flow")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Location", style="cyan")
    table.add_column("Exit")
    table.add_column("Type", style="dim")
    table.add_column("Target")

    for row in overview.rows:
        if not row.exits:
            table.add_row(str(row.order), escape(row.title), "-", "", "")
            continue
        for i, exit_ in enumerate(row.exits):
            target = escape(exit_.target)
            if exit_.is_game_over:
                target += " [red](game over)[/red]"
            table.add_row(
                str(row.order) if i == 0 else "",
                escape(row.title) if i == 0 else "",
                escape(exit_.label),
                exit_.type,
                target,
            )

    console.print(table)

    if overview.findings:
        console.print(f"[bold]Findings[/bold] ({len(overview.findings)})")
        for finding in overview.findings:
            console.print(f"  [yellow]![/yellow] {escape(finding.message)}")
    else:
        console.print("[green]No issues found.[/green]")


@app.command()
def graph(
    game_id: Annotated[str, typer.Argument(help="Game id.")],
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: dot or mermaid."),
    ] = "dot",
    no_labels: Annotated[
        bool,
        typer.Option("--no-labels", help="Omit exit labels on edges."),
    ] = False,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to a file instead of stdout."),
    ] = None,
) -> None:
    """Render the scenario graph as DOT or Mermaid."""
    if output_format not in GRAPH_FORMATS:
        raise _fail(f"Unknown format '{output_format}'. Supported: {', '.join(GRAPH_FORMATS)}")

    async def work(client: AdminApiClient) -> ScenarioEditor:
        return await _load_editor(client, game_id)

    editor = _run(work)
    sg = build_scenario_graph(editor.store)
    render = render_dot if output_format == "dot" else render_mermaid
    markup = render(sg, no_labels=no_labels)

    if output is None:
        typer.echo(markup)
    else:
        output.write_text(markup + "\n", encoding="utf-8")
        console.print(f"[green]✓[/green] Wrote {output}")


@app.command()
def move(
    game_id: Annotated[str, typer.Argument(help="Game id.")],
    location_id: Annotated[str, typer.Argument(help="Location to move.")],
    direction: Annotated[MoveDirection, typer.Argument(help="up or down.")],
) -> None:
    """Move a location one step up or down in the game's order."""

    async def work(client: AdminApiClient) -> Any:
        editor = await _load_editor(client, game_id)
        return await editor.move_location(location_id, direction)

    result = _run(work)
    if not result.ok:
        raise typer.Exit(1)
    if not result.moved:
        edge = "top" if direction == MoveDirection.UP else "bottom"
        console.print(f"[dim]{location_id} is already at the {edge}.[/dim]")
        return
    orders = ", ".join(f"{lid}={order}" for lid, order in result.new_orders.items())
    console.print(f"[green]✓[/green] Moved {location_id} {direction} ({orders})")


@app.command("exit-add")
def exit_add(
    game_id: Annotated[str, typer.Argument(help="Game id.")],
    location_id: Annotated[str, typer.Argument(help="Owning location.")],
    exit_type: Annotated[ExitType, typer.Option("--type", help="Exit type.")] = ExitType.BUTTON,
    button_text: Annotated[str | None, typer.Option("--button-text")] = None,
    trigger_text: Annotated[str | None, typer.Option("--trigger-text")] = None,
    target: Annotated[str | None, typer.Option("--target", help="Target location id.")] = None,
    game_over: Annotated[bool, typer.Option("--game-over", help="Exit ends the game.")] = False,
) -> None:
    """Add an exit to a location."""
    draft = ExitFields(
        type=exit_type,
        button_text=button_text,
        trigger_text=trigger_text,
        target_location_id=target,
        is_game_over=game_over,
    )

    async def work(client: AdminApiClient) -> WriteResult:
        editor = await _load_editor(client, game_id)
        editor.store.location(location_id)
        if target and not editor.store.has_location(target):
            log.warning("exit_target_unknown", target=target)
        return await editor.create_exit(location_id, draft)

    result = _run(work)
    _check_write(result)
    created = getattr(result.data, "id", None)
    console.print(f"[green]✓[/green] Added exit {created or ''} to {location_id}")


@app.command("exit-update")
def exit_update(
    game_id: Annotated[str, typer.Argument(help="Game id.")],
    exit_id: Annotated[str, typer.Argument(help="Exit id.")],
    exit_type: Annotated[ExitType | None, typer.Option("--type", help="Exit type.")] = None,
    button_text: Annotated[str | None, typer.Option("--button-text")] = None,
    trigger_text: Annotated[str | None, typer.Option("--trigger-text")] = None,
    target: Annotated[str | None, typer.Option("--target", help="Target location id.")] = None,
    game_over: Annotated[
        bool | None,
        typer.Option("--game-over/--no-game-over", help="Whether the exit ends the game."),
    ] = None,
) -> None:
    """Update fields of an existing exit; only given options are sent."""
    values = {
        "type": exit_type,
        "button_text": button_text,
        "trigger_text": trigger_text,
        "target_location_id": target,
        "is_game_over": game_over,
    }
    patch = ExitFields(**{key: value for key, value in values.items() if value is not None})
    if not patch.model_fields_set:
        raise _fail("Nothing to update: pass at least one field option")

    async def work(client: AdminApiClient) -> WriteResult:
        editor = await _load_editor(client, game_id)
        editor.store.exit(exit_id)
        return await editor.update_exit(exit_id, patch)

    _check_write(_run(work))
    console.print(f"[green]✓[/green] Updated exit {exit_id}")


@app.command("exit-delete")
def exit_delete(
    game_id: Annotated[str, typer.Argument(help="Game id.")],
    exit_id: Annotated[str, typer.Argument(help="Exit id.")],
) -> None:
    """Delete an exit."""

    async def work(client: AdminApiClient) -> WriteResult:
        editor = await _load_editor(client, game_id)
        editor.store.exit(exit_id)
        return await editor.delete_exit(exit_id)

    _check_write(_run(work))
    console.print(f"[green]✓[/green] Deleted exit {exit_id}")


@app.command()
def export(
    game_id: Annotated[str, typer.Argument(help="Game id.")],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output file or directory (default: current dir)."),
    ] = None,
) -> None:
    """Export a game's scenario as a JSON document."""

    async def work(client: AdminApiClient) -> ScenarioEditor:
        return await _load_editor(client, game_id)

    editor = _run(work)
    document = build_document(editor.store)
    path = JsonExporter().export(document, output or Path.cwd())
    console.print(
        f"[green]✓[/green] Exported {len(document.locations)} locations, "
        f"{len(document.exits)} exits to {path}"
    )


@app.command("import")
def import_(
    path: Annotated[
        Path,
        typer.Argument(help="Scenario JSON document.", exists=True, dir_okay=False),
    ],
) -> None:
    """Create a new game from an exported scenario document."""
    try:
        document = read_document(path)
    except ScenarioKitError as e:
        raise _fail(str(e)) from e

    for key in dangling_keys(document):
        console.print(f"  [yellow]![/yellow] Unknown location key '{escape(key)}'")

    async def work(client: AdminApiClient) -> str:
        return await import_document(client, document)

    new_id = _run(work)
    console.print(f"[green]✓[/green] Imported '{escape(document.game.title)}' as game {new_id}")


async def _run_ingest(
    config: ClientConfig,
    job: Callable[[AdminApiClient], ImportJobClient],
    run_kwargs: dict[str, Any],
) -> ImportOutcome:
    token = CancelToken()
    loop = asyncio.get_running_loop()
    # Signal handlers are unavailable off the main thread and on Windows
    with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    try:
        async with _make_client(config) as client:
            return await job(client).run(**run_kwargs, cancel=token)
    finally:
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.remove_signal_handler(signal.SIGINT)


@app.command()
def ingest(
    scenario: Annotated[
        Path,
        typer.Option("--scenario", help="Scenario document to ingest.", exists=True, dir_okay=False),
    ],
    rules: Annotated[
        Path | None,
        typer.Option("--rules", help="Optional rules document.", exists=True, dir_okay=False),
    ] = None,
    title: Annotated[str | None, typer.Option("--title", help="Override the game title.")] = None,
    author: Annotated[str | None, typer.Option("--author", help="Override the author.")] = None,
    cover_url: Annotated[str | None, typer.Option("--cover-url", help="Override the cover.")] = None,
) -> None:
    """Upload documents and wait for the backend to build a new game.

    Press Ctrl-C to stop waiting; the server job keeps running.
    """
    config = _client_config()
    files = upload_files(scenario, rules)
    overrides = GameOverrides(title=title, author=author, cover_url=cover_url)

    with console.status("Starting import...") as spinner:

        def on_progress(label: str) -> None:
            spinner.update(f"Importing: {escape(label)}")

        def on_state(state: ImportState) -> None:
            if state == ImportState.POLLING:
                spinner.update("Waiting for import job...")

        def make_job(client: AdminApiClient) -> ImportJobClient:
            return ImportJobClient(client, on_progress=on_progress, on_state=on_state)

        outcome = asyncio.run(
            _run_ingest(config, make_job, {"files": files, "overrides": overrides})
        )

    _report_ingest(outcome)


def _report_ingest(outcome: ImportOutcome) -> None:
    if outcome.state == ImportState.DONE:
        console.print(f"[green]✓[/green] Import finished: game {outcome.game_id}")
        if outcome.overrides_applied:
            console.print("  [dim]Metadata overrides applied[/dim]")
        return
    if outcome.state == ImportState.CANCELLED:
        console.print(f"[yellow]{escape(outcome.message or 'Cancelled')}[/yellow]")
        if outcome.job_id:
            console.print(f"  [dim]Job {outcome.job_id} may still finish on the server[/dim]")
        raise typer.Exit(1)
    console.print(f"[red]✗[/red] {escape(outcome.message or str(outcome.state))}")
    raise typer.Exit(1)


@app.command()
def doctor() -> None:
    """Check configuration and backend connectivity."""
    console.print("[bold]ScenarioKit Doctor[/bold]")
    console.print()

    config = _client_config()
    _check_configuration(config)

    ok = asyncio.run(_check_backend(config))

    console.print()
    if ok:
        console.print("[green]All checks passed![/green]")
    else:
        console.print("[yellow]Some checks failed.[/yellow]")
        raise typer.Exit(1)


def _check_configuration(config: ClientConfig) -> None:
    import os

    console.print("[bold]Configuration[/bold]")
    console.print(f"  api_url: {config.api_url}")
    console.print(f"  timeout: {config.timeout}s")
    console.print(f"  poll_interval: {config.poll_interval}s")
    console.print(f"  max_poll_attempts: {config.max_poll_attempts}")
    for env_name in ENV_VARS.values():
        if os.getenv(env_name):
            console.print(f"  [green]✓[/green] {env_name} set")
        else:
            console.print(f"  [dim]○[/dim] {env_name}: not set")
    console.print()


async def _check_backend(config: ClientConfig) -> bool:
    console.print("[bold]Backend Connectivity[/bold]")
    async with _make_client(config) as client:
        try:
            healthy = await client.health()
        except ApiError as e:
            console.print(f"  [red]✗[/red] health: {escape(str(e))}")
            return False
        if not healthy:
            console.print("  [red]✗[/red] health: unexpected response")
            return False
        console.print(f"  [green]✓[/green] health: ok ({config.api_url})")

        try:
            games = await client.list_games()
        except ApiError as e:
            console.print(f"  [red]✗[/red] admin games: {escape(str(e))}")
            return False
        console.print(f"  [green]✓[/green] admin games: {len(games)} found")
    return True
