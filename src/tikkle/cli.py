"""Command-line interface for tikkle."""

import locale
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import httpx
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from tikkle import __version__
from tikkle.cache import ResponseCache
from tikkle.config import Config
from tikkle.errors import TikkleError
from tikkle.settings import AllowedClient, TickspotSettings, TogglSettings
from tikkle.sync import (
    Decision,
    HierarchyMirror,
    HierarchyPurge,
    MappingKind,
    MirrorDecision,
    SyncDecision,
    SyncEngine,
    SyncResult,
)
from tikkle.tickspot import TickspotAPI, TickspotRole
from tikkle.toggl import TogglAPI
from tikkle.utils import get_logger, parse_range, setup_logging

app = typer.Typer(help="Mirror Tickspot tasks into Toggl and sync tracked time back")
cache_app = typer.Typer(help="Response cache operations")
app.add_typer(cache_app, name="cache")

console = Console()
logger = get_logger(__name__)

SYMBOLS = {
    Decision.CREATE: "[green]✓[/green]",
    Decision.UPDATE: "[green]↺[/green]",
    Decision.SKIP: "[yellow]↷[/yellow]",
    Decision.DELETE: "[green]X[/green]",
    Decision.MISSING: "[red]?[/red]",
}

ConfigDirOption = typer.Option(
    None,
    "--config-dir",
    help="Configuration directory. Defaults to ~/.tikkle/",
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable verbose logging.")


@contextmanager
def _reported_errors() -> Iterator[None]:
    """Turn expected failures into a message and exit code 1."""
    try:
        yield
    except TikkleError as e:
        logger.error(str(e))
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    except httpx.HTTPError as e:
        logger.error(f"API request failed: {e}", exc_info=True)
        console.print(f"[red]Error: API request failed: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


def _open_apis(config: Config) -> tuple[TickspotAPI, TogglAPI]:
    tickspot_settings, tickspot_token = config.require_tickspot()
    toggl_settings, toggl_token = config.require_toggl()
    cache = ResponseCache(config.storage.cache_dir)

    tickspot = TickspotAPI(
        subscription_id=tickspot_settings.subscription_id,
        api_token=tickspot_token,
        username=tickspot_settings.username,
        cache=cache,
    )
    toggl = TogglAPI(api_token=toggl_token, workspace_id=toggl_settings.workspace_id, cache=cache)
    return tickspot, toggl


def _print_mirror_decision(decision: MirrorDecision) -> None:
    if decision.kind is MappingKind.CLIENTS:
        console.print(f"{SYMBOLS[decision.decision]} [bold]Client[/bold] {escape(decision.name)}")
    else:
        inactive = "" if decision.active else " [dim](inactive)[/dim]"
        console.print(f"  {SYMBOLS[decision.decision]} {escape(decision.name)}{inactive}")


class SyncPrinter:
    """Prints one line per sync decision, with a total after every day."""

    def __init__(self) -> None:
        self.current_date: str | None = None
        self.day_hours = 0.0

    def __call__(self, decision: SyncDecision) -> None:
        entry = decision.entry
        candidate = entry.candidate

        if candidate.date != self.current_date:
            self._print_day_total()
            console.print(f"\n[bold]{candidate.date}[/bold]")
            self.current_date = candidate.date
            self.day_hours = 0.0

        self.day_hours += candidate.hours
        names = escape(f"{entry.client_name} / {entry.project_name} / {entry.task_name}")
        console.print(
            f"  {SYMBOLS[decision.decision]} {names}  [cyan]{candidate.hours:5.2f}[/cyan]  "
            f"{escape(', '.join(entry.descriptions))}",
            highlight=False,
        )

    def _print_day_total(self) -> None:
        if self.current_date is not None:
            console.print(f"  [bold]{self.current_date} Total [cyan]{self.day_hours:5.2f}[/cyan][/bold]")

    def finish(self, result: SyncResult) -> None:
        self._print_day_total()
        console.print(f"\n[bold]Total [cyan]{result.total_hours:5.2f}[/cyan][/bold]")


@app.command()
def init(
    config_dir: Optional[Path] = ConfigDirOption,
    verbose: bool = VerboseOption,
) -> None:
    """Configure credentials and choose the Tickspot clients and projects to mirror."""
    setup_logging(log_level=logging.DEBUG if verbose else logging.INFO, config_dir=config_dir)
    config = Config(config_dir)
    previous = config.data.tickspot

    console.print("[bold cyan]Tikkle Configuration[/bold cyan]\n")

    with _reported_errors():
        username = Prompt.ask("Tickspot e-mail", default=previous.username if previous else None)
        method = Prompt.ask("Tickspot authentication", choices=["password", "token"], default="password")
        if method == "password":
            role = _select_role(username)
        else:
            role = TickspotRole(
                api_token=Prompt.ask("Tickspot API token", password=True),
                subscription_id=IntPrompt.ask(
                    "Tickspot subscription ID",
                    default=previous.subscription_id if previous else None,
                ),
            )

        toggl_token = Prompt.ask("Toggl API token", password=True)
        workspace_id = _select_workspace(toggl_token)

        cache = ResponseCache(config.storage.cache_dir)
        cache.clear()
        with TickspotAPI(role.subscription_id, role.api_token, username, cache=cache) as tickspot:
            available_clients = [c for c in tickspot.list_all_clients() if not c.archive]
            available_projects = [p for p in tickspot.list_all_projects() if not p.closed]

        allowed = _select_allow_list(available_clients, available_projects, config.allowed_clients)

    config.storage.set_token("tickspot", role.api_token)
    config.storage.set_token("toggl", toggl_token)
    config.data.tickspot = TickspotSettings(
        subscription_id=role.subscription_id,
        username=username,
        clients=allowed,
    )
    config.data.toggl = TogglSettings(workspace_id=workspace_id)
    config.save()

    console.print("\n[green]Configuration saved.[/green]")
    console.print("Run 'tikkle setup' to mirror the selected projects into Toggl.")


def _select_role(username: str) -> TickspotRole:
    password = Prompt.ask("Tickspot password", password=True)
    roles = TickspotAPI.list_roles(username, password)
    if not roles:
        raise TikkleError("No Tickspot subscriptions found for this account")
    if len(roles) == 1:
        return roles[0]

    for idx, role in enumerate(roles, 1):
        console.print(f"  {idx}. {role.company}")
    choice = Prompt.ask("Select subscription", choices=[str(i) for i in range(1, len(roles) + 1)])
    return roles[int(choice) - 1]


def _select_workspace(token: str) -> int:
    with TogglAPI(api_token=token) as toggl:
        workspaces = toggl.list_workspaces()
    if not workspaces:
        raise TikkleError("No Toggl workspaces found for this token")
    if len(workspaces) == 1:
        console.print(f"Using Toggl workspace {workspaces[0].name}")
        return workspaces[0].id

    for idx, workspace in enumerate(workspaces, 1):
        console.print(f"  {idx}. {workspace.name}")
    choice = Prompt.ask("Select workspace", choices=[str(i) for i in range(1, len(workspaces) + 1)])
    return workspaces[int(choice) - 1].id


def _parse_ids(value: str) -> list[int]:
    return [int(part) for part in value.replace(",", " ").split() if part.isdigit()]


def _select_allow_list(clients, projects, previous: list[AllowedClient]) -> list[AllowedClient]:
    previous_projects = {a.client_id: a.project_ids for a in previous}

    table = Table(title="Tickspot Clients")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    for client in clients:
        table.add_row(str(client.id), client.name)
    console.print(table)

    known = {c.id: c for c in clients}
    selected = _parse_ids(
        Prompt.ask(
            "Client IDs to mirror (comma-separated)",
            default=", ".join(str(a.client_id) for a in previous) or None,
        )
    )

    allowed = []
    for client_id in selected:
        client = known.get(client_id)
        if client is None:
            console.print(f"[yellow]Unknown client {client_id}, ignoring it[/yellow]")
            continue

        client_projects = [p for p in projects if p.client_id == client_id]
        table = Table(title=f"{client.name} Projects")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="magenta")
        for project in client_projects:
            table.add_row(str(project.id), project.name)
        console.print(table)

        valid = {p.id for p in client_projects}
        project_ids = _parse_ids(
            Prompt.ask(
                f"{client.name} project IDs (comma-separated)",
                default=", ".join(str(p) for p in previous_projects.get(client_id, []) if p in valid) or None,
            )
        )
        allowed.append(AllowedClient(client_id=client_id, project_ids=[p for p in project_ids if p in valid]))

    return allowed


@app.command()
def configure(
    rounding: Optional[int] = typer.Option(None, "--rounding", help="Round durations to this many seconds."),
    round_up_by: Optional[float] = typer.Option(
        None,
        "--round-up-by",
        help="Fraction of the rounding unit (0-1) at which a remainder rounds up.",
    ),
    grouping: Optional[bool] = typer.Option(
        None,
        "--grouping/--no-grouping",
        help="Merge a day's entries per project regardless of their descriptions.",
    ),
    config_dir: Optional[Path] = ConfigDirOption,
) -> None:
    """Show or change the rounding and grouping settings."""
    setup_logging(config_dir=config_dir)
    config = Config(config_dir)
    settings = config.settings

    try:
        if rounding is not None:
            settings.rounding = rounding
        if round_up_by is not None:
            settings.round_up_by = round_up_by
        if grouping is not None:
            settings.grouping = grouping
    except ValidationError as e:
        console.print(f"[red]Invalid setting: {e.errors()[0]['msg']}[/red]")
        raise typer.Exit(code=1)

    if rounding is not None or round_up_by is not None or grouping is not None:
        config.save()
        console.print("[green]Settings saved.[/green]")

    table = Table(title="Sync Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Round to (seconds)", str(settings.rounding))
    table.add_row("Round up by", f"{settings.round_up_by:.2f}")
    table.add_row("Grouping", "on" if settings.grouping else "off")
    console.print(table)


@app.command()
def setup(
    config_dir: Optional[Path] = ConfigDirOption,
    verbose: bool = VerboseOption,
) -> None:
    """Mirror the selected Tickspot clients, projects and tasks into Toggl."""
    setup_logging(log_level=logging.DEBUG if verbose else logging.INFO, config_dir=config_dir)
    logger.info(f"Tikkle v{__version__}")
    config = Config(config_dir)

    with _reported_errors():
        allowed = config.require_allowed_clients()
        tickspot, toggl = _open_apis(config)
        with tickspot, toggl:
            mirror = HierarchyMirror(tickspot, toggl, allowed, on_decision=_print_mirror_decision)
            result = mirror.run(config.load_mapping())

    config.save_mapping(result.mapping)
    console.print(f"\n[green]Setup complete.[/green] {result}")


@app.command()
def sync(
    range_: str = typer.Argument(
        "today",
        metavar="RANGE",
        help='A date (YYYY-MM-DD), a date range (YYYY-MM-DD..YYYY-MM-DD), "today", '
        '"yesterday", "week" or "month".',
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be synced without writing to Tickspot.",
    ),
    config_dir: Optional[Path] = ConfigDirOption,
    verbose: bool = VerboseOption,
) -> None:
    """Sync tracked Toggl time into Tickspot entries."""
    setup_logging(log_level=logging.DEBUG if verbose else logging.INFO, config_dir=config_dir)
    logger.info(f"Tikkle v{__version__}")
    config = Config(config_dir)

    with _reported_errors():
        start, end = parse_range(range_)
        mapping = config.require_mapping()
        allowed = config.require_allowed_clients()
        tickspot, toggl = _open_apis(config)

        header = str(start) if start == end else f"{start} - {end}"
        mode = " [bold cyan](dry run)[/bold cyan]" if dry_run else ""
        console.print(f"[bold]Sync:[/bold] {header}{mode}")
        console.print(
            f"{SYMBOLS[Decision.SKIP]} No changes  {SYMBOLS[Decision.CREATE]} Added  "
            f"{SYMBOLS[Decision.UPDATE]} Updated"
        )

        printer = SyncPrinter()
        with tickspot, toggl:
            engine = SyncEngine(tickspot, toggl, allowed, config.settings, on_decision=printer)
            result = engine.sync(mapping, start, end, dry_run=dry_run)

    printer.finish(result)
    console.print(f"\n{result}")


def _purge(config_dir: Optional[Path], yes: bool, verbose: bool) -> None:
    setup_logging(log_level=logging.DEBUG if verbose else logging.INFO, config_dir=config_dir)
    config = Config(config_dir)

    with _reported_errors():
        mapping = config.require_mapping()
        tickspot, toggl = _open_apis(config)
        if not yes and not typer.confirm("Delete all Toggl clients and projects created by tikkle?"):
            raise typer.Exit(code=0)
        with tickspot, toggl:
            result = HierarchyPurge(toggl, on_decision=_print_mirror_decision).run(mapping)

    config.delete_mapping()
    ResponseCache(config.storage.cache_dir).clear()
    console.print(f"\n[green]Purged {result.count(Decision.DELETE)} Toggl records.[/green]")


@app.command()
def purge(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    config_dir: Optional[Path] = ConfigDirOption,
    verbose: bool = VerboseOption,
) -> None:
    """Delete the Toggl clients and projects recorded in the mapping."""
    _purge(config_dir, yes, verbose)


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    config_dir: Optional[Path] = ConfigDirOption,
    verbose: bool = VerboseOption,
) -> None:
    """Alias of purge."""
    _purge(config_dir, yes, verbose)


@app.command()
def mapping(config_dir: Optional[Path] = ConfigDirOption) -> None:
    """Show the Tickspot to Toggl mapping produced by setup."""
    config = Config(config_dir)
    identity_map = config.load_mapping()

    if identity_map is None or identity_map.is_empty():
        console.print("[yellow]No mapping yet. Run 'tikkle setup' first.[/yellow]")
        return

    snapshot = identity_map.snapshot()
    table = Table(title="Tickspot to Toggl Mapping")
    table.add_column("Kind", style="cyan")
    table.add_column("Tickspot ID", style="magenta")
    table.add_column("Toggl ID", style="green")
    for kind in (MappingKind.CLIENTS, MappingKind.TASKS, MappingKind.PROJECTS):
        for source_id, target_id in snapshot[kind.value]:
            table.add_row(kind.value, str(source_id), str(target_id))
    console.print(table)


@cache_app.command("clear")
def cache_clear(config_dir: Optional[Path] = ConfigDirOption) -> None:
    """Clear cached Tickspot and Toggl responses."""
    config = Config(config_dir)
    ResponseCache(config.storage.cache_dir).clear()
    console.print("Cache cleared")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"Tikkle v{__version__}")


def main() -> None:
    """Main entry point."""
    # Entries are sorted with locale.strxfrm
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.warning(f"Unsupported locale, sorting by code point: {e}")

    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        console.print(f"[red]Unexpected error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
