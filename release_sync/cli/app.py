"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from release_sync import __version__
from release_sync.core.launch import LaunchDecision, LaunchSession, decide_launch
from release_sync.core.reconciler import InstallationReconciler, SyncOutcome
from release_sync.exceptions import ReleaseSyncError
from release_sync.models.stats import SyncStats
from release_sync.storage.config_manager import ConfigManager
from release_sync.storage.state_store import StateStore
from release_sync.transfer.integrity import sha256_of
from release_sync.utils.path import default_install_dir, get_config_dir

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_status,
    print_summary_panel,
    print_validation_table,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("release_sync")

app = typer.Typer(
    name="release-sync",
    help=(
        "Keep a local installation in sync with the latest published release. "
        "Use 'release-sync <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"

EXIT_FAILURE = 1
EXIT_MISCOUNT = 2


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Release Sync CLI"""
    if version:
        console.print(f"[bold]release-sync[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("release_sync").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]release-sync init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        config = config_manager.load_config()
        print_config(CONFIG_FILE, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    repository: str = typer.Argument(
        ..., help="Repository publishing the releases.", metavar="<OWNER/NAME>"
    ),
    install_dir: Path | None = typer.Option(
        None,
        "--install-dir",
        "-d",
        help="Installation root (defaults to a per-platform location).",
    ),
    archive_sha256: str | None = typer.Option(
        None, "--sha256", help="Pin the expected SHA-256 of the data archive."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Create the configuration file."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        "repository": repository,
        "install_dir": str(install_dir or default_install_dir()),
    }
    if archive_sha256:
        settings["archive_sha256"] = archive_sha256

    config_manager = ConfigManager(CONFIG_FILE)
    config_manager.save_new_config(settings)
    try:
        config = config_manager.load_config()
    except ReleaseSyncError as e:
        console.print(f"[red]✗ Saved configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print(f"Installation root: [dim]{config.install_dir}[/dim]")
    console.print("Ready to sync! Try: [cyan]release-sync sync[/cyan]")


@app.command(name="sync")
def sync_command(
    install_dir: Path | None = typer.Option(
        None, "--install-dir", "-d", help="Override the installation root."
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Accept an installation that still mismatches after repair.",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide the progress bar."),
):
    """Download, extract and verify the latest release."""
    cli_options = {}
    if install_dir is not None:
        cli_options["install_dir"] = str(install_dir)

    try:
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
    except ReleaseSyncError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=EXIT_FAILURE) from e

    stats = SyncStats()

    async def _sync_async():
        async with ProgressManager(console=console, quiet=quiet) as progress_manager:
            reconciler = InstallationReconciler(
                config, callbacks=progress_manager.callbacks(), stats=stats
            )
            try:
                return await reconciler.reconcile()
            finally:
                await reconciler.close()

    start_time = time.monotonic()
    report = asyncio.run(_sync_async())
    duration = time.monotonic() - start_time

    print_summary_panel(report, stats, duration)
    if report.error is not None:
        console.print(format_error_with_suggestions(report.error))

    decision = decide_launch(report, LaunchSession.local())
    if decision is LaunchDecision.LAUNCH:
        return
    if decision is LaunchDecision.CONFIRM:
        if yes or typer.confirm(
            "Some files do not match the release. Continue anyway?", default=False
        ):
            console.print("[yellow]Continuing with an unverified installation.[/yellow]")
            return
        raise typer.Exit(code=EXIT_MISCOUNT)
    raise typer.Exit(
        code=EXIT_MISCOUNT if report.outcome is SyncOutcome.MISCOUNT_ERROR else EXIT_FAILURE
    )


@app.command()
def status(
    install_dir: Path | None = typer.Option(
        None, "--install-dir", "-d", help="Installation root to inspect."
    ),
):
    """Show the installed release tag."""
    if install_dir is None:
        try:
            install_dir = Path(ConfigManager(CONFIG_FILE).load_config().install_dir)
        except ReleaseSyncError as e:
            console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e

    store = StateStore(install_dir.expanduser())
    print_status(store.install_dir, store.read(), store.is_first_launch())


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config_manager = ConfigManager(CONFIG_FILE)
        config = config_manager.load_config()
        print_validation_table(config)
    except ReleaseSyncError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def checksum(
    archive: Path = typer.Argument(..., help="Archive to hash.", exists=True, dir_okay=False),
    expected: str | None = typer.Option(
        None, "--expected", "-e", help="SHA-256 digest the archive must match."
    ),
):
    """Print (or check) the SHA-256 checksum of an archive."""
    try:
        actual = sha256_of(archive)
    except ReleaseSyncError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"Calculated checksum: [cyan]{actual}[/cyan]")
    if expected is None:
        return
    if actual == expected.strip().lower():
        console.print("[green]✓ Checksum matches! Data integrity verified.[/green]")
    else:
        console.print("[red]✗ Checksum does NOT match! Data may have been tampered with.[/red]")
        raise typer.Exit(code=1)
