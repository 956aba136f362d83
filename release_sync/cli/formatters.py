"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from release_sync.core.reconciler import SyncOutcome, SyncReport
from release_sync.models.config import SyncConfig
from release_sync.models.stats import SyncStats
from release_sync.utils.formatting import format_duration, format_size, summarize_paths


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "NetworkError": [
            "• Check your internet connection.",
            "• The release host might be temporarily unavailable or rate-limiting.",
            "• Verify the 'repository' and 'api_url' settings.",
        ],
        "AssetNotFoundError": [
            "• The latest release does not publish the required assets.",
            "• Check the 'tree_asset' and 'archive_asset' settings.",
        ],
        "StorageError": [
            "• Check that the installation directory is writable.",
            "• Make sure there is enough free disk space.",
        ],
        "CorruptArchiveError": [
            "• The downloaded archive is damaged or does not match its checksum.",
            "• Run the sync again, or update 'archive_sha256' for a new release.",
        ],
        "TreeManifestError": [
            "• The release's file list is empty or unreadable.",
            "• Contact the release maintainer.",
        ],
        "ConfigurationError": [
            "• Run `release-sync init <owner/name>` to create a configuration.",
            "• Run `release-sync validate` to check the current one.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: SyncConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Repository:", f"[green]{config.repository}[/green]")
    table.add_row("Release URL:", f"[dim]{config.release_url}[/dim]")
    table.add_row("Install Dir:", config.install_dir)
    table.add_row("Assets:", f"{config.tree_asset}, {config.archive_asset}")
    table.add_row(
        "Archive Checksum:",
        "✓ Pinned" if config.archive_sha256 else "✗ Not pinned",
    )
    table.add_row("Chunk Size:", format_size(config.chunk_size))

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_status(install_dir: Path, tag: Optional[str], first_launch: bool):
    """Displays what is installed in an installation root."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("Install Dir:", str(install_dir))
    table.add_row("Installed Tag:", f"[green]{tag}[/green]" if tag else "[dim]none[/dim]")
    table.add_row(
        "First Launch:", "[yellow]yes[/yellow]" if first_launch else "no"
    )
    console.print(Panel(table, title="Installation Status", border_style="cyan"))


_OUTCOME_STYLES = {
    SyncOutcome.SUCCESS: ("green", "✓ Installation verified"),
    SyncOutcome.MISCOUNT_ERROR: ("yellow", "⚠ Installation does not match the release"),
    SyncOutcome.FAILURE: ("red", "✗ Sync failed"),
}


def print_summary_panel(report: SyncReport, stats: SyncStats, duration: float):
    """Displays a final summary of the sync run."""
    console = Console()
    color, title = _OUTCOME_STYLES[report.outcome]

    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()

    if report.previous_tag != report.tag:
        table.add_row("Release:", f"{report.previous_tag or 'none'} → {report.tag or '?'}")
    else:
        table.add_row("Release:", str(report.tag))
    table.add_row("Archive Downloaded:", "yes" if report.downloaded else "no")
    table.add_row("Repaired:", "yes" if report.resynced else "no")
    table.add_row("Downloaded:", format_size(stats.bytes_downloaded))
    if stats.peak_speed_bps > 0:
        table.add_row("Peak Speed:", f"{format_size(int(stats.peak_speed_bps))}/s")
    table.add_row("Entries Extracted:", str(stats.entries_extracted))
    if stats.paths_removed:
        table.add_row("Paths Removed:", str(stats.paths_removed))
    table.add_row("Duration:", format_duration(duration))
    if report.last_step:
        table.add_row("Last Step:", f"[dim]{report.last_step}[/dim]")

    diff = report.diff
    if report.outcome is SyncOutcome.MISCOUNT_ERROR and diff is not None:
        if diff.missing:
            table.add_row("Missing:", summarize_paths(diff.missing))
        if diff.unexpected:
            table.add_row("Unexpected:", summarize_paths(diff.unexpected))

    console.print(
        Panel(table, title=f"[bold {color}]{title}[/bold {color}]", border_style=color)
    )
