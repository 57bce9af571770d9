"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mdown.models.config import DownloadConfig
from mdown.models.job import DownloadResult
from mdown.utils.formatting import format_duration, format_rate, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "InvalidUrlError": [
            "• Pass a full http:// or https:// URL.",
            "• Quote the URL if it contains '&' or '?'.",
        ],
        "ContentLengthError": [
            "• The server must answer HEAD requests with a Content-Length.",
            "• Dynamically generated downloads cannot be split into segments.",
        ],
        "RangeNotSupportedError": [
            "• The server does not support partial downloads.",
            "• Retry with `-k 1` to use a single connection.",
        ],
        "SegmentTransferError": [
            "• The connection kept dropping before the segment was complete.",
            "• Increase `--retries` or reduce `-k` if the server throttles.",
        ],
        "StagingFileError": [
            "• Check that the output directory exists and is writable.",
            "• Make sure there is enough free disk space.",
        ],
        "IncompleteDownloadError": [
            "• Some bytes were never received; the staging file was kept.",
            "• Run the download again.",
        ],
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `mdown init --force` to recreate it with defaults.",
        ],
        "ClientResponseError": [
            "• The server rejected a request.",
            "• The resource may have moved or require authentication.",
        ],
        "TimeoutError": [
            "• A connection timed out, which may indicate network throttling.",
            "• Try reducing the number of connections with `-k`.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

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
    """Displays the effective configuration."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in sorted(config_data.items()))
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: DownloadConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Connections:", str(config.num_connections))
    table.add_row("Split Threshold:", format_size(config.split_threshold))
    table.add_row("Chunk Size:", format_size(config.chunk_size))
    table.add_row(
        "Retries:", f"{config.max_retries} (base delay {config.retry_base_delay}s)"
    )
    table.add_row(
        "Timeouts:",
        f"connect {config.connect_timeout}s, read {config.read_timeout}s",
    )
    table.add_row("Output Dir:", config.output_dir)
    table.add_row("Staging Suffix:", config.staging_suffix)
    table.add_row("Sample Interval:", f"{config.sample_interval}s")
    table.add_row("JSON Logs:", "[green]on[/green]" if config.log_json else "off")

    console.print(
        Panel(table, title="[bold green]✓ Configuration is valid[/bold green]", expand=False)
    )


def print_summary_panel(result: DownloadResult, console: Console | None = None):
    """Prints the outcome of a finished download."""
    console = console or Console()
    stats = result.stats

    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")
    table.add_row("File:", f"[green]{result.output_path}[/green]")
    table.add_row("Size:", f"{format_size(result.total_length)} ({result.total_length:,} bytes)")
    table.add_row("Duration:", format_duration(result.elapsed))
    table.add_row("Avg Speed:", format_rate(result.average_kbps))
    if stats.peak_kbps > 0:
        table.add_row("Peak Speed:", format_rate(stats.peak_kbps))
        table.add_row("Recent Speed:", format_rate(stats.recent_average_kbps))
    table.add_row("Connections:", str(result.num_connections))
    table.add_row("Splits:", str(stats.splits))
    if stats.retries:
        table.add_row("Retries:", f"[yellow]{stats.retries}[/yellow]")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Download complete[/bold green]",
            border_style="green",
            expand=False,
        )
    )
