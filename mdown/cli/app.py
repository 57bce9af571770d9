"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from mdown import __version__
from mdown.core.coordinator import DownloadCoordinator
from mdown.exceptions import MdownError
from mdown.models.job import DownloadResult
from mdown.net.transport import (
    HttpTransport,
    close_connection_pool,
    get_connection_pool,
)
from mdown.storage.config_manager import ConfigManager
from mdown.utils.structured_logger import create_event_logger

from .formatters import print_config, print_summary_panel, print_validation_table
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
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
log = logging.getLogger("mdown")

app = typer.Typer(
    name="mdown",
    help=(
        "A download accelerator that fetches one file over several connections"
        " and re-splits the largest remaining segment whenever a connection"
        " finishes early."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "mdown"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


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
    """Segmented downloader with dynamic rebalancing."""
    if version:
        console.print(f"[bold]mdown[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("mdown").setLevel(log_level)

    if show_config:
        try:
            config_data = ConfigManager(CONFIG_FILE).get_config_as_dict()
        except MdownError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(code=1) from e
        print_config(CONFIG_FILE, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing file without asking."
    ),
):
    """Write a configuration file with the default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    ConfigManager(CONFIG_FILE).save_new_config()
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command(name="download")
def download_command(
    url: str = typer.Argument(..., help="URL of the file to download."),
    num_connections: int | None = typer.Option(
        None,
        "-k",
        "--num-connections",
        help="Number of parallel connections (default 4, override default in config).",
    ),
    output_dir: Path | None = typer.Option(  # noqa: B008
        None,
        "-o",
        "--output-dir",
        help="Directory to save the file into (default: current directory).",
    ),
    threshold: int | None = typer.Option(
        None,
        "--threshold",
        help="Do not split segments with fewer remaining bytes than this.",
    ),
    retries: int | None = typer.Option(
        None,
        "--retries",
        help="Retries for a segment whose connection drops early.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Do not show the live progress display."
    ),
):
    """Download a file over several connections."""
    cli_options = {
        key: value
        for key, value in {
            "num_connections": num_connections,
            "output_dir": str(output_dir) if output_dir is not None else None,
            "split_threshold": threshold,
            "max_retries": retries,
        }.items()
        if value is not None
    }

    async def _download_async() -> DownloadResult:
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
        base_logger, events = create_event_logger(
            CONFIG_DIR / "logs", enable_json=config.log_json
        )
        try:
            async with ProgressManager(console=console, quiet=quiet) as progress:
                session = await get_connection_pool(
                    config.num_connections,
                    config.connect_timeout,
                    config.read_timeout,
                )
                coordinator = DownloadCoordinator(
                    config,
                    HttpTransport(session, chunk_size=config.chunk_size),
                    events=events,
                    on_sample=progress.report,
                    on_start=progress.start_job,
                )
                return await coordinator.download(url)
        finally:
            await close_connection_pool()
            base_logger.close()

    result = asyncio.run(_download_async())
    if not quiet:
        print_summary_panel(result, console)


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        print_validation_table(config)
    except MdownError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
