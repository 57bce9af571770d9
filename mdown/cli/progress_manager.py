"""
Manages a Rich Live display for a running download: the sampled progress line,
an overall progress bar and a table of the segments as they get split and closed.
"""

import asyncio
import logging

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table
from rich.text import Text

from mdown.core.sampler import ProgressSample
from mdown.core.segment_store import SegmentStore
from mdown.models.job import DownloadJob
from mdown.utils.formatting import format_size

log = logging.getLogger("mdown")

# Tables wider than this are summarised instead of listed row by row.
MAX_SEGMENT_ROWS = 16


class ProgressManager:
    """
    Owns the live display of one job. The coordinator feeds it through
    :meth:`start_job` and :meth:`report`; rendering only reads job state.
    """

    def __init__(self, console: Console, quiet: bool = False):
        self.console = console
        self.quiet = quiet

        self.progress = Progress(
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=40),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            "•",
            TimeRemainingColumn(),
            console=console,
        )

        self._live: Live | None = None
        self._task_id: TaskID | None = None
        self._job: DownloadJob | None = None
        self._store: SegmentStore | None = None
        self._last_sample: ProgressSample | None = None

    def start_job(self, job: DownloadJob, store: SegmentStore) -> None:
        self._job = job
        self._store = store
        if self.quiet:
            return
        self._task_id = self.progress.add_task(
            job.output_path.name, total=job.total_length or None
        )

    def report(self, sample: ProgressSample) -> None:
        """Receives a throughput sample from the job's sampler."""
        self._last_sample = sample
        if self.quiet:
            return
        if self._live is None:
            # No live display (e.g. not a terminal): fall back to log lines.
            log.info(sample.describe())

    def _generate_sample_line(self) -> Text:
        if self._last_sample is None:
            return Text("Waiting for the first sample...", style="dim italic")
        text = Text()
        text.append(f"Downloaded {self._last_sample.percent}%", style="bold cyan")
        text.append(" (Currently: ", style="dim")
        text.append(f"{self._last_sample.kbps:.2f}KB/s", style="magenta")
        text.append(")", style="dim")
        return text

    def _generate_segment_table(self) -> Table:
        table = Table(box=None, padding=(0, 2), show_edge=False)
        table.add_column("#", style="bold cyan", justify="right")
        table.add_column("Start", justify="right")
        table.add_column("Cursor", justify="right")
        table.add_column("End", justify="right")
        table.add_column("Left", justify="right", style="yellow")
        table.add_column("Status")

        segments = self._store.segments if self._store else ()
        for segment in segments[:MAX_SEGMENT_ROWS]:
            status = (
                "[green]active[/green]" if segment.is_active else "[dim]closed[/dim]"
            )
            table.add_row(
                str(segment.index),
                f"{segment.start:,}",
                f"{segment.cursor:,}",
                f"{segment.end:,}",
                format_size(segment.remaining),
                status,
            )
        if len(segments) > MAX_SEGMENT_ROWS:
            table.add_row("…", "", "", "", "", f"+{len(segments) - MAX_SEGMENT_ROWS}")
        return table

    def _render(self) -> RenderableType:
        if self._job is None or self._store is None:
            return Text("Probing resource...", style="dim italic")
        if self._task_id is not None:
            self.progress.update(self._task_id, completed=self._job.total_written)
        title = (
            f"[bold]Segments ({self._store.active_count}/"
            f"{len(self._store)} active, {format_size(self._store.total_remaining)} left)"
            "[/bold]"
        )
        return Group(
            self._generate_sample_line(),
            self.progress,
            Panel(self._generate_segment_table(), title=title, border_style="blue"),
        )

    async def __aenter__(self):
        if self.quiet or not self.console.is_terminal:
            return self
        self._live = Live(
            get_renderable=self._render,
            console=self.console,
            refresh_per_second=4,
            transient=True,
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live:
            await asyncio.sleep(0.1)
            self._live.stop()
            self._live = None
