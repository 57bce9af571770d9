"""
The top-level orchestrator of a download: probes the resource, partitions it,
runs one worker per connection and renames the staging file once every
segment has been closed.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from pathlib import Path

from mdown.exceptions import IncompleteDownloadError, MdownError
from mdown.models.config import DownloadConfig
from mdown.models.job import DownloadJob, DownloadResult
from mdown.models.stats import TransferStats
from mdown.net.transport import HttpTransport
from mdown.storage.staging import StagingFile
from mdown.utils.path import output_name_from_url, validate_url
from mdown.utils.structured_logger import DownloadEventLogger

from .sampler import ProgressSample, ProgressSampler
from .segment import partition
from .segment_store import SegmentStore
from .worker import SegmentWorker

log = logging.getLogger(__name__)


class DownloadCoordinator:
    """Runs a single segmented download job from probe to final rename."""

    def __init__(
        self,
        config: DownloadConfig,
        transport: HttpTransport,
        events: DownloadEventLogger | None = None,
        on_sample: Callable[[ProgressSample], None] | None = None,
        on_start: Callable[[DownloadJob, SegmentStore], None] | None = None,
    ):
        self.config = config
        self.transport = transport
        self.events = events
        self.on_sample = on_sample
        self.on_start = on_start
        self.stats = TransferStats()
        self.job: DownloadJob | None = None
        self.store: SegmentStore | None = None

    def _resolve_paths(self, url: str, output_path: Path | None) -> tuple[Path, Path]:
        if output_path is None:
            output_path = Path(self.config.output_dir) / output_name_from_url(url)
        staging_path = output_path.with_name(
            output_path.name + self.config.staging_suffix
        )
        return output_path, staging_path

    async def download(self, url: str, output_path: Path | None = None) -> DownloadResult:
        """
        Downloads ``url`` into ``output_path`` (by default the URL's basename
        inside the configured output directory).

        Raises:
            MdownError: On any fatal setup or transfer error. The staging file,
                if it was created, is left in place.
        """
        validate_url(url)
        output_path, staging_path = self._resolve_paths(url, output_path)
        start_time = time.monotonic()

        total_length = await self.transport.content_length(url)
        job = DownloadJob(
            url=url,
            total_length=total_length,
            output_path=output_path,
            staging_path=staging_path,
        )
        self.job = job
        num_connections = self.config.num_connections
        if self.events:
            self.events.job_started(url, total_length, num_connections)
        log.debug(
            f"Downloading {total_length} bytes from {url} "
            f"over {num_connections} connections into '{staging_path}'"
        )

        staging = StagingFile(staging_path, total_length)
        await staging.allocate()

        try:
            await self._run_segments(job, staging)
        except MdownError as e:
            if self.events:
                self.events.job_failed(str(e), job.total_written)
            raise

        elapsed = time.monotonic() - start_time
        if self.events:
            self.events.job_completed(total_length, elapsed, self.stats.splits)

        return DownloadResult(
            url=url,
            output_path=output_path,
            total_length=total_length,
            elapsed=elapsed,
            num_connections=num_connections,
            stats=self.stats,
        )

    async def _run_segments(self, job: DownloadJob, staging: StagingFile) -> None:
        loop = asyncio.get_running_loop()
        finished: asyncio.Future[None] = loop.create_future()

        def signal_complete() -> None:
            if not finished.done():
                finished.set_result(None)

        segments = partition(job.total_length, self.config.num_connections)
        store = SegmentStore(
            segments,
            split_threshold=self.config.split_threshold,
            on_complete=signal_complete,
        )
        self.store = store

        try:
            for segment in segments:
                segment.handle = await staging.open_handle()
        except MdownError:
            for segment in segments:
                if segment.handle is not None:
                    await segment.handle.close()
                    segment.handle = None
            raise

        if self.on_start:
            self.on_start(job, store)

        def on_worker_done(task: asyncio.Task) -> None:
            if task.cancelled() or finished.done():
                return
            if (error := task.exception()) is not None:
                finished.set_exception(error)

        tasks = []
        for segment in segments:
            worker = SegmentWorker(
                segment,
                store,
                self.transport,
                job,
                stats=self.stats,
                max_retries=self.config.max_retries,
                retry_base_delay=self.config.retry_base_delay,
                events=self.events,
            )
            task = asyncio.create_task(worker.run(), name=f"segment-{segment.index}")
            task.add_done_callback(on_worker_done)
            tasks.append(task)

        sampler = ProgressSampler(
            job, interval=self.config.sample_interval, on_sample=self._record_sample
        )
        sampler.start()
        try:
            await finished
        finally:
            await sampler.stop()
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Lets every worker release its handle before the rename.
            await asyncio.gather(*tasks, return_exceptions=True)

        if not store.is_fully_delivered(job.total_length):
            raise IncompleteDownloadError(
                f"Only {job.total_written} of {job.total_length} bytes were written; "
                f"'{staging.path}' was kept."
            )
        await staging.finalize(job.output_path)

    def _record_sample(self, sample: ProgressSample) -> None:
        self.stats.record_sample(sample.kbps)
        if self.on_sample:
            self.on_sample(sample)
