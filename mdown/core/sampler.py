"""
Periodic throughput and completion reporting for a running job.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from mdown.models.job import DownloadJob

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressSample:
    percent: int
    kbps: float
    total_written: int
    total_length: int

    def describe(self) -> str:
        return f"Downloaded {self.percent}% (Currently: {self.kbps:.2f}KB/s)"


class ProgressSampler:
    """
    Reports, every ``interval`` seconds, the rate at which ``total_written``
    grew since the previous sample and the overall percentage.

    Only reads job state, so a job runs identically with or without it.
    """

    def __init__(
        self,
        job: DownloadJob,
        interval: float = 3.0,
        on_sample: Callable[[ProgressSample], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.job = job
        self.interval = interval
        self.on_sample = on_sample
        self._clock = clock
        self._last_time = clock()
        self._last_written = job.total_written
        self._task: asyncio.Task | None = None

    def sample(self) -> ProgressSample:
        """Takes a sample now and makes it the baseline for the next one."""
        now = self._clock()
        written = self.job.total_written
        elapsed = now - self._last_time
        kbps = (written - self._last_written) / (elapsed * 1024) if elapsed > 0 else 0.0

        self._last_time = now
        self._last_written = written
        return ProgressSample(
            percent=self.job.percent_complete,
            kbps=kbps,
            total_written=written,
            total_length=self.job.total_length,
        )

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            sample = self.sample()
            if self.on_sample:
                self.on_sample(sample)
            else:
                log.info(sample.describe())

    def start(self) -> asyncio.Task:
        self._last_time = self._clock()
        self._last_written = self.job.total_written
        self._task = asyncio.create_task(self.run(), name="progress-sampler")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
