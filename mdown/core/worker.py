"""
Drives the fetch of one segment and, whenever its range is exhausted, asks the
segment store whether to stop or to continue on a freshly split range.
"""

import asyncio
import logging
from contextlib import aclosing

import aiohttp

from mdown.exceptions import SegmentTransferError, StagingFileError
from mdown.models.job import DownloadJob
from mdown.models.stats import TransferStats
from mdown.net.transport import HttpTransport
from mdown.utils.structured_logger import DownloadEventLogger

from .segment import Segment
from .segment_store import RebalanceAction, SegmentStore

log = logging.getLogger(__name__)


class SegmentWorker:
    """
    One connection's worth of work. The worker keeps a single segment (and its
    file handle) for its whole life; splits change the segment's range, never
    which segment the worker owns.
    """

    def __init__(
        self,
        segment: Segment,
        store: SegmentStore,
        transport: HttpTransport,
        job: DownloadJob,
        stats: TransferStats | None = None,
        max_retries: int = 3,
        retry_base_delay: float = 1.5,
        events: DownloadEventLogger | None = None,
    ):
        self.segment = segment
        self.store = store
        self.transport = transport
        self.job = job
        self.stats = stats or TransferStats()
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.events = events

    async def run(self) -> None:
        """
        Fetches ranges until the store closes this worker's segment.

        Raises:
            SegmentTransferError: If a range could not be completed.
        """
        segment = self.segment
        try:
            while True:
                await self._fetch_range()

                decision = self.store.rebalance(segment.index)
                if decision.action is RebalanceAction.CLOSE:
                    self.stats.segments_closed += 1
                    if self.events:
                        self.events.segment_closed(
                            segment.index, self.store.active_count
                        )
                    return

                self.stats.splits += 1
                if self.events:
                    self.events.segment_split(
                        segment.index,
                        decision.donor.index,
                        decision.split_point,
                        decision.donor.remaining,
                    )
        finally:
            await self._release_handle()

    async def _fetch_range(self) -> None:
        """
        Fetches ``[cursor, end)`` of the segment, retrying the unreceived part
        when the connection drops or ends early.
        """
        segment = self.segment
        failures = 0
        while segment.remaining > 0:
            cursor_before = segment.cursor
            error: Exception | None = None
            try:
                await self._stream_once()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                error = e

            if segment.remaining == 0:
                return

            # An attempt that made progress resets the retry budget.
            if segment.cursor > cursor_before:
                failures = 0
            failures += 1
            if failures > self.max_retries:
                raise SegmentTransferError(
                    segment.index, segment.cursor, segment.end, error
                )
            self.stats.retries += 1
            reason = str(error) if error else "connection closed early"
            if self.events:
                self.events.segment_retry(
                    segment.index, segment.cursor, segment.end, failures, reason
                )
            await asyncio.sleep(self.retry_base_delay * (2 ** (failures - 1)))

    async def _stream_once(self) -> None:
        """Issues one ranged request and writes chunks until it or the range ends."""
        segment = self.segment
        self.stats.requests += 1
        log.debug(f"Segment #{segment.index}: requesting {segment.range_header()}")
        chunks = self.transport.stream_range(self.job.url, segment.cursor, segment.end)
        async with aclosing(chunks):
            async for chunk in chunks:
                offset, data = segment.claim(chunk)
                if data:
                    await self._write_at(offset, data)
                    self.job.record_written(len(data))
                # The range may have shrunk under a split; stop at the new end.
                if segment.remaining == 0:
                    break

    async def _write_at(self, offset: int, data: bytes) -> None:
        handle = self.segment.handle
        try:
            await handle.seek(offset)
            await handle.write(data)
        except OSError as e:
            raise StagingFileError(
                f"Write of {len(data)} bytes at offset {offset} failed: {e}"
            ) from e

    async def _release_handle(self) -> None:
        handle = self.segment.handle
        if handle is None:
            return
        self.segment.handle = None
        try:
            await handle.close()
        except OSError as e:
            log.warning(f"Could not close handle of segment #{self.segment.index}: {e}")
