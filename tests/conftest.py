"""
Pytest fixtures and fakes shared by the downloader tests.
"""

import asyncio

import aiohttp
import pytest

from mdown.exceptions import ContentLengthError
from mdown.models.config import DownloadConfig

TEST_URL = "http://downloads.example.com/files/data.bin"


def make_payload(size: int) -> bytes:
    """Deterministic, non-repeating-looking content of ``size`` bytes."""
    return bytes((i * 31 + i // 251) % 256 for i in range(size))


class MemoryHandle:
    """Async file-handle stand-in writing into a shared, pre-sized bytearray."""

    def __init__(self, buffer: bytearray):
        self.buffer = buffer
        self.position = 0
        self.closed = False
        self.seeks: list[int] = []

    async def seek(self, offset: int) -> int:
        self.seeks.append(offset)
        self.position = offset
        return offset

    async def write(self, data: bytes) -> int:
        end = self.position + len(data)
        assert end <= len(self.buffer), "write past the end of the file"
        self.buffer[self.position : end] = data
        self.position = end
        return len(data)

    async def close(self) -> None:
        self.closed = True


class FakeTransport:
    """
    Serves ``payload`` like a range-capable HTTP server.

    ``behaviours`` is consumed one entry per request, in request order:
    ``("drop", n)`` delivers at most ``n`` bytes and then ends the stream
    quietly, ``("error", n)`` delivers at most ``n`` bytes and then raises a
    client error. Requests without a scripted behaviour deliver the whole range.
    ``delays`` maps a request's start offset to a per-chunk delay in seconds.
    """

    def __init__(
        self,
        payload: bytes,
        chunk_size: int = 1000,
        behaviours: list[tuple[str, int]] | None = None,
        delays: dict[int, float] | None = None,
        report_length: bool = True,
    ):
        self.payload = payload
        self.chunk_size = chunk_size
        self.behaviours = list(behaviours or [])
        self.delays = delays or {}
        self.report_length = report_length
        self.requests: list[tuple[int, int]] = []
        self.head_requests = 0

    async def content_length(self, url: str) -> int:
        self.head_requests += 1
        if not self.report_length:
            raise ContentLengthError("Cannot find a content-length header.")
        return len(self.payload)

    async def stream_range(self, url: str, start: int, end: int):
        if end <= start:
            return
        self.requests.append((start, end))
        behaviour = self.behaviours.pop(0) if self.behaviours else None

        data = self.payload[start:end]
        limit = len(data) if behaviour is None else min(behaviour[1], len(data))
        delay = self.delays.get(start, 0)
        position = 0
        while position < limit:
            await asyncio.sleep(delay)
            piece = data[position : min(position + self.chunk_size, limit)]
            position += len(piece)
            yield piece

        if behaviour is not None and behaviour[0] == "error":
            raise aiohttp.ClientPayloadError("Connection reset by peer")


@pytest.fixture
def payload() -> bytes:
    return make_payload(200_000)


@pytest.fixture
def config(tmp_path) -> DownloadConfig:
    """Fast settings: no retry back-off and a sampler that never fires."""
    return DownloadConfig(
        num_connections=4,
        output_dir=str(tmp_path),
        retry_base_delay=0,
        sample_interval=60,
    )
