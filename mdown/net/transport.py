"""
Handles the HTTP side of a download: a shared connection pool, the HEAD probe
for the resource length, and ranged GET requests streamed as raw chunks.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

import aiohttp

from mdown.exceptions import ContentLengthError, RangeNotSupportedError

log = logging.getLogger(__name__)

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(
    num_connections: int = 4,
    connect_timeout: float = 15.0,
    read_timeout: float = 90.0,
) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    This function ensures that only one connection pool is created for the
    lifetime of the application run.

    Args:
        num_connections: Parallel connections to the single download host.
        connect_timeout: Seconds allowed to establish a connection.
        read_timeout: Seconds allowed between two reads on a socket.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            # One spare slot for the HEAD probe and for retries
            limit=num_connections + 1,
            limit_per_host=num_connections + 1,
            ttl_dns_cache=600,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(
            total=None, sock_connect=connect_timeout, sock_read=read_timeout
        )
        # Byte offsets must refer to the raw resource, never a decoded body.
        _connection_pool = aiohttp.ClientSession(
            connector=connector,
            timeout=timeout,
            auto_decompress=False,
            headers={"Accept-Encoding": "identity"},
        )
        log.debug(f"Created download pool with limit_per_host={num_connections + 1}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared downloader connection pool closed.")


class HttpTransport:
    """Issues the HEAD and ranged GET requests of a segmented download."""

    def __init__(self, session: aiohttp.ClientSession, chunk_size: int = 65536):
        self.session = session
        self.chunk_size = chunk_size

    async def content_length(self, url: str) -> int:
        """
        Returns the total length of the resource as reported by a HEAD request.

        Raises:
            ContentLengthError: If the request fails or the header is missing.
        """
        try:
            async with self.session.head(url, allow_redirects=False) as response:
                if response.status >= 300:
                    raise ContentLengthError(
                        f"HEAD {url} returned HTTP {response.status} {response.reason}."
                    )
                raw_length = response.headers.get("Content-Length")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ContentLengthError(f"Could not reach {url}: {e}") from e

        if raw_length is None:
            raise ContentLengthError("Cannot find a content-length header.")
        try:
            length = int(raw_length)
        except ValueError as e:
            raise ContentLengthError(
                f"Invalid content-length header: {raw_length!r}"
            ) from e
        if length < 0:
            raise ContentLengthError(f"Invalid content-length header: {raw_length!r}")

        log.debug(f"Resource length for {url}: {length} bytes")
        return length

    async def stream_range(
        self, url: str, start: int, end: int
    ) -> AsyncIterator[bytes]:
        """
        Streams the bytes of ``[start, end)`` as they arrive.

        The stream simply stops if the server closes the connection early; it
        is up to the caller to compare what it received against the range.

        Raises:
            aiohttp.ClientResponseError: On a non-success HTTP status.
            RangeNotSupportedError: If the server answered with the whole body
                for a range that does not begin at offset 0.
        """
        if end <= start:
            return

        headers = {"Range": f"bytes={start}-{end - 1}"}
        async with self.session.get(
            url, headers=headers, allow_redirects=False
        ) as response:
            if response.status >= 300:
                response.raise_for_status()
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=f"Unexpected redirect ({response.status})",
                    headers=response.headers,
                )
            if response.status != 206 and start > 0:
                raise RangeNotSupportedError(
                    f"Server ignored the Range header for bytes {start}-{end - 1} "
                    f"(HTTP {response.status})."
                )

            async for chunk in response.content.iter_chunked(self.chunk_size):
                yield chunk
