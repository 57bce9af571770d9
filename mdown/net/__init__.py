"""
Network Layer.

Wraps aiohttp to provide the two requests the downloader needs: probing the
resource length and streaming a byte range.
"""

from .transport import HttpTransport, close_connection_pool, get_connection_pool

__all__ = ["HttpTransport", "get_connection_pool", "close_connection_pool"]
