"""
Manages the in-progress output file that all segments write into.
"""

import asyncio
import logging
import os
from pathlib import Path

import aiofiles

from mdown.exceptions import StagingFileError

log = logging.getLogger(__name__)


class StagingFile:
    """
    The staging file of a job, sized once up front and shared by all segments.

    Every segment gets its own handle opened without truncation, so opening a
    handle for one segment never erases bytes already written by another.
    """

    def __init__(self, path: Path, total_length: int):
        self.path = path
        self.total_length = total_length

    async def allocate(self) -> None:
        """Creates (or truncates) the file and sizes it to ``total_length``."""
        try:
            await asyncio.to_thread(self.path.parent.mkdir, parents=True, exist_ok=True)
            async with aiofiles.open(self.path, "wb") as f:
                await f.truncate(self.total_length)
        except OSError as e:
            raise StagingFileError(f"{self.path}: {e}") from e
        log.debug(f"Allocated staging file '{self.path}' ({self.total_length} bytes)")

    async def open_handle(self):
        """Opens an independent read/write handle on the existing file."""
        try:
            return await aiofiles.open(self.path, "r+b")
        except OSError as e:
            raise StagingFileError(f"{self.path}: {e}") from e

    async def finalize(self, output_path: Path) -> Path:
        """Atomically renames the staging file to its final name."""
        try:
            await asyncio.to_thread(os.replace, self.path, output_path)
        except OSError as e:
            raise StagingFileError(
                f"Could not rename '{self.path}' to '{output_path}': {e}"
            ) from e
        log.debug(f"Renamed '{self.path.name}' to '{output_path.name}'")
        return output_path
