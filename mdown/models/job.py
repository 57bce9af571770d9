"""
Data structures describing one download job and its outcome.
"""

from dataclasses import dataclass, field
from pathlib import Path

from .stats import TransferStats


@dataclass
class DownloadJob:
    """
    State shared by every worker of a single download.

    ``total_length`` is fixed once the resource has been probed;
    ``total_written`` only ever grows and is read by the progress sampler.
    """

    url: str
    total_length: int
    output_path: Path
    staging_path: Path
    total_written: int = 0

    def record_written(self, num_bytes: int) -> None:
        if num_bytes < 0:
            raise ValueError("Written byte count cannot be negative.")
        self.total_written += num_bytes

    @property
    def percent_complete(self) -> int:
        if self.total_length <= 0:
            return 100
        return int(self.total_written * 100 / self.total_length)


@dataclass
class DownloadResult:
    """Result of a completed download."""

    url: str
    output_path: Path
    total_length: int
    elapsed: float
    num_connections: int
    stats: TransferStats = field(default_factory=TransferStats)

    @property
    def average_kbps(self) -> float:
        """Average throughput over the whole job in KB/s."""
        if self.elapsed <= 0:
            return 0.0
        return self.total_length / (1024 * self.elapsed)
