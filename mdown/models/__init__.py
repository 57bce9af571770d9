"""
Data Models Layer.

This package contains the data structures used throughout the application,
such as configuration, job state and statistics.
"""

from .config import DownloadConfig
from .job import DownloadJob, DownloadResult
from .stats import TransferStats

__all__ = ["DownloadConfig", "DownloadJob", "DownloadResult", "TransferStats"]
