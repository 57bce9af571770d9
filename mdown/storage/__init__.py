"""
Storage Layer.

This package handles all data persistence: the configuration file and the
staging file the segments are written into.
"""

from .config_manager import ConfigManager
from .staging import StagingFile

__all__ = ["ConfigManager", "StagingFile"]
