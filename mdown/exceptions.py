"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class MdownError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(MdownError):
    """Raised for issues related to configuration loading or validation."""


class InvalidUrlError(MdownError):
    """Raised when the source URL is missing or cannot be downloaded from."""


class ContentLengthError(MdownError):
    """Raised when the server does not report a usable Content-Length."""


class RangeNotSupportedError(MdownError):
    """Raised when the server ignores the Range header of a segment request."""


class StagingFileError(MdownError):
    """Raised when the staging file cannot be created, opened or renamed."""


class SegmentTransferError(MdownError):
    """
    Raised when a segment could not be fetched completely after exhausting its
    retries.
    """

    def __init__(self, index: int, cursor: int, end: int, cause: Exception | None):
        self.index = index
        self.cursor = cursor
        self.end = end
        self.cause = cause
        reason = f": {cause}" if cause else ""
        super().__init__(
            f"Segment {index} stopped at byte {cursor} of {end}{reason}"
        )


class IncompleteDownloadError(MdownError):
    """Raised when the job finished but the segments do not cover the file."""
