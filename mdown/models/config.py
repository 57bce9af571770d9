"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator

from mdown.core.segment_store import DEFAULT_SPLIT_THRESHOLD

DEFAULT_NUM_CONNECTIONS = 4
DEFAULT_STAGING_SUFFIX = ".mdown-intermediate"


class DownloadConfig(BaseModel):
    """A validated configuration model for the application."""

    # Segmentation
    num_connections: int = DEFAULT_NUM_CONNECTIONS
    split_threshold: int = DEFAULT_SPLIT_THRESHOLD

    # Transfer
    chunk_size: int = 65536
    max_retries: int = 3
    retry_base_delay: float = 1.5
    connect_timeout: float = 15.0
    read_timeout: float = 90.0

    # Output
    output_dir: str = "."
    staging_suffix: str = DEFAULT_STAGING_SUFFIX

    # Reporting
    sample_interval: float = 3.0
    log_json: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("num_connections")
    @classmethod
    def validate_connections(cls, v: int) -> int:
        """Ensures a reasonable number of parallel connections."""
        if v < 1 or v > 64:
            raise ValueError("Number of connections must be between 1 and 64.")
        return v

    @field_validator("split_threshold")
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Split threshold must be at least 1 byte.")
        return v

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if v < 1024:
            raise ValueError("Chunk size must be at least 1024 bytes.")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0 or v > 20:
            raise ValueError("Max retries must be between 0 and 20.")
        return v

    @field_validator("retry_base_delay")
    @classmethod
    def validate_retry_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Retry delay cannot be negative.")
        return v

    @field_validator("connect_timeout", "read_timeout", "sample_interval")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts and intervals must be positive.")
        return v

    @field_validator("staging_suffix")
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        """The staging file must be distinguishable from the final file."""
        if not v.startswith(".") or len(v) < 2 or "/" in v or "\\" in v:
            raise ValueError(
                "Staging suffix must start with '.' and contain no path separators."
            )
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
