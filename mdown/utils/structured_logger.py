"""
Event logging for download jobs.

Every job event is logged as a single ``event: key=value`` line and, when
enabled, appended to a JSON lines file so a run can be analysed afterwards.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class JsonLinesSink:
    """Appends one JSON object per line to a per-session file in ``log_dir``."""

    def __init__(self, log_dir: Path):
        log_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.path = log_dir / f"mdown_{stamp}.jsonl"
        self._file = open(self.path, "a", encoding="utf-8")  # noqa: SIM115

    def write(self, entry: dict[str, Any]) -> None:
        if self._file.closed:
            return
        try:
            self._file.write(json.dumps(entry, default=str) + "\n")
            self._file.flush()
        except (OSError, TypeError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


class StructuredLogger:
    """
    Logs named events with keyword context to a standard logger and,
    optionally, to a :class:`JsonLinesSink`.

    Usage:
        logger = StructuredLogger("mdown.events", log_dir=Path("logs"))
        logger.debug("segment_split", segment=0, donor=2, split_point=52428800)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        """
        Args:
            name: Name of the standard logger that receives console lines.
            log_dir: Where the JSON lines file goes; no file is written without it.
            enable_json: Write the JSON lines file.
            enable_console: Forward events to the standard logger.
        """
        self._logger = logging.getLogger(name)
        self.enable_console = enable_console
        self._sink = JsonLinesSink(log_dir) if enable_json and log_dir else None
        # Merged into every JSON entry
        self._context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
        }

    @property
    def json_log_path(self) -> Path | None:
        return self._sink.path if self._sink else None

    def bind(self, **context) -> None:
        """Adds fields to every JSON entry written from now on."""
        self._context.update(context)

    def log(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            fields = " ".join(f"{key}={value}" for key, value in context.items())
            self._logger.log(level, f"{event}: {fields}" if fields else event)
        if self._sink:
            self._sink.write(
                {
                    "timestamp": datetime.now().isoformat(),
                    "level": logging.getLevelName(level),
                    "event": event,
                    **self._context,
                    **context,
                }
            )

    def debug(self, event: str, **context) -> None:
        self.log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self.log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self.log(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self.log(logging.ERROR, event, **context)

    def close(self) -> None:
        if self._sink:
            self._sink.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class DownloadEventLogger:
    """Specialized logger for the lifecycle events of a segmented download."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def job_started(self, url: str, total_length: int, num_connections: int):
        self.logger.bind(url=url)
        self.logger.debug(
            "job_started",
            total_length=total_length,
            num_connections=num_connections,
        )

    def segment_split(
        self, segment: int, donor: int, split_point: int, donor_remaining: int
    ):
        self.logger.debug(
            "segment_split",
            segment=segment,
            donor=donor,
            split_point=split_point,
            donor_remaining=donor_remaining,
        )

    def segment_closed(self, segment: int, active_count: int):
        self.logger.debug("segment_closed", segment=segment, active_count=active_count)

    def segment_retry(self, segment: int, cursor: int, end: int, attempt: int, error: str):
        self.logger.warning(
            "segment_retry",
            segment=segment,
            cursor=cursor,
            end=end,
            attempt=attempt,
            error=error,
        )

    def job_completed(self, total_length: int, duration_s: float, splits: int):
        self.logger.debug(
            "job_completed",
            total_length=total_length,
            duration_s=round(duration_s, 2),
            splits=splits,
        )

    def job_failed(self, error: str, total_written: int):
        self.logger.error("job_failed", error=error, total_written=total_written)


def create_event_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, DownloadEventLogger]:
    """
    Create the structured loggers used by a download session.

    Returns:
        Tuple of (base_logger, event_logger)
    """
    base = StructuredLogger("mdown.events", log_dir=log_dir, enable_json=enable_json)
    return base, DownloadEventLogger(base)
