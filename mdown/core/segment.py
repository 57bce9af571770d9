"""
The unit of work: a contiguous byte range of the remote resource together with
its write progress, plus the initial partitioning of a resource into segments.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SegmentStatus(Enum):
    """Lifecycle states of a segment."""

    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class Segment:
    """
    A byte range ``[start, end)`` of the resource and the offset of the next
    byte still to be received.

    Invariant: ``start <= cursor <= end``. ``end`` only moves when the segment
    is shrunk by a split, and ``cursor`` only moves forward except when the
    segment is reassigned to a new range.
    """

    index: int
    start: int
    end: int
    cursor: int = -1
    status: SegmentStatus = SegmentStatus.ACTIVE
    handle: Any = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(
                f"Invalid segment range [{self.start}, {self.end}) for #{self.index}"
            )
        if self.cursor == -1:
            self.cursor = self.start
        if not self.start <= self.cursor <= self.end:
            raise ValueError(
                f"Cursor {self.cursor} outside [{self.start}, {self.end}) "
                f"for segment #{self.index}"
            )

    @property
    def remaining(self) -> int:
        """Bytes not yet received in this segment's current range."""
        return self.end - self.cursor

    @property
    def is_delivered(self) -> bool:
        return self.cursor >= self.end

    @property
    def is_active(self) -> bool:
        return self.status is SegmentStatus.ACTIVE

    def range_header(self) -> str:
        """HTTP Range value for the unclaimed part, using an inclusive end."""
        return f"bytes={self.cursor}-{self.end - 1}"

    def claim(self, chunk: bytes) -> tuple[int, bytes]:
        """
        Reserves the leading part of ``chunk`` that still fits in this segment.

        The cursor is advanced immediately, before the bytes reach the disk, so
        that a split made while the write is pending never hands these bytes to
        another segment.

        Returns:
            The absolute offset the bytes belong at and the (possibly truncated)
            bytes themselves. The bytes are empty once the segment is delivered.
        """
        offset = self.cursor
        data = chunk[: self.remaining]
        self.cursor += len(data)
        return offset, data

    def reassign(self, start: int, end: int) -> None:
        """Points this segment at a fresh, unreceived range."""
        if end < start:
            raise ValueError(f"Cannot reassign segment #{self.index} to [{start}, {end})")
        self.start = start
        self.cursor = start
        self.end = end

    def close(self) -> None:
        self.status = SegmentStatus.CLOSED


def compute_stops(total_length: int, worker_count: int) -> list[int]:
    """
    Returns ``worker_count + 1`` evenly spaced cut points covering
    ``[0, total_length]``.

    >>> compute_stops(1000, 4)
    [0, 250, 500, 750, 1000]
    >>> compute_stops(10, 3)
    [0, 3, 6, 10]
    """
    if total_length < 0:
        raise ValueError(f"Total length must be non-negative, got {total_length}")
    if worker_count < 1:
        raise ValueError(f"Worker count must be at least 1, got {worker_count}")
    stops = [(total_length * i) // worker_count for i in range(worker_count)]
    stops.append(total_length)
    return stops


def partition(total_length: int, worker_count: int) -> list[Segment]:
    """Splits ``[0, total_length)`` into ``worker_count`` contiguous segments."""
    stops = compute_stops(total_length, worker_count)
    return [
        Segment(index=i, start=stops[i], end=stops[i + 1])
        for i in range(worker_count)
    ]
