"""
Owns the segments of a job and decides, each time a worker runs out of work,
whether it should stop or take over half of the busiest remaining segment.

None of the methods here await anything. Under asyncio they therefore run to
completion without interleaving with other tasks, which is what keeps the scan,
the split and the active-count update consistent without locks.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from .segment import Segment

log = logging.getLogger(__name__)

# Below this many bytes a new range request is not worth its setup cost.
DEFAULT_SPLIT_THRESHOLD = 4_096 * 2


class RebalanceAction(Enum):
    CLOSE = "close"
    SPLIT = "split"


@dataclass(frozen=True)
class RebalanceDecision:
    """Outcome of :meth:`SegmentStore.rebalance` for one finishing segment."""

    action: RebalanceAction
    segment: Segment
    donor: Segment | None = None
    split_point: int | None = None
    completed: bool = False


class SegmentStore:
    """
    The fixed set of segments of one download job.

    Segments are reassigned by splits but never added or removed, so the
    store's cardinality always equals the initial worker count.
    """

    def __init__(
        self,
        segments: Sequence[Segment],
        split_threshold: int = DEFAULT_SPLIT_THRESHOLD,
        on_complete: Callable[[], None] | None = None,
    ):
        if not segments:
            raise ValueError("A segment store needs at least one segment.")
        if split_threshold < 1:
            raise ValueError("Split threshold must be at least 1 byte.")
        self._segments = list(segments)
        self.split_threshold = split_threshold
        self._on_complete = on_complete
        self._active_count = len(self._segments)
        self._completion_signalled = False
        # Ranges delivered by segments that were later reassigned by a split.
        self._retired: list[tuple[int, int]] = []

    @property
    def segments(self) -> tuple[Segment, ...]:
        return tuple(self._segments)

    @property
    def active_count(self) -> int:
        return self._active_count

    @property
    def is_complete(self) -> bool:
        return self._active_count == 0

    @property
    def retired_ranges(self) -> tuple[tuple[int, int], ...]:
        return tuple(self._retired)

    @property
    def total_remaining(self) -> int:
        return sum(s.remaining for s in self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __getitem__(self, index: int) -> Segment:
        return self._segments[index]

    def busiest(self) -> Segment:
        """
        Returns the segment with the most remaining bytes. Ties go to the
        segment that comes first in store order.
        """
        best = self._segments[0]
        for segment in self._segments[1:]:
            if segment.remaining > best.remaining:
                best = segment
        return best

    def split(self, busy: Segment, idle: Segment) -> int:
        """
        Hands the upper half of ``busy``'s unreceived bytes to ``idle``.

        The split point rounds towards the lower half. ``busy`` keeps
        ``[busy.cursor, mid)`` and ``idle`` is reassigned ``[mid, old end)``, so
        the segments still tile the resource without gaps or overlap.

        Returns:
            The split point.
        """
        if busy is idle:
            raise ValueError(f"Segment #{busy.index} cannot be split into itself.")
        if idle.remaining:
            raise ValueError(
                f"Segment #{idle.index} still has {idle.remaining} bytes to fetch."
            )
        old_end = busy.end
        mid = busy.cursor + busy.remaining // 2
        busy.end = mid
        if idle.end > idle.start:
            self._retired.append((idle.start, idle.end))
        idle.reassign(mid, old_end)
        return mid

    def close(self, segment: Segment) -> bool:
        """
        Marks ``segment`` as closed and decrements the active count.

        Returns:
            True if this closure completed the job.
        """
        if not segment.is_active:
            raise ValueError(f"Segment #{segment.index} is already closed.")
        segment.close()
        self._active_count -= 1
        if self._active_count == 0 and not self._completion_signalled:
            self._completion_signalled = True
            log.debug("All segments closed; signalling completion.")
            if self._on_complete:
                self._on_complete()
            return True
        return False

    def rebalance(self, index: int) -> RebalanceDecision:
        """
        Decides what the worker of segment ``index`` does after its stream ends.

        If the busiest segment has fewer than ``split_threshold`` bytes left, or
        too few to leave both halves non-empty, the segment is closed; otherwise
        the busiest segment is split and the finishing segment takes over its
        upper half.

        Raises:
            ValueError: If segment ``index`` has not received its whole range.
        """
        segment = self._segments[index]
        if segment.remaining:
            raise ValueError(
                f"Segment #{index} still has {segment.remaining} bytes to fetch."
            )
        busy = self.busiest()
        if busy.remaining < max(self.split_threshold, 2) or busy is segment:
            completed = self.close(segment)
            return RebalanceDecision(
                action=RebalanceAction.CLOSE, segment=segment, completed=completed
            )

        mid = self.split(busy, segment)
        return RebalanceDecision(
            action=RebalanceAction.SPLIT,
            segment=segment,
            donor=busy,
            split_point=mid,
        )

    def check_coverage(self, total_length: int) -> bool:
        """
        Checks that the segment ranges, together with the ranges retired by
        splits, are pairwise disjoint, contiguous and cover exactly
        ``[0, total_length)``. Empty ranges are ignored.
        """
        ranges = sorted(
            [(s.start, s.end) for s in self._segments if s.end > s.start]
            + self._retired
        )
        position = 0
        for start, end in ranges:
            if start != position or end < start:
                return False
            position = end
        return position == total_length

    def is_fully_delivered(self, total_length: int) -> bool:
        """True when every segment received its whole range and they tile the file."""
        return all(s.is_delivered for s in self._segments) and self.check_coverage(
            total_length
        )
