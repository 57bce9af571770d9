"""Tests for segments and the initial partition."""

import pytest

from mdown.core.segment import Segment, SegmentStatus, compute_stops, partition


class TestComputeStops:
    """Tests for the evenly spaced cut points."""

    def test_thousand_bytes_four_workers(self):
        assert compute_stops(1000, 4) == [0, 250, 500, 750, 1000]

    def test_uneven_length(self):
        assert compute_stops(10, 3) == [0, 3, 6, 10]

    def test_single_worker_covers_everything(self):
        assert compute_stops(12345, 1) == [0, 12345]

    def test_zero_length(self):
        assert compute_stops(0, 3) == [0, 0, 0, 0]

    def test_is_deterministic(self):
        assert compute_stops(987_654_321, 7) == compute_stops(987_654_321, 7)

    @pytest.mark.parametrize("total_length, worker_count", [(-1, 4), (100, 0)])
    def test_rejects_invalid_input(self, total_length, worker_count):
        with pytest.raises(ValueError):
            compute_stops(total_length, worker_count)


class TestPartition:
    """Tests for the initial segment layout."""

    @pytest.mark.parametrize("total_length", [0, 1, 7, 999, 1000, 65_537, 10**9 + 7])
    @pytest.mark.parametrize("worker_count", [1, 2, 3, 4, 7, 16])
    def test_segments_tile_the_resource(self, total_length, worker_count):
        segments = partition(total_length, worker_count)

        assert len(segments) == worker_count
        assert segments[0].start == 0
        assert segments[-1].end == total_length
        for left, right in zip(segments, segments[1:]):
            assert left.end == right.start
        sizes = [s.end - s.start for s in segments]
        assert sum(sizes) == total_length
        assert max(sizes) - min(sizes) <= 1

    def test_segments_start_fresh(self):
        for i, segment in enumerate(partition(1000, 4)):
            assert segment.index == i
            assert segment.cursor == segment.start
            assert segment.remaining == 250
            assert segment.status is SegmentStatus.ACTIVE


class TestSegment:
    """Tests for a single segment's bookkeeping."""

    def test_invalid_ranges_are_rejected(self):
        with pytest.raises(ValueError):
            Segment(index=0, start=10, end=5)
        with pytest.raises(ValueError):
            Segment(index=0, start=0, end=10, cursor=11)

    def test_range_header_uses_inclusive_end(self):
        segment = Segment(index=0, start=250, end=500)
        assert segment.range_header() == "bytes=250-499"

        segment.claim(b"x" * 50)
        assert segment.range_header() == "bytes=300-499"

    def test_claim_advances_cursor(self):
        segment = Segment(index=0, start=100, end=200)

        offset, data = segment.claim(b"a" * 30)

        assert offset == 100
        assert data == b"a" * 30
        assert segment.cursor == 130
        assert segment.remaining == 70

    def test_claim_truncates_at_end(self):
        segment = Segment(index=0, start=0, end=10, cursor=8)

        offset, data = segment.claim(b"0123456789")

        assert offset == 8
        assert data == b"01"
        assert segment.cursor == 10
        assert segment.is_delivered

    def test_claim_on_delivered_segment_is_empty(self):
        segment = Segment(index=0, start=0, end=10, cursor=10)

        offset, data = segment.claim(b"more")

        assert (offset, data) == (10, b"")
        assert segment.remaining == 0

    def test_reassign_points_at_new_range(self):
        segment = Segment(index=3, start=750, end=1000, cursor=1000)

        segment.reassign(500, 750)

        assert (segment.start, segment.cursor, segment.end) == (500, 500, 750)
        assert segment.remaining == 250

    def test_close(self):
        segment = Segment(index=0, start=0, end=1)
        segment.close()
        assert not segment.is_active
