"""
Tests for merging and invalidating watched ranges.
"""

import random

from app.watch.ranges import (
    WatchedRange,
    covered_length,
    merge_range,
    overlaps_any,
    remove_ranges_within,
)


def _union_length(intervals: list[tuple[float, float]]) -> float:
    total = 0.0
    current_start = current_end = None
    for start, end in sorted(intervals):
        if current_end is None or start > current_end:
            if current_end is not None:
                total += current_end - current_start
            current_start, current_end = start, end
        else:
            current_end = max(current_end, end)
    if current_end is not None:
        total += current_end - current_start
    return total


def _assert_sorted_and_disjoint(ranges: tuple[WatchedRange, ...]) -> None:
    for left, right in zip(ranges, ranges[1:], strict=False):
        assert left.end < right.start


class TestMergeRange:
    def test_insert_into_empty(self):
        assert merge_range((), 10, 20, 1.0) == (WatchedRange(10, 20, 1.0),)

    def test_disjoint_ranges_stay_sorted(self):
        ranges = merge_range((), 50, 60, 1.0)
        ranges = merge_range(ranges, 10, 20, 1.0)
        assert [(r.start, r.end) for r in ranges] == [(10, 20), (50, 60)]

    def test_touching_ranges_merge(self):
        ranges = merge_range((), 0, 1, 1.0)
        ranges = merge_range(ranges, 1, 2, 1.0)
        assert [(r.start, r.end) for r in ranges] == [(0, 2)]

    def test_bridging_range_coalesces_neighbours(self):
        ranges = merge_range((), 0, 10, 1.0)
        ranges = merge_range(ranges, 20, 30, 1.0)
        ranges = merge_range(ranges, 5, 25, 0.3)
        assert ranges == (WatchedRange(0, 30, 0.3),)

    def test_does_not_mutate_input(self):
        ranges = (WatchedRange(0, 10),)
        merge_range(ranges, 5, 15, 1.0)
        assert ranges == (WatchedRange(0, 10),)

    def test_random_sequences_keep_union_length(self):
        rng = random.Random(1234)
        for _ in range(200):
            intervals = []
            ranges: tuple[WatchedRange, ...] = ()
            for _ in range(rng.randint(1, 15)):
                start = rng.uniform(0, 500)
                end = start + rng.uniform(0.5, 80)
                intervals.append((start, end))
                ranges = merge_range(ranges, start, end, 1.0)

            _assert_sorted_and_disjoint(ranges)
            assert abs(covered_length(ranges) - _union_length(intervals)) < 1e-6


class TestOverlapsAny:
    def test_touching_is_not_overlap(self):
        assert not overlaps_any((WatchedRange(0, 10),), 10, 11)

    def test_partial_overlap(self):
        assert overlaps_any((WatchedRange(0, 10),), 9, 11)


class TestRemoveRangesWithin:
    def test_removes_only_ranges_inside_span(self):
        ranges = (
            WatchedRange(0, 10),
            WatchedRange(20, 30),
            WatchedRange(40, 50),
            WatchedRange(95, 120),
        )
        result = remove_ranges_within(ranges, 15, 100)
        assert result == (WatchedRange(0, 10), WatchedRange(95, 120))

    def test_straddling_ranges_untouched(self):
        ranges = (WatchedRange(0, 30),)
        assert remove_ranges_within(ranges, 10, 100) == ranges
