"""Merged coverage of the video timeline.

Ranges are kept sorted by ``start`` and coalesced so that no two ranges
overlap or touch (``ranges[i].end < ranges[i + 1].start``). All functions
return new tuples and never mutate their input.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class WatchedRange:
    start: float
    end: float
    # Weight of the segment merged in last. Informational only.
    weight: float = 1.0

    @property
    def length(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict[str, float]:
        return {"start": self.start, "end": self.end, "weight": self.weight}


def overlaps_any(ranges: tuple[WatchedRange, ...], start: float, end: float) -> bool:
    """True if ``[start, end)`` shares any positive-length span with a range.

    Touching is not overlapping: consecutive one-second segments of
    continuous playback must keep full weight.
    """
    return any(r.start < end and start < r.end for r in ranges)


def merge_range(
    ranges: tuple[WatchedRange, ...], start: float, end: float, weight: float
) -> tuple[WatchedRange, ...]:
    if end <= start:
        return ranges

    merged: list[WatchedRange] = []
    new_start, new_end = start, end
    inserted = False

    for r in ranges:
        if r.end < new_start:
            merged.append(r)
        elif r.start > new_end:
            if not inserted:
                merged.append(WatchedRange(new_start, new_end, weight))
                inserted = True
            merged.append(r)
        else:
            # Overlapping or touching: absorb into the new range
            new_start = min(new_start, r.start)
            new_end = max(new_end, r.end)

    if not inserted:
        merged.append(WatchedRange(new_start, new_end, weight))

    return tuple(merged)


def remove_ranges_within(
    ranges: tuple[WatchedRange, ...], start: float, end: float
) -> tuple[WatchedRange, ...]:
    """Drop ranges lying fully inside ``[start, end]``.

    Ranges that straddle either boundary are kept whole.
    """
    return tuple(r for r in ranges if not (r.start >= start and r.end <= end))


def covered_length(ranges: tuple[WatchedRange, ...]) -> float:
    return sum(r.length for r in ranges)
