"""Authoritative recomputation of a watch-completion verdict.

The validator is pure: it sees only the session's video duration and the
persisted event log, never any aggregate the client reported. The same
inputs always produce the same verdict.

Malformed rows are skipped, never raised on:

* segments are clamped into ``[0, duration]`` and dropped if empty after
  clamping; their duration is recomputed from the clamped bounds; rows whose
  weight is not one of the legal weights are dropped;
* checkpoint records count only for canonical checkpoint times, once each;
* seek rows with a missing or non-finite jump amount are dropped.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from app.watch import rules


@dataclass(frozen=True)
class SegmentRow:
    start_time: float
    end_time: float
    weight: float


@dataclass(frozen=True)
class CheckpointRow:
    checkpoint_time: float
    is_natural: bool


@dataclass(frozen=True)
class SeekRow:
    jump_amount: float | None


@dataclass(frozen=True)
class ProgressVerdict:
    is_valid: bool
    watched_percentage: int
    total_watched_time: float
    checkpoint_score: int
    forward_jumps: int
    suspicious_jumps: int
    has_reached_end: bool
    segment_count: int
    checkpoints_reached: int
    checkpoints_required: int
    video_duration: float
    malformed_rows: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "watchedPercentage": self.watched_percentage,
            "totalWatchedTime": self.total_watched_time,
            "checkpointScore": self.checkpoint_score,
            "forwardJumps": self.forward_jumps,
            "suspiciousJumps": self.suspicious_jumps,
            "hasReachedEnd": self.has_reached_end,
            "details": {
                "segmentCount": self.segment_count,
                "checkpointsReached": self.checkpoints_reached,
                "checkpointsRequired": self.checkpoints_required,
                "videoDuration": self.video_duration,
                "malformedRows": self.malformed_rows,
            },
        }


def _clean_segments(
    segments: Iterable[SegmentRow], video_duration: float
) -> tuple[list[tuple[float, float]], int]:
    """Return ``(duration, weight)`` pairs that survive the malformed-row policy."""
    kept: list[tuple[float, float]] = []
    skipped = 0
    for row in segments:
        bounds = rules.sanitize_interval(row.start_time, row.end_time, video_duration)
        if bounds is None or not rules.is_allowed_weight(row.weight):
            skipped += 1
            continue
        kept.append((bounds[1] - bounds[0], row.weight))
    return kept, skipped


def _natural_checkpoints(
    records: Iterable[CheckpointRow], canonical: list[int]
) -> tuple[set[int], int]:
    canonical_set = set(canonical)
    natural: set[int] = set()
    skipped = 0
    for record in records:
        time = record.checkpoint_time
        if time is None or not math.isfinite(time) or int(time) != time:
            skipped += 1
            continue
        if int(time) not in canonical_set:
            skipped += 1
            continue
        if record.is_natural:
            natural.add(int(time))
    return natural, skipped


def validate_progress(
    video_duration: float,
    segments: Iterable[SegmentRow],
    checkpoints: Iterable[CheckpointRow],
    seek_events: Iterable[SeekRow],
) -> ProgressVerdict:
    """Recompute the completion verdict from the persisted log.

    ``video_duration`` must already be resolved and positive; the caller is
    responsible for failing closed when it is not.
    """
    if not video_duration or video_duration <= 0 or not math.isfinite(video_duration):
        raise ValueError("video_duration must be a positive number")

    canonical = rules.generate_checkpoints(video_duration)

    kept_segments, skipped_segments = _clean_segments(segments, video_duration)
    total_watched_time = sum(duration * weight for duration, weight in kept_segments)
    watched_percentage = min(total_watched_time / video_duration * 100, 100.0)

    natural, skipped_checkpoints = _natural_checkpoints(checkpoints, canonical)
    checkpoint_score = len(natural) / len(canonical)

    jumps: list[float] = []
    skipped_seeks = 0
    for event in seek_events:
        if event.jump_amount is None or not math.isfinite(event.jump_amount):
            skipped_seeks += 1
            continue
        jumps.append(event.jump_amount)
    forward_jumps = sum(1 for jump in jumps if rules.is_forward_jump(jump))
    suspicious_jumps = sum(1 for jump in jumps if rules.is_suspicious_jump(jump))

    has_reached_end = rules.reached_end(natural, video_duration)

    is_valid = rules.meets_completion_criteria(
        watched_percentage=watched_percentage,
        checkpoint_score=checkpoint_score,
        has_reached_end=has_reached_end,
        suspicious_jumps=suspicious_jumps,
    )

    return ProgressVerdict(
        is_valid=is_valid,
        watched_percentage=rules.round_half_up(watched_percentage),
        total_watched_time=total_watched_time,
        checkpoint_score=rules.round_half_up(checkpoint_score * 100),
        forward_jumps=forward_jumps,
        suspicious_jumps=suspicious_jumps,
        has_reached_end=has_reached_end,
        segment_count=len(kept_segments),
        checkpoints_reached=len(natural),
        checkpoints_required=len(canonical),
        video_duration=video_duration,
        malformed_rows=skipped_segments + skipped_checkpoints + skipped_seeks,
    )
