"""Completion rules shared by the client tracker and the server validator.

Both sides must import checkpoint placement and thresholds from here. If the
two drifted apart, a learner could satisfy one side and not the other.
"""

import math
from collections.abc import Iterable

# =============================================================================
# Completion thresholds
# =============================================================================

MIN_WATCHED_PERCENTAGE: float = 80
MIN_CHECKPOINT_SCORE: float = 0.8
MAX_SUSPICIOUS_JUMPS: int = 2

# =============================================================================
# Seek classification (seconds of video timeline)
# =============================================================================

# Forward seeks beyond this drop credit for the skipped span
FORWARD_JUMP_SECONDS: float = 10
SUSPICIOUS_JUMP_SECONDS: float = 60

# A checkpoint reached within RECENT_SEEK_WINDOW_MS of a seek longer than
# RECENT_SEEK_MIN_JUMP is not natural
RECENT_SEEK_MIN_JUMP: float = 5
RECENT_SEEK_WINDOW_MS: int = 5000

# =============================================================================
# Segment weighting
# =============================================================================

FULL_WEIGHT: float = 1.0
REPEAT_WEIGHT: float = 0.3
ALLOWED_WEIGHTS: tuple[float, ...] = (FULL_WEIGHT, REPEAT_WEIGHT)

# Segments closed by a time-update tick
TICK_SECONDS: float = 1.0
# A larger step between two time updates is a jump, not playback
MAX_TICK_SECONDS: float = 3.0
MIN_SEGMENT_SECONDS: float = 0.1

# =============================================================================
# Checkpoints
# =============================================================================

END_CHECKPOINT_LEAD_SECONDS: float = 30
END_CHECKPOINT_RATIO: float = 0.9


def checkpoint_interval_seconds(video_duration: float) -> int:
    """Spacing of periodic checkpoints: one every ``max(1, floor(d / 180))`` minutes."""
    return max(1, math.floor(video_duration / 180)) * 60


def end_checkpoint_time(video_duration: float) -> int:
    """The mandatory checkpoint near the end of the video."""
    return math.floor(
        max(video_duration - END_CHECKPOINT_LEAD_SECONDS, video_duration * END_CHECKPOINT_RATIO)
    )


def generate_checkpoints(video_duration: float) -> list[int]:
    """Canonical checkpoint times for a video of the given length.

    Periodic checkpoints come first in ascending order, followed by the end
    checkpoint unless a periodic one already sits on it. The end checkpoint
    is therefore always the last element, even when a periodic checkpoint
    lies past it.

    >>> generate_checkpoints(180)
    [60, 120, 162]
    >>> generate_checkpoints(600)
    [180, 360, 540, 570]
    """
    if not video_duration or video_duration <= 0 or not math.isfinite(video_duration):
        return []

    step = checkpoint_interval_seconds(video_duration)
    checkpoints = list(range(step, math.ceil(video_duration), step))
    checkpoints = [t for t in checkpoints if t < video_duration]

    end = end_checkpoint_time(video_duration)
    if end in checkpoints:
        # Keep the end checkpoint last
        checkpoints.remove(end)
    checkpoints.append(end)
    return checkpoints


def sanitize_interval(
    start: float | None, end: float | None, video_duration: float
) -> tuple[float, float] | None:
    """Apply the malformed-row policy to a watched interval.

    Non-finite or missing bounds drop the row. Bounds are clamped into
    ``[0, video_duration]`` (no upper bound while the duration is unknown);
    an interval that is empty or shorter than
    ``MIN_SEGMENT_SECONDS`` after clamping is dropped.
    """
    if start is None or end is None:
        return None
    if not (math.isfinite(start) and math.isfinite(end)):
        return None

    upper = video_duration if video_duration > 0 else math.inf
    start = min(max(start, 0.0), upper)
    end = min(max(end, 0.0), upper)
    if end - start <= MIN_SEGMENT_SECONDS:
        return None
    return start, end


def is_allowed_weight(weight: float | None) -> bool:
    if weight is None or not math.isfinite(weight):
        return False
    return any(math.isclose(weight, allowed) for allowed in ALLOWED_WEIGHTS)


def is_forward_jump(jump_amount: float) -> bool:
    return jump_amount > FORWARD_JUMP_SECONDS


def is_suspicious_jump(jump_amount: float) -> bool:
    return jump_amount > SUSPICIOUS_JUMP_SECONDS


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def reached_end(natural_checkpoint_times: Iterable[float], video_duration: float) -> bool:
    """True if a naturally reached checkpoint sits at or past the end checkpoint.

    Usually that is the end checkpoint itself; for some durations a periodic
    checkpoint lies beyond it and counts as well.
    """
    if not video_duration or video_duration <= 0 or not math.isfinite(video_duration):
        return False
    end = end_checkpoint_time(video_duration)
    return any(t >= end for t in natural_checkpoint_times)


def meets_completion_criteria(
    watched_percentage: float,
    checkpoint_score: float,
    has_reached_end: bool,
    suspicious_jumps: int,
) -> bool:
    """The completion decision, evaluated identically by tracker and validator."""
    return (
        watched_percentage >= MIN_WATCHED_PERCENTAGE
        and checkpoint_score >= MIN_CHECKPOINT_SCORE
        and has_reached_end
        and suspicious_jumps <= MAX_SUSPICIOUS_JUMPS
    )
