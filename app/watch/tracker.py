"""Client-side watch progress tracker.

The tracker turns raw player callbacks (play, pause, timeupdate, seeked)
into watch segments, merged watched ranges, checkpoint flags and a seek log.
Its completion answer is advisory only: credit is granted by the server
validator, which recomputes the verdict from the persisted log.

State is an immutable ``TrackerState`` passed through pure transition
functions (``apply_play``, ``apply_pause``, ``apply_time_update``,
``apply_seek``). ``ProgressTracker`` wraps them for callback-style use.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Protocol

from app.core.datetime_utils import now_ms
from app.watch import rules
from app.watch.ranges import WatchedRange, merge_range, overlaps_any, remove_ranges_within

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatchSegment:
    seq: int
    start_time: float
    end_time: float
    weight: float

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "seq": self.seq,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "weight": self.weight,
        }


@dataclass(frozen=True)
class Checkpoint:
    time: int
    reached: bool = False
    is_natural: bool = False
    reached_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "checkpoint_time": self.time,
            "reached": self.reached,
            "is_natural": self.is_natural,
            "reached_at": self.reached_at,
        }


@dataclass(frozen=True)
class SeekEvent:
    seq: int
    from_time: float
    to_time: float
    timestamp: int

    @property
    def jump_amount(self) -> float:
        return self.to_time - self.from_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "seq": self.seq,
            "from_time": self.from_time,
            "to_time": self.to_time,
            "jump_amount": self.jump_amount,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class TrackerState:
    session_id: str
    user_id: str
    video_duration: float
    is_playing: bool = False
    # Boundary of the segment currently being watched
    last_update_time: float = 0.0
    segments: tuple[WatchSegment, ...] = ()
    watched_ranges: tuple[WatchedRange, ...] = ()
    checkpoints: tuple[Checkpoint, ...] = ()
    seek_events: tuple[SeekEvent, ...] = ()
    # Rows already acknowledged by the server
    flushed_segments: int = 0
    flushed_seeks: int = 0


def _next_seq(items: tuple[WatchSegment, ...] | tuple[SeekEvent, ...]) -> int:
    return items[-1].seq + 1 if items else 0


def _build_checkpoints(
    video_duration: float, previous: tuple[Checkpoint, ...] = ()
) -> tuple[Checkpoint, ...]:
    by_time = {cp.time: cp for cp in previous}
    return tuple(
        by_time.get(t, Checkpoint(time=t)) for t in rules.generate_checkpoints(video_duration)
    )


def new_state(session_id: str, user_id: str, video_duration: float) -> TrackerState:
    return TrackerState(
        session_id=session_id,
        user_id=user_id,
        video_duration=video_duration,
        checkpoints=_build_checkpoints(video_duration),
    )


def _record_segment(state: TrackerState, start: float, end: float) -> TrackerState:
    bounds = rules.sanitize_interval(start, end, state.video_duration)
    if bounds is None:
        return state
    start, end = bounds

    weight = (
        rules.REPEAT_WEIGHT
        if overlaps_any(state.watched_ranges, start, end)
        else rules.FULL_WEIGHT
    )
    segment = WatchSegment(
        seq=_next_seq(state.segments), start_time=start, end_time=end, weight=weight
    )
    return replace(
        state,
        segments=state.segments + (segment,),
        watched_ranges=merge_range(state.watched_ranges, start, end, weight),
    )


def _had_recent_seek(state: TrackerState, at_ms: int) -> bool:
    return any(
        event.jump_amount > rules.RECENT_SEEK_MIN_JUMP
        and at_ms - event.timestamp <= rules.RECENT_SEEK_WINDOW_MS
        for event in state.seek_events
    )


def _mark_checkpoints(state: TrackerState, current_time: float, at_ms: int) -> TrackerState:
    """Mark every checkpoint at or before ``current_time`` as reached.

    A checkpoint is natural only if playback crossed it during this tick and
    no recent seek preceded it. Checkpoints that were jumped over are reached
    but never natural.
    """
    due = [cp for cp in state.checkpoints if not cp.reached and cp.time <= current_time]
    if not due:
        return state

    recent_seek = _had_recent_seek(state, at_ms)
    checkpoints = tuple(
        replace(
            cp,
            reached=True,
            is_natural=not recent_seek and cp.time >= state.last_update_time,
            reached_at=at_ms,
        )
        if cp in due
        else cp
        for cp in state.checkpoints
    )
    return replace(state, checkpoints=checkpoints)


def apply_play(state: TrackerState, current_time: float) -> TrackerState:
    if not math.isfinite(current_time):
        return state
    return replace(state, is_playing=True, last_update_time=current_time)


def apply_pause(state: TrackerState, current_time: float) -> TrackerState:
    if not math.isfinite(current_time):
        return replace(state, is_playing=False)
    if state.is_playing:
        state = _record_segment(state, state.last_update_time, current_time)
    return replace(state, is_playing=False, last_update_time=current_time)


def apply_time_update(state: TrackerState, current_time: float, at_ms: int) -> TrackerState:
    if not state.is_playing or not math.isfinite(current_time):
        return state

    elapsed = current_time - state.last_update_time
    if elapsed < 0 or elapsed > rules.MAX_TICK_SECONDS:
        # A jump, not playback. Players report the new position before the
        # seeked event, so restart the segment here without crediting the span
        return replace(state, last_update_time=current_time)

    state = _mark_checkpoints(state, current_time, at_ms)
    if elapsed >= rules.TICK_SECONDS:
        state = _record_segment(state, state.last_update_time, current_time)
        state = replace(state, last_update_time=current_time)
    return state


def apply_seek(
    state: TrackerState, from_time: float, to_time: float, at_ms: int
) -> TrackerState:
    if not (math.isfinite(from_time) and math.isfinite(to_time)):
        return state

    event = SeekEvent(
        seq=_next_seq(state.seek_events), from_time=from_time, to_time=to_time, timestamp=at_ms
    )
    ranges = state.watched_ranges
    if to_time > from_time and rules.is_forward_jump(event.jump_amount):
        ranges = remove_ranges_within(ranges, from_time, to_time)

    return replace(
        state,
        seek_events=state.seek_events + (event,),
        watched_ranges=ranges,
        last_update_time=to_time,
    )


def total_watched_time(state: TrackerState) -> float:
    """Weighted sum over segments.

    Repeat viewing is counted again at ``REPEAT_WEIGHT``, so the total may
    exceed the video duration. Percentages clamp; the raw total does not.
    """
    return sum(segment.duration * segment.weight for segment in state.segments)


def watched_percentage(state: TrackerState) -> float:
    if state.video_duration <= 0:
        return 0.0
    return min(total_watched_time(state) / state.video_duration * 100, 100.0)


def checkpoint_score(state: TrackerState) -> float:
    if not state.checkpoints:
        return 0.0
    natural = sum(1 for cp in state.checkpoints if cp.reached and cp.is_natural)
    return natural / len(state.checkpoints)


def suspicious_jump_count(state: TrackerState) -> int:
    return sum(1 for event in state.seek_events if rules.is_suspicious_jump(event.jump_amount))


def has_reached_end(state: TrackerState) -> bool:
    natural = [cp.time for cp in state.checkpoints if cp.reached and cp.is_natural]
    return rules.reached_end(natural, state.video_duration)


def is_valid_for_completion(state: TrackerState) -> bool:
    return rules.meets_completion_criteria(
        watched_percentage=watched_percentage(state),
        checkpoint_score=checkpoint_score(state),
        has_reached_end=has_reached_end(state),
        suspicious_jumps=suspicious_jump_count(state),
    )


def progress_data(state: TrackerState) -> dict[str, Any]:
    """Serialize the whole tracker state."""
    return {
        "session_id": state.session_id,
        "user_id": state.user_id,
        "video_duration": state.video_duration,
        "segments": [s.to_dict() for s in state.segments],
        "watched_ranges": [r.to_dict() for r in state.watched_ranges],
        "checkpoints": [cp.to_dict() for cp in state.checkpoints],
        "seek_events": [e.to_dict() for e in state.seek_events],
        "total_watched_time": total_watched_time(state),
        "watched_percentage": watched_percentage(state),
        "is_valid_for_completion": is_valid_for_completion(state),
    }


def pending_batch(state: TrackerState) -> dict[str, Any]:
    """Rows the server has not acknowledged yet, shaped as an ingest request.

    Reached checkpoints are always resent: the server treats them as a
    monotonic upsert.
    """
    return {
        "segments": [s.to_dict() for s in state.segments[state.flushed_segments :]],
        "checkpoints": [
            {"checkpoint_time": cp.time, "is_natural": cp.is_natural, "reached_at": cp.reached_at}
            for cp in state.checkpoints
            if cp.reached
        ],
        "seek_events": [e.to_dict() for e in state.seek_events[state.flushed_seeks :]],
        "watched_ranges": [r.to_dict() for r in state.watched_ranges],
        "last_position_seconds": state.last_update_time,
    }


def mark_flushed(state: TrackerState, segments: int, seek_events: int) -> TrackerState:
    return replace(
        state,
        flushed_segments=min(state.flushed_segments + segments, len(state.segments)),
        flushed_seeks=min(state.flushed_seeks + seek_events, len(state.seek_events)),
    )


def _epoch_ms_or_none(value: Any) -> int | None:
    # The server reports reached_at as an ISO datetime; only ms values round-trip
    return value if isinstance(value, int) and not isinstance(value, bool) else None


def restore_state(state: TrackerState, snapshot: dict[str, Any]) -> TrackerState:
    """Rehydrate from a server snapshot after a reload.

    Everything in the snapshot is treated as already flushed, so sequence
    numbers continue where the server log ends.
    """
    segments = tuple(
        WatchSegment(
            seq=row["seq"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            weight=row["weight"],
        )
        for row in sorted(snapshot.get("segments", []), key=lambda r: r["seq"])
    )
    seek_events = tuple(
        SeekEvent(
            seq=row["seq"],
            from_time=row["from_time"],
            to_time=row["to_time"],
            timestamp=row["timestamp"],
        )
        for row in sorted(snapshot.get("seek_events", []), key=lambda r: r["seq"])
    )

    if snapshot.get("watched_ranges"):
        ranges: tuple[WatchedRange, ...] = ()
        for row in snapshot["watched_ranges"]:
            ranges = merge_range(
                ranges, row["start"], row["end"], row.get("weight", rules.FULL_WEIGHT)
            )
    else:
        ranges = ()
        for segment in segments:
            ranges = merge_range(ranges, segment.start_time, segment.end_time, segment.weight)

    reached = {row["checkpoint_time"]: row for row in snapshot.get("checkpoints", [])}
    checkpoints = tuple(
        replace(
            cp,
            reached=True,
            is_natural=bool(reached[cp.time]["is_natural"]),
            reached_at=_epoch_ms_or_none(reached[cp.time].get("reached_at")),
        )
        if cp.time in reached
        else cp
        for cp in state.checkpoints
    )

    return replace(
        state,
        segments=segments,
        seek_events=seek_events,
        watched_ranges=ranges,
        checkpoints=checkpoints,
        flushed_segments=len(segments),
        flushed_seeks=len(seek_events),
    )


class ProgressSink(Protocol):
    async def push(self, session_id: str, batch: dict[str, Any]) -> None:
        """Persist a batch; raise ``ProgressSyncError`` on failure."""
        ...


class ProgressSyncError(Exception):
    """A batch could not be persisted."""


class ProgressTracker:
    """Stateful wrapper for player callbacks.

    Every callback replaces ``self.state`` with the result of the matching
    pure transition. Callbacks never raise.

    Example:
        ```python
        tracker = ProgressTracker(session_id, user_id, video_duration=600)
        tracker.on_play(0)
        tracker.on_time_update(1.2)
        tracker.on_pause(42.0)
        await tracker.save_progress(ProgressApiClient(base_url, token))
        ```
    """

    def __init__(
        self,
        session_id: str,
        user_id: str,
        video_duration: float,
        clock: Callable[[], int] = now_ms,
    ):
        self.state = new_state(session_id, user_id, video_duration)
        self._clock = clock

    def on_play(self, current_time: float) -> None:
        self.state = apply_play(self.state, current_time)

    def on_pause(self, current_time: float) -> None:
        self.state = apply_pause(self.state, current_time)

    def on_time_update(self, current_time: float) -> None:
        self.state = apply_time_update(self.state, current_time, self._clock())

    def on_seeked(self, from_time: float, to_time: float) -> None:
        self.state = apply_seek(self.state, from_time, to_time, self._clock())

    def update_video_duration(self, seconds: float) -> None:
        if not seconds or seconds <= 0 or not math.isfinite(seconds):
            return
        self.state = replace(
            self.state,
            video_duration=seconds,
            checkpoints=_build_checkpoints(seconds, self.state.checkpoints),
        )

    def restore(self, snapshot: dict[str, Any]) -> None:
        self.state = restore_state(self.state, snapshot)

    def get_video_duration(self) -> float:
        return self.state.video_duration

    def get_total_watched_time(self) -> float:
        return total_watched_time(self.state)

    def get_watched_percentage(self) -> float:
        return watched_percentage(self.state)

    def is_valid_for_completion(self) -> bool:
        return is_valid_for_completion(self.state)

    def get_progress_data(self) -> dict[str, Any]:
        return progress_data(self.state)

    async def save_progress(self, sink: ProgressSink) -> bool:
        """Flush unacknowledged rows through ``sink``.

        Returns False when the sink fails; the rows stay queued for the next
        attempt and in-memory tracking is unaffected.
        """
        batch = pending_batch(self.state)
        try:
            await sink.push(self.state.session_id, batch)
        except ProgressSyncError as e:
            logger.warning(
                "Progress flush failed for session %s: %s", self.state.session_id, e
            )
            return False

        self.state = mark_flushed(
            self.state, len(batch["segments"]), len(batch["seek_events"])
        )
        logger.debug(
            "Progress flushed for session %s (%d segments, %d seeks)",
            self.state.session_id,
            len(batch["segments"]),
            len(batch["seek_events"]),
        )
        return True
