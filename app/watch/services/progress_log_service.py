"""Durable storage of the tracker's event log.

Segments and seek events are append-only: a sequence number that is
already stored is never overwritten. Checkpoint rows are monotonic: once a
checkpoint is stored it stays, and ``is_natural`` can only go from false to
true. Resending a batch therefore changes nothing.
"""

import logging
import math
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.datetime_utils import from_epoch_ms
from app.watch import rules
from app.watch.models import VideoSession, WatchSegment
from app.watch.ranges import WatchedRange, merge_range
from app.watch.repositories import (
    SeekEventRepository,
    SessionProgressRepository,
    WatchCheckpointRepository,
    WatchSegmentRepository,
)
from app.watch.schemas.progress import (
    CheckpointIn,
    CheckpointOut,
    ProgressSnapshotResponse,
    ProgressSyncRequest,
    SeekEventIn,
    SeekEventOut,
    SegmentIn,
    SegmentOut,
    WatchedRangeSchema,
)

logger = logging.getLogger(__name__)


def _reached_at(value: int | None) -> datetime:
    if value is None:
        return datetime.now(UTC)
    try:
        return from_epoch_ms(value)
    except (OverflowError, OSError, ValueError):
        return datetime.now(UTC)


def _normalize_ranges(
    ranges: list[WatchedRangeSchema], video_duration: float
) -> list[dict[str, Any]]:
    merged: tuple[WatchedRange, ...] = ()
    for r in ranges:
        bounds = rules.sanitize_interval(r.start, r.end, video_duration)
        if bounds is None:
            continue
        merged = merge_range(merged, bounds[0], bounds[1], r.weight)
    return [r.to_dict() for r in merged]


class ProgressLogService:
    @staticmethod
    def _record_segments(
        user_id: UUID, session: VideoSession, segments: list[SegmentIn], db: Session
    ) -> tuple[int, int, int]:
        repo = WatchSegmentRepository(db)
        stored = {s.seq for s in repo.list_for(user_id, session.id)}
        duration = session.duration_seconds or 0.0
        accepted = skipped = duplicates = 0

        for segment in segments:
            if segment.seq in stored:
                duplicates += 1
                continue
            bounds = rules.sanitize_interval(segment.start_time, segment.end_time, duration)
            if bounds is None or not rules.is_allowed_weight(segment.weight):
                skipped += 1
                continue

            start, end = bounds
            repo.add(
                user_id=user_id,
                session_id=session.id,
                seq=segment.seq,
                start_time=start,
                end_time=end,
                duration=end - start,
                weight=segment.weight,
            )
            stored.add(segment.seq)
            accepted += 1

        return accepted, skipped, duplicates

    @staticmethod
    def _record_checkpoints(
        user_id: UUID, session: VideoSession, checkpoints: list[CheckpointIn], db: Session
    ) -> int:
        repo = WatchCheckpointRepository(db)
        existing = {cp.checkpoint_time: cp for cp in repo.list_for(user_id, session.id)}
        recorded = 0

        for checkpoint in checkpoints:
            if not math.isfinite(checkpoint.checkpoint_time) or checkpoint.checkpoint_time < 0:
                continue

            row = existing.get(checkpoint.checkpoint_time)
            if row is None:
                existing[checkpoint.checkpoint_time] = repo.add(
                    user_id=user_id,
                    session_id=session.id,
                    checkpoint_time=checkpoint.checkpoint_time,
                    is_natural=checkpoint.is_natural,
                    reached_at=_reached_at(checkpoint.reached_at),
                )
                recorded += 1
            elif checkpoint.is_natural and not row.is_natural:
                row.is_natural = True
                recorded += 1

        return recorded

    @staticmethod
    def _record_seek_events(
        user_id: UUID, session: VideoSession, seek_events: list[SeekEventIn], db: Session
    ) -> tuple[int, int]:
        repo = SeekEventRepository(db)
        stored = {e.seq for e in repo.list_for(user_id, session.id)}
        accepted = duplicates = 0

        for event in seek_events:
            if event.seq in stored:
                duplicates += 1
                continue
            if not (math.isfinite(event.from_time) and math.isfinite(event.to_time)):
                continue

            repo.add(
                user_id=user_id,
                session_id=session.id,
                seq=event.seq,
                from_time=event.from_time,
                to_time=event.to_time,
                jump_amount=event.to_time - event.from_time,
                timestamp=event.timestamp,
            )
            stored.add(event.seq)
            accepted += 1

        return accepted, duplicates

    @staticmethod
    def record_events(
        user_id: UUID, session: VideoSession, request: ProgressSyncRequest, db: Session
    ) -> dict[str, int]:
        """Persist one tracker flush and refresh the learner's summary row.

        Two flushes of the same rows can race past the duplicate check and hit
        the unique constraints. The loser rolls back and applies the batch once
        more, which now sees the winner's rows as duplicates.
        """
        try:
            return ProgressLogService._apply_batch(user_id, session, request, db)
        except IntegrityError:
            db.rollback()
            logger.info(
                "Concurrent flush for user %s, session %s; retrying batch",
                user_id,
                session.id,
            )
        return ProgressLogService._apply_batch(user_id, session, request, db)

    @staticmethod
    def _apply_batch(
        user_id: UUID, session: VideoSession, request: ProgressSyncRequest, db: Session
    ) -> dict[str, int]:
        segments_accepted, segments_skipped, segment_dupes = ProgressLogService._record_segments(
            user_id, session, request.segments, db
        )
        checkpoints_recorded = ProgressLogService._record_checkpoints(
            user_id, session, request.checkpoints, db
        )
        seeks_accepted, seek_dupes = ProgressLogService._record_seek_events(
            user_id, session, request.seek_events, db
        )
        db.flush()

        weighted_total = (
            db.query(func.coalesce(func.sum(WatchSegment.duration * WatchSegment.weight), 0.0))
            .filter(WatchSegment.user_id == user_id, WatchSegment.session_id == session.id)
            .scalar()
        ) or 0.0

        progress = SessionProgressRepository(db).get_or_create(user_id, session.id)
        if request.watched_ranges:
            progress.watched_ranges = _normalize_ranges(
                request.watched_ranges, session.duration_seconds or 0.0
            )
        elif progress.watched_ranges is None:
            progress.watched_ranges = []
        if request.last_position_seconds is not None and math.isfinite(
            request.last_position_seconds
        ):
            progress.last_position_seconds = max(request.last_position_seconds, 0.0)
        progress.watched_duration_seconds = float(weighted_total)
        progress.last_updated_at = datetime.now(UTC)

        db.commit()

        if segments_skipped:
            logger.warning(
                "Dropped %d malformed segments for user %s, session %s",
                segments_skipped,
                user_id,
                session.id,
            )

        return {
            "segments_accepted": segments_accepted,
            "segments_skipped": segments_skipped,
            "checkpoints_recorded": checkpoints_recorded,
            "seek_events_accepted": seeks_accepted,
            "duplicates_ignored": segment_dupes + seek_dupes,
        }

    @staticmethod
    def get_snapshot(
        user_id: UUID, session: VideoSession, db: Session
    ) -> ProgressSnapshotResponse:
        """Everything persisted for one learner and session, in log order."""
        progress = SessionProgressRepository(db).find_by(user_id, session.id)
        segments = WatchSegmentRepository(db).list_for(user_id, session.id)
        checkpoints = WatchCheckpointRepository(db).list_for(user_id, session.id)
        seek_events = SeekEventRepository(db).list_for(user_id, session.id)

        return ProgressSnapshotResponse(
            session_id=str(session.id),
            video_duration=session.duration_seconds,
            segments=[SegmentOut.model_validate(s) for s in segments],
            checkpoints=[CheckpointOut.model_validate(c) for c in checkpoints],
            seek_events=[SeekEventOut.model_validate(e) for e in seek_events],
            watched_ranges=[
                WatchedRangeSchema(**r) for r in (progress.watched_ranges if progress else [])
            ],
            last_position_seconds=progress.last_position_seconds if progress else 0.0,
            is_completed=progress.is_completed if progress else False,
            completed_at=progress.completed_at if progress else None,
        )
