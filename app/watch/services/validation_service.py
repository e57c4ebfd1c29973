from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy.orm import Session

from app.watch.models import SessionProgress
from app.watch.repositories import (
    SeekEventRepository,
    SessionProgressRepository,
    WatchCheckpointRepository,
    WatchSegmentRepository,
)
from app.watch.services.session_service import SessionService
from app.watch.validator import (
    CheckpointRow,
    ProgressVerdict,
    SeekRow,
    SegmentRow,
    validate_progress,
)

logger = structlog.get_logger(__name__)


class ValidationService:
    """Server-side, authoritative completion check.

    Reads the persisted log back and recomputes the verdict from scratch.
    Nothing the client reports as an aggregate is consulted.
    """

    @staticmethod
    def validate(session_id: UUID, user_id: UUID, db: Session) -> ProgressVerdict:
        """Recompute the verdict for one learner and session. Has no side effects."""
        _, video_duration = SessionService.resolve_duration(session_id, db)

        segments = [
            SegmentRow(start_time=s.start_time, end_time=s.end_time, weight=s.weight)
            for s in WatchSegmentRepository(db).list_for(user_id, session_id)
        ]
        checkpoints = [
            CheckpointRow(checkpoint_time=c.checkpoint_time, is_natural=c.is_natural)
            for c in WatchCheckpointRepository(db).list_for(user_id, session_id)
        ]
        seek_events = [
            SeekRow(jump_amount=e.jump_amount)
            for e in SeekEventRepository(db).list_for(user_id, session_id)
        ]

        verdict = validate_progress(video_duration, segments, checkpoints, seek_events)

        logger.info(
            "progress_validated",
            session_id=str(session_id),
            user_id=str(user_id),
            is_valid=verdict.is_valid,
            watched_percentage=verdict.watched_percentage,
            checkpoint_score=verdict.checkpoint_score,
            suspicious_jumps=verdict.suspicious_jumps,
            malformed_rows=verdict.malformed_rows,
        )
        return verdict

    @staticmethod
    def complete_session(
        session_id: UUID, user_id: UUID, db: Session
    ) -> tuple[ProgressVerdict, SessionProgress]:
        """Validate and, if the verdict is valid, record completion.

        This is the only code path that sets ``is_completed``. Completion is
        never revoked by a later negative verdict.
        """
        verdict = ValidationService.validate(session_id, user_id, db)
        now = datetime.now(UTC)

        progress = SessionProgressRepository(db).get_or_create(user_id, session_id)
        progress.last_verdict = verdict.to_dict()
        progress.last_validated_at = now

        if verdict.is_valid and not progress.is_completed:
            progress.is_completed = True
            progress.completed_at = now
            logger.info("session_completed", session_id=str(session_id), user_id=str(user_id))

        db.commit()
        db.refresh(progress)
        return verdict, progress
