from uuid import UUID

from sqlalchemy.orm import Session

from app.core.repository import BaseRepository, UserSessionLogRepository
from app.watch.models import (
    SeekEventRecord,
    SessionProgress,
    VideoSession,
    WatchCheckpoint,
    WatchSegment,
)


class VideoSessionRepository(BaseRepository[VideoSession]):
    def __init__(self, db: Session):
        super().__init__(db, VideoSession)

    def list_missing_duration(self, limit: int) -> list[VideoSession]:
        return (
            self.db.query(VideoSession)
            .filter(VideoSession.duration_seconds.is_(None), VideoSession.video_url.isnot(None))
            .order_by(VideoSession.created_at)
            .limit(limit)
            .all()
        )


class WatchSegmentRepository(UserSessionLogRepository[WatchSegment]):
    def __init__(self, db: Session):
        super().__init__(db, WatchSegment, order_by="seq")


class WatchCheckpointRepository(UserSessionLogRepository[WatchCheckpoint]):
    def __init__(self, db: Session):
        super().__init__(db, WatchCheckpoint, order_by="checkpoint_time")


class SeekEventRepository(UserSessionLogRepository[SeekEventRecord]):
    def __init__(self, db: Session):
        super().__init__(db, SeekEventRecord, order_by="seq")


class SessionProgressRepository(UserSessionLogRepository[SessionProgress]):
    def __init__(self, db: Session):
        super().__init__(db, SessionProgress, order_by="last_updated_at")

    def get_or_create(self, user_id: UUID, session_id: UUID) -> SessionProgress:
        progress = self.find_by(user_id, session_id)
        if progress is None:
            progress = self.add(user_id=user_id, session_id=session_id)
        return progress
