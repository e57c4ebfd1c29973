import logging
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, SessionResolutionError
from app.watch import rules
from app.watch.models import VideoSession
from app.watch.repositories import VideoSessionRepository
from app.watch.schemas.session import VideoSessionCreate, VideoSessionResponse, VideoSessionUpdate
from app.watch.services.vimeo_service import VimeoService

logger = logging.getLogger(__name__)


class SessionService:
    @staticmethod
    def get_session(session_id: UUID, db: Session) -> VideoSession:
        session = VideoSessionRepository(db).get_by_id(session_id)
        if session is None:
            raise NotFoundError("Session not found", resource="session")
        return session

    @staticmethod
    def resolve_duration(session_id: UUID, db: Session) -> tuple[VideoSession, float]:
        """Return the session and its authoritative video duration.

        Fails closed: a missing session or a missing/non-positive duration
        raises ``SessionResolutionError`` instead of assuming a default.
        """
        session = VideoSessionRepository(db).get_by_id(session_id)
        if session is None:
            raise SessionResolutionError("Session not found", session_id=str(session_id))
        if not session.has_duration:
            raise SessionResolutionError(
                "Video duration is not known for this session", session_id=str(session_id)
            )
        return session, float(session.duration_seconds)  # type: ignore[arg-type]

    @staticmethod
    def list_sessions(db: Session, skip: int = 0, limit: int = 100) -> list[VideoSession]:
        return VideoSessionRepository(db).get_all(skip=skip, limit=limit)

    @staticmethod
    def create_session(data: VideoSessionCreate, db: Session) -> VideoSession:
        session = VideoSessionRepository(db).create(**data.model_dump())
        logger.info("Created session %s (%s)", session.id, session.title)
        return session

    @staticmethod
    def update_session(session_id: UUID, data: VideoSessionUpdate, db: Session) -> VideoSession:
        session = SessionService.get_session(session_id, db)
        return VideoSessionRepository(db).update(session, **data.model_dump(exclude_unset=True))

    @staticmethod
    def to_response(session: VideoSession) -> VideoSessionResponse:
        return VideoSessionResponse(
            id=str(session.id),
            title=session.title,
            video_url=session.video_url,
            duration_seconds=session.duration_seconds,
            checkpoints=rules.generate_checkpoints(session.duration_seconds or 0),
            created_at=session.created_at,
            updated_at=session.updated_at,
        )

    @staticmethod
    async def sync_missing_durations(
        db: Session, vimeo: VimeoService, limit: int = 100
    ) -> dict[str, int]:
        """Fill in ``duration_seconds`` for sessions that lack it.

        A failed lookup leaves the duration empty, so validation for that
        session keeps failing closed.
        """
        sessions = VideoSessionRepository(db).list_missing_duration(limit)
        updated = 0
        failed = 0

        for session in sessions:
            result = await vimeo.get_video_duration(session.video_url)
            if not result.success:
                failed += 1
                logger.warning(
                    "Duration lookup failed for session %s: %s", session.id, result.error
                )
                continue
            session.duration_seconds = result.duration_seconds
            updated += 1

        if updated:
            db.commit()

        logger.info(
            "Duration sync finished: checked=%d, updated=%d, failed=%d",
            len(sessions),
            updated,
            failed,
        )
        return {"checked": len(sessions), "updated": updated, "failed": failed}
