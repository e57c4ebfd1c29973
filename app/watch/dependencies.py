from uuid import UUID

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.watch.models import VideoSession
from app.watch.services.session_service import SessionService


def get_video_session(session_id: UUID, db: Session = Depends(get_db)) -> VideoSession:
    """Load the session named in the path or respond 404."""
    return SessionService.get_session(session_id, db)
