from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.auth.dependencies import CurrentUser, get_current_user
from app.core.config import settings
from app.core.rate_limit import limiter
from app.db.session import get_db
from app.watch.dependencies import get_video_session
from app.watch.models import VideoSession
from app.watch.schemas.progress import (
    ProgressSnapshotResponse,
    ProgressSyncRequest,
    ProgressSyncResponse,
    ProgressVerdictResponse,
    SessionCompletionResponse,
)
from app.watch.services.progress_log_service import ProgressLogService
from app.watch.services.validation_service import ValidationService

router = APIRouter()


@router.get("/progress/sessions/{session_id}", response_model=ProgressSnapshotResponse)
async def get_progress_snapshot(
    session: VideoSession = Depends(get_video_session),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ProgressSnapshotResponse:
    """Get the persisted watch log so a tracker can resume after a reload."""
    return ProgressLogService.get_snapshot(current_user.id, session, db)


@router.post("/progress/sessions/{session_id}/events", response_model=ProgressSyncResponse)
async def record_progress_events(
    request: ProgressSyncRequest,
    session: VideoSession = Depends(get_video_session),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ProgressSyncResponse:
    """Persist a batch of watch segments, checkpoints and seek events."""
    result = ProgressLogService.record_events(current_user.id, session, request, db)
    return ProgressSyncResponse(**result)


@router.post(
    "/progress/sessions/{session_id}/validate",
    response_model=SessionCompletionResponse,
)
@limiter.limit(settings.VALIDATE_RATE_LIMIT)
async def validate_session_progress(
    request: Request,
    session_id: UUID,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> SessionCompletionResponse:
    """Recompute the verdict from the stored log and record completion when valid."""
    verdict, progress = ValidationService.complete_session(session_id, current_user.id, db)

    return SessionCompletionResponse(
        verdict=ProgressVerdictResponse.model_validate(verdict.to_dict()),
        is_completed=progress.is_completed,
        completed_at=progress.completed_at,
    )
