from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.auth.dependencies import CurrentUser, require_admin
from app.core.config import settings
from app.db.session import get_db
from app.watch.schemas.progress import ProgressVerdictResponse
from app.watch.schemas.session import (
    DurationSyncResponse,
    VideoSessionCreate,
    VideoSessionResponse,
    VideoSessionUpdate,
)
from app.watch.services.session_service import SessionService
from app.watch.services.validation_service import ValidationService
from app.watch.services.vimeo_service import get_vimeo_service

router = APIRouter()


@router.get("/sessions", response_model=list[VideoSessionResponse])
async def list_sessions(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    db: Session = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> list[VideoSessionResponse]:
    """List sessions with their canonical checkpoints."""
    sessions = SessionService.list_sessions(db, skip=skip, limit=limit)
    return [SessionService.to_response(s) for s in sessions]


@router.post(
    "/sessions", response_model=VideoSessionResponse, status_code=status.HTTP_201_CREATED
)
async def create_session(
    data: VideoSessionCreate,
    db: Session = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> VideoSessionResponse:
    session = SessionService.create_session(data, db)
    return SessionService.to_response(session)


@router.patch("/sessions/{session_id}", response_model=VideoSessionResponse)
async def update_session(
    session_id: UUID,
    data: VideoSessionUpdate,
    db: Session = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> VideoSessionResponse:
    session = SessionService.update_session(session_id, data, db)
    return SessionService.to_response(session)


@router.post("/sessions/sync-durations", response_model=DurationSyncResponse)
async def sync_session_durations(
    db: Session = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> DurationSyncResponse:
    """Fetch missing video durations from Vimeo."""
    result = await SessionService.sync_missing_durations(
        db, get_vimeo_service(), limit=settings.DURATION_SYNC_BATCH_SIZE
    )
    return DurationSyncResponse(**result)


@router.get(
    "/progress/sessions/{session_id}/users/{user_id}",
    response_model=ProgressVerdictResponse,
)
async def audit_user_progress(
    session_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> ProgressVerdictResponse:
    """Recompute a learner's verdict for auditing. Does not record completion."""
    verdict = ValidationService.validate(session_id, user_id, db)
    return ProgressVerdictResponse.model_validate(verdict.to_dict())
