from app.watch.schemas.progress import (
    CheckpointIn,
    ProgressSnapshotResponse,
    ProgressSyncRequest,
    ProgressSyncResponse,
    ProgressVerdictResponse,
    SeekEventIn,
    SegmentIn,
    SessionCompletionResponse,
    WatchedRangeSchema,
)
from app.watch.schemas.session import (
    DurationSyncResponse,
    VideoSessionCreate,
    VideoSessionResponse,
    VideoSessionUpdate,
)

__all__ = [
    "CheckpointIn",
    "DurationSyncResponse",
    "ProgressSnapshotResponse",
    "ProgressSyncRequest",
    "ProgressSyncResponse",
    "ProgressVerdictResponse",
    "SeekEventIn",
    "SegmentIn",
    "SessionCompletionResponse",
    "VideoSessionCreate",
    "VideoSessionResponse",
    "VideoSessionUpdate",
    "WatchedRangeSchema",
]
