from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.datetime_utils import UTCDatetime

# Upper bound on rows per ingest request
MAX_BATCH_ROWS = 5000


class SegmentIn(BaseModel):
    seq: int = Field(..., ge=0)
    start_time: float
    end_time: float
    # Informational; the server recomputes duration from the bounds
    duration: float | None = None
    weight: float


class CheckpointIn(BaseModel):
    checkpoint_time: float
    is_natural: bool
    reached_at: int | None = None


class SeekEventIn(BaseModel):
    seq: int = Field(..., ge=0)
    from_time: float
    to_time: float
    # Informational; the server stores to_time - from_time
    jump_amount: float | None = None
    timestamp: int


class WatchedRangeSchema(BaseModel):
    start: float
    end: float
    weight: float = 1.0


class ProgressSyncRequest(BaseModel):
    """A tracker flush: rows not yet acknowledged plus the current range view."""

    segments: list[SegmentIn] = Field(default_factory=list, max_length=MAX_BATCH_ROWS)
    checkpoints: list[CheckpointIn] = Field(default_factory=list, max_length=MAX_BATCH_ROWS)
    seek_events: list[SeekEventIn] = Field(default_factory=list, max_length=MAX_BATCH_ROWS)
    watched_ranges: list[WatchedRangeSchema] = Field(
        default_factory=list, max_length=MAX_BATCH_ROWS
    )
    last_position_seconds: float | None = None


class ProgressSyncResponse(BaseModel):
    segments_accepted: int
    segments_skipped: int
    checkpoints_recorded: int
    seek_events_accepted: int
    duplicates_ignored: int


class SegmentOut(BaseModel):
    seq: int
    start_time: float
    end_time: float
    duration: float
    weight: float

    class Config:
        from_attributes = True


class CheckpointOut(BaseModel):
    checkpoint_time: float
    is_natural: bool
    reached_at: UTCDatetime

    class Config:
        from_attributes = True


class SeekEventOut(BaseModel):
    seq: int
    from_time: float
    to_time: float
    jump_amount: float
    timestamp: int

    class Config:
        from_attributes = True


class ProgressSnapshotResponse(BaseModel):
    """Everything a tracker needs to resume after a reload."""

    session_id: str
    video_duration: float | None = None
    segments: list[SegmentOut] = []
    checkpoints: list[CheckpointOut] = []
    seek_events: list[SeekEventOut] = []
    watched_ranges: list[WatchedRangeSchema] = []
    last_position_seconds: float = 0.0
    is_completed: bool = False
    completed_at: UTCDatetime | None = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VerdictDetails(_CamelModel):
    segment_count: int
    checkpoints_reached: int
    checkpoints_required: int
    video_duration: float
    malformed_rows: int


class ProgressVerdictResponse(_CamelModel):
    is_valid: bool
    watched_percentage: int
    total_watched_time: float
    checkpoint_score: int
    forward_jumps: int
    suspicious_jumps: int
    has_reached_end: bool
    details: VerdictDetails


class SessionCompletionResponse(_CamelModel):
    verdict: ProgressVerdictResponse
    is_completed: bool
    completed_at: UTCDatetime | None = None
