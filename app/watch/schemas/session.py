from pydantic import BaseModel, Field

from app.core.datetime_utils import UTCDatetime


class VideoSessionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    video_url: str | None = Field(default=None, max_length=500)
    duration_seconds: float | None = Field(default=None, gt=0)


class VideoSessionUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    video_url: str | None = Field(default=None, max_length=500)
    duration_seconds: float | None = Field(default=None, gt=0)


class VideoSessionResponse(BaseModel):
    id: str
    title: str
    video_url: str | None = None
    duration_seconds: float | None = None
    checkpoints: list[int] = []
    created_at: UTCDatetime
    updated_at: UTCDatetime


class DurationSyncResponse(BaseModel):
    checked: int
    updated: int
    failed: int
