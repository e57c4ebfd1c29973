"""Watch validation models."""

from app.watch.models.session import VideoSession
from app.watch.models.session_progress import SessionProgress
from app.watch.models.watch_log import SeekEventRecord, WatchCheckpoint, WatchSegment

__all__ = [
    "VideoSession",
    "SessionProgress",
    "WatchSegment",
    "WatchCheckpoint",
    "SeekEventRecord",
]
