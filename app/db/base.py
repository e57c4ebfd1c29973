"""
Database base module - imports all models for Alembic migration detection.

This module imports all SQLAlchemy models to ensure they are registered
with Alembic for automatic migration generation. While the imports appear
unused, they are essential for the migration system to work properly.
"""

from app.watch.models.session import VideoSession
from app.watch.models.session_progress import SessionProgress
from app.watch.models.watch_log import SeekEventRecord, WatchCheckpoint, WatchSegment

# Export all models for Alembic
__all__ = [
    "VideoSession",
    "SessionProgress",
    "WatchSegment",
    "WatchCheckpoint",
    "SeekEventRecord",
]
