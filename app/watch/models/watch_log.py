import uuid
from datetime import UTC, datetime

from sqlalchemy import BigInteger, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base


class WatchSegment(Base):
    """A contiguous interval of observed playback. Immutable once stored."""

    __tablename__ = "watch_segments"
    __table_args__ = (
        UniqueConstraint("user_id", "session_id", "seq", name="uq_watch_segment_seq"),
        Index("ix_watch_segments_user_session", "user_id", "session_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(index=True)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("video_sessions.id", ondelete="CASCADE")
    )
    seq: Mapped[int]
    start_time: Mapped[float]
    end_time: Mapped[float]
    duration: Mapped[float]
    weight: Mapped[float]
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))

    def __repr__(self) -> str:
        return f"<WatchSegment(seq={self.seq}, {self.start_time}-{self.end_time}, weight={self.weight})>"  # noqa: E501


class WatchCheckpoint(Base):
    """A checkpoint the learner passed. Rows are never removed."""

    __tablename__ = "watch_checkpoints"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "session_id", "checkpoint_time", name="uq_watch_checkpoint_time"
        ),
        Index("ix_watch_checkpoints_user_session", "user_id", "session_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(index=True)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("video_sessions.id", ondelete="CASCADE")
    )
    checkpoint_time: Mapped[float]
    is_natural: Mapped[bool] = mapped_column(default=False)
    reached_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))

    def __repr__(self) -> str:
        return f"<WatchCheckpoint(time={self.checkpoint_time}, natural={self.is_natural})>"


class SeekEventRecord(Base):
    """A discrete jump in playback position. Append-only."""

    __tablename__ = "seek_events"
    __table_args__ = (
        UniqueConstraint("user_id", "session_id", "seq", name="uq_seek_event_seq"),
        Index("ix_seek_events_user_session", "user_id", "session_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(index=True)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("video_sessions.id", ondelete="CASCADE")
    )
    seq: Mapped[int]
    from_time: Mapped[float]
    to_time: Mapped[float]
    jump_amount: Mapped[float]
    # Client wall-clock, epoch milliseconds
    timestamp: Mapped[int] = mapped_column(BigInteger)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))

    def __repr__(self) -> str:
        return f"<SeekEventRecord(seq={self.seq}, jump={self.jump_amount})>"
