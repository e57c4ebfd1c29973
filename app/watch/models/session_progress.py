import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base


class SessionProgress(Base):
    """Per-learner summary of a session.

    ``watched_ranges`` and ``last_position_seconds`` are client-reported and
    only used to restore the player; completion fields are written solely by
    the server-side validation path.
    """

    __tablename__ = "session_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "session_id", name="uq_session_progress_user_session"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(index=True)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("video_sessions.id", ondelete="CASCADE"), index=True
    )
    watched_ranges: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    watched_duration_seconds: Mapped[float] = mapped_column(default=0.0)
    last_position_seconds: Mapped[float] = mapped_column(default=0.0)
    is_completed: Mapped[bool] = mapped_column(default=False)
    completed_at: Mapped[datetime | None] = mapped_column(default=None)
    last_verdict: Mapped[dict[str, Any] | None] = mapped_column(JSON, default=None)
    last_validated_at: Mapped[datetime | None] = mapped_column(default=None)
    last_updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    def __repr__(self) -> str:
        return f"<SessionProgress(user_id={self.user_id}, session_id={self.session_id}, completed={self.is_completed})>"  # noqa: E501
