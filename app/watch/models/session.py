import uuid
from datetime import UTC, datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base


class VideoSession(Base):
    """A single video lecture a learner can watch.

    ``duration_seconds`` stays empty until the video length is known; a
    session without a duration can never be validated.
    """

    __tablename__ = "video_sessions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    title: Mapped[str] = mapped_column(String(255))
    video_url: Mapped[str | None] = mapped_column(String(500), default=None)
    duration_seconds: Mapped[float | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    @property
    def has_duration(self) -> bool:
        return self.duration_seconds is not None and self.duration_seconds > 0

    def __repr__(self) -> str:
        return f"<VideoSession(id={self.id}, title={self.title}, duration={self.duration_seconds})>"  # noqa: E501
