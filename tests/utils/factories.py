import uuid
from datetime import UTC, datetime
from typing import Any

from faker import Faker
from sqlalchemy.orm import Session

from app.watch.models import VideoSession

fake = Faker()

_UNSET: Any = object()


def create_video_session_factory(
    db_session: Session,
    title: str | None = None,
    duration_seconds: float | None = 600,
    video_url: str | None = _UNSET,
) -> VideoSession:
    """
    Factory function to create test video sessions.

    Args:
        db_session: Database session
        title: Session title (generates random if None)
        duration_seconds: Video length, None for an unknown duration
        video_url: Vimeo URL (generates random if not given)

    Returns:
        Created VideoSession instance
    """
    if video_url is _UNSET:
        video_url = f"https://vimeo.com/{fake.random_number(digits=9, fix_len=True)}"

    session = VideoSession(
        id=uuid.uuid4(),
        title=title or fake.sentence(nb_words=4),
        video_url=video_url,
        duration_seconds=duration_seconds,
        created_at=datetime.now(UTC),
        updated_at=datetime.now(UTC),
    )

    db_session.add(session)
    db_session.commit()
    db_session.refresh(session)

    return session


def segment_payload(
    seq: int, start_time: float, end_time: float, weight: float = 1.0
) -> dict[str, Any]:
    return {
        "seq": seq,
        "start_time": start_time,
        "end_time": end_time,
        "duration": end_time - start_time,
        "weight": weight,
    }


def checkpoint_payload(checkpoint_time: float, is_natural: bool = True) -> dict[str, Any]:
    return {
        "checkpoint_time": checkpoint_time,
        "is_natural": is_natural,
        "reached_at": int(datetime.now(UTC).timestamp() * 1000),
    }


def seek_payload(seq: int, from_time: float, to_time: float) -> dict[str, Any]:
    return {
        "seq": seq,
        "from_time": from_time,
        "to_time": to_time,
        "jump_amount": to_time - from_time,
        "timestamp": int(datetime.now(UTC).timestamp() * 1000),
    }


def full_watch_batch(video_duration: float = 600) -> dict[str, Any]:
    """A batch for an honest, uninterrupted viewing of the whole video."""
    from app.watch.rules import generate_checkpoints

    return {
        "segments": [segment_payload(0, 0, video_duration)],
        "checkpoints": [checkpoint_payload(t) for t in generate_checkpoints(video_duration)],
        "seek_events": [],
        "watched_ranges": [{"start": 0, "end": video_duration, "weight": 1.0}],
        "last_position_seconds": video_duration,
    }
