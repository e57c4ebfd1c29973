"""Create watch validation tables

Revision ID: a1f0c2d4e6b8
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1f0c2d4e6b8"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "video_sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("video_url", sa.String(500), nullable=True),
        sa.Column("duration_seconds", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_video_sessions_id"), "video_sessions", ["id"])

    # watch_segments: append-only, keyed by the tracker's sequence number
    op.create_table(
        "watch_segments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Float(), nullable=False),
        sa.Column("end_time", sa.Float(), nullable=False),
        sa.Column("duration", sa.Float(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["session_id"], ["video_sessions.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "session_id", "seq", name="uq_watch_segment_seq"),
    )
    op.create_index(op.f("ix_watch_segments_user_id"), "watch_segments", ["user_id"])
    op.create_index(
        "ix_watch_segments_user_session", "watch_segments", ["user_id", "session_id"]
    )

    op.create_table(
        "watch_checkpoints",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("checkpoint_time", sa.Float(), nullable=False),
        sa.Column("is_natural", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("reached_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["session_id"], ["video_sessions.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "user_id", "session_id", "checkpoint_time", name="uq_watch_checkpoint_time"
        ),
    )
    op.create_index(op.f("ix_watch_checkpoints_user_id"), "watch_checkpoints", ["user_id"])
    op.create_index(
        "ix_watch_checkpoints_user_session", "watch_checkpoints", ["user_id", "session_id"]
    )

    op.create_table(
        "seek_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("from_time", sa.Float(), nullable=False),
        sa.Column("to_time", sa.Float(), nullable=False),
        sa.Column("jump_amount", sa.Float(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["session_id"], ["video_sessions.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "session_id", "seq", name="uq_seek_event_seq"),
    )
    op.create_index(op.f("ix_seek_events_user_id"), "seek_events", ["user_id"])
    op.create_index("ix_seek_events_user_session", "seek_events", ["user_id", "session_id"])

    op.create_table(
        "session_progress",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("watched_ranges", sa.JSON(), nullable=False),
        sa.Column("watched_duration_seconds", sa.Float(), nullable=False, server_default="0"),
        sa.Column("last_position_seconds", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("last_verdict", sa.JSON(), nullable=True),
        sa.Column("last_validated_at", sa.DateTime(), nullable=True),
        sa.Column("last_updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["session_id"], ["video_sessions.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "session_id", name="uq_session_progress_user_session"),
    )
    op.create_index(op.f("ix_session_progress_user_id"), "session_progress", ["user_id"])
    op.create_index(op.f("ix_session_progress_session_id"), "session_progress", ["session_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_session_progress_session_id"), table_name="session_progress")
    op.drop_index(op.f("ix_session_progress_user_id"), table_name="session_progress")
    op.drop_table("session_progress")

    op.drop_index("ix_seek_events_user_session", table_name="seek_events")
    op.drop_index(op.f("ix_seek_events_user_id"), table_name="seek_events")
    op.drop_table("seek_events")

    op.drop_index("ix_watch_checkpoints_user_session", table_name="watch_checkpoints")
    op.drop_index(op.f("ix_watch_checkpoints_user_id"), table_name="watch_checkpoints")
    op.drop_table("watch_checkpoints")

    op.drop_index("ix_watch_segments_user_session", table_name="watch_segments")
    op.drop_index(op.f("ix_watch_segments_user_id"), table_name="watch_segments")
    op.drop_table("watch_segments")

    op.drop_index(op.f("ix_video_sessions_id"), table_name="video_sessions")
    op.drop_table("video_sessions")
