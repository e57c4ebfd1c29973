"""
Tests for ProgressLogService - durable storage of the tracker event log.
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from app.watch.models import SeekEventRecord, WatchCheckpoint, WatchSegment
from app.watch.repositories import (
    SessionProgressRepository,
    WatchCheckpointRepository,
    WatchSegmentRepository,
)
from app.watch.schemas.progress import ProgressSyncRequest
from app.watch.services.progress_log_service import ProgressLogService
from tests.utils.factories import (
    checkpoint_payload,
    full_watch_batch,
    seek_payload,
    segment_payload,
)


def _record(db_session, learner_id, session, payload):
    return ProgressLogService.record_events(
        learner_id, session, ProgressSyncRequest.model_validate(payload), db_session
    )


class TestRecordEvents:
    def test_records_full_batch(self, db_session, learner_id, test_session):
        result = _record(db_session, learner_id, test_session, full_watch_batch())

        assert result == {
            "segments_accepted": 1,
            "segments_skipped": 0,
            "checkpoints_recorded": 4,
            "seek_events_accepted": 0,
            "duplicates_ignored": 0,
        }
        progress = SessionProgressRepository(db_session).find_by(learner_id, test_session.id)
        assert progress.watched_duration_seconds == 600
        assert progress.last_position_seconds == 600
        assert progress.watched_ranges == [{"start": 0, "end": 600, "weight": 1.0}]
        assert progress.is_completed is False

    def test_resending_a_batch_changes_nothing(self, db_session, learner_id, test_session):
        payload = {
            "segments": [segment_payload(0, 0, 60), segment_payload(1, 60, 120)],
            "checkpoints": [checkpoint_payload(180)],
            "seek_events": [seek_payload(0, 120, 300)],
        }
        _record(db_session, learner_id, test_session, payload)

        result = _record(db_session, learner_id, test_session, payload)

        assert result["segments_accepted"] == 0
        assert result["seek_events_accepted"] == 0
        assert result["checkpoints_recorded"] == 0
        assert result["duplicates_ignored"] == 3
        assert db_session.query(WatchSegment).count() == 2
        assert db_session.query(SeekEventRecord).count() == 1
        assert db_session.query(WatchCheckpoint).count() == 1

    def test_existing_sequence_numbers_are_not_overwritten(
        self, db_session, learner_id, test_session
    ):
        _record(db_session, learner_id, test_session, {"segments": [segment_payload(0, 0, 10)]})
        _record(db_session, learner_id, test_session, {"segments": [segment_payload(0, 0, 600)]})

        (segment,) = db_session.query(WatchSegment).all()
        assert segment.end_time == 10

    def test_checkpoints_are_monotonic(self, db_session, learner_id, test_session):
        _record(
            db_session,
            learner_id,
            test_session,
            {"checkpoints": [checkpoint_payload(180, is_natural=False)]},
        )
        upgraded = _record(
            db_session,
            learner_id,
            test_session,
            {"checkpoints": [checkpoint_payload(180, is_natural=True)]},
        )
        _record(
            db_session,
            learner_id,
            test_session,
            {"checkpoints": [checkpoint_payload(180, is_natural=False)]},
        )

        assert upgraded["checkpoints_recorded"] == 1
        (checkpoint,) = WatchCheckpointRepository(db_session).list_for(learner_id, test_session.id)
        assert checkpoint.is_natural is True

    def test_malformed_segments_are_dropped(self, db_session, learner_id, test_session):
        payload = {
            "segments": [
                segment_payload(0, -20, 30),
                segment_payload(1, 50, 40),
                segment_payload(2, 0, 30, weight=2.0),
                segment_payload(3, 590, 700),
            ]
        }

        result = _record(db_session, learner_id, test_session, payload)

        assert result["segments_accepted"] == 2
        assert result["segments_skipped"] == 2
        stored = db_session.query(WatchSegment).order_by(WatchSegment.seq).all()
        assert [(s.start_time, s.end_time, s.duration) for s in stored] == [
            (0, 30, 30),
            (590, 600, 10),
        ]

    def test_seek_jump_is_computed_from_positions(self, db_session, learner_id, test_session):
        event = seek_payload(0, 100, 400)
        event["jump_amount"] = 1

        _record(db_session, learner_id, test_session, {"seek_events": [event]})

        (stored,) = db_session.query(SeekEventRecord).all()
        assert stored.jump_amount == 300

    def test_logs_are_scoped_per_learner(self, db_session, learner_id, admin_id, test_session):
        _record(db_session, learner_id, test_session, {"segments": [segment_payload(0, 0, 60)]})

        result = _record(
            db_session, admin_id, test_session, {"segments": [segment_payload(0, 0, 60)]}
        )

        assert result["segments_accepted"] == 1
        assert db_session.query(WatchSegment).count() == 2

    def test_summary_counts_weighted_time(self, db_session, learner_id, test_session):
        payload = {
            "segments": [segment_payload(0, 0, 100), segment_payload(1, 0, 100, weight=0.3)]
        }

        _record(db_session, learner_id, test_session, payload)

        progress = SessionProgressRepository(db_session).find_by(learner_id, test_session.id)
        assert progress.watched_duration_seconds == 130


def stale_segment_reads(stale_calls: int):
    """Patch segment lookups to miss rows a concurrent flush has just committed."""
    real_list_for = WatchSegmentRepository.list_for
    calls = []

    def list_for(self, user_id, session_id):
        calls.append(session_id)
        if len(calls) <= stale_calls:
            return []
        return real_list_for(self, user_id, session_id)

    return patch.object(WatchSegmentRepository, "list_for", list_for)


class TestConcurrentFlush:
    def test_lost_race_counts_rows_as_duplicates(self, db_session, learner_id, test_session):
        _record(db_session, learner_id, test_session, {"segments": [segment_payload(0, 0, 10)]})
        payload = {"segments": [segment_payload(0, 0, 60), segment_payload(1, 60, 120)]}

        with stale_segment_reads(1):
            result = _record(db_session, learner_id, test_session, payload)

        assert result["segments_accepted"] == 1
        assert result["duplicates_ignored"] == 1
        stored = db_session.query(WatchSegment).order_by(WatchSegment.seq).all()
        assert [(s.seq, s.end_time) for s in stored] == [(0, 10), (1, 120)]
        progress = SessionProgressRepository(db_session).find_by(learner_id, test_session.id)
        assert progress.watched_duration_seconds == 70

    def test_second_conflict_is_raised(self, db_session, learner_id, test_session):
        _record(db_session, learner_id, test_session, {"segments": [segment_payload(0, 0, 10)]})

        with stale_segment_reads(2), pytest.raises(IntegrityError):
            _record(
                db_session, learner_id, test_session, {"segments": [segment_payload(0, 0, 60)]}
            )


class TestGetSnapshot:
    def test_empty_snapshot(self, db_session, learner_id, test_session):
        snapshot = ProgressLogService.get_snapshot(learner_id, test_session, db_session)

        assert snapshot.session_id == str(test_session.id)
        assert snapshot.video_duration == 600
        assert snapshot.segments == []
        assert snapshot.watched_ranges == []
        assert snapshot.is_completed is False

    def test_snapshot_returns_log_in_order(self, db_session, learner_id, test_session):
        payload = {
            "segments": [segment_payload(1, 60, 120), segment_payload(0, 0, 60)],
            "checkpoints": [checkpoint_payload(360), checkpoint_payload(180)],
            "seek_events": [seek_payload(0, 120, 150)],
            "watched_ranges": [{"start": 60, "end": 120}, {"start": 0, "end": 60}],
            "last_position_seconds": 150,
        }
        _record(db_session, learner_id, test_session, payload)

        snapshot = ProgressLogService.get_snapshot(learner_id, test_session, db_session)

        assert [s.seq for s in snapshot.segments] == [0, 1]
        assert [c.checkpoint_time for c in snapshot.checkpoints] == [180, 360]
        assert [(r.start, r.end) for r in snapshot.watched_ranges] == [(0, 120)]
        assert snapshot.last_position_seconds == 150
