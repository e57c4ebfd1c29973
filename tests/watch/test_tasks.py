"""
Tests for the scheduled duration sync task.
"""

from unittest.mock import AsyncMock, MagicMock, patch

from app.watch.tasks import sync_video_durations_task


def test_task_runs_sync_and_closes_session():
    db = MagicMock()
    sync = AsyncMock(return_value={"checked": 2, "updated": 2, "failed": 0})

    with (
        patch("app.watch.tasks.SessionLocal", return_value=db),
        patch("app.watch.tasks.SessionService.sync_missing_durations", sync),
        patch("app.watch.tasks.get_vimeo_service") as get_service,
    ):
        result = sync_video_durations_task(limit=5)

    sync.assert_awaited_once_with(db, get_service.return_value, limit=5)
    assert result["updated"] == 2
    assert "execution_time_seconds" in result
    db.close.assert_called_once()
