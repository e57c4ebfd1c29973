"""
E2E tests for the admin session catalog and progress audit endpoints.
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from app.watch.repositories import SessionProgressRepository
from app.watch.services.vimeo_service import VideoDurationResult
from tests.utils.factories import full_watch_batch
from tests.utils.helpers import assert_verdict_shape


@pytest.mark.asyncio
async def test_create_session(test_client: AsyncClient, test_admin_token):
    response = await test_client.post(
        "/api/v1/admin/sessions",
        json={"title": "Intro", "video_url": "https://vimeo.com/123", "duration_seconds": 180},
        cookies={"access_token": test_admin_token},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Intro"
    assert data["checkpoints"] == [60, 120, 162]


@pytest.mark.asyncio
async def test_create_session_rejects_non_positive_duration(
    test_client: AsyncClient, test_admin_token
):
    response = await test_client.post(
        "/api/v1/admin/sessions",
        json={"title": "Intro", "duration_seconds": 0},
        cookies={"access_token": test_admin_token},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_learner_cannot_manage_sessions(test_client: AsyncClient, test_user_token):
    response = await test_client.get(
        "/api/v1/admin/sessions", cookies={"access_token": test_user_token}
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_and_update_sessions(test_client: AsyncClient, test_admin_token, test_session):
    cookies = {"access_token": test_admin_token}

    listed = await test_client.get("/api/v1/admin/sessions", cookies=cookies)
    assert [s["id"] for s in listed.json()] == [str(test_session.id)]

    response = await test_client.patch(
        f"/api/v1/admin/sessions/{test_session.id}",
        json={"duration_seconds": 60},
        cookies=cookies,
    )

    assert response.status_code == 200
    assert response.json()["duration_seconds"] == 60
    assert response.json()["checkpoints"] == [54]


@pytest.mark.asyncio
async def test_audit_learner_progress(
    test_client: AsyncClient,
    test_admin_token,
    test_user_token,
    learner_id,
    test_session,
    db_session,
):
    await test_client.post(
        f"/api/v1/progress/sessions/{test_session.id}/events",
        json=full_watch_batch(),
        cookies={"access_token": test_user_token},
    )

    response = await test_client.get(
        f"/api/v1/admin/progress/sessions/{test_session.id}/users/{learner_id}",
        cookies={"access_token": test_admin_token},
    )

    assert response.status_code == 200
    data = response.json()
    assert_verdict_shape(data)
    assert data["isValid"] is True

    progress = SessionProgressRepository(db_session).find_by(learner_id, test_session.id)
    assert progress.is_completed is False
    assert progress.last_verdict is None


@pytest.mark.asyncio
async def test_audit_requires_admin(
    test_client: AsyncClient, test_user_token, learner_id, test_session
):
    response = await test_client.get(
        f"/api/v1/admin/progress/sessions/{test_session.id}/users/{learner_id}",
        cookies={"access_token": test_user_token},
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_sync_durations(
    test_client: AsyncClient, test_admin_token, session_without_duration, db_session
):
    vimeo = AsyncMock()
    vimeo.get_video_duration.return_value = VideoDurationResult(
        success=True, duration_seconds=1234.0, title="Lecture"
    )

    with patch("app.watch.routes.admin.get_vimeo_service", return_value=vimeo):
        response = await test_client.post(
            "/api/v1/admin/sessions/sync-durations",
            cookies={"access_token": test_admin_token},
        )

    assert response.status_code == 200
    assert response.json() == {"checked": 1, "updated": 1, "failed": 0}
    db_session.refresh(session_without_duration)
    assert session_without_duration.duration_seconds == 1234.0
