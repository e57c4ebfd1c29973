"""Celery tasks for keeping session metadata in sync with Vimeo."""

import asyncio
import logging
import time
from typing import Any

from app.core.celery_app import celery_app
from app.core.config import settings
from app.db.session import SessionLocal
from app.watch.services.session_service import SessionService
from app.watch.services.vimeo_service import get_vimeo_service

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=0)
def sync_video_durations_task(self: Any, limit: int | None = None) -> dict[str, Any]:
    """Fetch durations for sessions that were created without one.

    Sessions without a duration cannot be validated, so this runs on a
    schedule to shorten the window in which learners are blocked.
    """
    start_time = time.time()
    if limit is None:
        limit = settings.DURATION_SYNC_BATCH_SIZE

    logger.info(f"Starting video duration sync (limit={limit})")

    db = SessionLocal()
    try:
        result: dict[str, Any] = asyncio.run(
            SessionService.sync_missing_durations(db, get_vimeo_service(), limit=limit)
        )
        result["execution_time_seconds"] = time.time() - start_time
        return result
    except Exception as e:
        logger.error(f"Video duration sync failed: {e}")
        raise
    finally:
        db.close()
