"""Vimeo video metadata lookup.

Only the video length is needed: sessions whose duration is unknown cannot
be validated, so the duration sync fills it from Vimeo's public API.
"""

import logging
import re
from dataclasses import dataclass

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

_VIMEO_ID_PATTERNS = [
    re.compile(r"player\.vimeo\.com/video/(\d+)"),
    re.compile(r"vimeo\.com/channels/[\w-]+/(\d+)"),
    re.compile(r"vimeo\.com/groups/[\w-]+/videos/(\d+)"),
    re.compile(r"vimeo\.com/album/\d+/video/(\d+)"),
    re.compile(r"vimeo\.com/video/(\d+)"),
    re.compile(r"vimeo\.com/(\d+)"),
]


def extract_vimeo_id(url: str | None) -> str | None:
    """Return the numeric video id from any of the common Vimeo URL shapes."""
    if not url:
        return None
    for pattern in _VIMEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


@dataclass
class VideoDurationResult:
    """Result of a duration lookup."""

    success: bool
    duration_seconds: float | None = None
    title: str | None = None
    error: str | None = None


class VimeoService:
    """Service for reading video metadata from the Vimeo public API."""

    def __init__(self) -> None:
        self.base_url = settings.VIMEO_API_URL.rstrip("/")
        self.timeout = settings.VIMEO_TIMEOUT_SECONDS

    async def get_video_duration(self, video_url: str | None) -> VideoDurationResult:
        video_id = extract_vimeo_id(video_url)
        if video_id is None:
            logger.warning("Not a Vimeo URL: %s", video_url)
            return VideoDurationResult(success=False, error="Invalid Vimeo URL")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.base_url}/video/{video_id}.json")
                response.raise_for_status()
                payload = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(
                "Vimeo API error for video %s: %s", video_id, e.response.status_code
            )
            return VideoDurationResult(success=False, error=f"API error: {e.response.status_code}")
        except httpx.RequestError as e:
            logger.error("Vimeo connection error for video %s: %s", video_id, str(e))
            return VideoDurationResult(success=False, error=f"Connection error: {str(e)}")

        video = payload[0] if isinstance(payload, list) and payload else payload
        duration = video.get("duration") if isinstance(video, dict) else None
        if not isinstance(duration, int | float) or duration <= 0:
            logger.warning("Vimeo returned no usable duration for video %s", video_id)
            return VideoDurationResult(success=False, error="Missing duration")

        return VideoDurationResult(
            success=True, duration_seconds=float(duration), title=video.get("title")
        )


_vimeo_service: VimeoService | None = None


def get_vimeo_service() -> VimeoService:
    """Get or create Vimeo service instance."""
    global _vimeo_service
    if _vimeo_service is None:
        _vimeo_service = VimeoService()
    return _vimeo_service
