from typing import Any


def assert_verdict_shape(data: dict[str, Any]) -> None:
    """Assert that a verdict payload carries every field clients rely on."""
    for key in (
        "isValid",
        "watchedPercentage",
        "totalWatchedTime",
        "checkpointScore",
        "forwardJumps",
        "suspiciousJumps",
        "hasReachedEnd",
        "details",
    ):
        assert key in data
    for key in (
        "segmentCount",
        "checkpointsReached",
        "checkpointsRequired",
        "videoDuration",
        "malformedRows",
    ):
        assert key in data["details"]


def assert_error_envelope(data: dict[str, Any], code: str) -> None:
    assert data["success"] is False
    assert data["error"]["code"] == code
    assert "message" in data["error"]
