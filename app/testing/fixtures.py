"""Demo catalog fixtures for test mode.

Seeded into the in-memory repository when ``APP_TESTING_SEED_DEMO_CATALOG``
is true, and reused by the test suite. Covers every tier and status so the
access rules can be exercised end to end.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

_BASE_TIME = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)

FREE_PUBLISHED_ID = "5b0f9a4e-3c1d-4f6a-8b2e-1a7c9d3e5f01"
PREMIUM_PUBLISHED_ID = "8d2e4f6a-7b9c-4d1e-a3f5-6c8b0d2e4f02"
FREE_DRAFT_ID = "1c3e5a7b-9d2f-4a6c-8e1b-3d5f7a9c1e03"
PREMIUM_ARCHIVED_ID = "9f1a3c5e-7b2d-4e6f-b8a0-2c4e6a8b0d04"
PREMIUM_DRAFT_ID = "3a5c7e9b-1d4f-4b8a-9c2e-5e7a9c1b3d05"

MORNING_FLOW: Dict[str, Any] = {
    "id": FREE_PUBLISHED_ID,
    "title": "Morning Flow for Beginners",
    "description": "A gentle 20 minute sequence to wake up the spine and hips.",
    "category": "yoga",
    "level": "beginner",
    "duration": 1200,
    "video_url": "videos-free/morning-flow.mp4",
    "thumbnail_url": "thumbnails/morning-flow.jpg",
    "is_premium": False,
    "status": "published",
    "created_at": _BASE_TIME,
    "updated_at": _BASE_TIME,
}

HIP_MOBILITY: Dict[str, Any] = {
    "id": PREMIUM_PUBLISHED_ID,
    "title": "Deep Hip Mobility",
    "description": "Controlled articular rotations and end-range loading for the hips.",
    "category": "mobility",
    "level": "intermediate",
    "duration": 2700,
    "video_url": "videos-premium/deep-hip-mobility.mp4",
    "thumbnail_url": "thumbnails/deep-hip-mobility.webp",
    "is_premium": True,
    "status": "published",
    "created_at": _BASE_TIME + timedelta(days=1),
    "updated_at": _BASE_TIME + timedelta(days=1),
}

PULL_UP_BASICS: Dict[str, Any] = {
    "id": FREE_DRAFT_ID,
    "title": "Pull-up Basics",
    "description": None,
    "category": "calisthenics",
    "level": "beginner",
    "duration": 900,
    "video_url": "videos-free/pull-up-basics.mp4",
    "thumbnail_url": "thumbnails/pull-up-basics.png",
    "is_premium": False,
    "status": "draft",
    "created_at": _BASE_TIME + timedelta(days=2),
    "updated_at": _BASE_TIME + timedelta(days=2),
}

HANDSTAND_PROGRESSION: Dict[str, Any] = {
    "id": PREMIUM_ARCHIVED_ID,
    "title": "Handstand Progression",
    "description": "Wall drills towards a freestanding handstand.",
    "category": "calisthenics",
    "level": "advanced",
    "duration": 3600,
    "video_url": "videos-premium/handstand-progression.mp4",
    "thumbnail_url": "thumbnails/handstand-progression.jpg",
    "is_premium": True,
    "status": "archived",
    "created_at": _BASE_TIME + timedelta(days=3),
    "updated_at": _BASE_TIME + timedelta(days=3),
}

YIN_SERIES: Dict[str, Any] = {
    "id": PREMIUM_DRAFT_ID,
    "title": "Yin Yoga Series",
    "description": "Long holds for connective tissue.",
    "category": "yoga",
    "level": "advanced",
    "duration": 5400,
    "video_url": "videos-premium/yin-series.mp4",
    "thumbnail_url": "thumbnails/yin-series.jpg",
    "is_premium": True,
    "status": "draft",
    "created_at": _BASE_TIME + timedelta(days=4),
    "updated_at": _BASE_TIME + timedelta(days=4),
}

DEMO_VIDEOS: List[Dict[str, Any]] = [
    MORNING_FLOW,
    HIP_MOBILITY,
    PULL_UP_BASICS,
    HANDSTAND_PROGRESSION,
    YIN_SERIES,
]


def demo_catalog() -> List[Dict[str, Any]]:
    """Return fresh copies of the demo rows."""
    return [dict(row) for row in DEMO_VIDEOS]
