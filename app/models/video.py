"""Video catalog data models."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class VideoCategory(str, Enum):
    """Closed set of content categories."""

    YOGA = "yoga"
    MOBILITY = "mobility"
    CALISTHENICS = "calisthenics"


class VideoLevel(str, Enum):
    """Difficulty levels."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class VideoStatus(str, Enum):
    """Publication lifecycle of a video record.

    State transitions (admin only):
    - DRAFT -> PUBLISHED
    - PUBLISHED -> ARCHIVED
    """

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Video:
    """A video record as stored in the system of record.

    ``video_url`` and ``thumbnail_url`` hold storage references such as
    ``videos-premium/flow.mp4`` and ``thumbnails/flow.jpg``. The lookup
    service replaces ``thumbnail_url`` with an absolute public URL; the
    primary asset reference stays relative until playback resolution.
    """

    id: str
    title: str
    category: VideoCategory
    level: VideoLevel
    duration: int  # seconds
    video_url: str
    thumbnail_url: str
    is_premium: bool = False
    status: VideoStatus = VideoStatus.DRAFT
    description: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_published(self) -> bool:
        return self.status == VideoStatus.PUBLISHED

    def with_thumbnail(self, thumbnail_url: str) -> "Video":
        """Return a copy with a different thumbnail reference."""
        return replace(self, thumbnail_url=thumbnail_url)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category.value,
            "level": self.level.value,
            "duration": self.duration,
            "video_url": self.video_url,
            "thumbnail_url": self.thumbnail_url,
            "is_premium": self.is_premium,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Video":
        """Build a Video from a repository row.

        Args:
            row: Mapping with the stored column values.

        Returns:
            The parsed Video.

        Raises:
            KeyError: If a required column is missing.
            ValueError: If an enum column holds an unknown value.
        """
        return cls(
            id=str(row["id"]),
            title=row["title"],
            description=row.get("description"),
            category=VideoCategory(row["category"]),
            level=VideoLevel(row["level"]),
            duration=int(row["duration"]),
            video_url=row["video_url"],
            thumbnail_url=row["thumbnail_url"],
            is_premium=bool(row.get("is_premium", False)),
            status=VideoStatus(row.get("status", VideoStatus.DRAFT.value)),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )


@dataclass
class VideoPage:
    """One page of a catalog listing."""

    videos: List[Video]
    total: int


def _parse_timestamp(value: Any) -> datetime:
    if value is None:
        return _utcnow()
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def format_duration(seconds: Optional[int]) -> str:
    """Format a duration for display.

    Examples:
        format_duration(90) -> "1:30"
        format_duration(3665) -> "1:01:05"
    """
    if not seconds or seconds < 0:
        return "0:00"

    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
