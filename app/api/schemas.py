"""Request and response schemas for API endpoints.

Pydantic models for response serialization with OpenAPI examples. Write
bodies are accepted as plain JSON objects and checked by the shared field
validators so list filters and writes report errors the same way.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.access import PlayableUrl
from app.models.video import Video, format_duration


class VideoSchema(BaseModel):
    """A catalog entry."""

    id: str = Field(..., examples=["8d2e4f6a-7b9c-4d1e-a3f5-6c8b0d2e4f02"])
    title: str = Field(..., examples=["Deep Hip Mobility"])
    description: Optional[str] = Field(None, examples=["Controlled articular rotations."])
    category: str = Field(..., examples=["mobility"])
    level: str = Field(..., examples=["intermediate"])
    duration: int = Field(..., description="Duration in seconds", examples=[2700])
    duration_formatted: str = Field(..., examples=["45:00"])
    video_url: str = Field(
        ...,
        description="Storage reference of the primary asset",
        examples=["videos-premium/flow.mp4"],
    )
    thumbnail_url: str = Field(
        ...,
        description="Absolute public thumbnail URL",
        examples=["http://localhost:54321/storage/v1/object/public/thumbnails/flow.jpg"],
    )
    is_premium: bool = Field(..., examples=[True])
    status: str = Field(..., examples=["published"])
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_video(cls, video: Video) -> "VideoSchema":
        return cls(
            id=video.id,
            title=video.title,
            description=video.description,
            category=video.category.value,
            level=video.level.value,
            duration=video.duration,
            duration_formatted=format_duration(video.duration),
            video_url=video.video_url,
            thumbnail_url=video.thumbnail_url,
            is_premium=video.is_premium,
            status=video.status.value,
            created_at=video.created_at,
            updated_at=video.updated_at,
        )


class ListMeta(BaseModel):
    """Pagination metadata of a list response."""

    total: int = Field(..., examples=[42])
    limit: int = Field(..., examples=[50])
    offset: int = Field(..., examples=[0])
    count: int = Field(..., description="Items in this page", examples=[42])


class VideoListResponse(BaseModel):
    data: List[VideoSchema]
    meta: ListMeta


class VideoResponse(BaseModel):
    data: VideoSchema


class PlaybackSchema(BaseModel):
    """A playable URL. ``expires_at`` is set for signed premium URLs only."""

    url: str = Field(
        ...,
        examples=["http://localhost:54321/storage/v1/object/public/videos-free/morning-flow.mp4"],
    )
    expires_at: Optional[datetime] = Field(None, examples=["2025-12-25T11:30:00Z"])

    @classmethod
    def from_playable_url(cls, playable_url: PlayableUrl) -> "PlaybackSchema":
        return cls(url=playable_url.url, expires_at=playable_url.expires_at)


class PlaybackResponse(BaseModel):
    data: PlaybackSchema


class ComponentHealth(BaseModel):
    """Health status of a single component."""

    status: Literal["healthy", "unhealthy"] = Field(..., examples=["healthy"])
    latency_ms: Optional[int] = Field(default=None, examples=[3])
    details: Optional[Dict[str, Any]] = Field(default=None, examples=[{"error": "timeout"}])


class HealthResponse(BaseModel):
    """Detailed health check response."""

    status: Literal["healthy", "unhealthy"] = Field(..., examples=["healthy"])
    timestamp: str = Field(..., examples=["2025-12-25T10:30:00Z"])
    version: str = Field(..., examples=["1.0.0"])
    uptime_seconds: float = Field(..., examples=[3600.5])
    components: Dict[str, ComponentHealth]


class LivenessResponse(BaseModel):
    """Simple liveness check response for container orchestration."""

    status: Literal["alive"] = Field(..., examples=["alive"])


class ReadinessResponse(BaseModel):
    """Readiness check response for load balancer integration."""

    status: Literal["ready", "not_ready"] = Field(..., examples=["ready"])
    ready: bool = Field(..., examples=[True])
    message: Optional[str] = Field(default=None, examples=["database not reachable"])


class ErrorBody(BaseModel):
    code: str = Field(
        ...,
        description="Machine-readable error code",
        examples=["NOT_FOUND", "ACCESS_DENIED", "VALIDATION_ERROR"],
    )
    message: str = Field(..., examples=["Video not found"])
    details: Optional[Dict[str, Any]] = Field(
        None, examples=[{"has_access": False, "reason": "PREMIUM_REQUIRED"}]
    )
    request_id: Optional[str] = Field(None, examples=["req_3f2a9c1b7d4e"])


class ErrorResponse(BaseModel):
    """Uniform error payload returned by every endpoint."""

    error: ErrorBody
