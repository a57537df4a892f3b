"""Data models for the application."""

from app.models.access import GRANTED, AccessVerdict, DenialReason, PlayableUrl
from app.models.query import QuerySpec, SortField, SortOrder
from app.models.role import ViewerRole, parse_role, role_rank, role_satisfies
from app.models.video import (
    Video,
    VideoCategory,
    VideoLevel,
    VideoPage,
    VideoStatus,
    format_duration,
)

__all__ = [
    "AccessVerdict",
    "DenialReason",
    "GRANTED",
    "PlayableUrl",
    "QuerySpec",
    "SortField",
    "SortOrder",
    "Video",
    "VideoCategory",
    "VideoLevel",
    "VideoPage",
    "VideoStatus",
    "ViewerRole",
    "format_duration",
    "parse_role",
    "role_rank",
    "role_satisfies",
]
