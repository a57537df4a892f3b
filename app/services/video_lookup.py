"""Video lookup and admin write service.

Reads go through ``get_video`` and ``list_videos``; both normalize the
thumbnail reference into an absolute public URL. Thumbnails are public
regardless of tier. The primary asset reference stays relative until
playback resolution.

Writes (admin only, enforced by the HTTP layer) validate every field with
the shared validators before touching the repository.
"""

import re
import time
from typing import Any, List, Mapping, Optional

import structlog

from app.core.metrics import MetricsCollector
from app.core.validation import (
    THUMBNAIL_BUCKET,
    FieldError,
    field_validator,
    identifier_validator,
    storage_reference_validator,
)
from app.models.query import QuerySpec
from app.models.role import ViewerRole
from app.models.video import Video, VideoCategory, VideoLevel, VideoPage, VideoStatus
from app.providers.base import Row, StorageGateway, VideoRepository
from app.providers.exceptions import BackendForbiddenError, MalformedRowError

logger = structlog.get_logger(__name__)

ABSOLUTE_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

WRITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "category",
        "level",
        "duration",
        "video_url",
        "thumbnail_url",
        "is_premium",
        "status",
    }
)
REQUIRED_FIELDS = (
    "title",
    "category",
    "level",
    "duration",
    "video_url",
    "thumbnail_url",
)


class InvalidInputError(Exception):
    """Raised when an identifier is malformed. No I/O has happened."""

    def __init__(self, message: str, field: str = "id"):
        self.field = field
        super().__init__(message)


class VideoValidationError(Exception):
    """Raised when an admin write payload has invalid fields."""

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        fields = ", ".join(error.field for error in errors)
        super().__init__(f"Invalid video fields: {fields}")


class VideoNotFoundError(Exception):
    """Raised when an admin write targets a missing video."""

    def __init__(self, video_id: str):
        self.video_id = video_id
        super().__init__(f"Video {video_id} not found")


class VideoLookupService:
    """Fetches videos from the repository and validates admin writes."""

    def __init__(
        self,
        repository: VideoRepository,
        gateway: StorageGateway,
        thumbnail_bucket: str = THUMBNAIL_BUCKET,
    ) -> None:
        self._repository = repository
        self._gateway = gateway
        self._thumbnail_bucket = thumbnail_bucket

    async def get_video(self, video_id: Any) -> Optional[Video]:
        """
        Fetch one video by id.

        Args:
            video_id: Candidate UUID v4

        Returns:
            The video with an absolute thumbnail URL, or None when the
            video does not exist or the backend refused to show it

        Raises:
            InvalidInputError: If video_id is not a UUID v4
            StorageUnavailableError: If the repository cannot be reached
        """
        normalized_id = self._validate_id(video_id)

        started = time.perf_counter()
        try:
            row = await self._repository.fetch_video_row(normalized_id)
        except BackendForbiddenError as e:
            # Keep the raw error visible; the caller only ever sees "not found"
            logger.warning("lookup_backend_forbidden", video_id=normalized_id, error=str(e))
            return None
        finally:
            MetricsCollector.record_lookup(time.perf_counter() - started)

        if row is None:
            logger.debug("video_not_found", video_id=normalized_id)
            return None

        return self._normalize(self._parse_row(row))

    async def get_visible_video(
        self, video_id: Any, viewer_role: Optional[ViewerRole]
    ) -> Optional[Video]:
        """
        Fetch a video the way row-level security would show it.

        Unpublished videos exist only for admins; everyone else gets None,
        exactly as for a missing id.
        """
        video = await self.get_video(video_id)
        if video is None:
            return None
        if viewer_role != ViewerRole.ADMIN and not video.is_published:
            logger.debug("video_hidden", video_id=video.id, status=video.status.value)
            return None
        return video

    async def list_videos(self, spec: QuerySpec) -> VideoPage:
        """Fetch one page of the catalog for a validated query."""
        rows, total = await self._repository.fetch_video_rows(spec)
        videos = [self._normalize(self._parse_row(row)) for row in rows]
        return VideoPage(videos=videos, total=total)

    async def create_video(self, payload: Mapping[str, Any]) -> Video:
        """
        Create a video. New videos default to ``draft`` and free tier.

        Raises:
            VideoValidationError: If any field is invalid or missing
            DuplicateVideoError: If the repository reports a duplicate
        """
        values = self._validate_payload(payload, require_all=True)
        values.setdefault("is_premium", False)
        values.setdefault("status", VideoStatus.DRAFT.value)
        values.setdefault("description", None)
        self._check_tier_prefix(values, values)

        row = await self._repository.insert_video_row(values)
        video = self._parse_row(row)
        logger.info("video_created", video_id=video.id, is_premium=video.is_premium)
        return self._normalize(video)

    async def update_video(self, video_id: Any, payload: Mapping[str, Any]) -> Video:
        """
        Replace every writable field of a video.

        Omitted optional fields reset to the defaults ``create_video`` uses:
        free tier, ``draft`` status and no description.
        """
        normalized_id = self._validate_id(video_id)
        values = self._validate_payload(payload, require_all=True)
        values.setdefault("is_premium", False)
        values.setdefault("status", VideoStatus.DRAFT.value)
        values.setdefault("description", None)
        self._check_tier_prefix(values, values)
        return await self._write(normalized_id, values)

    async def patch_video(self, video_id: Any, payload: Mapping[str, Any]) -> Video:
        """
        Update the given fields of a video.

        The storage prefix rule is checked against the merged record, so
        flipping ``is_premium`` alone is rejected unless ``video_url`` moves
        along with it.
        """
        normalized_id = self._validate_id(video_id)
        values = self._validate_payload(payload, require_all=False)

        if "video_url" in values or "is_premium" in values:
            current = await self._repository.fetch_video_row(normalized_id)
            if current is None:
                raise VideoNotFoundError(normalized_id)
            merged = dict(current)
            merged.update(values)
            self._check_tier_prefix(merged, values)

        return await self._write(normalized_id, values)

    async def delete_video(self, video_id: Any) -> None:
        normalized_id = self._validate_id(video_id)
        deleted = await self._repository.delete_video_row(normalized_id)
        if not deleted:
            raise VideoNotFoundError(normalized_id)
        logger.info("video_deleted", video_id=normalized_id)

    async def _write(self, video_id: str, values: Row) -> Video:
        row = await self._repository.update_video_row(video_id, values)
        if row is None:
            raise VideoNotFoundError(video_id)
        video = self._parse_row(row)
        logger.info("video_updated", video_id=video.id, fields=sorted(values))
        return self._normalize(video)

    def _validate_id(self, video_id: Any) -> str:
        result = identifier_validator.validate(video_id)
        if not result.is_valid:
            raise InvalidInputError(result.error_message or "Invalid video ID")
        return result.value

    def _validate_payload(self, payload: Mapping[str, Any], require_all: bool) -> Row:
        errors: List[FieldError] = []
        values: Row = {}

        for name in sorted(set(payload) - WRITABLE_FIELDS):
            errors.append(FieldError(name, "Unknown field"))

        if require_all:
            for name in REQUIRED_FIELDS:
                if payload.get(name) is None:
                    errors.append(FieldError(name, f"{name} is required"))

        checks = {
            "title": field_validator.validate_title,
            "description": field_validator.validate_description,
            "duration": field_validator.validate_duration,
            "thumbnail_url": storage_reference_validator.validate_thumbnail_reference,
            "category": lambda v: field_validator.validate_enum(v, VideoCategory, "category"),
            "level": lambda v: field_validator.validate_enum(v, VideoLevel, "level"),
            "status": lambda v: field_validator.validate_enum(v, VideoStatus, "status"),
            # Tier agreement is checked once the final is_premium is known
            "video_url": lambda v: storage_reference_validator.validate_video_reference(v, None),
        }

        for name, check in checks.items():
            if name not in payload:
                continue
            if payload[name] is None and name != "description":
                if not require_all or name not in REQUIRED_FIELDS:
                    errors.append(FieldError(name, f"{name} must not be null"))
                continue
            result = check(payload[name])
            if not result.is_valid:
                errors.append(FieldError(name, result.error_message, allowed=result.allowed))
                continue
            values[name] = _to_column(name, payload[name], result.value)

        if "is_premium" in payload:
            if isinstance(payload["is_premium"], bool):
                values["is_premium"] = payload["is_premium"]
            else:
                errors.append(FieldError("is_premium", "is_premium must be a boolean"))

        if errors:
            raise VideoValidationError(errors)
        return values

    def _check_tier_prefix(self, record: Mapping[str, Any], values: Mapping[str, Any]) -> None:
        result = storage_reference_validator.validate_video_reference(
            record.get("video_url"), bool(record.get("is_premium", False))
        )
        if not result.is_valid:
            field = "video_url" if "video_url" in values else "is_premium"
            raise VideoValidationError(
                [FieldError(field, result.error_message, allowed=result.allowed)]
            )

    def _parse_row(self, row: Row) -> Video:
        try:
            return Video.from_row(row)
        except (KeyError, TypeError, ValueError) as e:
            logger.error("malformed_video_row", video_id=row.get("id"), error=str(e))
            raise MalformedRowError(f"Malformed video row: {e}") from e

    def _normalize(self, video: Video) -> Video:
        reference = video.thumbnail_url
        if not reference or ABSOLUTE_URL_PATTERN.match(reference):
            return video
        path = storage_reference_validator.thumbnail_path(reference)
        return video.with_thumbnail(self._gateway.public_url(self._thumbnail_bucket, path))


def _to_column(name: str, raw: Any, parsed: Any) -> Any:
    """Store enums by value and keep the raw reference strings."""
    if name in ("category", "level", "status"):
        return parsed.value
    if name in ("video_url", "thumbnail_url"):
        return raw
    return parsed
