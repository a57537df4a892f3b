"""Input validation utilities shared by the catalog query builder and admin writes.

Every check returns a ``ValidationResult`` instead of raising, so callers can
collect several field errors before reporting them together.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Type

import structlog

logger = structlog.get_logger(__name__)

FREE_VIDEO_BUCKET = "videos-free"
PREMIUM_VIDEO_BUCKET = "videos-premium"
THUMBNAIL_BUCKET = "thumbnails"

TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 5000
DURATION_MIN = 1
DURATION_MAX = 7200  # 2 hours


@dataclass(frozen=True)
class ValidationResult:
    """Result of a validation operation."""

    is_valid: bool
    error_message: Optional[str] = None
    value: Any = None
    allowed: Optional[List[str]] = None


@dataclass(frozen=True)
class FieldError:
    """A validation failure tied to one input field."""

    field: str
    message: str
    allowed: Optional[List[str]] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"field": self.field, "message": self.message}
        if self.allowed is not None:
            result["allowed_values"] = self.allowed
        result.update(self.details)
        return result


@dataclass(frozen=True)
class StorageReference:
    """A parsed ``{bucket}/{filename}.{ext}`` asset reference."""

    bucket: str
    path: str


class IdentifierValidator:
    """Validates video identifiers (UUID v4)."""

    UUID_V4_PATTERN = re.compile(
        r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
        re.IGNORECASE,
    )

    def validate(self, value: Any) -> ValidationResult:
        if not value or not isinstance(value, str):
            return ValidationResult(is_valid=False, error_message="Video ID is required")
        if not self.UUID_V4_PATTERN.match(value):
            return ValidationResult(is_valid=False, error_message="Invalid UUID format")
        return ValidationResult(is_valid=True, value=value.lower())

    def is_valid(self, value: Any) -> bool:
        return self.validate(value).is_valid


class StorageReferenceValidator:
    """Validates storage references for primary assets and thumbnails.

    Primary assets live in ``videos-free/`` or ``videos-premium/`` and the
    prefix must agree with the video's tier. Thumbnails always live in
    ``thumbnails/``.
    """

    VIDEO_PATTERN = re.compile(r"^(videos-free|videos-premium)/([^/]+\.mp4)$")
    THUMBNAIL_PATTERN = re.compile(r"^thumbnails/([^/]+\.(?:jpg|png|webp))$")
    BARE_VIDEO_PATTERN = re.compile(r"^([^/]+\.mp4)$")

    def validate_video_reference(self, value: Any, is_premium: Optional[bool]) -> ValidationResult:
        """
        Validate a primary asset reference at write time.

        Args:
            value: Reference such as ``videos-premium/flow.mp4``
            is_premium: Tier of the video, or None when the tier is unknown

        Returns:
            ValidationResult whose value is the StorageReference
        """
        if not value or not isinstance(value, str):
            return ValidationResult(is_valid=False, error_message="video_url is required")

        match = self.VIDEO_PATTERN.match(value)
        if not match or ".." in value:
            return ValidationResult(
                is_valid=False,
                error_message=(
                    "Invalid video URL format. Must be: videos-free/filename.mp4 "
                    "or videos-premium/filename.mp4"
                ),
            )

        bucket = match.group(1)
        if is_premium is not None:
            expected = PREMIUM_VIDEO_BUCKET if is_premium else FREE_VIDEO_BUCKET
            if bucket != expected:
                return ValidationResult(
                    is_valid=False,
                    error_message=(
                        f"{'Premium' if is_premium else 'Free'} videos must be stored "
                        f"under {expected}/"
                    ),
                    allowed=[expected],
                )

        return ValidationResult(
            is_valid=True, value=StorageReference(bucket=bucket, path=match.group(2))
        )

    def validate_thumbnail_reference(self, value: Any) -> ValidationResult:
        if not value or not isinstance(value, str):
            return ValidationResult(is_valid=False, error_message="thumbnail_url is required")

        match = self.THUMBNAIL_PATTERN.match(value)
        if not match or ".." in value:
            return ValidationResult(
                is_valid=False,
                error_message=(
                    "Invalid thumbnail URL format. Must be: thumbnails/filename.jpg "
                    "(or .png, .webp)"
                ),
            )
        return ValidationResult(
            is_valid=True, value=StorageReference(bucket=THUMBNAIL_BUCKET, path=match.group(1))
        )

    def resolve_video_reference(self, value: Any, is_premium: bool) -> ValidationResult:
        """
        Parse a stored primary asset reference for playback.

        Tolerates a leading slash and a missing bucket prefix (legacy rows),
        but never a prefix that contradicts the tier.

        Args:
            value: Stored reference
            is_premium: Tier of the video

        Returns:
            ValidationResult whose value is the StorageReference
        """
        if not value or not isinstance(value, str):
            return ValidationResult(is_valid=False, error_message="Storage reference is empty")

        reference = value[1:] if value.startswith("/") else value
        expected = PREMIUM_VIDEO_BUCKET if is_premium else FREE_VIDEO_BUCKET

        bare = self.BARE_VIDEO_PATTERN.match(reference)
        if bare:
            return ValidationResult(
                is_valid=True, value=StorageReference(bucket=expected, path=bare.group(1))
            )

        result = self.validate_video_reference(reference, is_premium)
        if not result.is_valid:
            logger.debug("Storage reference rejected", reference=value, is_premium=is_premium)
        return result

    def thumbnail_path(self, value: str) -> str:
        """Strip a leading slash and the thumbnail bucket prefix."""
        path = value[1:] if value.startswith("/") else value
        prefix = f"{THUMBNAIL_BUCKET}/"
        return path[len(prefix) :] if path.startswith(prefix) else path


class FieldValidator:
    """Validates scalar request fields against closed sets and numeric bounds."""

    TRUE_VALUES = frozenset({"true", "1"})
    FALSE_VALUES = frozenset({"false", "0"})

    def validate_enum(self, value: Any, enum_cls: Type[Enum], name: str) -> ValidationResult:
        """
        Validate a value against a closed enum. Values are never coerced.

        Args:
            value: Raw value
            enum_cls: Enum type listing the allowed values
            name: Field name for error messages

        Returns:
            ValidationResult whose value is the enum member
        """
        allowed = [member.value for member in enum_cls]
        if isinstance(value, enum_cls):
            return ValidationResult(is_valid=True, value=value)
        try:
            member = enum_cls(value)
        except ValueError:
            return ValidationResult(
                is_valid=False,
                error_message=f"{name.capitalize()} must be one of: {', '.join(allowed)}",
                allowed=allowed,
            )
        return ValidationResult(is_valid=True, value=member)

    def validate_int_range(
        self,
        value: Any,
        name: str,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
    ) -> ValidationResult:
        """
        Validate an integer inside an inclusive range.

        Accepts ints and decimal strings; rejects bools, floats and
        non-numeric strings.
        """
        parsed: Optional[int] = None
        if isinstance(value, bool):
            parsed = None
        elif isinstance(value, int):
            parsed = value
        elif isinstance(value, str) and re.fullmatch(r"[+-]?\d+", value.strip()):
            parsed = int(value.strip())

        if parsed is None:
            return ValidationResult(
                is_valid=False, error_message=f"{name.capitalize()} must be an integer"
            )

        if min_value is not None and parsed < min_value:
            return ValidationResult(
                is_valid=False, error_message=f"{name.capitalize()} must be at least {min_value}"
            )
        if max_value is not None and parsed > max_value:
            return ValidationResult(
                is_valid=False,
                error_message=f"{name.capitalize()} must not exceed {max_value}",
            )
        return ValidationResult(is_valid=True, value=parsed)

    def validate_bool(self, value: Any, name: str) -> ValidationResult:
        if isinstance(value, bool):
            return ValidationResult(is_valid=True, value=value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in self.TRUE_VALUES:
                return ValidationResult(is_valid=True, value=True)
            if lowered in self.FALSE_VALUES:
                return ValidationResult(is_valid=True, value=False)
        return ValidationResult(
            is_valid=False,
            error_message=f"{name} must be a boolean",
            allowed=["true", "false"],
        )

    def validate_title(self, value: Any) -> ValidationResult:
        if not isinstance(value, str) or not value.strip():
            return ValidationResult(is_valid=False, error_message="Title is required")
        if len(value) > TITLE_MAX_LENGTH:
            return ValidationResult(
                is_valid=False,
                error_message=f"Title must not exceed {TITLE_MAX_LENGTH} characters",
            )
        return ValidationResult(is_valid=True, value=value)

    def validate_description(self, value: Any) -> ValidationResult:
        if value is None:
            return ValidationResult(is_valid=True, value=None)
        if not isinstance(value, str):
            return ValidationResult(is_valid=False, error_message="Description must be a string")
        if len(value) > DESCRIPTION_MAX_LENGTH:
            return ValidationResult(
                is_valid=False,
                error_message=f"Description must not exceed {DESCRIPTION_MAX_LENGTH} characters",
            )
        return ValidationResult(is_valid=True, value=value)

    def validate_duration(self, value: Any) -> ValidationResult:
        # JSON bodies must carry a real integer, not a numeric string
        if not isinstance(value, int) or isinstance(value, bool):
            return ValidationResult(is_valid=False, error_message="Duration must be an integer")
        return self.validate_int_range(value, "duration", DURATION_MIN, DURATION_MAX)


# Singleton instances for convenience
identifier_validator = IdentifierValidator()
storage_reference_validator = StorageReferenceValidator()
field_validator = FieldValidator()
