"""Catalog list/filter query builder.

Turns raw request parameters into a bounded ``QuerySpec``. Invalid enum
values and out-of-range numbers are rejected, never clamped or coerced.
All field errors are collected and reported together.
"""

from typing import Any, List, Mapping, Optional

import structlog

from app.core.validation import FieldError, field_validator
from app.models.query import (
    DEFAULT_LIMIT,
    DEFAULT_OFFSET,
    MAX_LIMIT,
    MIN_LIMIT,
    QuerySpec,
    SortField,
    SortOrder,
)
from app.models.role import ViewerRole
from app.models.video import VideoCategory, VideoLevel, VideoStatus

logger = structlog.get_logger(__name__)


class QueryValidationError(Exception):
    """Raised when one or more query parameters are invalid."""

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        fields = ", ".join(error.field for error in errors)
        super().__init__(f"Invalid query parameters: {fields}")


def _present(value: Any) -> bool:
    return value is not None and value != ""


def build_query(raw_params: Mapping[str, Any], viewer_role: Optional[ViewerRole]) -> QuerySpec:
    """
    Validate raw list parameters into a QuerySpec.

    Non-admin callers always get ``status = published``. An explicit
    non-published status from a non-admin is a field error; an admin with
    no status filter sees every status.

    Args:
        raw_params: Query parameters as received (strings or native values)
        viewer_role: Role of the caller, or None for anonymous

    Returns:
        The validated QuerySpec

    Raises:
        QueryValidationError: With one FieldError per invalid parameter
    """
    errors: List[FieldError] = []
    values: dict = {}

    for name, enum_cls in (("category", VideoCategory), ("level", VideoLevel)):
        raw = raw_params.get(name)
        if _present(raw):
            result = field_validator.validate_enum(raw, enum_cls, name)
            if result.is_valid:
                values[name] = result.value
            else:
                errors.append(FieldError(name, result.error_message, allowed=result.allowed))

    raw_premium = raw_params.get("is_premium")
    if _present(raw_premium):
        result = field_validator.validate_bool(raw_premium, "is_premium")
        if result.is_valid:
            values["is_premium"] = result.value
        else:
            errors.append(FieldError("is_premium", result.error_message, allowed=result.allowed))

    status_error = _resolve_status(raw_params.get("status"), viewer_role, values)
    if status_error is not None:
        errors.append(status_error)

    for name, min_value, max_value, default in (
        ("limit", MIN_LIMIT, MAX_LIMIT, DEFAULT_LIMIT),
        ("offset", 0, None, DEFAULT_OFFSET),
    ):
        raw = raw_params.get(name)
        if not _present(raw):
            values[name] = default
            continue
        result = field_validator.validate_int_range(raw, name, min_value, max_value)
        if result.is_valid:
            values[name] = result.value
        else:
            details = {"min": min_value}
            if max_value is not None:
                details["max"] = max_value
            errors.append(FieldError(name, result.error_message, details=details))

    for name, enum_cls in (("sort", SortField), ("order", SortOrder)):
        raw = raw_params.get(name)
        if _present(raw):
            result = field_validator.validate_enum(raw, enum_cls, name)
            if result.is_valid:
                values[name] = result.value
            else:
                errors.append(FieldError(name, result.error_message, allowed=result.allowed))

    if errors:
        logger.info(
            "query_validation_failed",
            fields=[error.field for error in errors],
            role=viewer_role.value if viewer_role else None,
        )
        raise QueryValidationError(errors)

    return QuerySpec(**values)


def _resolve_status(
    raw: Any, viewer_role: Optional[ViewerRole], values: dict
) -> Optional[FieldError]:
    """Apply the admin-only status filter. Returns a FieldError or None."""
    if viewer_role != ViewerRole.ADMIN:
        values["status"] = VideoStatus.PUBLISHED
        if _present(raw) and raw != VideoStatus.PUBLISHED.value:
            return FieldError(
                "status",
                "Status filter is only available to admins",
                allowed=[VideoStatus.PUBLISHED.value],
            )
        return None

    if not _present(raw):
        values["status"] = None
        return None

    result = field_validator.validate_enum(raw, VideoStatus, "status")
    if not result.is_valid:
        return FieldError("status", result.error_message, allowed=result.allowed)
    values["status"] = result.value
    return None
