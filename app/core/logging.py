"""Structured logging configuration with request and viewer context propagation"""

import contextvars
import hashlib
import logging
import sys
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog

# Context variable for request_id propagation
request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)

# Caller role and requested video, bound per request by the auth dependency
# and the video routes
viewer_role_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "viewer_role", default=None
)
video_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "video_id", default=None
)

ANONYMOUS_ROLE = "anonymous"


def hash_token(token: str) -> str:
    """
    Hash a bearer token for safe logging

    Args:
        token: The token to hash

    Returns:
        Hashed token in format "sha256:first16chars"
    """
    return f"sha256:{hashlib.sha256(token.encode()).hexdigest()[:16]}"


def add_request_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Structlog processor adding request_id from the context variable"""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_viewer_context(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Structlog processor adding viewer_role and video_id; explicit fields win"""
    viewer_role = viewer_role_var.get()
    if viewer_role:
        event_dict.setdefault("viewer_role", viewer_role)
    video_id = video_id_var.get()
    if video_id:
        event_dict.setdefault("video_id", video_id)
    return event_dict


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Configure structured logging with structlog

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" or "console")
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_request_id,
        add_viewer_context,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: Any
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance"""
    return structlog.get_logger(name)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set request_id in context variable

    Args:
        request_id: Optional request ID, generated if not provided

    Returns:
        The request_id that was set
    """
    if request_id is None:
        request_id = f"req_{uuid4().hex[:12]}"
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    """Get current request_id from context variable"""
    return request_id_var.get()


def clear_request_id() -> None:
    """Clear request_id from context variable"""
    request_id_var.set(None)


def bind_viewer_context(role: Optional[str] = None, video_id: Optional[str] = None) -> None:
    """
    Bind the caller's role and the requested video to the logging context

    Args:
        role: Role value, or ANONYMOUS_ROLE for callers without a token
        video_id: ID of the video the request is about
    """
    if role is not None:
        viewer_role_var.set(role)
    if video_id is not None:
        video_id_var.set(video_id)


def clear_viewer_context() -> None:
    viewer_role_var.set(None)
    video_id_var.set(None)
