"""Middleware package for the API."""

from app.middleware.auth import TokenAuth, get_viewer_role, require_admin
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware

__all__ = [
    "TokenAuth",
    "get_viewer_role",
    "require_admin",
    "RateLimitMiddleware",
    "RequestIDMiddleware",
]
