"""Rate limiting middleware for FastAPI.

Checks each catalog and playback request against the token bucket limiter
and answers HTTP 429 with a Retry-After header when a bucket is empty.
"""

from typing import FrozenSet, Optional

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from app.core.errors import ErrorCode, build_error_response
from app.core.metrics import MetricsCollector
from app.core.rate_limiter import RateLimiter, get_rate_limiter
from app.middleware.auth import caller_key

logger = structlog.get_logger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """HTTP middleware enforcing per-caller rate limits.

    Probe, docs and metrics paths are never limited.
    """

    DEFAULT_EXCLUDED_PATHS: FrozenSet[str] = frozenset(
        {
            "/health",
            "/liveness",
            "/readiness",
            "/docs",
            "/redoc",
            "/openapi.json",
            "/metrics",
        }
    )

    def __init__(
        self,
        app: ASGIApp,
        rate_limiter: Optional[RateLimiter] = None,
        excluded_paths: Optional[FrozenSet[str]] = None,
    ) -> None:
        """Initialize rate limit middleware.

        Args:
            app: The ASGI application
            rate_limiter: RateLimiter instance. Uses the global instance if not provided.
            excluded_paths: Paths to exclude from rate limiting.
        """
        super().__init__(app)
        self._rate_limiter = rate_limiter
        self.excluded_paths = excluded_paths or self.DEFAULT_EXCLUDED_PATHS

    @property
    def rate_limiter(self) -> RateLimiter:
        # Resolved per request so a limiter configured at startup is picked up
        return self._rate_limiter or get_rate_limiter()

    def _is_excluded_path(self, path: str) -> bool:
        normalized = path.rstrip("/") or "/"
        return any(
            normalized == excluded or normalized.startswith(excluded + "/")
            for excluded in self.excluded_paths
        )

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        path = request.url.path

        if self._is_excluded_path(path):
            return await call_next(request)

        limiter = self.rate_limiter
        category = limiter.get_endpoint_category(path)
        if category is None:
            return await call_next(request)

        caller = caller_key(request)
        allowed, retry_after = await limiter.check_rate_limit(caller, category)

        if not allowed:
            logger.warning(
                "rate_limit_exceeded",
                path=path,
                category=category,
                caller=caller,
                retry_after=retry_after,
                client_ip=request.client.host if request.client else "unknown",
            )
            MetricsCollector.record_rate_limit_exceeded(category)

            return JSONResponse(
                status_code=429,
                headers={"Retry-After": str(int(retry_after) + 1)},
                content=build_error_response(
                    ErrorCode.RATE_LIMIT_EXCEEDED,
                    f"Rate limit exceeded for {category} requests",
                    details={"retry_after": round(retry_after, 2), "category": category},
                ),
            )

        return await call_next(request)
