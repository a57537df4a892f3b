"""FastAPI application entry point.

This module assembles all components and creates the main application.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app import __version__
from app.api import health, metrics, videos
from app.core.config import ConfigService, SecurityConfig
from app.core.errors import SERVICE_EXCEPTIONS, APIError, global_exception_handler
from app.core.logging import configure_logging
from app.core.metrics import MetricsCollector, initialize_metrics
from app.core.rate_limiter import configure_rate_limiter
from app.middleware.auth import configure_auth
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from app.providers.base import StorageGateway, VideoRepository
from app.providers.memory import InMemoryVideoRepository
from app.providers.signing import HmacStorageGateway
from app.services.identity import IdentityProvider
from app.services.messages import DEFAULT_LOCALE
from app.services.player_session import DEFAULT_LOOKUP_TIMEOUT, PlayerSession
from app.services.url_resolver import UrlResolutionService
from app.services.video_lookup import VideoLookupService
from app.testing.fixtures import demo_catalog

logger = structlog.get_logger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP request metrics.

    Records request count and duration for all endpoints,
    using FastAPI route templates to normalize paths.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request and record metrics."""
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        # Use fixed label for unmatched routes to prevent unbounded cardinality
        route = request.scope.get("route")
        endpoint = route.path if route else "/unmatched"

        MetricsCollector.record_request(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
            duration=duration,
        )

        return response


# Global service instances
_repository: Optional[VideoRepository] = None
_storage_gateway: Optional[StorageGateway] = None
_lookup_service: Optional[VideoLookupService] = None
_url_resolver: Optional[UrlResolutionService] = None
_lookup_timeout: float = DEFAULT_LOOKUP_TIMEOUT


def get_repository() -> VideoRepository:
    """Get the global video repository instance."""
    if _repository is None:
        raise RuntimeError("Video repository not configured")
    return _repository


def get_storage_gateway() -> StorageGateway:
    """Get the global storage gateway instance."""
    if _storage_gateway is None:
        raise RuntimeError("Storage gateway not configured")
    return _storage_gateway


def get_lookup_service() -> VideoLookupService:
    """Get the global video lookup service instance."""
    if _lookup_service is None:
        raise RuntimeError("Video lookup service not configured")
    return _lookup_service


def get_url_resolver() -> UrlResolutionService:
    """Get the global URL resolution service instance."""
    if _url_resolver is None:
        raise RuntimeError("URL resolver not configured")
    return _url_resolver


def create_player_session(
    identity: Optional[IdentityProvider] = None, locale: str = DEFAULT_LOCALE
) -> PlayerSession:
    """Build a player session on the configured services and lookup timeout."""
    return PlayerSession(
        get_lookup_service(),
        get_url_resolver(),
        identity=identity,
        lookup_timeout=_lookup_timeout,
        locale=locale,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown."""
    global _repository, _storage_gateway, _lookup_service, _url_resolver, _lookup_timeout

    logger.info("Application starting", version=__version__)

    # Initialize metrics with application version
    initialize_metrics(__version__)

    # Load configuration
    config_service = ConfigService()
    config = config_service.load()
    config_service.validate()

    # Configure logging
    configure_logging(config.logging.level, config.logging.format)

    logger.info(
        "Configuration loaded",
        server_port=config.server.port,
        storage_base_url=config.storage.base_url,
    )

    # Configure authentication
    configure_auth(tokens=config.security.tokens)

    # Configure rate limiter
    configure_rate_limiter(
        catalog_rpm=config.rate_limiting.catalog_rpm,
        playback_rpm=config.rate_limiting.playback_rpm,
        burst_capacity=config.rate_limiting.burst_capacity,
    )

    # Configure catalog repository, seeded with the demo catalog in test mode
    seed_rows = demo_catalog() if config.testing.seed_demo_catalog else []
    _repository = InMemoryVideoRepository(seed_rows)
    logger.info("Video repository configured", videos=len(seed_rows))

    # Configure storage gateway
    _storage_gateway = HmacStorageGateway(
        base_url=config.storage.base_url,
        secret=config.storage.signing_secret,
    )

    _lookup_service = VideoLookupService(
        _repository,
        _storage_gateway,
        thumbnail_bucket=config.storage.thumbnail_bucket,
    )
    _lookup_timeout = config.timeouts.lookup
    _url_resolver = UrlResolutionService(
        _storage_gateway,
        signed_url_ttl=config.storage.signed_url_ttl,
        free_bucket=config.storage.free_bucket,
        premium_bucket=config.storage.premium_bucket,
        cache_size=config.storage.public_url_cache_size,
    )
    logger.info(
        "Playback services configured",
        signed_url_ttl=config.storage.signed_url_ttl,
        lookup_timeout=config.timeouts.lookup,
    )

    logger.info("Application startup complete", version=__version__)

    yield

    logger.info("Application shutting down")

    _lookup_service = None
    _url_resolver = None
    _storage_gateway = None
    _repository = None

    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Video Access API",
        description="Tiered video-on-demand catalog with role-gated playback URLs",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Add CORS middleware with configurable origins
    # Default ["*"] for development; override via APP_SECURITY_CORS_ORIGINS env var
    security_config = SecurityConfig()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=security_config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    # Add metrics middleware (before rate limiting to capture all requests)
    app.add_middleware(MetricsMiddleware)

    # Add rate limiting middleware
    app.add_middleware(RateLimitMiddleware)

    # Outermost, so rate limit responses carry the request ID too
    app.add_middleware(RequestIDMiddleware)

    # Register global exception handlers
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(APIError, global_exception_handler)
    app.add_exception_handler(RequestValidationError, global_exception_handler)
    app.add_exception_handler(StarletteHTTPException, global_exception_handler)
    for exc_type in SERVICE_EXCEPTIONS:
        app.add_exception_handler(exc_type, global_exception_handler)

    # Override dependency injection for routers
    app.dependency_overrides[videos.get_lookup_service] = get_lookup_service
    app.dependency_overrides[videos.get_url_resolver] = get_url_resolver
    app.dependency_overrides[health.get_repository] = get_repository
    app.dependency_overrides[health.get_storage_gateway] = get_storage_gateway

    # Register routers
    app.include_router(health.router)
    app.include_router(videos.router)
    app.include_router(metrics.router)

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn  # type: ignore[import-not-found]

    uvicorn.run(app, host="0.0.0.0", port=8000)  # nosec B104
