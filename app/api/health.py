"""Health check endpoints.

``/health`` verifies the catalog repository and the storage gateway.
``/liveness`` and ``/readiness`` are the container probes.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Literal

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app import __version__
from app.api.schemas import ComponentHealth, HealthResponse, LivenessResponse, ReadinessResponse
from app.providers.base import StorageGateway, VideoRepository

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["health"])

# Budget for each component ping
CHECK_TIMEOUT_SECONDS = 2.0

# Track application start time for uptime calculation
_start_time: float = time.time()


def reset_start_time() -> None:
    """Reset the start time (for testing)."""
    global _start_time
    _start_time = time.time()


# Dependency placeholders, overridden in create_app
async def get_repository() -> VideoRepository:
    raise NotImplementedError("Repository dependency not configured")


async def get_storage_gateway() -> StorageGateway:
    raise NotImplementedError("Storage gateway dependency not configured")


async def _check_component(name: str, ping: Callable[[], Awaitable[bool]]) -> ComponentHealth:
    """Ping one component and time it."""
    started = time.perf_counter()
    try:
        reachable = await asyncio.wait_for(ping(), timeout=CHECK_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        return ComponentHealth(
            status="unhealthy",
            details={"error": f"{name} check timed out (>{CHECK_TIMEOUT_SECONDS:g}s)"},
        )
    except Exception as e:
        # Log server-side, don't expose internals to clients
        logger.warning("health_check_failed", component=name, error=str(e))
        return ComponentHealth(status="unhealthy", details={"error": f"{name} check failed"})

    latency_ms = int((time.perf_counter() - started) * 1000)
    if reachable:
        return ComponentHealth(status="healthy", latency_ms=latency_ms)
    return ComponentHealth(
        status="unhealthy",
        latency_ms=latency_ms,
        details={"error": f"{name} not reachable"},
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        200: {"description": "All components healthy"},
        503: {"description": "One or more components unhealthy"},
    },
)
async def health_check(
    repository: VideoRepository = Depends(get_repository),  # noqa: B008
    gateway: StorageGateway = Depends(get_storage_gateway),  # noqa: B008
) -> JSONResponse:
    """
    Detailed health check endpoint.

    Verifies the catalog database and the object storage gateway.
    Returns HTTP 200 if all components are healthy,
    HTTP 503 if any component is unhealthy.
    """
    database_health, storage_health = await asyncio.gather(
        _check_component("database", repository.ping),
        _check_component("storage", gateway.ping),
    )
    components = {"database": database_health, "storage": storage_health}

    all_healthy = all(c.status == "healthy" for c in components.values())
    overall_status: Literal["healthy", "unhealthy"] = "healthy" if all_healthy else "unhealthy"

    response = HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        uptime_seconds=round(time.time() - _start_time, 2),
        components=components,
    )

    status_code = status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE

    logger.info(
        "health_check_completed",
        status=overall_status,
        components={k: v.status for k, v in components.items()},
    )

    return JSONResponse(content=response.model_dump(), status_code=status_code)


@router.get("/liveness", response_model=LivenessResponse)
async def liveness_check() -> LivenessResponse:
    """
    Liveness probe endpoint.

    Returns HTTP 200 if the process is alive.
    """
    return LivenessResponse(status="alive")


@router.get(
    "/readiness",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Service is ready to accept traffic"},
        503: {"description": "Service is not ready"},
    },
)
async def readiness_check(
    repository: VideoRepository = Depends(get_repository),  # noqa: B008
) -> JSONResponse:
    """
    Readiness probe endpoint.

    Ready once the catalog database answers. Storage outages only affect
    premium playback, so they don't take the instance out of rotation.
    """
    database_health = await _check_component("database", repository.ping)

    if database_health.status != "healthy":
        response = ReadinessResponse(
            status="not_ready",
            ready=False,
            message="Database not reachable",
        )
        return JSONResponse(
            content=response.model_dump(),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return JSONResponse(
        content=ReadinessResponse(status="ready", ready=True).model_dump(),
        status_code=status.HTTP_200_OK,
    )
