"""Prometheus metrics endpoint for scraping."""

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["monitoring"])


@router.get(
    "/metrics",
    response_class=Response,
    summary="Prometheus metrics endpoint",
    description="Returns request, access decision and playback URL metrics in "
    "Prometheus text format. This endpoint does not require authentication.",
)
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Unauthenticated and exempt from rate limiting so scrapers need no
    bearer token.
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
