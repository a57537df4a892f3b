"""Video catalog and playback endpoints.

Reads are open to every viewer, with visibility and playback decided by
the viewer role. Writes are admin only.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Path, Query, Request, Response, status

from app.api.schemas import (
    ErrorResponse,
    ListMeta,
    PlaybackResponse,
    PlaybackSchema,
    VideoListResponse,
    VideoResponse,
    VideoSchema,
)
from app.core.errors import APIError, ErrorCode
from app.core.logging import bind_viewer_context
from app.middleware.auth import get_viewer_role, require_admin
from app.models.role import ViewerRole
from app.services.query_builder import build_query
from app.services.url_resolver import UrlResolutionService
from app.services.video_lookup import VideoLookupService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["videos"])

ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    404: {"model": ErrorResponse, "description": "Video not found"},
}
ADMIN_RESPONSES: Dict[int, Dict[str, Any]] = {
    **ERROR_RESPONSES,
    401: {"model": ErrorResponse, "description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Admin role required"},
}


# Dependency placeholders, overridden in create_app
async def get_lookup_service() -> VideoLookupService:
    raise NotImplementedError("Video lookup service dependency not configured")


async def get_url_resolver() -> UrlResolutionService:
    raise NotImplementedError("URL resolver dependency not configured")


def _not_found(video_id: str) -> APIError:
    return APIError(
        ErrorCode.NOT_FOUND,
        "Video not found or you don't have permission to access it",
        {"video_id": video_id},
    )


@router.get("/videos", response_model=VideoListResponse, responses={400: ERROR_RESPONSES[400]})
async def list_videos(
    request: Request,
    category: Optional[str] = Query(None, description="yoga, mobility, calisthenics"),  # noqa: B008
    level: Optional[str] = Query(None, description="beginner to advanced"),  # noqa: B008
    is_premium: Optional[str] = Query(None, description="true or false"),  # noqa: B008
    video_status: Optional[str] = Query(  # noqa: B008
        None, alias="status", description="Admin only: draft, published or archived"
    ),
    limit: Optional[str] = Query(None, description="1..100, default 50"),  # noqa: B008
    offset: Optional[str] = Query(None, description=">= 0, default 0"),  # noqa: B008
    sort: Optional[str] = Query(None, description="created_at, title or duration"),  # noqa: B008
    order: Optional[str] = Query(None, description="asc or desc"),  # noqa: B008
    role: Optional[ViewerRole] = Depends(get_viewer_role),  # noqa: B008
    lookup: VideoLookupService = Depends(get_lookup_service),  # noqa: B008
) -> VideoListResponse:
    """
    List catalog videos.

    Parameters are validated strictly: unknown enum values and out-of-range
    numbers are rejected with field-tagged errors rather than coerced.
    Non-admin callers only ever see published videos.
    """
    raw_params = {
        "category": category,
        "level": level,
        "is_premium": is_premium,
        "status": video_status,
        "limit": limit,
        "offset": offset,
        "sort": sort,
        "order": order,
    }
    spec = build_query(raw_params, role)
    page = await lookup.list_videos(spec)

    logger.info(
        "videos_listed",
        role=role.value if role else None,
        total=page.total,
        count=len(page.videos),
        path=request.url.path,
    )

    return VideoListResponse(
        data=[VideoSchema.from_video(video) for video in page.videos],
        meta=ListMeta(
            total=page.total,
            limit=spec.limit,
            offset=spec.offset,
            count=len(page.videos),
        ),
    )


@router.get("/videos/{video_id}", response_model=VideoResponse, responses=ERROR_RESPONSES)
async def get_video(
    video_id: str = Path(..., description="Video UUID"),  # noqa: B008
    role: Optional[ViewerRole] = Depends(get_viewer_role),  # noqa: B008
    lookup: VideoLookupService = Depends(get_lookup_service),  # noqa: B008
) -> VideoResponse:
    """
    Get one video's metadata.

    Missing videos and videos the caller may not see both answer 404.
    Premium metadata is visible to everyone; playback is gated separately.
    """
    bind_viewer_context(video_id=video_id)
    video = await lookup.get_visible_video(video_id, role)
    if video is None:
        raise _not_found(video_id)
    return VideoResponse(data=VideoSchema.from_video(video))


@router.get(
    "/videos/{video_id}/playback",
    response_model=PlaybackResponse,
    responses={
        **ERROR_RESPONSES,
        403: {"model": ErrorResponse, "description": "Premium role required"},
        500: {"model": ErrorResponse, "description": "Storage or database failure"},
    },
)
async def get_playback_url(
    video_id: str = Path(..., description="Video UUID"),  # noqa: B008
    role: Optional[ViewerRole] = Depends(get_viewer_role),  # noqa: B008
    lookup: VideoLookupService = Depends(get_lookup_service),  # noqa: B008
    resolver: UrlResolutionService = Depends(get_url_resolver),  # noqa: B008
) -> PlaybackResponse:
    """
    Get a playable URL.

    Free videos get a permanent public URL. Premium videos get a signed URL
    valid for one hour; call again for a new one after it expires. A
    published premium video requested without the premium role answers 403
    with the denial reason.
    """
    bind_viewer_context(video_id=video_id)
    video = await lookup.get_visible_video(video_id, role)
    if video is None:
        raise _not_found(video_id)

    playable_url = await resolver.resolve_for_viewer(video, role)
    logger.info(
        "playback_url_issued",
        video_id=video.id,
        is_premium=video.is_premium,
        role=role.value if role else None,
    )
    return PlaybackResponse(data=PlaybackSchema.from_playable_url(playable_url))


@router.post(
    "/videos",
    response_model=VideoResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**ADMIN_RESPONSES, 409: {"model": ErrorResponse, "description": "Duplicate"}},
)
async def create_video(
    payload: Dict[str, Any] = Body(...),  # noqa: B008
    admin: ViewerRole = Depends(require_admin),  # noqa: B008
    lookup: VideoLookupService = Depends(get_lookup_service),  # noqa: B008
) -> VideoResponse:
    """Create a video. Defaults to draft status and free tier."""
    video = await lookup.create_video(payload)
    return VideoResponse(data=VideoSchema.from_video(video))


@router.put("/videos/{video_id}", response_model=VideoResponse, responses=ADMIN_RESPONSES)
async def replace_video(
    video_id: str = Path(..., description="Video UUID"),  # noqa: B008
    payload: Dict[str, Any] = Body(...),  # noqa: B008
    admin: ViewerRole = Depends(require_admin),  # noqa: B008
    lookup: VideoLookupService = Depends(get_lookup_service),  # noqa: B008
) -> VideoResponse:
    """Replace a video; every required field must be present."""
    bind_viewer_context(video_id=video_id)
    video = await lookup.update_video(video_id, payload)
    return VideoResponse(data=VideoSchema.from_video(video))


@router.patch("/videos/{video_id}", response_model=VideoResponse, responses=ADMIN_RESPONSES)
async def update_video(
    video_id: str = Path(..., description="Video UUID"),  # noqa: B008
    payload: Dict[str, Any] = Body(...),  # noqa: B008
    admin: ViewerRole = Depends(require_admin),  # noqa: B008
    lookup: VideoLookupService = Depends(get_lookup_service),  # noqa: B008
) -> VideoResponse:
    """Update the given fields of a video, including status transitions."""
    bind_viewer_context(video_id=video_id)
    video = await lookup.patch_video(video_id, payload)
    return VideoResponse(data=VideoSchema.from_video(video))


@router.delete(
    "/videos/{video_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=ADMIN_RESPONSES,
)
async def delete_video(
    video_id: str = Path(..., description="Video UUID"),  # noqa: B008
    admin: ViewerRole = Depends(require_admin),  # noqa: B008
    lookup: VideoLookupService = Depends(get_lookup_service),  # noqa: B008
) -> Response:
    bind_viewer_context(video_id=video_id)
    await lookup.delete_video(video_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
