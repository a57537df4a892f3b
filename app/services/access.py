"""Access decision engine.

Decides whether a viewer may play a video. The rules are evaluated in a
fixed order and the first match wins:

1. Admins are always granted, whatever the status or tier (content previews).
2. Unpublished videos are denied (ARCHIVED or NOT_PUBLISHED). This runs
   before the tier check so a non-admin never learns whether unpublished
   content is premium.
3. Free-tier videos are granted.
4. Premium viewers are granted.
5. Everyone else is denied with PREMIUM_REQUIRED.

The function is total and side-effect free.
"""

from typing import Optional

from app.models.access import GRANTED, AccessVerdict, DenialReason
from app.models.role import ViewerRole, role_satisfies
from app.models.video import Video, VideoStatus


def check_access(video: Video, viewer_role: Optional[ViewerRole]) -> AccessVerdict:
    """
    Compute the access verdict for a viewer.

    Args:
        video: The video record
        viewer_role: Viewer role, or None for anonymous

    Returns:
        AccessVerdict with a denial reason when access is refused
    """
    if viewer_role == ViewerRole.ADMIN:
        return GRANTED

    if video.status != VideoStatus.PUBLISHED:
        reason = (
            DenialReason.ARCHIVED
            if video.status == VideoStatus.ARCHIVED
            else DenialReason.NOT_PUBLISHED
        )
        return AccessVerdict(has_access=False, reason=reason)

    if not video.is_premium:
        return GRANTED

    if role_satisfies(ViewerRole.PREMIUM, viewer_role):
        return GRANTED

    return AccessVerdict(
        has_access=False,
        reason=DenialReason.PREMIUM_REQUIRED,
        required_role=ViewerRole.PREMIUM,
    )
