"""Access resolution - which users' tasks a viewer may see."""

from typing import Optional
from pydantic import BaseModel, Field

from taskboard.models.user import Role, UserRef
from taskboard.services.user_directory import UserDirectory
from taskboard.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)


class ViewerContext(BaseModel):
    """Verified caller plus the owners whose tasks they may see, for one request."""
    user: UserRef
    accessible_user_ids: list[str] = Field(default_factory=list)

    def can_see(self, owner_id: str) -> bool:
        return owner_id in self.accessible_user_ids


async def resolve_accessible_user_ids(
    viewer_id: str,
    role_code: Optional[str],
    directory: UserDirectory,
) -> list[str]:
    """
    Resolve the user ids whose tasks ``viewer_id`` may see.

    Managers see themselves plus their direct reports (not reports of
    reports). Staff and unrecognized roles see only themselves. If the
    subordinate lookup fails the viewer falls back to their own tasks.
    """
    if not viewer_id:
        raise ValueError("viewer_id is required")

    if Role.from_code(role_code) != Role.MANAGER:
        logger.debug(
            "Viewer limited to own tasks",
            viewer_id=mask_user_id(viewer_id),
            role_code=role_code
        )
        return [viewer_id]

    try:
        subordinate_ids = await directory.subordinate_ids(viewer_id)
    except Exception as e:
        logger.error(
            f"Subordinate lookup failed, falling back to own tasks: {e}",
            viewer_id=mask_user_id(viewer_id),
            error=str(e)
        )
        return [viewer_id]

    accessible = [viewer_id]
    for user_id in subordinate_ids:
        if user_id and user_id not in accessible:
            accessible.append(user_id)

    logger.info(
        "Resolved manager access",
        viewer_id=mask_user_id(viewer_id),
        accessible_count=len(accessible)
    )
    return accessible


async def build_viewer_context(user: UserRef, directory: UserDirectory) -> ViewerContext:
    """Resolve access for an authenticated user."""
    accessible = await resolve_accessible_user_ids(user.id, user.role.value, directory)
    return ViewerContext(user=user, accessible_user_ids=accessible)
