"""Access endpoint: the caller's role and the users whose tasks they may see."""

from taskboard.json_handler import JsonRequestHandler
from taskboard.services.access_resolver import build_viewer_context
from taskboard.services.stores import get_user_directory


class handler(JsonRequestHandler):
    """Vercel serverless function handler for /api/access."""

    def do_GET(self):
        self.dispatch(self._get_access)

    async def _get_access(self):
        directory = get_user_directory()
        viewer = await self.authenticate(directory)
        context = await build_viewer_context(viewer, directory)
        return 200, {
            "userId": viewer.id,
            "role": viewer.role.value,
            "accessibleUserIds": context.accessible_user_ids,
        }
