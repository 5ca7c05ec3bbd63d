from __future__ import annotations

import logging
import time
from collections.abc import Callable

from tripdesk.core.config import get_settings
from tripdesk.platform import PlatformSession

from .errors import WorkspaceNotFoundError
from .staging import AttachmentWorkspace

logger = logging.getLogger(__name__)


class WorkspaceRegistry:
    """Live attachment workspaces of this process, one owner each.

    Nothing here is persisted: a restart drops every staged item. A workspace
    left untouched for ``workspace_idle_timeout_seconds`` is dropped on the
    next create or lookup, unless an upload is still running in it.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._workspaces: dict[str, AttachmentWorkspace] = {}
        self._clock = clock

    def _evict_idle(self) -> None:
        timeout = get_settings().workspace_idle_timeout_seconds
        now = self._clock()
        expired = [
            workspace_id
            for workspace_id, workspace in self._workspaces.items()
            if not workspace.uploading and now - workspace.last_used > timeout
        ]
        for workspace_id in expired:
            workspace = self._workspaces.pop(workspace_id)
            logger.info(
                "Dropped idle attachments workspace %s (%d staged file(s), %d staged link(s)).",
                workspace_id,
                len(workspace.pending_files),
                len(workspace.pending_links),
            )

    def create(self, session: PlatformSession, *, parent_id: str | None) -> AttachmentWorkspace:
        self._evict_idle()
        workspace = AttachmentWorkspace(session, parent_id=parent_id)
        workspace.last_used = self._clock()
        self._workspaces[workspace.id] = workspace
        logger.debug("Opened attachments workspace %s for user %s.", workspace.id, session.user_id)
        return workspace

    def get(self, workspace_id: str, session: PlatformSession) -> AttachmentWorkspace:
        self._evict_idle()
        workspace = self._workspaces.get(workspace_id)
        if workspace is None or workspace.owner_id != session.user_id:
            raise WorkspaceNotFoundError(f"Workspace '{workspace_id}' was not found.")
        workspace.bind_session(session)
        workspace.last_used = self._clock()
        return workspace

    def discard(self, workspace_id: str, session: PlatformSession) -> AttachmentWorkspace:
        workspace = self.get(workspace_id, session)
        del self._workspaces[workspace_id]
        return workspace

    def clear(self) -> None:
        self._workspaces.clear()

    def __len__(self) -> int:
        return len(self._workspaces)


_registry = WorkspaceRegistry()


def get_workspace_registry() -> WorkspaceRegistry:
    return _registry
